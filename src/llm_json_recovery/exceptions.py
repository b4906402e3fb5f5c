"""Exceptions for LLM JSON recovery"""  # noqa: D415

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from llm_json_recovery.core.types import ErrorKind, ValidationIssue


class JsonRecoveryError(Exception):
    """Base exception for LLM JSON recovery errors"""  # noqa: D415


class SchemaRequiredError(JsonRecoveryError):
    """Raised when JSON output is requested without a schema"""  # noqa: D415


class ConfigurationError(JsonRecoveryError):
    """Raised when configuration cannot be resolved or validated"""  # noqa: D415


class JsonProcessingError(JsonRecoveryError):
    """A content failure, returned inside ``Failure`` rather than raised.

    Carries everything needed to diagnose a bad completion: what came in,
    how far sanitization got, which steps fired and the proximate cause.
    Callers branch on ``kind``: a ``PARSE`` failure is worth retrying the
    completion, a ``VALIDATION`` failure usually points at the prompt or
    schema.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        original_content: Any = None,
        sanitized_content: Any = None,
        applied_steps: Sequence[str] = (),
        diagnostics: Sequence[str] = (),
        cause: BaseException | None = None,
        issues: Sequence[ValidationIssue] = (),
    ) -> None:
        super().__init__(message)
        self.kind = ErrorKind(kind)
        self.message = message
        self.original_content = original_content
        self.sanitized_content = sanitized_content
        self.applied_steps = tuple(applied_steps)
        self.diagnostics = tuple(diagnostics)
        self.cause = cause
        self.issues = tuple(issues)
        if cause is not None:
            self.__cause__ = cause

    @property
    def last_sanitizer(self) -> str | None:
        """Description of the last sanitizer that changed the text, if any."""
        return self.applied_steps[-1] if self.applied_steps else None

    def __repr__(self) -> str:
        return (
            f"JsonProcessingError(kind={self.kind.value!r}, message={self.message!r}, "
            f"applied_steps={list(self.applied_steps)!r})"
        )
