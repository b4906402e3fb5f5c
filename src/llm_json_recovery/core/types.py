"""Core data types that flow through the recovery pipeline.

This module defines the immutable data structures that represent the state
of a single recovery as it moves through parsing, transforming and
validation. Each stage returns a new value, so nothing is shared or mutated
between invocations.
"""

from __future__ import annotations

import dataclasses
import enum
import typing

if typing.TYPE_CHECKING:  # pragma: no cover - import for type checking only
    from llm_json_recovery.exceptions import JsonProcessingError
    from llm_json_recovery.validation.schema import Schema

# --- Minimal guard helpers ---


def _require(
    *,
    condition: bool,
    message: str,
    exc: type[Exception] = ValueError,
    field_name: str | None = None,
) -> None:
    """Centralized validation with optional field context for clearer errors."""
    if not condition:
        if field_name:
            raise exc(f"{field_name}: {message}")
        raise exc(message)


def _is_tuple_of(value: object, typ: type | tuple[type, ...]) -> bool:
    return isinstance(value, tuple) and all(isinstance(v, typ) for v in value)


# --- Result Monad ---
# Every parse and validation attempt returns one of these instead of raising,
# which keeps failure a predictable part of the data flow.

TSuccess = typing.TypeVar("TSuccess")
TFailure = typing.TypeVar("TFailure")


@dataclasses.dataclass(frozen=True, slots=True)
class Success[TSuccess]:
    """A successful result."""

    value: TSuccess


@dataclasses.dataclass(frozen=True, slots=True)
class Failure[TFailure]:
    """A failed result, containing the error."""

    error: TFailure


Result = Success[TSuccess] | Failure[TFailure]


# --- Enumerations ---


class OutputFormat(enum.StrEnum):
    """The shape of output the caller expects from the completion."""

    TEXT = "TEXT"
    JSON = "JSON"


class ErrorKind(enum.StrEnum):
    """The two ways a recovery can ultimately fail."""

    PARSE = "PARSE"
    VALIDATION = "VALIDATION"


# --- Invocation inputs ---


@dataclasses.dataclass(frozen=True, slots=True)
class ProcessingContext:
    """Identifies the resource a completion was requested for."""

    resource_name: str

    def __post_init__(self) -> None:
        _require(
            condition=isinstance(self.resource_name, str),
            message="must be str",
            field_name="resource_name",
            exc=TypeError,
        )


@dataclasses.dataclass(frozen=True, slots=True)
class ProcessingOptions:
    """What the caller expects back.

    JSON output always needs a schema; TEXT output never does. Building
    options that break this rule raises immediately.
    """

    expected_format: OutputFormat = OutputFormat.TEXT
    schema: Schema | None = None

    def __post_init__(self) -> None:
        # Local import keeps core.types free of an import cycle with exceptions.
        from llm_json_recovery.exceptions import SchemaRequiredError

        fmt = OutputFormat(self.expected_format)
        object.__setattr__(self, "expected_format", fmt)
        if fmt is OutputFormat.JSON and self.schema is None:
            raise SchemaRequiredError(
                "expected_format=JSON requires a schema to validate against"
            )


# --- Parse outcomes ---


@dataclasses.dataclass(frozen=True, slots=True)
class ParseSuccess:
    """Text was turned into a JSON value.

    ``applied_steps`` lists the sanitizer descriptions that changed the text,
    in application order. ``transform_steps`` lists the normalizing
    transforms that changed the parsed value.
    """

    data: typing.Any
    applied_steps: tuple[str, ...] = ()
    diagnostics: tuple[str, ...] = ()
    transform_steps: tuple[str, ...] = ()


@dataclasses.dataclass(frozen=True, slots=True)
class ParseFailure:
    """Every sanitizer was tried and nothing parsed."""

    last_error: Exception
    applied_steps: tuple[str, ...] = ()
    diagnostics: tuple[str, ...] = ()
    sanitized_text: str = ""

    @property
    def last_sanitizer(self) -> str | None:
        return self.applied_steps[-1] if self.applied_steps else None


ParseOutcome = ParseSuccess | ParseFailure


# --- Validation outcomes ---


@dataclasses.dataclass(frozen=True, slots=True)
class ValidationIssue:
    """A single schema mismatch, located by a dotted path."""

    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.path or '<root>'}: {self.message}"


@dataclasses.dataclass(frozen=True, slots=True)
class ValidationSuccess:
    data: typing.Any


@dataclasses.dataclass(frozen=True, slots=True)
class ValidationFailure:
    issues: tuple[ValidationIssue, ...]

    def __post_init__(self) -> None:
        _require(
            condition=_is_tuple_of(self.issues, ValidationIssue),
            message="must be a tuple of ValidationIssue",
            field_name="issues",
            exc=TypeError,
        )


ValidationOutcome = ValidationSuccess | ValidationFailure


# --- Public result ---


@dataclasses.dataclass(frozen=True, slots=True)
class ProcessedJson:
    """The recovered value plus the full audit trail of what was changed."""

    data: typing.Any
    applied_steps: tuple[str, ...] = ()
    transform_steps: tuple[str, ...] = ()
    diagnostics: tuple[str, ...] = ()

    @property
    def mutation_steps(self) -> tuple[str, ...]:
        """Sanitizer steps followed by transform steps."""
        return (*self.applied_steps, *self.transform_steps)


type ProcessorResult = Success[ProcessedJson] | Failure[JsonProcessingError]
