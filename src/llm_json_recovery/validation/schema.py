"""Schema abstraction and its pydantic-backed implementation.

The pipeline only ever calls ``safe_validate``; anything exposing that one
method can serve as a schema. Pydantic models and plain Python types are
adapted automatically through ``TypeAdapter``.
"""

from __future__ import annotations

import functools
import logging
from typing import Any, Protocol, runtime_checkable

from pydantic import TypeAdapter, ValidationError

from llm_json_recovery.core.types import (
    ValidationFailure,
    ValidationIssue,
    ValidationOutcome,
    ValidationSuccess,
)

from .metadata import SchemaMetadata, extract_metadata

log = logging.getLogger(__name__)


@runtime_checkable
class Schema(Protocol):
    """Anything that can check a parsed value without raising."""

    def safe_validate(self, value: Any) -> ValidationOutcome: ...  # noqa: D102


def _format_loc(loc: tuple[int | str, ...]) -> str:
    return ".".join(str(part) for part in loc)


class PydanticSchema:
    """Validate with pydantic, reporting issues instead of raising.

    On success the *validated* value is returned, so model classes come
    back as model instances with pydantic's coercions applied.
    """

    def __init__(self, target: Any) -> None:
        self.target = target
        self._adapter: TypeAdapter[Any] = TypeAdapter(target)

    def safe_validate(self, value: Any) -> ValidationOutcome:
        try:
            data = self._adapter.validate_python(value)
        except ValidationError as e:
            issues = tuple(
                ValidationIssue(path=_format_loc(error["loc"]), message=error["msg"])
                for error in e.errors()
            )
            log.debug("Schema %s rejected value with %d issue(s)", self, len(issues))
            return ValidationFailure(issues)
        return ValidationSuccess(data)

    def json_schema(self) -> dict[str, Any]:
        return self._adapter.json_schema()

    @functools.cached_property
    def metadata(self) -> SchemaMetadata:
        try:
            return SchemaMetadata.from_json_schema(self.json_schema())
        except Exception as e:  # noqa: BLE001
            log.debug("No JSON Schema available for %s: %s", self, e)
            return SchemaMetadata()

    def __repr__(self) -> str:
        name = getattr(self.target, "__name__", None) or repr(self.target)
        return f"PydanticSchema({name})"


class GeneratedContentSchema:
    """The shape accepted when no schema is given: str, dict, list or None."""

    def safe_validate(self, value: Any) -> ValidationOutcome:
        if value is None or isinstance(value, str | dict | list):
            return ValidationSuccess(value)
        return ValidationFailure(
            (
                ValidationIssue(
                    path="",
                    message=(
                        "expected a string, object, array or null, "
                        f"got {type(value).__name__}"
                    ),
                ),
            )
        )

    def __repr__(self) -> str:
        return "GeneratedContentSchema()"


GENERATED_CONTENT = GeneratedContentSchema()


def as_schema(candidate: Any) -> Schema:
    """Adapt a schema-ish object to the ``Schema`` protocol.

    Raises:
        TypeError: If ``candidate`` is neither a ``Schema`` nor something
            pydantic can build a validator for.
    """
    if isinstance(candidate, Schema):
        return candidate
    try:
        return PydanticSchema(candidate)
    except Exception as e:
        raise TypeError(f"Cannot use {candidate!r} as a schema: {e}") from e


__all__ = [
    "GENERATED_CONTENT",
    "GeneratedContentSchema",
    "PydanticSchema",
    "Schema",
    "as_schema",
    "extract_metadata",
]
