"""Transforms applied to every successfully parsed value."""

from __future__ import annotations

from typing import Any

from .engine import TransformContext, transform

UNWRAPPED_SCHEMA_ENVELOPE = "Unwrapped JSON schema envelope"

_PLACEHOLDER_TYPES = frozenset({"string", "number", "integer", "boolean"})


def _is_envelope(value: Any) -> bool:
    return (
        isinstance(value, dict)
        and value.get("type") == "object"
        and isinstance(value.get("properties"), dict)
        and bool(value["properties"])
    )


def _placeholder_value(node: Any) -> Any:
    """``{"type": "string", "description": "x"}`` stands in for ``"x"``."""
    if (
        isinstance(node, dict)
        and set(node) == {"type", "description"}
        and node["type"] in _PLACEHOLDER_TYPES
        and isinstance(node["description"], str)
    ):
        return node["description"]
    return node


@transform(UNWRAPPED_SCHEMA_ENVELOPE)
def unwrap_schema_envelope(value: Any, context: TransformContext) -> Any:
    """Replace a top-level JSON-Schema-shaped answer with its properties.

    Models sometimes echo the schema they were shown, putting the real data
    under ``properties``. Skipped when the target schema's root object has
    a ``properties`` field of its own.
    """
    if not _is_envelope(value) or "properties" in context.metadata.top_level:
        return value
    return {key: _placeholder_value(node) for key, node in value["properties"].items()}


NORMALIZING_TRANSFORMS = (unwrap_schema_envelope,)
