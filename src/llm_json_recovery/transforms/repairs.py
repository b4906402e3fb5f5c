"""Schema-guided repairs, tried only after a value fails validation.

Each repair targets one known way generated data drifts from its schema
and leaves everything else alone. They consult the schema metadata to
decide which property names they may touch.
"""

from __future__ import annotations

import re
from typing import Any

from .engine import TransformContext, map_objects, transform

DROPPED_NULL_VALUES = "Dropped null values"
FIXED_PROPERTY_NAME_TYPOS = "Fixed property name typos"
COERCED_STRINGS_TO_ARRAYS = "Coerced descriptive strings to empty arrays"
NORMALIZED_SINGLETON_LISTS = "Normalized lists given for single objects"
COERCED_NUMERIC_STRINGS = "Coerced numeric strings to numbers"

_NUMBER = re.compile(r"-?\d[\d,]*(?:\.\d+)?")


@transform(DROPPED_NULL_VALUES)
def drop_null_values(value: Any, context: TransformContext) -> Any:  # noqa: ARG001
    """Omit ``null`` members so optional fields read as absent."""

    def fix(obj: dict[str, Any]) -> dict[str, Any]:
        if all(v is not None for v in obj.values()):
            return obj
        return {k: v for k, v in obj.items() if v is not None}

    return map_objects(value, fix)


@transform(FIXED_PROPERTY_NAME_TYPOS)
def fix_property_name_typos(value: Any, context: TransformContext) -> Any:
    """Rename ``name_`` to ``name`` when only the canonical name is known.

    Never overwrites: if the canonical key is already present the variant
    is left in place.
    """
    known = context.metadata.known
    if not known:
        return value

    def canonical(key: str) -> str | None:
        if not key.endswith("_") or key in known:
            return None
        stripped = key.rstrip("_")
        return stripped if stripped in known else None

    def fix(obj: dict[str, Any]) -> dict[str, Any]:
        renames = {
            key: target
            for key in obj
            if (target := canonical(key)) is not None and target not in obj
        }
        if not renames:
            return obj
        fixed: dict[str, Any] = {}
        for key, item in obj.items():
            target = renames.get(key, key)
            if target not in fixed:
                fixed[target] = item
        return fixed

    return map_objects(value, fix)


@transform(COERCED_STRINGS_TO_ARRAYS)
def coerce_strings_to_arrays(value: Any, context: TransformContext) -> Any:
    """A string where the schema wants an array becomes ``[]``.

    Such strings are summaries ("12 items including A, B") rather than data,
    so an empty list is the honest structured equivalent.
    """
    arrays = context.metadata.arrays
    if not arrays:
        return value

    def fix(obj: dict[str, Any]) -> dict[str, Any]:
        if not any(isinstance(obj.get(k), str) for k in arrays):
            return obj
        return {k: [] if k in arrays and isinstance(v, str) else v for k, v in obj.items()}

    return map_objects(value, fix)


def _dedupe(items: list[Any]) -> list[Any]:
    unique: list[Any] = []
    for item in items:
        if item not in unique:
            unique.append(item)
    return unique


def merge_objects(objects: list[dict[str, Any]], separator: str) -> dict[str, Any]:
    """Merge several objects into one, deterministically.

    Strings are joined in encounter order with duplicates removed, arrays
    are unioned by value equality and anything else keeps its first value.
    """
    strings: dict[str, list[str]] = {}
    arrays: dict[str, list[Any]] = {}
    merged: dict[str, Any] = {}
    for obj in objects:
        for key, item in obj.items():
            if key not in merged:
                merged[key] = item
                if isinstance(item, str):
                    strings[key] = [item]
                elif isinstance(item, list):
                    arrays[key] = list(item)
            elif key in strings and isinstance(item, str):
                strings[key].append(item)
            elif key in arrays and isinstance(item, list):
                arrays[key].extend(item)
    for key, parts in strings.items():
        merged[key] = separator.join(_dedupe(parts))
    for key, items in arrays.items():
        merged[key] = _dedupe(items)
    return merged


@transform(NORMALIZED_SINGLETON_LISTS)
def normalize_singleton_lists(value: Any, context: TransformContext) -> Any:
    """Fix a list returned where the schema expects a single object.

    An empty list means the field is absent, a single element is unwrapped
    and several objects are merged.
    """
    objects = context.metadata.objects
    if not objects:
        return value

    def collapse(items: list[Any]) -> tuple[bool, Any]:
        if not items:
            return True, None
        if not all(isinstance(item, dict) for item in items):
            return False, items
        if len(items) == 1:
            return True, items[0]
        return True, merge_objects(items, context.merge_separator)

    def fix(obj: dict[str, Any]) -> dict[str, Any]:
        if not any(isinstance(obj.get(k), list) for k in objects):
            return obj
        fixed: dict[str, Any] = {}
        changed = False
        for key, item in obj.items():
            if key in objects and isinstance(item, list):
                handled, replacement = collapse(item)
                if handled:
                    changed = True
                    if replacement is not None:
                        fixed[key] = replacement
                    continue
            fixed[key] = item
        return fixed if changed else obj

    return map_objects(value, fix)


def _parse_number(text: str) -> int | float | None:
    match = _NUMBER.search(text)
    if match is None:
        return None
    digits = match.group(0).replace(",", "")
    return float(digits) if "." in digits else int(digits)


@transform(COERCED_NUMERIC_STRINGS)
def coerce_numeric_strings(value: Any, context: TransformContext) -> Any:
    """``"~150 items"`` becomes ``150`` for fields the schema types as numbers."""
    numerics = context.metadata.numerics
    if not numerics:
        return value

    def fix(obj: dict[str, Any]) -> dict[str, Any]:
        parsed = {
            key: number
            for key in numerics
            if isinstance(obj.get(key), str) and (number := _parse_number(obj[key])) is not None
        }
        if not parsed:
            return obj
        return {k: parsed.get(k, v) for k, v in obj.items()}

    return map_objects(value, fix)


REPAIR_TRANSFORMS = (
    drop_null_values,
    fix_property_name_typos,
    coerce_strings_to_arrays,
    normalize_singleton_lists,
    coerce_numeric_strings,
)
