"""Post-parse transforms over parsed JSON values.

Two tiers run at different points: normalizing transforms after every
successful parse, repairs only once a value has failed validation.
"""

from .engine import (
    DEFAULT_MERGE_SEPARATOR,
    PostParseTransform,
    TransformContext,
    TransformEngine,
    map_objects,
    transform,
)
from .normalizing import NORMALIZING_TRANSFORMS, unwrap_schema_envelope
from .repairs import (
    REPAIR_TRANSFORMS,
    coerce_numeric_strings,
    coerce_strings_to_arrays,
    drop_null_values,
    fix_property_name_typos,
    merge_objects,
    normalize_singleton_lists,
)

__all__ = [
    "DEFAULT_MERGE_SEPARATOR",
    "NORMALIZING_TRANSFORMS",
    "REPAIR_TRANSFORMS",
    "PostParseTransform",
    "TransformContext",
    "TransformEngine",
    "coerce_numeric_strings",
    "coerce_strings_to_arrays",
    "drop_null_values",
    "fix_property_name_typos",
    "map_objects",
    "merge_objects",
    "normalize_singleton_lists",
    "transform",
    "unwrap_schema_envelope",
]
