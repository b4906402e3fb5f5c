"""Schema validation for parsed values."""

from .metadata import EMPTY_METADATA, SchemaMetadata, extract_metadata
from .schema import (
    GENERATED_CONTENT,
    GeneratedContentSchema,
    PydanticSchema,
    Schema,
    as_schema,
)

__all__ = [
    "EMPTY_METADATA",
    "GENERATED_CONTENT",
    "GeneratedContentSchema",
    "PydanticSchema",
    "Schema",
    "SchemaMetadata",
    "as_schema",
    "extract_metadata",
]
