"""Recovery of structured JSON from raw LLM completions."""

import importlib.metadata
import logging

from llm_json_recovery.config import (
    FrozenConfig,
    ResolvedConfig,
    config_scope,
    resolve_config,
)
from llm_json_recovery.core.types import (
    ErrorKind,
    Failure,
    OutputFormat,
    ProcessedJson,
    ProcessingContext,
    ProcessingOptions,
    ProcessorResult,
    Result,
    Success,
    ValidationIssue,
)
from llm_json_recovery.exceptions import (
    ConfigurationError,
    JsonProcessingError,
    JsonRecoveryError,
    SchemaRequiredError,
)
from llm_json_recovery.pipeline import SanitizingParser, parse_with_sanitizers
from llm_json_recovery.processor import JsonProcessor, parse_and_validate, process
from llm_json_recovery.telemetry import TelemetryContext, TelemetryReporter
from llm_json_recovery.validation import (
    GENERATED_CONTENT,
    PydanticSchema,
    Schema,
    SchemaMetadata,
)

try:
    __version__ = importlib.metadata.version("llm-json-recovery")
except importlib.metadata.PackageNotFoundError:
    __version__ = "development"

# Library logging stays silent unless the application configures handlers.
logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [  # noqa: RUF022
    # Entry points
    "JsonProcessor",
    "parse_and_validate",
    "process",
    "SanitizingParser",
    "parse_with_sanitizers",
    # Inputs and results
    "ErrorKind",
    "Failure",
    "OutputFormat",
    "ProcessedJson",
    "ProcessingContext",
    "ProcessingOptions",
    "ProcessorResult",
    "Result",
    "Success",
    "ValidationIssue",
    # Schemas
    "GENERATED_CONTENT",
    "PydanticSchema",
    "Schema",
    "SchemaMetadata",
    # Configuration
    "FrozenConfig",
    "ResolvedConfig",
    "config_scope",
    "resolve_config",
    # Errors
    "ConfigurationError",
    "JsonProcessingError",
    "JsonRecoveryError",
    "SchemaRequiredError",
    # Telemetry
    "TelemetryContext",
    "TelemetryReporter",
]
