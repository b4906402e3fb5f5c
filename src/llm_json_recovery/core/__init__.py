"""Core value types shared by every stage."""

from .types import (
    ErrorKind,
    Failure,
    OutputFormat,
    ParseFailure,
    ParseOutcome,
    ParseSuccess,
    ProcessedJson,
    ProcessingContext,
    ProcessingOptions,
    ProcessorResult,
    Result,
    Success,
    ValidationFailure,
    ValidationIssue,
    ValidationOutcome,
    ValidationSuccess,
)

__all__ = [
    "ErrorKind",
    "Failure",
    "OutputFormat",
    "ParseFailure",
    "ParseOutcome",
    "ParseSuccess",
    "ProcessedJson",
    "ProcessingContext",
    "ProcessingOptions",
    "ProcessorResult",
    "Result",
    "Success",
    "ValidationFailure",
    "ValidationIssue",
    "ValidationOutcome",
    "ValidationSuccess",
]
