"""Unit tests for the recovery orchestrator."""

import json
import logging
import time
from typing import Any

import pytest

from llm_json_recovery import (
    ErrorKind,
    Failure,
    FrozenConfig,
    JsonProcessor,
    OutputFormat,
    ProcessingOptions,
    SchemaRequiredError,
    Success,
    config_scope,
    parse_and_validate,
    process,
    resolve_config,
)
from llm_json_recovery.core.types import ValidationFailure, ValidationIssue, ValidationSuccess
from llm_json_recovery.telemetry import SimpleReporter, TelemetryContext
from llm_json_recovery.validation import SchemaMetadata

pytestmark = pytest.mark.unit


class ItemsAreLists:
    """Hand-written schema: ``items`` must be a list. No JSON Schema."""

    def safe_validate(self, value: Any):
        if isinstance(value, dict) and isinstance(value.get("items"), list):
            return ValidationSuccess(value)
        return ValidationFailure((ValidationIssue("items", "expected a list"),))


class TestPrechecks:
    @pytest.mark.parametrize(
        ("content", "reason"),
        [
            (123, "is not a string"),
            (None, "is not a string"),
            ("", "is just an empty string"),
            ("   \n", "is just an empty string"),
            ("\ud800{}", "contains malformed Unicode"),
            (
                "I cannot comply with this request.",
                "contains no JSON structure and appears to be plain text",
            ),
        ],
    )
    def test_rejects_content_before_parsing(self, context, content, reason):
        result = process(content, context)

        assert isinstance(result, Failure)
        assert result.error.kind is ErrorKind.PARSE
        assert result.error.message == f"LLM response for resource 'report' {reason}"
        assert result.error.original_content == content
        assert result.error.applied_steps == ()

    def test_accepts_a_resource_name_string(self):
        result = process("[1]", "inline")
        assert isinstance(result, Success)


class TestOptions:
    def test_json_without_schema_fails_fast(self):
        with pytest.raises(SchemaRequiredError):
            ProcessingOptions(OutputFormat.JSON)

    def test_format_is_coerced_from_string(self, report_schema):
        options = ProcessingOptions("JSON", report_schema)
        assert options.expected_format is OutputFormat.JSON


class TestParsing:
    def test_parse_failure_carries_context(self, context):
        result = process('{"a": [1, 2,', context)

        assert isinstance(result, Failure)
        error = result.error
        assert error.kind is ErrorKind.PARSE
        assert error.message.endswith("cannot be parsed to JSON after all sanitization attempts")
        assert error.applied_steps == ("Completed truncated structures",)
        assert error.last_sanitizer == "Completed truncated structures"
        assert error.sanitized_content == '{"a": [1, 2,]}'
        assert isinstance(error.cause, json.JSONDecodeError)
        assert error.__cause__ is error.cause

    def test_text_mode_returns_raw_data(self, context):
        result = process('```json\n{"a": 1,}\n```', context)

        assert isinstance(result, Success)
        assert result.value.data == {"a": 1}
        assert result.value.applied_steps == ("Removed code fences", "Removed trailing commas")


class TestValidation:
    def test_valid_data_skips_repairs(self, context, report_schema):
        result = process(
            '{"title": "t", "items": ["a"]}',
            context,
            ProcessingOptions(OutputFormat.JSON, report_schema),
        )

        assert isinstance(result, Success)
        assert result.value.data == report_schema(title="t", items=["a"])
        assert result.value.transform_steps == ()

    def test_repairs_then_revalidates(self, context, report_schema):
        result = process(
            '{"title": "t", "items": "12 items including A, B", "count": "~12"}',
            context,
            ProcessingOptions(OutputFormat.JSON, report_schema),
        )

        assert isinstance(result, Success)
        assert result.value.data.items == []
        assert result.value.data.count == 12
        assert result.value.transform_steps == (
            "Coerced descriptive strings to empty arrays",
            "Coerced numeric strings to numbers",
        )

    def test_validation_failure_after_repairs(self, context, report_schema):
        result = process(
            '{"title": 5}', context, ProcessingOptions(OutputFormat.JSON, report_schema)
        )

        assert isinstance(result, Failure)
        error = result.error
        assert error.kind is ErrorKind.VALIDATION
        assert error.message.endswith(
            "parsed successfully and applied transforms but still failed schema validation"
        )
        assert error.sanitized_content == {"title": 5}
        assert {issue.path for issue in error.issues} >= {"title", "items"}
        assert error.applied_steps == ()

    def test_caller_metadata_steers_repairs(self, context):
        processor = JsonProcessor(
            sanitizer_metadata=SchemaMetadata.from_names(arrays={"items"})
        )
        result = processor.process(
            '{"items": "none yet"}', context, ProcessingOptions("JSON", ItemsAreLists())
        )

        assert isinstance(result, Success)
        assert result.value.data == {"items": []}

    def test_same_input_without_metadata_fails(self, context):
        result = process(
            '{"items": "none yet"}', context, ProcessingOptions("JSON", ItemsAreLists())
        )

        assert isinstance(result, Failure)
        assert result.error.kind is ErrorKind.VALIDATION
        assert result.error.issues == (ValidationIssue("items", "expected a list"),)


class TestLogging:
    def test_significant_repairs_are_logged_once(self, context, recovery_logs):
        process('{"a": 1 "b": 2}', context)

        summaries = [r for r in recovery_logs.records if "JSON fix" in r.getMessage()]
        assert len(summaries) == 1
        assert summaries[0].levelno == logging.WARNING
        assert summaries[0].getMessage() == "Applied 1 JSON fix(es): Inserted missing commas"
        assert summaries[0].resource_name == "report"

    def test_cosmetic_steps_are_not_logged(self, context, recovery_logs):
        process('```json\n{"a": 1}\n```', context)
        assert "JSON fix" not in recovery_logs.text

    def test_failures_include_a_truncated_preview(self, context, recovery_logs):
        config = FrozenConfig(error_preview_length=10)
        JsonProcessor(config).process('{"a": [1, 2, 3, 4, 5,', context)

        warning = next(
            r for r in recovery_logs.records if r.levelno == logging.WARNING
        )
        assert 'Content: {"a": [1, ...' in warning.getMessage()

    def test_disabled_logging_changes_nothing_but_output(self, context, recovery_logs):
        quiet = JsonProcessor(FrozenConfig(logging_enabled=False))
        loud = JsonProcessor()

        quiet_result = quiet.process('{"a": 1,}', context)
        assert not [r for r in recovery_logs.records if r.levelno >= logging.WARNING]
        assert quiet_result == loud.process('{"a": 1,}', context)


class TestTelemetry:
    def test_times_each_stage(self, context, monkeypatch):
        monkeypatch.setenv("LLM_JSON_TELEMETRY", "1")
        reporter = SimpleReporter()
        processor = JsonProcessor(telemetry=TelemetryContext(reporter))

        processor.process("[1,]", context)

        assert {"process", "process.parse", "process.validate"} <= set(reporter.timings)
        assert reporter.total("process.parse.sanitizer_applied") == 1


class TestScaling:
    def test_large_unquoted_object_is_repaired_quickly(self, context):
        text = "{" + ", ".join(f"key{i}: {i}" for i in range(4000)) + "}"

        started = time.perf_counter()
        result = process(text, context)
        elapsed = time.perf_counter() - started

        assert isinstance(result, Success)
        assert result.value.data["key3999"] == 3999
        assert elapsed < 2.0


class TestShorthand:
    def test_parse_and_validate_with_schema(self, report_schema):
        result = parse_and_validate(
            '{"title": "t", "items": []}', "report", report_schema
        )
        assert isinstance(result, Success)
        assert result.value.data.title == "t"

    def test_parse_and_validate_without_schema(self):
        result = parse_and_validate("[1, 2]", "numbers", logging_enabled=False)

        assert isinstance(result, Success)
        assert result.value.data == [1, 2]

    def test_process_follows_scoped_configuration(
        self, context, recovery_logs, isolated_config_sources
    ):
        with isolated_config_sources() as project:
            quiet = resolve_config({"logging_enabled": False}, project_root=project)

        with config_scope(quiet):
            result = process('{"a": 1 "b": 2}', context)

        assert isinstance(result, Success)
        assert "JSON fix" not in recovery_logs.text

    def test_invalid_environment_falls_back_to_defaults(
        self, context, recovery_logs, monkeypatch
    ):
        monkeypatch.setenv("LLM_JSON_MAX_DIAGNOSTICS", "0")

        result = process('{"a": 1}', context)

        assert isinstance(result, Success)
        assert result.value.data == {"a": 1}
        assert "Ignoring invalid configuration" in recovery_logs.text
