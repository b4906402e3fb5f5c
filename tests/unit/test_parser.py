"""Unit tests for the fast-path / slow-path parser."""

import json

import pytest

from llm_json_recovery.core.types import Failure, ParseFailure, ParseSuccess, Success
from llm_json_recovery.pipeline import SanitizingParser, parse_with_sanitizers, try_parse
from llm_json_recovery.sanitizers import sanitizer
from llm_json_recovery.sanitizers.properties import quote_property_names
from llm_json_recovery.sanitizers.syntax import remove_trailing_commas
from llm_json_recovery.telemetry import SimpleReporter, TelemetryContext
from llm_json_recovery.transforms import TransformContext
from llm_json_recovery.validation import SchemaMetadata

pytestmark = pytest.mark.unit


@sanitizer("Appended padding")
def append_padding(text):
    return text + " "


class TestTryParse:
    def test_returns_success_for_valid_json(self):
        assert try_parse('{"a": [1, 2]}') == Success({"a": [1, 2]})

    def test_returns_failure_instead_of_raising(self):
        result = try_parse("{'a': 1}")

        assert isinstance(result, Failure)
        assert isinstance(result.error, json.JSONDecodeError)

    def test_deep_nesting_becomes_a_parse_error(self):
        depth = 100_000
        result = try_parse("[" * depth + "]" * depth)

        assert isinstance(result, Failure)
        assert isinstance(result.error, json.JSONDecodeError)


class TestFastPath:
    @pytest.mark.parametrize(
        "text", ['{"a": 1}', "  [1, 2]\n", '"just a string"', "null"]
    )
    def test_valid_json_applies_no_steps(self, text):
        outcome = parse_with_sanitizers(text)

        assert isinstance(outcome, ParseSuccess)
        assert outcome.data == json.loads(text)
        assert outcome.applied_steps == ()
        assert outcome.diagnostics == ()


class TestSlowPath:
    def test_stops_at_first_successful_parse(self):
        outcome = parse_with_sanitizers('{"a": 1,}')

        assert isinstance(outcome, ParseSuccess)
        assert outcome.data == {"a": 1}
        assert outcome.applied_steps == ("Removed trailing commas",)

    def test_steps_accumulate_in_phase_order(self):
        outcome = parse_with_sanitizers("```json\n{a: 1,}\n```")

        assert isinstance(outcome, ParseSuccess)
        assert outcome.data == {"a": 1}
        assert outcome.applied_steps == (
            "Removed code fences",
            "Removed trailing commas",
            "Quoted unquoted property names",
        )

    def test_exhausted_pipeline_reports_last_error(self):
        outcome = parse_with_sanitizers('{"a": [1, 2,')

        assert isinstance(outcome, ParseFailure)
        assert outcome.applied_steps == ("Completed truncated structures",)
        assert outcome.last_sanitizer == "Completed truncated structures"
        assert isinstance(outcome.last_error, json.JSONDecodeError)
        assert outcome.sanitized_text == '{"a": [1, 2,]}'

    def test_is_deterministic(self):
        text = '<ctrl3>thought\n{"a": 1 "b": [1, 2,]}'
        assert parse_with_sanitizers(text) == parse_with_sanitizers(text)

    def test_custom_phases(self):
        parser = SanitizingParser(phases=[(remove_trailing_commas,)])

        assert isinstance(parser.parse("[1,]"), ParseSuccess)
        assert isinstance(parser.parse("```\n[1]\n```"), ParseFailure)

    def test_diagnostics_are_capped(self):
        parser = SanitizingParser(max_diagnostics=1)
        outcome = parser.parse("```json\n{a: 1, b: 2,}\n```")

        assert isinstance(outcome, ParseSuccess)
        assert len(outcome.diagnostics) == 1

    def test_cap_above_the_default_keeps_more_notes(self):
        text = "{" + ", ".join(f"k{i}: {i}" for i in range(12)) + "}"
        parser = SanitizingParser(phases=[(quote_property_names,)], max_diagnostics=15)

        outcome = parser.parse(text)

        assert isinstance(outcome, ParseSuccess)
        assert len(outcome.diagnostics) == 12

    @pytest.mark.parametrize(
        "phases",
        [
            [(remove_trailing_commas,), (append_padding,)],
            [(remove_trailing_commas, append_padding)],
        ],
        ids=["later-phase", "same-phase"],
    )
    def test_sanitizers_after_a_successful_parse_never_run(self, phases):
        assert append_padding("[1]").changed

        outcome = SanitizingParser(phases=phases).parse("[1,]")

        assert isinstance(outcome, ParseSuccess)
        assert outcome.applied_steps == ("Removed trailing commas",)


class TestNormalizingTransforms:
    def test_schema_envelope_is_unwrapped_after_fast_path(self):
        outcome = parse_with_sanitizers('{"type":"object","properties":{"x":5}}')

        assert outcome.data == {"x": 5}
        assert outcome.applied_steps == ()
        assert outcome.transform_steps == ("Unwrapped JSON schema envelope",)

    def test_envelope_kept_when_schema_knows_properties(self):
        context = TransformContext(metadata=SchemaMetadata.from_names(known={"properties"}))
        outcome = parse_with_sanitizers(
            '{"type":"object","properties":{"x":5}}', context
        )

        assert outcome.data == {"type": "object", "properties": {"x": 5}}
        assert outcome.transform_steps == ()


class TestTelemetry:
    def test_counts_sanitizer_firings(self, monkeypatch):
        monkeypatch.setenv("LLM_JSON_TELEMETRY", "1")
        reporter = SimpleReporter()
        parser = SanitizingParser(telemetry=TelemetryContext(reporter))

        parser.parse("```json\n[1,]\n```")

        assert reporter.total("sanitizer_applied") == 2
