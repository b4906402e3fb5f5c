"""The recovery orchestrator: pre-checks, parse, transform, validate.

``JsonProcessor.process`` is a fixed decision procedure:

1. Reject content that is not a string, is empty, holds malformed Unicode
   or contains no ``{``/``[`` at all (``PARSE``).
2. Parse, sanitizing progressively if needed (``PARSE`` when exhausted).
3. Without a schema, accept any generated-content shaped value.
4. With a schema, validate; on failure apply the repair transforms once and
   validate again (``VALIDATION`` when that fails too). Sanitizers are
   never re-run for a schema mismatch.

Content problems are always returned as ``Failure``; only caller mistakes
(such as JSON output without a schema) raise.
"""

from __future__ import annotations

import logging
from typing import Any

from llm_json_recovery.config import FrozenConfig, resolve_config
from llm_json_recovery.core.types import (
    ErrorKind,
    Failure,
    OutputFormat,
    ParseFailure,
    ProcessedJson,
    ProcessingContext,
    ProcessingOptions,
    ProcessorResult,
    Success,
    ValidationFailure,
)
from llm_json_recovery.exceptions import ConfigurationError, JsonProcessingError
from llm_json_recovery.pipeline.parser import SanitizingParser
from llm_json_recovery.sanitizers import is_significant
from llm_json_recovery.telemetry import (
    TelemetryContext,
    TelemetryContextProtocol,
)
from llm_json_recovery.transforms import (
    REPAIR_TRANSFORMS,
    TransformContext,
    TransformEngine,
)
from llm_json_recovery.validation import (
    EMPTY_METADATA,
    GENERATED_CONTENT,
    Schema,
    SchemaMetadata,
    as_schema,
    extract_metadata,
)

log = logging.getLogger(__name__)


def _resource_message(context: ProcessingContext, reason: str) -> str:
    return f"LLM response for resource '{context.resource_name}' {reason}"


def _preview(content: Any, length: int) -> str:
    text = content if isinstance(content, str) else repr(content)
    return text if len(text) <= length else f"{text[:length]}..."


class JsonProcessor:
    """Turns raw completion content into validated data.

    Attributes:
        config: Frozen settings (logging, diagnostics cap, merge separator).
        sanitizer_metadata: Extra property-name hints merged with whatever
            is extracted from the schema.
    """

    def __init__(
        self,
        config: FrozenConfig | None = None,
        *,
        sanitizer_metadata: SchemaMetadata = EMPTY_METADATA,
        telemetry: TelemetryContextProtocol | None = None,
    ) -> None:
        self.config = config or FrozenConfig()
        self.sanitizer_metadata = sanitizer_metadata
        self.telemetry = telemetry or TelemetryContext()
        self.parser = SanitizingParser(
            max_diagnostics=self.config.max_diagnostics,
            telemetry=self.telemetry,
        )
        self.repairs = TransformEngine(REPAIR_TRANSFORMS)

    def process(
        self,
        content: Any,
        context: ProcessingContext | str,
        options: ProcessingOptions | None = None,
    ) -> ProcessorResult:
        """Recover structured data from ``content``.

        Args:
            content: Whatever the completion call returned.
            context: The resource the completion was for, or its name.
            options: Expected format and schema; defaults to TEXT with no
                schema.

        Returns:
            ``Success`` wrapping ``ProcessedJson``, or ``Failure`` wrapping a
            ``JsonProcessingError`` whose ``kind`` is ``PARSE`` or
            ``VALIDATION``.
        """
        ctx = context if isinstance(context, ProcessingContext) else ProcessingContext(context)
        opts = options or ProcessingOptions()

        with self.telemetry("process", resource=ctx.resource_name):
            rejection = self._precheck(content, ctx)
            if rejection is not None:
                return Failure(rejection)

            schema = as_schema(opts.schema) if opts.schema is not None else None
            transform_context = TransformContext(
                metadata=self._metadata_for(schema),
                merge_separator=self.config.merge_separator,
            )

            with self.telemetry("parse"):
                parsed = self.parser.parse(content, transform_context)

            if isinstance(parsed, ParseFailure):
                return Failure(self._parse_failure(content, parsed, ctx))

            with self.telemetry("validate"):
                return self._validate(
                    content,
                    ProcessedJson(
                        data=parsed.data,
                        applied_steps=parsed.applied_steps,
                        transform_steps=parsed.transform_steps,
                        diagnostics=parsed.diagnostics,
                    ),
                    schema,
                    transform_context,
                    ctx,
                )

    # --- Stages ---

    def _precheck(self, content: Any, ctx: ProcessingContext) -> JsonProcessingError | None:
        if not isinstance(content, str):
            self._log_problem(
                "LLM response is not a string. Content: %s",
                _preview(content, self.config.error_preview_length),
                ctx=ctx,
            )
            return self._content_error(content, ctx, "is not a string")
        try:
            content.encode("utf-8")
        except UnicodeEncodeError as e:
            self._log_problem("LLM response contains malformed Unicode", ctx=ctx)
            return self._content_error(content, ctx, "contains malformed Unicode", cause=e)
        if not content.strip():
            self._log_problem("LLM response is just an empty string", ctx=ctx)
            return self._content_error(content, ctx, "is just an empty string")
        if "{" not in content and "[" not in content:
            self._log_problem(
                "LLM response contains no JSON structure (%d chars)", len(content), ctx=ctx
            )
            return self._content_error(
                content, ctx, "contains no JSON structure and appears to be plain text"
            )
        return None

    def _parse_failure(
        self, content: str, parsed: ParseFailure, ctx: ProcessingContext
    ) -> JsonProcessingError:
        trail = (
            f"Applied sanitization steps: {' -> '.join(parsed.applied_steps)}"
            if parsed.applied_steps
            else "No sanitization steps applied"
        )
        self._log_problem(
            "Cannot parse JSON after all sanitization attempts. %s. Last error: %s. Content: %s",
            trail,
            parsed.last_error,
            _preview(content, self.config.error_preview_length),
            ctx=ctx,
        )
        return JsonProcessingError(
            ErrorKind.PARSE,
            _resource_message(ctx, "cannot be parsed to JSON after all sanitization attempts"),
            original_content=content,
            sanitized_content=parsed.sanitized_text,
            applied_steps=parsed.applied_steps,
            diagnostics=parsed.diagnostics,
            cause=parsed.last_error,
        )

    def _validate(
        self,
        content: str,
        processed: ProcessedJson,
        schema: Schema | None,
        transform_context: TransformContext,
        ctx: ProcessingContext,
    ) -> ProcessorResult:
        if schema is None:
            outcome = GENERATED_CONTENT.safe_validate(processed.data)
            if isinstance(outcome, ValidationFailure):
                return Failure(
                    self._validation_failure(
                        content,
                        processed,
                        outcome,
                        ctx,
                        "does not match the generated content shape",
                    )
                )
            return self._succeed(processed, ctx)

        first = schema.safe_validate(processed.data)
        if not isinstance(first, ValidationFailure):
            return self._succeed(_with_data(processed, first.data), ctx)

        log.debug(
            "First validation for '%s' failed with %d issue(s); applying repairs",
            ctx.resource_name,
            len(first.issues),
        )
        repaired, repair_steps = self.repairs.run(processed.data, transform_context)
        attempt = ProcessedJson(
            data=repaired,
            applied_steps=processed.applied_steps,
            transform_steps=(*processed.transform_steps, *repair_steps),
            diagnostics=processed.diagnostics,
        )
        second = schema.safe_validate(repaired)
        if isinstance(second, ValidationFailure):
            return Failure(
                self._validation_failure(
                    content,
                    attempt,
                    second,
                    ctx,
                    "parsed successfully and applied transforms but still failed schema validation",
                )
            )
        return self._succeed(_with_data(attempt, second.data), ctx)

    def _succeed(self, processed: ProcessedJson, ctx: ProcessingContext) -> ProcessorResult:
        steps = processed.mutation_steps
        if self.config.logging_enabled and is_significant(steps):
            log.warning(
                "Applied %d JSON fix(es): %s",
                len(steps),
                ", ".join(steps),
                extra={"resource_name": ctx.resource_name, "applied_steps": steps},
            )
        return Success(processed)

    # --- Errors and logging ---

    def _validation_failure(
        self,
        content: str,
        processed: ProcessedJson,
        outcome: ValidationFailure,
        ctx: ProcessingContext,
        reason: str,
    ) -> JsonProcessingError:
        summary = "; ".join(str(issue) for issue in outcome.issues)
        self._log_problem(
            "Parsed JSON failed schema validation: %s. Transforms: %s",
            summary,
            ", ".join(processed.transform_steps) or "none",
            ctx=ctx,
        )
        return JsonProcessingError(
            ErrorKind.VALIDATION,
            _resource_message(ctx, reason),
            original_content=content,
            sanitized_content=processed.data,
            applied_steps=processed.mutation_steps,
            diagnostics=processed.diagnostics,
            cause=ValueError(f"Schema validation failed: {summary}"),
            issues=outcome.issues,
        )

    def _content_error(
        self,
        content: Any,
        ctx: ProcessingContext,
        reason: str,
        cause: BaseException | None = None,
    ) -> JsonProcessingError:
        return JsonProcessingError(
            ErrorKind.PARSE,
            _resource_message(ctx, reason),
            original_content=content,
            cause=cause,
        )

    def _log_problem(self, message: str, *args: Any, ctx: ProcessingContext) -> None:
        if self.config.logging_enabled:
            log.warning(message, *args, extra={"resource_name": ctx.resource_name})

    def _metadata_for(self, schema: Schema | None) -> SchemaMetadata:
        if schema is None:
            return self.sanitizer_metadata
        return extract_metadata(schema).merged_with(self.sanitizer_metadata)


def _with_data(processed: ProcessedJson, data: Any) -> ProcessedJson:
    return ProcessedJson(
        data=data,
        applied_steps=processed.applied_steps,
        transform_steps=processed.transform_steps,
        diagnostics=processed.diagnostics,
    )


def process(
    content: Any,
    context: ProcessingContext | str,
    options: ProcessingOptions | None = None,
    *,
    config: FrozenConfig | None = None,
    sanitizer_metadata: SchemaMetadata | None = None,
) -> ProcessorResult:
    """Recover data with a processor built for this call.

    Without an explicit ``config`` the current ``resolve_config()`` result is
    used, so ``config_scope`` and ``LLM_JSON_*`` settings apply. Settings that
    fail to resolve are logged and replaced by the defaults.
    """
    if config is None:
        try:
            config = resolve_config().to_frozen()
        except ConfigurationError as e:
            log.warning("Ignoring invalid configuration: %s", e)
            config = FrozenConfig()
    processor = JsonProcessor(
        config,
        sanitizer_metadata=sanitizer_metadata or EMPTY_METADATA,
    )
    return processor.process(content, context, options)


def parse_and_validate(
    content: Any,
    resource_name: str,
    schema: Any = None,
    *,
    logging_enabled: bool = True,
) -> ProcessorResult:
    """Shorthand: JSON output when ``schema`` is given, TEXT otherwise."""
    options = (
        ProcessingOptions(OutputFormat.JSON, schema)
        if schema is not None
        else ProcessingOptions(OutputFormat.TEXT)
    )
    config = None if logging_enabled else FrozenConfig(logging_enabled=False)
    return process(content, ProcessingContext(resource_name), options, config=config)
