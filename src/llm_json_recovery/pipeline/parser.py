"""Fast path and sanitizer-assisted slow path for turning text into JSON.

Valid JSON never passes through a sanitizer. Anything else goes through the
sanitizer phases in order, with a parse attempt after every sanitizer that
changed the text; the first successful parse wins.
"""

from __future__ import annotations

from collections.abc import Sequence
import json
import logging
from typing import Any

from llm_json_recovery.core.types import (
    Failure,
    ParseFailure,
    ParseOutcome,
    ParseSuccess,
    Result,
    Success,
)
from llm_json_recovery.sanitizers import SANITIZER_PHASES, DiagnosticCollector, Phase
from llm_json_recovery.sanitizers.base import DEFAULT_MAX_DIAGNOSTICS
from llm_json_recovery.telemetry import TelemetryContext, TelemetryContextProtocol
from llm_json_recovery.transforms import (
    NORMALIZING_TRANSFORMS,
    TransformContext,
    TransformEngine,
)

log = logging.getLogger(__name__)


def try_parse(text: str) -> Result[Any, json.JSONDecodeError]:
    """Parse strictly, returning the error instead of raising it."""
    try:
        return Success(json.loads(text))
    except json.JSONDecodeError as e:
        return Failure(e)
    except RecursionError as e:
        # Absurdly deep nesting; report it like any other parse error.
        return Failure(json.JSONDecodeError(f"nesting too deep: {e}", text, 0))


class SanitizingParser:
    """Parses raw completion text, repairing it only as far as needed.

    Attributes:
        phases: Ordered sanitizer phases tried on the slow path.
        max_diagnostics: Cap on diagnostics kept for one parse.
    """

    def __init__(
        self,
        phases: Sequence[Phase] = SANITIZER_PHASES,
        *,
        max_diagnostics: int = DEFAULT_MAX_DIAGNOSTICS,
        normalizer: TransformEngine | None = None,
        telemetry: TelemetryContextProtocol | None = None,
    ) -> None:
        self.phases = tuple(tuple(phase) for phase in phases)
        self.max_diagnostics = max_diagnostics
        self.normalizer = normalizer or TransformEngine(NORMALIZING_TRANSFORMS)
        self.telemetry = telemetry or TelemetryContext()

    def parse(self, text: str, context: TransformContext | None = None) -> ParseOutcome:
        """Parse ``text``, falling back to progressive sanitization.

        Args:
            text: Raw content already known to be a string.
            context: Transform context for the normalizing transforms run
                after a successful parse.

        Returns:
            ``ParseSuccess`` with the ordered sanitizer trail, or
            ``ParseFailure`` carrying the last parse error seen.
        """
        fast = try_parse(text)
        if isinstance(fast, Success):
            return self._succeed(fast.value, (), (), context)

        last_error: json.JSONDecodeError = fast.error
        steps: list[str] = []
        diagnostics = DiagnosticCollector(self.max_diagnostics)
        current = text

        for phase in self.phases:
            for sanitize in phase:
                result = sanitize(current, max_diagnostics=self.max_diagnostics)
                if not result.changed:
                    continue
                current = result.text
                steps.append(result.description or sanitize.__name__)
                diagnostics.extend(result.diagnostics)
                self.telemetry.count("sanitizer_applied", step=steps[-1])

                attempt = try_parse(current)
                if isinstance(attempt, Success):
                    log.debug("Parsed after %d sanitizer step(s)", len(steps))
                    return self._succeed(
                        attempt.value, tuple(steps), diagnostics.items(), context
                    )
                last_error = attempt.error

        log.debug(
            "Sanitization exhausted after %d step(s); last error: %s",
            len(steps),
            last_error,
        )
        return ParseFailure(
            last_error=last_error,
            applied_steps=tuple(steps),
            diagnostics=diagnostics.items(),
            sanitized_text=current,
        )

    def _succeed(
        self,
        data: Any,
        steps: tuple[str, ...],
        diagnostics: tuple[str, ...],
        context: TransformContext | None,
    ) -> ParseSuccess:
        normalized, transform_steps = self.normalizer.run(data, context)
        return ParseSuccess(
            data=normalized,
            applied_steps=steps,
            diagnostics=diagnostics,
            transform_steps=transform_steps,
        )


_DEFAULT_PARSER = SanitizingParser()


def parse_with_sanitizers(
    text: str, context: TransformContext | None = None
) -> ParseOutcome:
    """Parse with the default phases; see ``SanitizingParser.parse``."""
    return _DEFAULT_PARSER.parse(text, context)
