"""Text sanitizers grouped into ordered repair phases.

The phase order is load-bearing: changing it changes which repairs fire for
a given input, so treat any reordering as a breaking change.
"""

from collections.abc import Iterable

from .base import (
    DiagnosticCollector,
    ReplacementRule,
    RuleContext,
    Sanitizer,
    SanitizerResult,
    apply_rules,
    sanitizer,
)
from .characters import CHARACTER_PHASE
from .content import CONTENT_PHASE
from .properties import PROPERTY_PHASE
from .structural import REMOVED_CODE_FENCES, STRUCTURAL_PHASE, TRIMMED_WHITESPACE
from .syntax import SYNTAX_PHASE

type Phase = tuple[Sanitizer, ...]

SANITIZER_PHASES: tuple[Phase, ...] = (
    STRUCTURAL_PHASE,
    CHARACTER_PHASE,
    SYNTAX_PHASE,
    PROPERTY_PHASE,
    CONTENT_PHASE,
)

ALL_SANITIZERS: tuple[Sanitizer, ...] = tuple(
    s for phase in SANITIZER_PHASES for s in phase
)

INSIGNIFICANT_STEPS = frozenset({TRIMMED_WHITESPACE, REMOVED_CODE_FENCES})


def is_significant(steps: Iterable[str]) -> bool:
    """Whether any step goes beyond cosmetic whitespace or fence cleanup."""
    return any(step not in INSIGNIFICANT_STEPS for step in steps)


__all__ = [
    "ALL_SANITIZERS",
    "INSIGNIFICANT_STEPS",
    "SANITIZER_PHASES",
    "DiagnosticCollector",
    "Phase",
    "ReplacementRule",
    "RuleContext",
    "Sanitizer",
    "SanitizerResult",
    "apply_rules",
    "is_significant",
    "sanitizer",
]
