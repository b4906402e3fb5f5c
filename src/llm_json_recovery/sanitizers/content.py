"""Content repairs for corruption some models inject into their output."""

from __future__ import annotations

import re

from .base import ReplacementRule, apply_rules, sanitizer

REMOVED_BINARY_CORRUPTION = "Removed binary corruption markers"

_BINARY_CORRUPTION_RULES = (
    # Placeholder tokens such as <y_bin_305> can land anywhere, including
    # inside property names, so string content is not skipped.
    ReplacementRule(
        name="binary_marker",
        pattern=re.compile(r"<y_bin_\d+>"),
        replacement="",
        diagnostic=lambda m: f"Removed binary corruption marker {m.group(0)}",
        skip_in_string=False,
    ),
    ReplacementRule(
        name="binary_marker_before_property",
        pattern=re.compile(r"(?<=[{,])(\s*)<[a-z_]*bin[a-z_]*\d*>\s*(?=\")"),
        replacement=r"\1",
        diagnostic="Removed corrupted token before property name",
    ),
)


@sanitizer(REMOVED_BINARY_CORRUPTION)
def remove_binary_corruption_markers(text: str) -> tuple[str, tuple[str, ...]]:
    if "<" not in text:
        return text, ()
    # Removing one marker can join the halves of another.
    return apply_rules(
        text, _BINARY_CORRUPTION_RULES, multi_pass=True, max_passes=len(text)
    )


CONTENT_PHASE = (remove_binary_corruption_markers,)
