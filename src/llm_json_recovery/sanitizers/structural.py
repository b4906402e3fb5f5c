"""Structural and noise repairs: everything that wraps or pads the JSON.

These run first because they remove the coarse damage (markdown fences,
reasoning preambles, surrounding prose, duplicated output) that would
otherwise confuse every finer-grained repair.
"""

from __future__ import annotations

import re

from .base import ReplacementRule, apply_rules, sanitizer
from .scanning import OPENERS, find_balanced_end

TRIMMED_WHITESPACE = "Trimmed whitespace"
REMOVED_CODE_FENCES = "Removed code fences"
REMOVED_THOUGHT_MARKERS = "Removed thought markers"
COLLAPSED_DUPLICATE_JSON = "Collapsed duplicated JSON object"
EXTRACTED_LARGEST_JSON_SPAN = "Extracted largest JSON span"
REMOVED_TRUNCATION_MARKERS = "Removed truncation markers"


@sanitizer(TRIMMED_WHITESPACE)
def trim_whitespace(text: str) -> str:
    return text.strip()


_CODE_FENCE_RULES = (
    ReplacementRule(
        name="code_fence",
        pattern=re.compile(r"```[A-Za-z0-9_+-]*[ \t]*"),
        replacement="",
        diagnostic="Removed markdown code fence",
    ),
)


@sanitizer(REMOVED_CODE_FENCES)
def remove_code_fences(text: str) -> str | tuple[str, tuple[str, ...]]:
    if "```" not in text:
        return text
    cleaned, notes = apply_rules(text, _CODE_FENCE_RULES)
    if cleaned == text:
        return text
    return cleaned.strip(), notes


_THOUGHT_RULES = (
    ReplacementRule(
        name="ctrl_thought",
        pattern=re.compile(r"<ctrl\d+>\s*thought\s*:?[ \t]*\n?", re.IGNORECASE),
        replacement="",
        diagnostic="Removed control-style thought marker",
    ),
    ReplacementRule(
        name="thought_line",
        pattern=re.compile(r"\A\s*thought\s*:?[ \t]*\n", re.IGNORECASE),
        replacement="",
        diagnostic="Removed leading thought marker",
    ),
)


@sanitizer(REMOVED_THOUGHT_MARKERS)
def remove_thought_markers(text: str) -> tuple[str, tuple[str, ...]]:
    cleaned, notes = apply_rules(text, _THOUGHT_RULES)
    return cleaned.strip() if cleaned != text else text, notes


_DUPLICATE_OBJECT = re.compile(r"\A\s*(\{[\s\S]+?\})(?:\s*\1)+\s*\Z")


@sanitizer(COLLAPSED_DUPLICATE_JSON)
def collapse_duplicate_json_object(text: str) -> str:
    """Keep one copy when the same object was emitted several times back to back."""
    match = _DUPLICATE_OBJECT.match(text)
    if match is None:
        return text
    single = match.group(1)
    if find_balanced_end(single, 0) != len(single) - 1:
        return text
    return single


@sanitizer(EXTRACTED_LARGEST_JSON_SPAN)
def extract_largest_json_span(text: str) -> tuple[str, tuple[str, ...]] | str:
    """Pull the largest balanced ``{...}`` or ``[...]`` out of surrounding prose.

    If the first candidate never closes the text is most likely truncated
    JSON, so it is left for the completion repair instead.
    """
    best: tuple[int, int] | None = None
    i = 0
    first = True
    while i < len(text):
        if text[i] not in OPENERS:
            i += 1
            continue
        end = find_balanced_end(text, i)
        if end is None:
            if first:
                return text
            break
        first = False
        if best is None or (end - i) > (best[1] - best[0]):
            best = (i, end)
        i = end + 1

    if best is None:
        return text
    span = text[best[0] : best[1] + 1]
    if span == text:
        return text
    dropped = len(text) - len(span)
    return span, (f"Dropped {dropped} character(s) surrounding the JSON span",)


_TRUNCATION_RULES = (
    ReplacementRule(
        name="truncation_marker",
        pattern=re.compile(
            r"(?:,\s*)?(?:\.\.\.\s*\(truncated\)|\[\.\.\.\]|\.\.\.|…"
            r"|\(truncated\)|_TRUNCATED_|_DOC_GENERATION_TRUNCATED_)"
            r"(?=\s*(?:[\]}]|\Z))"
        ),
        replacement="",
        diagnostic=lambda m: f"Removed truncation marker {m.group(0).strip(', ')!r}",
    ),
)


@sanitizer(REMOVED_TRUNCATION_MARKERS)
def remove_truncation_markers(text: str) -> tuple[str, tuple[str, ...]]:
    # Each pass shortens the text, so this reaches a fixed point.
    return apply_rules(
        text, _TRUNCATION_RULES, multi_pass=True, max_passes=len(text)
    )


STRUCTURAL_PHASE = (
    trim_whitespace,
    remove_code_fences,
    remove_thought_markers,
    collapse_duplicate_json_object,
    extract_largest_json_span,
    remove_truncation_markers,
)
