"""Syntax repairs: commas and delimiters.

Trailing-comma removal runs before structure completion on purpose: a
document truncated right after a comma is closed but keeps its dangling
comma, and stays a parse failure rather than silently losing an element.
"""

from __future__ import annotations

import dataclasses
import re

from .base import ReplacementRule, apply_rules, sanitizer
from .scanning import CLOSERS, OPENERS, container_stack, ends_inside_string

INSERTED_MISSING_COMMAS = "Inserted missing commas"
REMOVED_TRAILING_COMMAS = "Removed trailing commas"
FIXED_MISMATCHED_DELIMITERS = "Fixed mismatched delimiters"
COMPLETED_TRUNCATED_STRUCTURES = "Completed truncated structures"

_LITERAL_CHARS = re.compile(r"[A-Za-z0-9_.+\-$]+")


@dataclasses.dataclass(slots=True)
class _Frame:
    kind: str
    # object: key -> colon -> value -> comma; array: value -> comma
    expect: str


def _after_value(stack: list[_Frame]) -> None:
    if not stack:
        return
    top = stack[-1]
    if top.kind == "{" and top.expect == "key":
        top.expect = "colon"
    else:
        top.expect = "comma"


def _string_end(text: str, start: int) -> int:
    """Index just past the string literal opened at ``start``."""
    escaped = False
    for i in range(start + 1, len(text)):
        ch = text[i]
        if escaped:
            escaped = False
        elif ch == "\\":
            escaped = True
        elif ch == '"':
            return i + 1
    return len(text)


@sanitizer(INSERTED_MISSING_COMMAS)
def add_missing_commas(text: str) -> tuple[str, tuple[str, ...]]:
    """Insert a comma wherever a new member starts right after a complete one.

    Works on the token level, so it catches both ``{"a": 1 "b": 2}`` and the
    same mistake spread over several lines.
    """
    out: list[str] = []
    last_significant = -1
    stack: list[_Frame] = []
    inserted = 0
    i, n = 0, len(text)

    while i < n:
        ch = text[i]
        if ch.isspace():
            out.append(ch)
            i += 1
            continue

        top = stack[-1] if stack else None
        if top is not None and top.expect == "comma":
            starts_member = (
                ch == '"' or ch.isalpha() or ch == "_"
                if top.kind == "{"
                else ch in '"{[-' or ch.isalnum()
            )
            if starts_member:
                out.insert(last_significant + 1, ",")
                inserted += 1
                top.expect = "key" if top.kind == "{" else "value"

        if ch == '"':
            end = _string_end(text, i)
            out.append(text[i:end])
            i = end
            _after_value(stack)
        elif ch in OPENERS:
            out.append(ch)
            i += 1
            stack.append(_Frame(ch, "key" if ch == "{" else "value"))
        elif ch in CLOSERS:
            out.append(ch)
            i += 1
            if stack:
                stack.pop()
            _after_value(stack)
        elif ch == ":":
            out.append(ch)
            i += 1
            if top is not None and top.kind == "{":
                top.expect = "value"
        elif ch == ",":
            out.append(ch)
            i += 1
            if top is not None:
                top.expect = "key" if top.kind == "{" else "value"
        else:
            match = _LITERAL_CHARS.match(text, i)
            end = match.end() if match else i + 1
            out.append(text[i:end])
            i = end
            if match:
                _after_value(stack)
        last_significant = len(out) - 1

    if not inserted:
        return text, ()
    return "".join(out), (f"Inserted {inserted} missing comma(s)",)


_TRAILING_COMMA_RULES = (
    ReplacementRule(
        name="trailing_comma",
        pattern=re.compile(r",(?:\s*,)*(\s*)([}\]])"),
        replacement=r"\1\2",
        diagnostic=lambda m: f"Removed trailing comma before '{m.group(2)}'",
    ),
)


@sanitizer(REMOVED_TRAILING_COMMAS)
def remove_trailing_commas(text: str) -> tuple[str, tuple[str, ...]]:
    return apply_rules(text, _TRAILING_COMMA_RULES)


@sanitizer(FIXED_MISMATCHED_DELIMITERS)
def fix_mismatched_delimiters(text: str) -> tuple[str, tuple[str, ...]]:
    """Repair closers that do not match the innermost open container.

    When the closer matches a container further out, the missing inner
    closers are inserted; otherwise the closer is swapped for the right one.
    """
    out: list[str] = []
    notes: list[str] = []
    stack: list[str] = []
    in_string = escaped = False
    for ch in text:
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            out.append(ch)
            continue
        if ch == '"':
            in_string = True
        elif ch in OPENERS:
            stack.append(ch)
        elif ch in CLOSERS and stack:
            wanted = CLOSERS[ch]
            if stack[-1] != wanted:
                if wanted in stack:
                    while stack[-1] != wanted:
                        missing = OPENERS[stack.pop()]
                        out.append(missing)
                        notes.append(f"Inserted missing '{missing}' before '{ch}'")
                else:
                    replacement = OPENERS[stack[-1]]
                    notes.append(f"Replaced '{ch}' with '{replacement}'")
                    ch = replacement
            stack.pop()
        out.append(ch)
    return "".join(out), tuple(notes)


@sanitizer(COMPLETED_TRUNCATED_STRUCTURES)
def complete_truncated_structures(text: str) -> tuple[str, tuple[str, ...]] | str:
    """Close whatever a truncated completion left open.

    An unterminated string gets its closing quote, a dangling ``"key":``
    gets ``null`` and every open container is closed in order.
    """
    notes: list[str] = []
    completed = text
    if ends_inside_string(completed):
        trailing = len(completed) - len(completed.rstrip("\\"))
        if trailing % 2:
            completed = completed[:-1]
        completed += '"'
        notes.append("Closed unterminated string")

    stack = container_stack(completed)
    if not stack:
        return text if not notes else (completed, tuple(notes))

    completed = completed.rstrip()
    if completed.endswith(":"):
        completed += " null"
        notes.append("Gave dangling property a null value")
    closers = "".join(OPENERS[opener] for opener in reversed(stack))
    notes.append(f"Appended closing delimiters {closers!r}")
    return completed + closers, tuple(notes)


SYNTAX_PHASE = (
    add_missing_commas,
    remove_trailing_commas,
    fix_mismatched_delimiters,
    complete_truncated_structures,
)
