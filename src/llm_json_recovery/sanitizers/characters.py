"""Character-level normalization.

Typographic quotes, raw control characters and broken escape sequences are
the usual reasons text that *looks* like JSON still fails to parse.
"""

from __future__ import annotations

import re

from .base import ReplacementRule, apply_rules, sanitizer

NORMALIZED_CURLY_QUOTES = "Normalized curly quotes"
REMOVED_CONTROL_CHARACTERS = "Removed control characters"
FIXED_OVER_ESCAPED_SEQUENCES = "Fixed over-escaped sequences"
FIXED_INVALID_ESCAPES = "Fixed invalid escape sequences"

_CURLY_DOUBLE_QUOTES = frozenset("\u201c\u201d\u201e\u201f\u2033")
_ZERO_WIDTH = frozenset("\u200b\u200c\u200d\u2060\ufeff")
_NAMED_ESCAPES = {"\n": "\\n", "\r": "\\r", "\t": "\\t", "\b": "\\b", "\f": "\\f"}
_VALID_ESCAPES = frozenset('"\\/bfnrt')
_HEX = frozenset("0123456789abcdefABCDEF")


def _closes_value(text: str, index: int) -> bool:
    """Whether the next non-blank character can follow a complete string."""
    for ch in text[index:]:
        if not ch.isspace():
            return ch in ":,}]"
    return True


@sanitizer(NORMALIZED_CURLY_QUOTES)
def normalize_curly_quotes(text: str) -> tuple[str, tuple[str, ...]] | str:
    """Turn typographic double quotes used as delimiters into ``"``.

    Curly quotes inside a normal string are legitimate content and stay.
    A string opened by a curly quote may be closed by a matching curly
    quote when what follows is a delimiter.
    """
    if not any(ch in _CURLY_DOUBLE_QUOTES for ch in text):
        return text

    out: list[str] = []
    in_string = escaped = opened_curly = False
    replaced = 0
    for i, ch in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            elif opened_curly and ch in _CURLY_DOUBLE_QUOTES and _closes_value(text, i + 1):
                ch = '"'
                in_string = False
                replaced += 1
        elif ch == '"':
            in_string, opened_curly = True, False
        elif ch in _CURLY_DOUBLE_QUOTES:
            ch = '"'
            in_string, opened_curly = True, True
            replaced += 1
        out.append(ch)
    return "".join(out), (f"Replaced {replaced} curly quote delimiter(s)",)


@sanitizer(REMOVED_CONTROL_CHARACTERS)
def normalize_control_characters(text: str) -> tuple[str, tuple[str, ...]]:
    """Escape raw control characters in strings, drop them everywhere else.

    Zero-width characters and byte order marks outside strings are dropped
    as well.
    """
    out: list[str] = []
    in_string = escaped = False
    escaped_count = removed_count = 0
    for ch in text:
        code = ord(ch)
        if in_string:
            if code < 0x20:
                out.append(_NAMED_ESCAPES.get(ch) or f"\\u{code:04x}")
                escaped_count += 1
                escaped = False
                continue
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            out.append(ch)
            continue

        if ch in _ZERO_WIDTH or (code < 0x20 and ch not in "\t\n\r"):
            removed_count += 1
            continue
        if ch == '"':
            in_string = True
        out.append(ch)

    notes = []
    if escaped_count:
        notes.append(f"Escaped {escaped_count} control character(s) inside strings")
    if removed_count:
        notes.append(f"Removed {removed_count} control character(s) outside strings")
    return "".join(out), tuple(notes)


_OVER_ESCAPE_RULES = (
    ReplacementRule(
        name="over_escaped_single_quote",
        pattern=re.compile(r"\\+'"),
        replacement="'",
        diagnostic="Collapsed over-escaped single quote",
        only_in_string=True,
    ),
    ReplacementRule(
        name="over_escaped_double_quote",
        pattern=re.compile(r'(?<!\\)(?:\\\\){1,2}\\"'),
        replacement='\\\\"',
        diagnostic="Collapsed over-escaped double quote",
        only_in_string=True,
    ),
)


@sanitizer(FIXED_OVER_ESCAPED_SEQUENCES)
def collapse_over_escaped_sequences(text: str) -> tuple[str, tuple[str, ...]]:
    if "\\" not in text:
        return text, ()
    return apply_rules(text, _OVER_ESCAPE_RULES)


@sanitizer(FIXED_INVALID_ESCAPES)
def fix_invalid_escapes(text: str) -> tuple[str, tuple[str, ...]]:
    r"""Repair backslash sequences JSON does not allow inside strings.

    ``\0`` becomes ``\u0000``, a ``\u`` without four hex digits and any
    other unknown escape get their backslash doubled, and a backslash before
    a space is dropped.
    """
    if "\\" not in text:
        return text, ()

    out: list[str] = []
    notes: list[str] = []
    in_string = False
    i, n = 0, len(text)
    while i < n:
        ch = text[i]
        if not in_string:
            if ch == '"':
                in_string = True
            out.append(ch)
            i += 1
            continue
        if ch == '"':
            in_string = False
            out.append(ch)
            i += 1
            continue
        if ch != "\\" or i + 1 >= n:
            out.append(ch)
            i += 1
            continue

        nxt = text[i + 1]
        if nxt in _VALID_ESCAPES:
            out.append(ch + nxt)
            i += 2
        elif nxt == "u":
            digits = text[i + 2 : i + 6]
            if len(digits) == 4 and all(d in _HEX for d in digits):
                out.append(text[i : i + 6])
                i += 6
            else:
                out.append("\\\\u")
                notes.append(f"Fixed invalid unicode escape \\u{digits[:4]}")
                i += 2
        elif nxt == "0":
            out.append("\\u0000")
            notes.append("Fixed null escape \\0")
            i += 2
        elif nxt == " ":
            out.append(" ")
            notes.append("Dropped backslash before space")
            i += 2
        else:
            out.append("\\\\" + nxt)
            notes.append(f"Fixed invalid escape \\{nxt}")
            i += 2
    return "".join(out), tuple(notes)


CHARACTER_PHASE = (
    normalize_curly_quotes,
    normalize_control_characters,
    collapse_over_escaped_sequences,
    fix_invalid_escapes,
)
