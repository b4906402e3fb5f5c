"""String-literal aware scanning over raw JSON-ish text.

Most repairs must only touch text outside string literals, so the helpers
here track whether a position sits inside a double-quoted string, honouring
backslash escapes.
"""

from __future__ import annotations

from collections.abc import Iterator

OPENERS = {"{": "}", "[": "]"}
CLOSERS = {"}": "{", "]": "["}


def iter_chars(text: str) -> Iterator[tuple[int, str, bool]]:
    """Yield ``(index, char, in_string)`` for every character.

    ``in_string`` is the state *before* the character is consumed, so an
    opening quote reports ``False`` and its closing quote reports ``True``.
    """
    in_string = False
    escaped = False
    for i, ch in enumerate(text):
        yield i, ch, in_string
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True


def string_mask(text: str) -> list[bool]:
    """Return a per-character list marking positions inside string literals."""
    return [in_string for _, _, in_string in iter_chars(text)]


def is_in_string_at(text: str, position: int) -> bool:
    """Whether ``position`` falls inside a string literal."""
    if position <= 0:
        return False
    for i, _, in_string in iter_chars(text):
        if i == position:
            return in_string
    return False


def ends_inside_string(text: str) -> bool:
    """Whether the text stops part-way through a string literal."""
    in_string = False
    escaped = False
    for ch in text:
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
    return in_string


def container_stack(text: str, end: int | None = None) -> list[str]:
    """Return the stack of unclosed openers in ``text[:end]``.

    Closers that do not match the top of the stack are ignored, so the
    result is a best-effort view of nesting for damaged input.
    """
    stack: list[str] = []
    limit = len(text) if end is None else end
    for i, ch, in_string in iter_chars(text):
        if i >= limit:
            break
        if in_string:
            continue
        if ch in OPENERS:
            stack.append(ch)
        elif ch in CLOSERS and stack and stack[-1] == CLOSERS[ch]:
            stack.pop()
    return stack


def container_at(text: str, position: int) -> str | None:
    """The innermost open container (``{`` or ``[``) at ``position``."""
    stack = container_stack(text, position)
    return stack[-1] if stack else None


def container_map(text: str) -> list[str | None]:
    """``container_at`` for every position of ``text`` in a single scan."""
    tops: list[str | None] = []
    stack: list[str] = []
    for _, ch, in_string in iter_chars(text):
        tops.append(stack[-1] if stack else None)
        if in_string:
            continue
        if ch in OPENERS:
            stack.append(ch)
        elif ch in CLOSERS and stack and stack[-1] == CLOSERS[ch]:
            stack.pop()
    return tops


def find_balanced_end(text: str, start: int) -> int | None:
    """Index of the delimiter closing the container opened at ``start``.

    Returns None when the container never closes or a closer of the wrong
    kind is met first.
    """
    stack: list[str] = []
    for i, ch, in_string in iter_chars(text[start:]):
        if in_string:
            continue
        if ch in OPENERS:
            stack.append(ch)
        elif ch in CLOSERS:
            if not stack or stack[-1] != CLOSERS[ch]:
                return None
            stack.pop()
            if not stack:
                return start + i
    return None
