"""Sanitizer contract, the totality wrapper and the replacement-rule executor."""

from __future__ import annotations

from collections.abc import Callable, Sequence
import dataclasses
import functools
import logging
import re

from .scanning import container_at, container_map, string_mask

log = logging.getLogger(__name__)

DEFAULT_MAX_DIAGNOSTICS = 10
CONTEXT_LOOKBACK = 200


@dataclasses.dataclass(frozen=True, slots=True)
class SanitizerResult:
    """Outcome of one sanitizer application.

    When ``changed`` is False, ``text`` is the input, untouched.
    """

    text: str
    changed: bool = False
    description: str | None = None
    diagnostics: tuple[str, ...] = ()


type Sanitizer = Callable[..., SanitizerResult]
type SanitizerBody = Callable[[str], str | tuple[str, Sequence[str]]]


class DiagnosticCollector:
    """Collects diagnostic notes up to ``limit``; None keeps them all."""

    __slots__ = ("_items", "limit")

    def __init__(self, limit: int | None = DEFAULT_MAX_DIAGNOSTICS) -> None:
        self.limit = limit
        self._items: list[str] = []

    def add(self, message: str) -> None:
        if self.limit is None or len(self._items) < self.limit:
            self._items.append(message)

    def extend(self, messages: Sequence[str]) -> None:
        for message in messages:
            self.add(message)

    def items(self) -> tuple[str, ...]:
        return tuple(self._items)

    def __len__(self) -> int:
        return len(self._items)


def sanitizer(description: str) -> Callable[[SanitizerBody], Sanitizer]:
    """Turn a plain text repair into a total, self-describing sanitizer.

    The wrapped body returns the new text, optionally paired with
    diagnostics. Any exception it raises is logged and treated as "no
    change", so a single faulty heuristic never breaks the pipeline. The
    returned callable accepts a keyword-only ``max_diagnostics`` cap.
    """

    def decorate(body: SanitizerBody) -> Sanitizer:
        @functools.wraps(body)
        def run(
            text: str, *, max_diagnostics: int = DEFAULT_MAX_DIAGNOSTICS
        ) -> SanitizerResult:
            if not text:
                return SanitizerResult(text)
            try:
                outcome = body(text)
            except Exception as e:  # noqa: BLE001
                log.debug(
                    "Sanitizer '%s' failed, leaving text unchanged: %s",
                    body.__name__,
                    e,
                    exc_info=True,
                )
                return SanitizerResult(text)

            if isinstance(outcome, tuple):
                new_text, notes = outcome
            else:
                new_text, notes = outcome, ()

            if new_text == text:
                return SanitizerResult(text)
            return SanitizerResult(
                text=new_text,
                changed=True,
                description=description,
                diagnostics=tuple(notes)[:max_diagnostics],
            )

        run.description = description  # type: ignore[attr-defined]
        return run

    return decorate


# --- Declarative replacement rules ---


@dataclasses.dataclass(frozen=True, slots=True)
class RuleContext:
    """What a rule's context check gets to see about a match."""

    before: str
    offset: int
    text: str
    match: re.Match[str]
    containers: Sequence[str | None] = ()

    def container_at(self, position: int) -> str | None:
        """The innermost open container at ``position`` of ``text``."""
        if 0 <= position < len(self.containers):
            return self.containers[position]
        return container_at(self.text, position)


@dataclasses.dataclass(frozen=True, slots=True)
class ReplacementRule:
    """A named regex repair.

    ``replacement`` is either a template for ``Match.expand`` or a callable
    returning the new text, or None to leave that match alone. Matches that
    start inside a string literal are skipped unless ``skip_in_string`` is
    False. ``only_in_string`` inverts the check so the rule only touches
    string content.
    """

    name: str
    pattern: re.Pattern[str]
    replacement: str | Callable[[re.Match[str]], str | None]
    diagnostic: str | Callable[[re.Match[str]], str]
    context_check: Callable[[RuleContext], bool] | None = None
    skip_in_string: bool = True
    only_in_string: bool = False

    def _replace(self, match: re.Match[str]) -> str | None:
        if callable(self.replacement):
            return self.replacement(match)
        return match.expand(self.replacement)

    def _diagnostic(self, match: re.Match[str]) -> str:
        if callable(self.diagnostic):
            return self.diagnostic(match)
        return self.diagnostic


def apply_rule(
    text: str, rule: ReplacementRule, diagnostics: DiagnosticCollector
) -> str:
    """Apply one rule to ``text`` and return the result."""
    needs_mask = rule.skip_in_string or rule.only_in_string
    mask = string_mask(text) if needs_mask else None
    containers: list[str | None] | None = None

    def substitute(match: re.Match[str]) -> str:
        nonlocal containers
        original = match.group(0)
        start = match.start()
        if mask is not None:
            inside = start < len(mask) and mask[start]
            if inside != rule.only_in_string:
                return original
        if rule.context_check is not None:
            if containers is None:
                containers = container_map(text)
            context = RuleContext(
                before=text[max(0, start - CONTEXT_LOOKBACK) : start],
                offset=start,
                text=text,
                match=match,
                containers=containers,
            )
            if not rule.context_check(context):
                return original
        replacement = rule._replace(match)
        if replacement is None or replacement == original:
            return original
        diagnostics.add(rule._diagnostic(match))
        return replacement

    return rule.pattern.sub(substitute, text)


def apply_rules(
    text: str,
    rules: Sequence[ReplacementRule],
    *,
    multi_pass: bool = False,
    max_passes: int = 10,
    max_diagnostics: int | None = None,
) -> tuple[str, tuple[str, ...]]:
    """Run ``rules`` in order, each over the previous rule's output.

    With ``multi_pass`` the whole list is repeated until a pass changes
    nothing or ``max_passes`` is reached. Diagnostics are uncapped unless
    ``max_diagnostics`` is given; the sanitizer wrapper trims them.
    """
    diagnostics = DiagnosticCollector(max_diagnostics)
    content = text
    for _ in range(max_passes if multi_pass else 1):
        before_pass = content
        for rule in rules:
            content = apply_rule(content, rule, diagnostics)
        if content == before_pass:
            break
    return content, diagnostics.items()
