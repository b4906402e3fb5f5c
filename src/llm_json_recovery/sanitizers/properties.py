"""Property and value repairs.

By the time these run the text is free of wrappers and has balanced
delimiters, so the patterns can look for narrow, local defects: property
names without quotes, members without values, objects without an opening
brace and stray words left between tokens.
"""

from __future__ import annotations

import re

from .base import ReplacementRule, RuleContext, apply_rules, sanitizer

QUOTED_PROPERTY_NAMES = "Quoted unquoted property names"
FIXED_TRUNCATED_PROPERTY_NAMES = "Fixed truncated property names"
REPLACED_UNDEFINED_VALUES = "Replaced undefined values with null"
INSERTED_MISSING_ARRAY_OBJECT_BRACES = "Inserted missing object braces in arrays"
FILLED_DANGLING_PROPERTIES = "Filled dangling properties with null"
REMOVED_STRAY_TEXT = "Removed stray text between tokens"

_STRING = r'"(?:[^"\\\n]|\\.)*"'


def _in_object(group: int):
    def check(context: RuleContext) -> bool:
        return context.container_at(context.match.start(group)) == "{"

    return check


def _in_array(group: int):
    def check(context: RuleContext) -> bool:
        return context.container_at(context.match.start(group)) == "["

    return check


_PROPERTY_NAME_RULES = (
    ReplacementRule(
        name="unquoted_property_name",
        pattern=re.compile(r"(?<=[{,])(\s*)([A-Za-z_$][\w$-]*)(\s*):"),
        replacement=r'\1"\2"\3:',
        diagnostic=lambda m: f"Quoted property name {m.group(2)!r}",
        context_check=_in_object(2),
    ),
    ReplacementRule(
        name="single_quoted_property_name",
        pattern=re.compile(r"(?<=[{,])(\s*)'([^'\"\\\n]*)'(\s*):"),
        replacement=r'\1"\2"\3:',
        diagnostic=lambda m: f"Replaced single quotes around property {m.group(2)!r}",
        context_check=_in_object(2),
    ),
)


@sanitizer(QUOTED_PROPERTY_NAMES)
def quote_property_names(text: str) -> tuple[str, tuple[str, ...]]:
    return apply_rules(text, _PROPERTY_NAME_RULES)


_TRUNCATED_NAME_RULES = (
    ReplacementRule(
        name="missing_opening_quote",
        pattern=re.compile(r"(?<=[{,])(\s*)([A-Za-z_$][\w$-]*)\"(\s*):"),
        replacement=r'\1"\2"\3:',
        diagnostic=lambda m: f"Restored opening quote of property {m.group(2)!r}",
        context_check=_in_object(2),
    ),
)


@sanitizer(FIXED_TRUNCATED_PROPERTY_NAMES)
def fix_truncated_property_names(text: str) -> tuple[str, tuple[str, ...]]:
    return apply_rules(text, _TRUNCATED_NAME_RULES)


_UNDEFINED_RULES = (
    ReplacementRule(
        name="undefined_property_value",
        pattern=re.compile(r"(:\s*)undefined\b"),
        replacement=r"\1null",
        diagnostic="Replaced undefined property value with null",
    ),
    ReplacementRule(
        name="undefined_array_element",
        pattern=re.compile(r"(?<=[\[,])(\s*)undefined(?=\s*[,\]])"),
        replacement=r"\1null",
        diagnostic="Replaced undefined array element with null",
    ),
)


@sanitizer(REPLACED_UNDEFINED_VALUES)
def replace_undefined_values(text: str) -> tuple[str, tuple[str, ...]]:
    if "undefined" not in text:
        return text, ()
    return apply_rules(text, _UNDEFINED_RULES)


_ARRAY_OBJECT_BRACE_RULES = (
    ReplacementRule(
        name="missing_array_object_brace",
        pattern=re.compile(rf"(\}}\s*,\s*)({_STRING}\s*:)"),
        replacement=r"\1{\2",
        diagnostic="Inserted missing '{' for object inside array",
        context_check=_in_array(2),
    ),
)


@sanitizer(INSERTED_MISSING_ARRAY_OBJECT_BRACES)
def insert_missing_array_object_braces(text: str) -> tuple[str, tuple[str, ...]]:
    return apply_rules(text, _ARRAY_OBJECT_BRACE_RULES)


_DANGLING_PROPERTY_RULES = (
    ReplacementRule(
        name="dangling_property",
        pattern=re.compile(rf"([{{,]\s*)({_STRING})(\s*)(?=[,}}])"),
        replacement=r"\1\2: null\3",
        diagnostic=lambda m: f"Gave property {m.group(2)} a null value",
        context_check=_in_object(2),
    ),
)


@sanitizer(FILLED_DANGLING_PROPERTIES)
def fill_dangling_properties(text: str) -> tuple[str, tuple[str, ...]]:
    return apply_rules(text, _DANGLING_PROPERTY_RULES)


_STRAY_TEXT_RULES = (
    ReplacementRule(
        name="stray_words_before_string",
        pattern=re.compile(
            r"(?<=[,\[{])(\s*)(?!(?:true|false|null)\b)"
            r"([A-Za-z][\w.-]*(?:[ \t]+[A-Za-z][\w.-]*)*)[ \t]*(?=\")"
        ),
        replacement=r"\1",
        diagnostic=lambda m: f"Removed stray text {m.group(2)!r}",
    ),
)


@sanitizer(REMOVED_STRAY_TEXT)
def remove_stray_text(text: str) -> tuple[str, tuple[str, ...]]:
    return apply_rules(text, _STRAY_TEXT_RULES)


PROPERTY_PHASE = (
    quote_property_names,
    fix_truncated_property_names,
    replace_undefined_values,
    insert_missing_array_object_braces,
    fill_dangling_properties,
    remove_stray_text,
)
