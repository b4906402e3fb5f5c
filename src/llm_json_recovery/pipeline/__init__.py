"""Parsing stage of the recovery pipeline."""

from .parser import SanitizingParser, parse_with_sanitizers, try_parse

__all__ = ["SanitizingParser", "parse_with_sanitizers", "try_parse"]
