"""Core configuration data types.

Configuration follows the resolve-once, freeze-then-flow pattern: sources
are merged into a ``ResolvedConfig`` that remembers where each value came
from, which is then frozen into the ``FrozenConfig`` the processor reads.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Literal, NamedTuple

ConfigOrigin = Literal["programmatic", "env", "file", "default"]
SourceMap = Mapping[str, ConfigOrigin]

FIELD_ORDER = (
    "logging_enabled",
    "max_diagnostics",
    "error_preview_length",
    "merge_separator",
)


class ResolvedConfig(NamedTuple):
    """Configuration after resolution from all sources, before freezing."""

    logging_enabled: bool
    max_diagnostics: int
    error_preview_length: int
    merge_separator: str

    # Audit metadata - where each field value came from
    origin: SourceMap

    def to_frozen(self) -> "FrozenConfig":
        """Drop the audit metadata and return the immutable form."""
        return FrozenConfig(
            logging_enabled=self.logging_enabled,
            max_diagnostics=self.max_diagnostics,
            error_preview_length=self.error_preview_length,
            merge_separator=self.merge_separator,
        )

    def with_overrides(self, **overrides: object) -> "ResolvedConfig":
        """Return a copy with programmatic overrides applied.

        Unknown fields are ignored. Overridden fields are marked
        ``programmatic`` in the origin map.
        """
        values = self._asdict()
        origin = dict(self.origin)
        for field, value in overrides.items():
            if field in FIELD_ORDER:
                values[field] = value
                origin[field] = "programmatic"
        values["origin"] = origin
        return ResolvedConfig(**values)

    def audit(self) -> str:
        """Human-readable report of each field's value and origin."""
        lines = []
        for field in FIELD_ORDER:
            if field not in self.origin:
                continue
            origin = self.origin[field]
            value = getattr(self, field)
            if origin == "env":
                lines.append(f"{field}: env:LLM_JSON_{field.upper()}={value!r}")
            else:
                lines.append(f"{field}: {origin}:{value!r}")
        return "\n".join(lines)


@dataclass(frozen=True)
class FrozenConfig:
    """Immutable configuration consumed by the processor."""

    logging_enabled: bool = True
    max_diagnostics: int = 10
    error_preview_length: int = 100
    merge_separator: str = " | "
