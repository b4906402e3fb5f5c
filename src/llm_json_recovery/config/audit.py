"""Source tracking for configuration resolution."""

from typing import Any

from .types import ConfigOrigin, SourceMap


class SourceTracker:
    """Builds up a SourceMap as configuration is resolved.

    Later sources overwrite the origin recorded by earlier ones, mirroring
    how their values overwrite each other.
    """

    def __init__(self) -> None:
        self._origins: dict[str, ConfigOrigin] = {}

    def set_origin(self, field: str, origin: ConfigOrigin) -> None:
        self._origins[field] = origin

    def set_multiple(self, fields: dict[str, Any], origin: ConfigOrigin) -> None:
        for field in fields:
            self._origins[field] = origin

    def get_source_map(self) -> SourceMap:
        """Return a copy of the origins recorded so far."""
        return dict(self._origins)


def summarize_origins(source_map: SourceMap) -> dict[str, int]:
    """Count fields per origin, e.g. ``{"default": 3, "env": 1}``."""
    counts: dict[str, int] = {}
    for origin in source_map.values():
        counts[origin] = counts.get(origin, 0) + 1
    return counts


def was_specified(source_map: SourceMap, field: str) -> bool:
    """Whether a user-provided source (not the default) set ``field``."""
    return source_map.get(field, "default") != "default"
