"""Configuration for the recovery pipeline.

Resolve once, freeze, then flow: ``resolve_config()`` merges every source
into a ``ResolvedConfig`` with an origin map, and ``FrozenConfig`` is what
the processor actually reads.
"""

from collections.abc import Generator
from contextlib import contextmanager
import contextvars
from pathlib import Path
from typing import Any, Literal, overload

from .audit import SourceTracker, summarize_origins, was_specified
from .env_loader import EnvironmentConfigLoader
from .file_loader import ConfigFileError, FileConfigLoader
from .resolver import ConfigResolver
from .schema import RecoverySettings
from .types import ConfigOrigin, FrozenConfig, ResolvedConfig, SourceMap

_resolver = ConfigResolver()

_scoped_config: contextvars.ContextVar[ResolvedConfig] = contextvars.ContextVar(
    "llm_json_recovery_resolved_config"
)


@overload
def resolve_config(
    programmatic: dict[str, Any] | None = ...,
    *,
    profile: str | None = ...,
    use_env_file: str | Path | None = ...,
    project_root: Path | None = ...,
    explain: Literal[False] = ...,
) -> ResolvedConfig: ...
@overload
def resolve_config(
    programmatic: dict[str, Any] | None = ...,
    *,
    profile: str | None = ...,
    use_env_file: str | Path | None = ...,
    project_root: Path | None = ...,
    explain: Literal[True],
) -> tuple[ResolvedConfig, SourceMap]: ...
def resolve_config(
    programmatic: dict[str, Any] | None = None,
    *,
    profile: str | None = None,
    use_env_file: str | Path | None = None,
    project_root: Path | None = None,
    explain: bool = False,
) -> ResolvedConfig | tuple[ResolvedConfig, SourceMap]:
    """Resolve configuration from all sources.

    Inside ``config_scope()`` the scoped configuration is used instead of
    reading sources, with ``programmatic`` applied on top.

    Args:
        programmatic: Overrides with the highest precedence.
        profile: Profile name; defaults to ``$LLM_JSON_PROFILE``.
        use_env_file: Optional ``.env`` file.
        project_root: Where to look for pyproject.toml.
        explain: Also return the origin map.

    Example:
        config = resolve_config({"logging_enabled": False})
        processor = JsonProcessor(config.to_frozen())
    """
    scoped = _scoped_config.get(None)
    if scoped is not None:
        resolved = scoped.with_overrides(**programmatic) if programmatic else scoped
    else:
        resolved = _resolver.resolve(
            programmatic=programmatic,
            profile=profile,
            use_env_file=use_env_file,
            project_root=project_root,
        )
    return (resolved, resolved.origin) if explain else resolved


@contextmanager
def config_scope(config: ResolvedConfig) -> Generator[None]:
    """Use ``config`` for every ``resolve_config()`` call inside the block."""
    token = _scoped_config.set(config)
    try:
        yield
    finally:
        _scoped_config.reset(token)


def list_available_profiles(project_root: Path | None = None) -> dict[str, list[str]]:
    """Profile names available in the project and home config files."""
    return _resolver.list_available_profiles(project_root)


__all__ = [
    "ConfigFileError",
    "ConfigOrigin",
    "ConfigResolver",
    "EnvironmentConfigLoader",
    "FileConfigLoader",
    "FrozenConfig",
    "RecoverySettings",
    "ResolvedConfig",
    "SourceMap",
    "SourceTracker",
    "config_scope",
    "list_available_profiles",
    "resolve_config",
    "summarize_origins",
    "was_specified",
]
