"""File-based configuration loading with profile support.

Reads ``[tool.llm_json_recovery]`` from the nearest ``pyproject.toml`` and
the home file ``~/.config/llm_json_recovery.toml``. Both support named
profiles under a ``profiles`` table.
"""

import os
from pathlib import Path
import tomllib
from typing import Any

TOOL_SECTION = "llm_json_recovery"
HOME_OVERRIDE_ENV = "LLM_JSON_RECOVERY_CONFIG_HOME"


class ConfigFileError(Exception):
    """Raised when configuration file loading fails."""

    def __init__(
        self, file_path: Path, message: str, cause: Exception | None = None
    ) -> None:
        self.file_path = file_path
        self.message = message
        self.cause = cause
        super().__init__(f"Config file error in {file_path}: {message}")


def _select_profile(
    section: dict[str, Any], profile: str | None, source: Path
) -> dict[str, Any]:
    if profile:
        profiles = section.get("profiles", {})
        if profile not in profiles:
            raise ConfigFileError(
                source,
                f"Profile '{profile}' not found. Available profiles: {list(profiles)}",
            )
        return dict(profiles[profile])
    config = dict(section)
    config.pop("profiles", None)
    return config


class FileConfigLoader:
    """Loads configuration from TOML files with profile support."""

    def load_project_config(
        self, project_root: Path | None = None, profile: str | None = None
    ) -> dict[str, Any]:
        """Load ``[tool.llm_json_recovery]`` from the nearest pyproject.toml.

        Returns:
            The configured values, or an empty dict when there is no file or
            no section.

        Raises:
            ConfigFileError: If the file cannot be parsed or the profile is
                missing.
        """
        path = self._find_pyproject_toml(project_root)
        if not path:
            return {}
        section = self._read(path).get("tool", {}).get(TOOL_SECTION, {})
        if not section:
            return {}
        return _select_profile(section, profile, path)

    def load_home_config(self, profile: str | None = None) -> dict[str, Any]:
        """Load the home configuration file, if it exists."""
        path = self.home_config_path()
        if not path.exists():
            return {}
        return _select_profile(self._read(path), profile, path)

    def list_available_profiles(
        self, project_root: Path | None = None
    ) -> dict[str, list[str]]:
        """Profile names from the project and home files; unreadable files list none."""
        profiles: dict[str, list[str]] = {"project": [], "home": []}
        pyproject = self._find_pyproject_toml(project_root)
        if pyproject:
            try:
                section = self._read(pyproject).get("tool", {}).get(TOOL_SECTION, {})
                profiles["project"] = list(section.get("profiles", {}))
            except ConfigFileError:
                pass
        home = self.home_config_path()
        if home.exists():
            try:
                profiles["home"] = list(self._read(home).get("profiles", {}))
            except ConfigFileError:
                pass
        return profiles

    def home_config_path(self) -> Path:
        """``$LLM_JSON_RECOVERY_CONFIG_HOME`` or ``~/.config/llm_json_recovery.toml``."""
        override = os.getenv(HOME_OVERRIDE_ENV)
        if override:
            return Path(override)
        return Path.home() / ".config" / f"{TOOL_SECTION}.toml"

    def _read(self, path: Path) -> dict[str, Any]:
        try:
            with path.open(mode="rb") as f:
                return tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            raise ConfigFileError(path, f"Failed to parse TOML: {e}", cause=e) from e

    def _find_pyproject_toml(self, start_dir: Path | None = None) -> Path | None:
        current = Path(start_dir or Path.cwd()).resolve()
        while True:
            candidate = current / "pyproject.toml"
            if candidate.exists():
                return candidate
            if current == current.parent:
                return None
            current = current.parent
