"""Configuration resolution with precedence handling.

Precedence, highest first:
Programmatic > Environment > Project file > Home file > Defaults
"""

import logging
import os
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from llm_json_recovery.exceptions import ConfigurationError

from .audit import SourceTracker
from .env_loader import PROFILE_ENV, EnvironmentConfigLoader
from .file_loader import ConfigFileError, FileConfigLoader
from .schema import RecoverySettings
from .types import ConfigOrigin, ResolvedConfig

log = logging.getLogger(__name__)


class ConfigResolver:
    """Merges configuration sources into a single ``ResolvedConfig``."""

    def __init__(self) -> None:
        self.file_loader = FileConfigLoader()
        self.env_loader = EnvironmentConfigLoader()

    def resolve(
        self,
        programmatic: dict[str, Any] | None = None,
        *,
        profile: str | None = None,
        use_env_file: str | Path | None = None,
        project_root: Path | None = None,
    ) -> ResolvedConfig:
        """Resolve configuration from all sources.

        Args:
            programmatic: Overrides with the highest precedence. Unknown
                fields are ignored.
            profile: Profile to read from the config files. Defaults to
                ``$LLM_JSON_PROFILE``.
            use_env_file: Optional ``.env`` file layered under the real
                environment.
            project_root: Where to start looking for pyproject.toml.

        Raises:
            ConfigurationError: If a source is malformed or the merged
                values fail validation.
        """
        tracker = SourceTracker()
        merged: dict[str, Any] = {}
        if profile is None:
            profile = os.getenv(PROFILE_ENV)

        def apply(values: dict[str, Any], origin: ConfigOrigin) -> None:
            for field, value in values.items():
                if field in merged:  # Only override known fields
                    merged[field] = value
                    tracker.set_origin(field, origin)

        # Step 1: Schema defaults, without touching the environment
        fields = RecoverySettings.model_fields
        merged.update({name: field.default for name, field in fields.items()})
        tracker.set_multiple(merged, "default")

        # Step 2: Home file (errors here are non-fatal)
        try:
            apply(self.file_loader.load_home_config(profile=profile), "file")
        except ConfigFileError as e:
            log.warning("Ignoring home configuration: %s", e)

        # Step 3: Project file
        try:
            apply(
                self.file_loader.load_project_config(
                    project_root=project_root, profile=profile
                ),
                "file",
            )
        except ConfigFileError as e:
            if profile is None:
                raise ConfigurationError(str(e)) from e
            log.warning("Ignoring project profile '%s': %s", profile, e)

        # Step 4: Environment
        try:
            apply(self.env_loader.load_env_config(env_file=use_env_file), "env")
        except (ValueError, FileNotFoundError) as e:
            raise ConfigurationError(f"Environment configuration error: {e}") from e

        # Step 5: Programmatic overrides
        if programmatic:
            apply(programmatic, "programmatic")

        # Step 6: Validate the merged result
        try:
            final = RecoverySettings.model_validate(merged).to_dict()
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed: {e}") from e

        return ResolvedConfig(**final, origin=tracker.get_source_map())

    def list_available_profiles(
        self, project_root: Path | None = None
    ) -> dict[str, list[str]]:
        return self.file_loader.list_available_profiles(project_root)
