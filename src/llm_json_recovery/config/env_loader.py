"""Environment variable configuration loading.

Reads ``LLM_JSON_*`` variables, optionally layered over a ``.env`` file
(real environment variables win over the file).
"""

import os
from pathlib import Path
from typing import Any

from dotenv import dotenv_values
from pydantic import ValidationError

from .schema import RecoverySettings

ENV_PREFIX = "LLM_JSON_"
ENV_FIELDS = {
    f"{ENV_PREFIX}{name.upper()}": name
    for name in ("logging_enabled", "max_diagnostics", "error_preview_length", "merge_separator")
}
PROFILE_ENV = f"{ENV_PREFIX}PROFILE"


class EnvironmentConfigLoader:
    """Loads configuration from environment variables and ``.env`` files."""

    def load_env_config(self, env_file: str | Path | None = None) -> dict[str, Any]:
        """Return the fields set in the environment, validated and coerced.

        Only fields actually present are returned; defaults are left to the
        resolver.

        Raises:
            FileNotFoundError: If ``env_file`` does not exist.
            ValueError: If a variable holds an invalid value.
        """
        environ: dict[str, str | None] = {}
        if env_file:
            path = Path(env_file)
            if not path.exists():
                raise FileNotFoundError(f"Environment file not found: {path}")
            environ.update(dotenv_values(path))
        environ.update(os.environ)

        raw = {
            field: value
            for var, field in ENV_FIELDS.items()
            if (value := environ.get(var)) is not None
        }
        if not raw:
            return {}

        try:
            # Construct without reading the process environment a second time
            settings = RecoverySettings.model_validate(raw)
        except ValidationError as e:
            shown = ", ".join(f"{ENV_PREFIX}{k.upper()}={v}" for k, v in raw.items())
            raise ValueError(f"Invalid environment variable values: {shown}. Error: {e}") from e
        return {field: getattr(settings, field) for field in raw}
