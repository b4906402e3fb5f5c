"""Configuration schema and validation using Pydantic.

Validates and coerces configuration values from every source (environment,
files, programmatic) into the correct types with proper defaults.
"""

from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RecoverySettings(BaseSettings):
    """Pydantic settings schema for recovery configuration.

    Environment variables use the ``LLM_JSON_`` prefix, e.g.
    ``LLM_JSON_LOGGING_ENABLED=false``.
    """

    model_config = SettingsConfigDict(
        env_prefix="LLM_JSON_",
        env_file=None,  # Only used when explicitly requested
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    logging_enabled: bool = Field(
        default=True,
        description="Log applied repairs and failures",
    )

    max_diagnostics: int = Field(
        default=10,
        description="Maximum diagnostic notes kept per parse",
        ge=1,
    )

    error_preview_length: int = Field(
        default=100,
        description="Characters of the original content shown in failure logs",
        ge=0,
    )

    merge_separator: str = Field(
        default=" | ",
        description="Separator used when merging string fields of list items",
        min_length=1,
    )

    @field_validator("merge_separator", mode="before")
    @classmethod
    def reject_blank_separator(cls, v: Any) -> Any:
        """Merged strings must stay distinguishable, so blank separators fail."""
        if isinstance(v, str) and not v.strip():
            raise ValueError("merge_separator must contain a visible character")
        return v

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain dictionary suitable for SourceMap annotation."""
        return {
            "logging_enabled": self.logging_enabled,
            "max_diagnostics": self.max_diagnostics,
            "error_preview_length": self.error_preview_length,
            "merge_separator": self.merge_separator,
        }
