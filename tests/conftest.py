"""
Global test configuration with support for different test types.
"""

from collections.abc import Callable, Generator
from contextlib import contextmanager, suppress
import logging
import os
from pathlib import Path
from typing import Any
from unittest.mock import patch

from pydantic import BaseModel
import pytest
import yaml

from llm_json_recovery import ProcessingContext

CHARACTERIZATION_CASES = Path(__file__).parent / "characterization" / "cases.yml"


# --- Environment Isolation (Autouse) ---
@pytest.fixture(autouse=True)
def block_dotenv(request, monkeypatch):
    """Prevent python-dotenv from reading project .env files during tests.

    Tests should only see environment they explicitly set.

    Opt-in escape hatch: mark a test with @pytest.mark.allow_dotenv
    to permit .env loading for that specific test.
    """
    if request.node.get_closest_marker("allow_dotenv"):
        return
    with suppress(Exception):
        monkeypatch.setattr(
            "dotenv.load_dotenv", lambda *_args, **_kwargs: False, raising=False
        )


@pytest.fixture(autouse=True)
def isolate_llm_json_env(request, monkeypatch):
    """Ensure a clean LLM_JSON_* environment for each test.

    Removes every LLM_JSON_* variable and the debug toggle, which would
    otherwise switch telemetry on.

    Escape hatch: @pytest.mark.allow_env_pollution keeps the current env.
    """
    if request.node.get_closest_marker("allow_env_pollution"):
        return
    for key in list(os.environ.keys()):
        if key.startswith("LLM_JSON_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.delenv("DEBUG", raising=False)


@pytest.fixture(autouse=True)
def neutral_home_config(request, monkeypatch, tmp_path):
    """Point the home-config path to an isolated temp file by default.

    Prevents reading a developer's real ~/.config/llm_json_recovery.toml.

    Escape hatch: @pytest.mark.allow_real_home_config uses the real path.
    """
    if request.node.get_closest_marker("allow_real_home_config"):
        return
    fake_home_dir = tmp_path / "home_config_isolated"
    fake_home_dir.mkdir(parents=True, exist_ok=True)
    monkeypatch.setenv(
        "LLM_JSON_RECOVERY_CONFIG_HOME", str(fake_home_dir / "llm_json_recovery.toml")
    )


@pytest.fixture
def isolated_config_sources(tmp_path):
    """Completely isolate configuration sources for testing.

    Returns a context manager that writes the given project and home files,
    sets the given variables (``LLM_JSON_`` prefix added when missing) and
    yields the project directory to resolve against.
    """

    @contextmanager
    def _setup(
        *,
        pyproject_content: str = "",
        home_content: str = "",
        env_vars: dict[str, str] | None = None,
    ) -> Generator[Path]:
        clean_env = {k: v for k, v in os.environ.items() if not k.startswith("LLM_JSON_")}
        for key, value in (env_vars or {}).items():
            if not key.startswith("LLM_JSON_"):
                key = f"LLM_JSON_{key.upper()}"
            clean_env[key] = value

        project_dir = tmp_path / "project"
        project_dir.mkdir(exist_ok=True)
        home_dir = tmp_path / "home"
        home_dir.mkdir(exist_ok=True)
        home_config_path = home_dir / "llm_json_recovery.toml"

        if pyproject_content:
            (project_dir / "pyproject.toml").write_text(pyproject_content)
        else:
            # An empty file stops the upward search at the project directory
            (project_dir / "pyproject.toml").write_text("")
        if home_content:
            home_config_path.write_text(home_content)

        clean_env["LLM_JSON_RECOVERY_CONFIG_HOME"] = str(home_config_path)
        with patch.dict(os.environ, clean_env, clear=True):
            yield project_dir

    return _setup


# --- Logging Fixtures ---
@pytest.fixture
def recovery_logs(caplog):
    """Capture warnings from the library's loggers."""
    caplog.set_level(logging.DEBUG, logger="llm_json_recovery")
    return caplog


# --- Test Environment Markers ---
def pytest_configure(config):
    """Configure custom markers for test organization."""
    markers = [
        "unit: Fast, isolated unit tests",
        "contract: Behavioral guarantees of the public pipeline",
        "characterization: Golden master tests to detect behavior changes.",
        "slow: Tests that take >1 second",
        "allow_dotenv: Permit .env loading for this test",
        "allow_env_pollution: Keep the ambient LLM_JSON_* environment",
        "allow_real_home_config: Read the real home configuration file",
    ]
    for marker in markers:
        config.addinivalue_line("markers", marker)


# --- Core Fixtures ---


class Report(BaseModel):
    """Schema shared by processor and contract tests."""

    title: str
    items: list[str]
    count: int | None = None


@pytest.fixture
def report_schema() -> type[Report]:
    return Report


@pytest.fixture
def context() -> ProcessingContext:
    return ProcessingContext("report")


@pytest.fixture(scope="session")
def characterization_cases() -> list[dict[str, Any]]:
    """Golden cases from cases.yml, loaded once per session."""
    with CHARACTERIZATION_CASES.open(encoding="utf-8") as fh:
        return yaml.safe_load(fh)["cases"]


@pytest.fixture
def run_sanitizer() -> Callable[..., Any]:
    """Apply a sanitizer and return ``(text, changed)``."""

    def _run(sanitize: Callable[[str], Any], text: str) -> tuple[str, bool]:
        result = sanitize(text)
        return result.text, result.changed

    return _run
