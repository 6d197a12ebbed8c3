"""Shared test fixtures for eggcarton.

Provides isolated home directories, settings, token factories, output state
management, and a CLI runner. These fixtures are automatically discovered
by pytest and available to all test modules without explicit imports.
"""

from __future__ import annotations

import base64
import json
import logging
from pathlib import Path
from typing import Any, Callable

import pytest

from eggcarton.models import CognitoSettings, Settings, TokenBundle
from eggcarton.output import OutputFormat, OutputManager, reset_output, set_output

_ENV_VARS = [
    "EGG_API_ENDPOINT",
    "API_ENDPOINT",
    "COGNITO_USER_POOL_ID",
    "COGNITO_CLIENT_ID",
    "COGNITO_DOMAIN",
    "COGNITO_REGION",
    "EGG_REDIRECT_URI",
    "EGG_LOGIN_TIMEOUT",
]


# ---------------------------------------------------------------------------
# Auto-reset global output and logging state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager and package logger after every test.

    The OutputManager and the log handler cache references to
    sys.stdout/sys.stderr at creation time. When Typer's CliRunner
    redirects those streams during a test, the cached references become
    stale after it finishes.
    """
    yield
    reset_output()
    package_logger = logging.getLogger("eggcarton")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
    package_logger.setLevel(logging.NOTSET)
    package_logger.propagate = True


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate all eggcarton state to a temporary directory.

    Points ``EGGCARTON_HOME`` at ``tmp_path / "home"``, clears every
    environment variable that feeds the settings, disables colour, and
    changes the working directory to tmp_path so no stray ``.env`` is read.

    Returns:
        The home directory.
    """
    home = tmp_path / "home"
    monkeypatch.setenv("EGGCARTON_HOME", str(home))
    monkeypatch.setenv("NO_COLOR", "1")
    for var in _ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    return home


@pytest.fixture
def configured_env(isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolated home with the required settings exported as env vars."""
    monkeypatch.setenv("EGG_API_ENDPOINT", "https://api.example.test/prod")
    monkeypatch.setenv("COGNITO_CLIENT_ID", "client-abc")
    monkeypatch.setenv("COGNITO_DOMAIN", "auth.example.test")
    return isolated_config


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings pointing at test endpoints, with a short login deadline."""
    return Settings(
        api_endpoint="https://api.example.test/prod/",
        cognito=CognitoSettings(client_id="client-abc", domain="auth.example.test"),
        redirect_uri="http://localhost:0/callback",
        login_timeout=5.0,
        token_path=tmp_path / "credentials.json",
    )


# ---------------------------------------------------------------------------
# Token factories
# ---------------------------------------------------------------------------


def _b64(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


@pytest.fixture
def make_jwt() -> Callable[..., str]:
    """Factory for unsigned JWTs carrying the given claims."""

    def _make(**claims: Any) -> str:
        header = _b64(json.dumps({"alg": "none", "typ": "JWT"}).encode())
        payload = _b64(json.dumps(claims).encode())
        return f"{header}.{payload}.signature"

    return _make


@pytest.fixture
def make_bundle(make_jwt: Callable[..., str]) -> Callable[..., TokenBundle]:
    """Factory for token bundles; defaults to a one-hour token for ``user-123``."""

    def _make(**overrides: Any) -> TokenBundle:
        data: dict[str, Any] = {
            "access_token": make_jwt(sub="user-123"),
            "id_token": "id-token",
            "refresh_token": "refresh-token",
            "expires_in": 3600,
            "token_type": "Bearer",
            "issued_at": 1_700_000_000,
        }
        data.update(overrides)
        return TokenBundle(**data)

    return _make


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager for tests that ignore output."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def json_output() -> OutputManager:
    """Install a JSON-format OutputManager for tests that check JSON output."""
    output = OutputManager(format=OutputFormat.JSON)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
