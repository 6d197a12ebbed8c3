"""Configuration management with a single home directory, atomic writes, and precedence resolution.

This module handles all persistent state for eggcarton:

* **Directory layout** -- everything lives under ``$EGGCARTON_HOME``
  (default ``~/.eggcarton/``): ``config.json``, ``credentials.json`` and
  ``logs/``. See :func:`get_home_dir`.
* **Settings** -- :func:`load_settings` merges environment variables, a
  ``.env`` file, ``config.json`` and defaults into one
  :class:`~eggcarton.models.Settings` value that is passed explicitly to
  the login flow and commands.
* **Atomic writes** -- :func:`_atomic_write` writes through a temp file in
  the target directory and renames it into place, optionally fixing the
  file mode before any content is written.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Optional

from dotenv import dotenv_values
from pydantic import ValidationError

from eggcarton.exceptions import ConfigError
from eggcarton.models import Settings

HOME_ENV_VAR = "EGGCARTON_HOME"
_CONFIG_FILENAME = "config.json"
_CREDENTIALS_FILENAME = "credentials.json"

# Environment variable -> (section, field). ``None`` section means top level.
_ENV_FIELDS: list[tuple[tuple[str, ...], Optional[str], str]] = [
    (("EGG_API_ENDPOINT", "API_ENDPOINT"), None, "api_endpoint"),
    (("COGNITO_USER_POOL_ID",), "cognito", "user_pool_id"),
    (("COGNITO_CLIENT_ID",), "cognito", "client_id"),
    (("COGNITO_DOMAIN",), "cognito", "domain"),
    (("COGNITO_REGION",), "cognito", "region"),
    (("EGG_REDIRECT_URI",), None, "redirect_uri"),
    (("EGG_LOGIN_TIMEOUT",), None, "login_timeout"),
]

_REQUIRED: list[tuple[Optional[str], str, str]] = [
    (None, "api_endpoint", "EGG_API_ENDPOINT"),
    ("cognito", "client_id", "COGNITO_CLIENT_ID"),
    ("cognito", "domain", "COGNITO_DOMAIN"),
]


# --- Paths ---


def get_home_dir() -> Path:
    """Return the eggcarton home directory, creating it (``0o700``) if necessary.

    ``$EGGCARTON_HOME`` wins over the default ``~/.eggcarton/``.
    """
    env_value = os.environ.get(HOME_ENV_VAR, "")
    path = Path(env_value).expanduser() if env_value else Path.home() / ".eggcarton"
    path.mkdir(mode=0o700, parents=True, exist_ok=True)
    return path


def get_logs_dir() -> Path:
    """Return ``<home>/logs/`` (crash logs), creating it if necessary."""
    path = get_home_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


def config_path() -> Path:
    """Path to ``config.json``."""
    return get_home_dir() / _CONFIG_FILENAME


def credentials_path() -> Path:
    """Default path of the stored token bundle."""
    return get_home_dir() / _CREDENTIALS_FILENAME


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str, mode: Optional[int] = None) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems. When *mode* is
    given it is applied to the temp file before any content is written.
    On any failure the temp file is removed.
    """
    path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        if mode is not None:
            os.chmod(tmp_path, mode)
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None and os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise


# --- Settings ---


def _read_config_file(path: Path) -> dict[str, Any]:
    if not path.is_file():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid config at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid config at {path}: expected a JSON object")
    return data


def _read_env_file(env_file: Optional[Path]) -> dict[str, str]:
    if env_file is None:
        env_file = Path.cwd() / ".env"
        if not env_file.is_file():
            return {}
    elif not env_file.is_file():
        raise ConfigError(f"Env file not found: {env_file}")
    return {k: v for k, v in dotenv_values(env_file).items() if v is not None}


def load_settings(env_file: Optional[Path] = None) -> Settings:
    """Resolve settings with full precedence chain.

    Precedence (high to low):
        1. Environment variables (``EGG_API_ENDPOINT`` or ``API_ENDPOINT``,
           ``COGNITO_*``, ``EGG_REDIRECT_URI``, ``EGG_LOGIN_TIMEOUT``)
        2. ``.env`` file (*env_file*, or ``./.env`` when present)
        3. ``<home>/config.json``
        4. Defaults

    Args:
        env_file: Explicit ``.env`` path (``--env-file``). Must exist.

    Returns:
        The effective :class:`~eggcarton.models.Settings`.

    Raises:
        ConfigError: If required values are missing, a file is malformed,
            or a value fails validation.
    """
    data = _read_config_file(config_path())
    data.setdefault("cognito", {})
    if not isinstance(data["cognito"], dict):
        raise ConfigError(f"Invalid config at {config_path()}: 'cognito' must be an object")

    # The process environment shadows the .env file.
    sources = {**_read_env_file(env_file), **os.environ}
    for names, section, field in _ENV_FIELDS:
        value = next((sources[name] for name in names if sources.get(name)), None)
        if value is None:
            continue
        target = data[section] if section else data
        target[field] = value

    missing = [
        env_var
        for section, field, env_var in _REQUIRED
        if not (data[section] if section else data).get(field)
    ]
    if missing:
        raise ConfigError(
            f"Missing required configuration: {', '.join(missing)}. "
            "Set them in the environment or a .env file, or run 'egg configure'."
        )

    data["token_path"] = credentials_path()
    try:
        return Settings.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc


def save_settings(settings: Settings) -> Path:
    """Persist *settings* atomically to ``config.json``.

    Returns:
        The path written.
    """
    path = config_path()
    data = settings.model_dump(mode="json")
    _atomic_write(path, json.dumps(data, indent=2) + "\n")
    return path
