"""Run a child process with secrets injected as environment variables."""

from __future__ import annotations

import os
import re
import subprocess
from typing import Iterable, Mapping, Optional, Sequence

from eggcarton.exceptions import CommandNotFoundError, InvalidUsageError
from eggcarton.models import Egg

_NON_IDENTIFIER = re.compile(r"[^A-Z0-9_]")


def env_var_name(secret_id: str) -> str:
    """Map a secret id to an environment variable name (``api-key`` -> ``API_KEY``)."""
    return _NON_IDENTIFIER.sub("_", secret_id.upper())


def secrets_to_env(eggs: Iterable[Egg]) -> dict[str, str]:
    """Build the environment overlay for *eggs*. Later duplicates win."""
    return {env_var_name(egg.secret_id): egg.plaintext for egg in eggs}


def run_with_secrets(
    command: Sequence[str],
    eggs: Iterable[Egg],
    *,
    base_env: Optional[Mapping[str, str]] = None,
) -> int:
    """Run *command* with the secrets of *eggs* added to its environment.

    The child inherits stdin, stdout and stderr. Secret variables override
    variables of the same name in *base_env* (default: ``os.environ``).

    Returns:
        The child's exit code.

    Raises:
        InvalidUsageError: If *command* is empty.
        CommandNotFoundError: If the executable does not exist.
    """
    if not command:
        raise InvalidUsageError("No command given. Usage: egg hatch -- <command> [args...]")

    env = dict(os.environ if base_env is None else base_env)
    env.update(secrets_to_env(eggs))

    try:
        completed = subprocess.run(list(command), env=env, check=False)
    except FileNotFoundError as exc:
        raise CommandNotFoundError(f"Command not found: {command[0]}") from exc
    except PermissionError as exc:
        raise CommandNotFoundError(f"Command is not executable: {command[0]}") from exc
    return completed.returncode
