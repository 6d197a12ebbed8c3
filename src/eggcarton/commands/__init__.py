"""Built-in CLI sub-commands for eggcarton.

* :mod:`~eggcarton.commands.auth` -- ``login``, ``logout``, ``status``, ``token``.
* :mod:`~eggcarton.commands.config` -- ``configure``.
* :mod:`~eggcarton.commands.eggs` -- ``lay``, ``get``, ``break``, ``hatch``.

Each module exports plain callback functions that
:mod:`eggcarton.app` registers directly on the root app. The helpers
below are shared by all of them.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

import typer

from eggcarton.exceptions import EggCartonError, FlowError
from eggcarton.models import Settings
from eggcarton.output import error, suggest


def load_settings_from(ctx: typer.Context) -> Settings:
    """Resolve settings, honouring the global ``--env-file`` option."""
    from eggcarton.config import load_settings

    obj = ctx.find_root().obj or {}
    return load_settings(obj.get("env_file"))


@contextmanager
def handle_errors() -> Iterator[None]:
    """Print :class:`EggCartonError` failures and exit with their code."""
    try:
        yield
    except FlowError as exc:
        error(f"Authentication failed: {exc}")
        suggest("Run 'egg login' to try again.")
        raise typer.Exit(code=exc.exit_code) from None
    except EggCartonError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
