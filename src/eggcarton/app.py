"""Typer application and CLI entry point for eggcarton.

This module wires together the top-level Typer application and registers
the built-in commands (``login``, ``logout``, ``status``, ``token``,
``configure``, ``lay``, ``get``, ``break``, ``hatch``).

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs a SIGINT handler and invokes the Typer app.
:class:`~eggcarton.exceptions.EggCartonError` exits with the error's code;
any other exception is written to a crash log under ``<home>/logs/``.

See Also:
    :mod:`eggcarton.config`: Settings resolution.
    :mod:`eggcarton.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import typer

from eggcarton import __version__
from eggcarton.commands.auth import login_command, logout_command, status_command, token_command
from eggcarton.commands.config import configure_command
from eggcarton.commands.eggs import break_command, get_command, hatch_command, lay_command
from eggcarton.exit_codes import EXIT_GENERIC_FAILURE, EXIT_INTERRUPTED

app = typer.Typer(
    name="egg",
    help="Store secrets in your EggCarton vault and hatch them into your environment.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

_PASSTHROUGH = {"allow_extra_args": True, "ignore_unknown_options": True}

app.command("login")(login_command)
app.command("logout")(logout_command)
app.command("status")(status_command)
app.command("token")(token_command)
app.command("configure")(configure_command)
app.command("lay")(lay_command)
app.command("add", hidden=True)(lay_command)
app.command("get")(get_command)
app.command("break")(break_command)
app.command("hatch", context_settings=_PASSTHROUGH)(hatch_command)
app.command("run", hidden=True, context_settings=_PASSTHROUGH)(hatch_command)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"eggcarton {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress non-essential output."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug output."),
    env_file: Optional[Path] = typer.Option(
        None, "--env-file", help="Read settings from this .env file."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~eggcarton.output.OutputManager` and
    log routing from CLI flags, and stores shared options in ``ctx.obj``.
    """
    from eggcarton.output import OutputFormat, OutputManager, configure_logging, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    output = OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose)
    set_output(output)
    configure_logging(output)

    ctx.ensure_object(dict)
    ctx.obj["env_file"] = env_file
    ctx.obj["verbose"] = verbose


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_INTERRUPTED)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to ``<home>/logs/`` and return the file path."""
    from eggcarton.config import get_logs_dir

    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = get_logs_dir() / f"crash-{timestamp}.log"
    log_path.write_text(
        "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
        encoding="utf-8",
    )
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``egg`` console script.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_INTERRUPTED)
    except Exception as exc:
        from eggcarton.exceptions import EggCartonError
        from eggcarton.output import error

        if isinstance(exc, EggCartonError):
            error(str(exc))
            sys.exit(exc.exit_code)
        log_path = _write_crash_log(exc)
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
