"""Auth commands -- sign in, sign out, inspect and print the session.

Typical workflow::

    egg login            # browser sign-in, tokens saved locally
    egg status           # who am I, when does the session expire
    egg token            # print a fresh access token for scripting
    egg logout           # forget the stored tokens
"""

from __future__ import annotations

import webbrowser
from datetime import datetime, timezone
from typing import Optional

import typer

from eggcarton.auth.claims import extract_owner
from eggcarton.auth.credential_store import CredentialStore
from eggcarton.auth.flow import LoginFlow
from eggcarton.auth.lifecycle import can_refresh, expires_at, is_token_valid, seconds_remaining
from eggcarton.auth.session import ensure_valid_token
from eggcarton.commands import handle_errors, load_settings_from
from eggcarton.exceptions import InvalidTokenError, NotLoggedInError
from eggcarton.output import get_output, info, print_data, success, suggest


def _owner_or_none(access_token: str) -> Optional[str]:
    try:
        return extract_owner(access_token)
    except InvalidTokenError:
        return None


def _timestamp(unix: int) -> str:
    return datetime.fromtimestamp(unix, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def login_command(
    ctx: typer.Context,
    force: bool = typer.Option(False, "--force", "-f", help="Sign in again even if the session is valid."),
    no_browser: bool = typer.Option(False, "--no-browser", help="Only print the login URL."),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", min=1, help="Seconds to wait for the browser callback."
    ),
) -> None:
    """Sign in through the browser and store the session.

    Example::

        egg login
        egg login --force --no-browser
    """
    with handle_errors():
        settings = load_settings_from(ctx)
        store = CredentialStore(settings.token_path)

        if not force:
            current = store.load()
            if current is not None and is_token_valid(current):
                info("You are already logged in.")
                suggest("Use 'egg login --force' to sign in again.")
                return

        flow = LoginFlow(settings, open_browser=None if no_browser else webbrowser.open)
        bundle = flow.login(timeout)
        store.save(bundle)

    owner = _owner_or_none(bundle.access_token)
    success(f"Logged in as {owner}." if owner else "Logged in.")


def logout_command(ctx: typer.Context) -> None:
    """Forget the stored session."""
    with handle_errors():
        store = CredentialStore(load_settings_from(ctx).token_path)
        removed = store.clear()

    if removed:
        success("Logged out.")
    else:
        info("You are not logged in.")


def status_command(ctx: typer.Context) -> None:
    """Show the stored session (never prints token values).

    Exits with code 3 when no session is stored.
    """
    with handle_errors():
        store = CredentialStore(load_settings_from(ctx).token_path)
        bundle = store.load()
        if bundle is None:
            raise NotLoggedInError("Not logged in. Run 'egg login' first.")

    valid = is_token_valid(bundle)
    remaining = seconds_remaining(bundle)
    rows = [
        ["Owner", _owner_or_none(bundle.access_token) or "unknown"],
        ["Token type", bundle.token_type],
        ["Issued", _timestamp(bundle.issued_at)],
        ["Expires", _timestamp(expires_at(bundle))],
        ["Remaining", f"{max(remaining, 0) // 60} min"],
        ["Valid", "yes" if valid else "no"],
        ["Refresh token", "available" if can_refresh(bundle) else "none"],
        ["Credentials", str(store.path)],
    ]
    get_output().print_table(["Field", "Value"], rows, title="Session")
    if not valid:
        suggest("The next command will refresh the session, or run 'egg login'.")


def token_command(
    ctx: typer.Context,
    refresh: bool = typer.Option(False, "--refresh", help="Refresh even if the token is still valid."),
) -> None:
    """Print a valid access token to stdout.

    Example::

        curl -H "Authorization: Bearer $(egg token)" "$API/eggs/me"
    """
    with handle_errors():
        settings = load_settings_from(ctx)
        bundle = ensure_valid_token(
            settings, CredentialStore(settings.token_path), force_refresh=refresh
        )
    print_data(bundle.access_token)
