"""Secret commands -- store, read, delete, and inject secrets.

Every command first makes sure the stored session is usable
(:func:`~eggcarton.auth.session.ensure_valid_token`), refreshing it
transparently, and addresses the caller's secrets by the ``sub`` claim of
the access token.

Typical workflow::

    egg lay api_key s3cr3t     # store
    egg get api_key            # print the value
    egg hatch -- npm start     # run with API_KEY in the environment
    egg break api_key          # delete
"""

from __future__ import annotations

from typing import Optional

import typer

from eggcarton.auth.claims import extract_owner
from eggcarton.auth.credential_store import CredentialStore
from eggcarton.auth.session import ensure_valid_token
from eggcarton.client import EggClient
from eggcarton.commands import handle_errors, load_settings_from
from eggcarton.exceptions import InvalidUsageError
from eggcarton.output import get_output, info, print_data, success
from eggcarton.runner import env_var_name, run_with_secrets


def _open_client(ctx: typer.Context) -> tuple[EggClient, str]:
    """Return an (unopened) API client and the caller's owner id."""
    settings = load_settings_from(ctx)
    bundle = ensure_valid_token(settings, CredentialStore(settings.token_path))
    owner = extract_owner(bundle.access_token)
    client = EggClient(
        settings.api_base_url,
        bundle.access_token,
        max_retries=settings.max_retries,
    )
    return client, owner


def lay_command(
    ctx: typer.Context,
    key: str = typer.Argument(help="Name of the secret."),
    value: Optional[str] = typer.Argument(
        None, help="Secret value. Prompted for (hidden) when omitted."
    ),
) -> None:
    """Store a secret (lay an egg).

    Example::

        egg lay api_key s3cr3t
        egg lay db_password          # prompts without echo
    """
    if value is None:
        value = typer.prompt(f"Value for {key}", hide_input=True)

    with handle_errors():
        client, _ = _open_client(ctx)
        with client:
            client.put_egg(key, value)
    success(f"Laid egg: {key}")


def get_command(
    ctx: typer.Context,
    key: Optional[str] = typer.Argument(None, help="Secret to print. Lists all when omitted."),
) -> None:
    """Print one secret's value, or list all secrets.

    Example::

        egg get api_key
        egg --json get
    """
    with handle_errors():
        client, owner = _open_client(ctx)
        with client:
            if key is not None:
                print_data(client.get_egg(owner, key).plaintext)
                return
            eggs = client.get_eggs(owner)

    if not eggs:
        info("No secrets found in your vault.")
        return
    rows = [[egg.secret_id, egg.plaintext, egg.created_at] for egg in eggs]
    get_output().print_table(["Key", "Value", "Created"], rows, title=f"{len(eggs)} egg(s)")


def break_command(
    ctx: typer.Context,
    key: str = typer.Argument(help="Secret to delete."),
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation."),
) -> None:
    """Permanently delete a secret (break an egg)."""
    if not force and not typer.confirm(f"Delete secret '{key}'?"):
        info("Aborted.")
        raise typer.Exit(code=0)

    with handle_errors():
        client, owner = _open_client(ctx)
        with client:
            client.break_egg(owner, key)
    success(f"Broke egg: {key}")


def hatch_command(
    ctx: typer.Context,
    command: Optional[list[str]] = typer.Argument(None, help="Command to run, after '--'."),
) -> None:
    """Run a command with all secrets as environment variables.

    Secret names are upper-cased (``api_key`` -> ``API_KEY``). The exit
    code of the command becomes the exit code of ``egg``.

    Example::

        egg hatch -- npm start
        egg hatch -- ./deploy.sh --prod
    """
    with handle_errors():
        if not command:
            raise InvalidUsageError("No command given. Usage: egg hatch -- <command> [args...]")
        client, owner = _open_client(ctx)
        with client:
            eggs = client.get_eggs(owner)

        info(f"Hatching {len(eggs)} egg(s) into the environment")
        for egg in eggs:
            get_output().debug(f"  {env_var_name(egg.secret_id)}")
        code = run_with_secrets(command, eggs)

    raise typer.Exit(code=code)
