"""Config commands -- write the settings file.

``egg configure`` stores the API endpoint and identity provider settings
in ``<home>/config.json`` so they need not be exported as environment
variables. Environment variables and ``.env`` still take precedence.
"""

from __future__ import annotations

from typing import Optional

import typer
from pydantic import ValidationError

from eggcarton.commands import handle_errors
from eggcarton.exceptions import ConfigError
from eggcarton.models import DEFAULT_REDIRECT_URI, CognitoSettings, Settings
from eggcarton.output import format_response, success, suggest


def configure_command(
    api_endpoint: str = typer.Option(..., "--api-endpoint", help="Base URL of the secret API."),
    client_id: str = typer.Option(..., "--client-id", help="Identity provider app client id."),
    domain: str = typer.Option(..., "--domain", help="Hosted UI domain of the user pool."),
    user_pool_id: str = typer.Option("", "--user-pool-id", help="User pool id."),
    region: str = typer.Option("", "--region", help="User pool region."),
    redirect_uri: str = typer.Option(
        DEFAULT_REDIRECT_URI, "--redirect-uri", help="Loopback redirect registered with the provider."
    ),
    login_timeout: Optional[float] = typer.Option(
        None, "--login-timeout", help="Seconds to wait for the browser callback."
    ),
) -> None:
    """Save API and identity provider settings.

    Example::

        egg configure --api-endpoint https://api.example.com/prod \\
            --client-id abc123 --domain eggcarton.auth.us-west-1.amazoncognito.com
    """
    from eggcarton.config import save_settings

    with handle_errors():
        try:
            settings = Settings(
                api_endpoint=api_endpoint,
                cognito=CognitoSettings(
                    user_pool_id=user_pool_id,
                    client_id=client_id,
                    domain=domain,
                    region=region,
                ),
                redirect_uri=redirect_uri,
                **({"login_timeout": login_timeout} if login_timeout is not None else {}),
            )
        except ValidationError as exc:
            raise ConfigError(f"Invalid settings: {exc}") from exc
        path = save_settings(settings)

    success(f"Configuration saved to {path}.")
    format_response(settings.model_dump(mode="json"))
    suggest("Sign in: egg login")
