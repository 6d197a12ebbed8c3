"""Canonical Pydantic models shared across all eggcarton modules.

This is the single source of truth for data shapes in the project. The
models fall into three groups:

**Configuration models** -- serialised as JSON in the user's home directory:
    :class:`CognitoSettings` and :class:`Settings`.

**Login flow values** -- transient, never persisted:
    :class:`PKCEChallenge`, :class:`AuthorizationRequest`, and
    :class:`CallbackResult`.

**Persisted and remote records**:
    :class:`TokenBundle` (the credential file) and :class:`Egg` (a secret
    returned by the vault API).

All models use Pydantic v2. Value objects of the login flow and the token
bundle are frozen: a refresh produces a new bundle rather than mutating the
old one.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_REDIRECT_URI = "http://localhost:8080/callback"
DEFAULT_SCOPES = ("openid", "email", "profile")
CHALLENGE_METHOD = "S256"


def _domain_base(domain: str) -> str:
    """Return ``https://<domain>`` unless *domain* already carries a scheme."""
    domain = domain.rstrip("/")
    if domain.startswith(("https://", "http://")):
        return domain
    return f"https://{domain}"


# --- Configuration ---


class CognitoSettings(BaseModel):
    """Identity provider settings for the Cognito user pool.

    ``domain`` is the hosted UI domain without scheme, e.g.
    ``eggcarton.auth.us-west-1.amazoncognito.com``.
    """

    user_pool_id: str = ""
    client_id: str
    domain: str
    region: str = ""


class Settings(BaseModel):
    """Effective configuration handed to the login flow and commands.

    Built by :func:`eggcarton.config.load_settings` from the environment,
    an optional ``.env`` file, and ``config.json``. Passing this value
    explicitly (instead of reading globals) keeps the flow testable against
    mock endpoints.

    Example::

        Settings(
            api_endpoint="https://api.example.com/prod",
            cognito=CognitoSettings(client_id="abc", domain="auth.example.com"),
        )
    """

    api_endpoint: str = Field(description="Base URL of the secret API")
    cognito: CognitoSettings
    redirect_uri: str = Field(
        default=DEFAULT_REDIRECT_URI,
        description="Loopback redirect registered with the identity provider",
    )
    login_timeout: float = Field(
        default=300.0, gt=0, description="Seconds to wait for the browser callback"
    )
    http_timeout: float = Field(
        default=10.0, gt=0, description="Timeout for token endpoint requests"
    )
    max_retries: int = Field(
        default=2, ge=0, description="Retries for secret API requests on 5xx/network errors"
    )
    token_path: Optional[Path] = Field(
        default=None,
        exclude=True,
        description="Credential file location (resolved at load time, not serialised)",
    )

    @property
    def authorization_url(self) -> str:
        """The provider's authorization endpoint."""
        return f"{_domain_base(self.cognito.domain)}/oauth2/authorize"

    @property
    def token_url(self) -> str:
        """The provider's token endpoint."""
        return f"{_domain_base(self.cognito.domain)}/oauth2/token"

    @property
    def api_base_url(self) -> str:
        """The secret API base URL without a trailing slash."""
        return self.api_endpoint.rstrip("/")


# --- Login flow values ---


class PKCEChallenge(BaseModel):
    """A PKCE verifier and the challenge derived from it.

    The verifier stays in process memory for the duration of one login
    attempt; only the challenge leaves the machine before the code exchange.
    """

    model_config = ConfigDict(frozen=True)

    verifier: str = Field(repr=False)
    challenge: str
    method: str = CHALLENGE_METHOD


class AuthorizationRequest(BaseModel):
    """Parameters of one authorization redirect to the identity provider."""

    model_config = ConfigDict(frozen=True)

    endpoint: str
    client_id: str
    redirect_uri: str
    code_challenge: str
    code_challenge_method: str = CHALLENGE_METHOD
    response_type: str = "code"
    scopes: tuple[str, ...] = DEFAULT_SCOPES


class CallbackResult(BaseModel):
    """What the provider's redirect carried back to the local listener."""

    model_config = ConfigDict(frozen=True)

    code: Optional[str] = None
    error: Optional[str] = None
    error_description: Optional[str] = None


# --- Persisted and remote records ---


class TokenBundle(BaseModel):
    """Tokens issued by the identity provider, as stored in ``credentials.json``.

    ``issued_at`` is the local Unix time at which the token response was
    parsed; the provider's clock is never trusted.
    """

    model_config = ConfigDict(frozen=True)

    access_token: str = Field(repr=False)
    id_token: str = Field(default="", repr=False)
    refresh_token: Optional[str] = Field(default=None, repr=False)
    expires_in: int
    token_type: str = "Bearer"
    issued_at: int


class Egg(BaseModel):
    """A secret as returned by the vault API."""

    model_config = ConfigDict(extra="ignore")

    owner: str = ""
    secret_id: str
    plaintext: str = Field(repr=False)
    created_at: str = ""
