"""Token endpoint client: authorization-code exchange and refresh.

Both grants are a single form-encoded ``POST`` to the provider's token
endpoint with a bounded timeout and no retries. A successful response is
validated into a :class:`~eggcarton.models.TokenBundle` stamped with the
*local* clock, so expiry is always judged against this machine's time.

See Also:
    :mod:`eggcarton.auth.lifecycle` for the validity rule applied to the
    resulting bundle.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from eggcarton.exceptions import (
    MalformedResponseError,
    NetworkError,
    ProviderRejectedError,
)
from eggcarton.models import TokenBundle

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0

Clock = Callable[[], float]


class _TokenResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    access_token: str = Field(min_length=1)
    id_token: str = ""
    refresh_token: Optional[str] = None
    expires_in: int
    token_type: str


def _post_form(
    token_url: str,
    form: dict[str, str],
    operation: str,
    timeout: float,
    client: Optional[httpx.Client],
) -> httpx.Response:
    headers = {"Accept": "application/json"}
    try:
        if client is not None:
            return client.post(token_url, data=form, headers=headers, timeout=timeout)
        with httpx.Client(timeout=timeout) as owned:
            return owned.post(token_url, data=form, headers=headers)
    except httpx.HTTPError as exc:
        raise NetworkError(f"{operation} failed: {exc}") from exc


def _parse_bundle(response: httpx.Response, operation: str, clock: Clock) -> TokenBundle:
    logger.debug("%s returned HTTP %s", operation, response.status_code)
    if response.status_code != 200:
        raise ProviderRejectedError(operation, response.status_code, response.text)

    try:
        payload = _TokenResponse.model_validate_json(response.content)
    except ValidationError as exc:
        raise MalformedResponseError(
            f"{operation} returned an unexpected response: {exc.error_count()} invalid field(s)"
        ) from exc

    return TokenBundle(
        access_token=payload.access_token,
        id_token=payload.id_token,
        refresh_token=payload.refresh_token,
        expires_in=payload.expires_in,
        token_type=payload.token_type,
        issued_at=int(clock()),
    )


def exchange_code(
    token_url: str,
    client_id: str,
    code: str,
    redirect_uri: str,
    verifier: str,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    client: Optional[httpx.Client] = None,
    clock: Clock = time.time,
) -> TokenBundle:
    """Redeem an authorization code for tokens.

    Args:
        token_url: The provider's token endpoint.
        client_id: The public client identifier.
        code: Authorization code delivered to the callback listener.
        redirect_uri: Exactly the redirect URI sent in the authorization request.
        verifier: The PKCE verifier whose challenge was sent with that request.
        timeout: Request timeout in seconds.
        client: Optional pre-configured :class:`httpx.Client` (tests inject
            one with a :class:`httpx.MockTransport`).
        clock: Source of the ``issued_at`` timestamp.

    Returns:
        The issued :class:`~eggcarton.models.TokenBundle`.

    Raises:
        NetworkError: The endpoint could not be reached or timed out.
        ProviderRejectedError: The endpoint answered with a non-200 status.
        MalformedResponseError: The body is not the expected JSON.
    """
    form = {
        "grant_type": "authorization_code",
        "client_id": client_id,
        "code": code,
        "redirect_uri": redirect_uri,
        "code_verifier": verifier,
    }
    response = _post_form(token_url, form, "Token exchange", timeout, client)
    return _parse_bundle(response, "Token exchange", clock)


def refresh_tokens(
    token_url: str,
    client_id: str,
    refresh_token: str,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    client: Optional[httpx.Client] = None,
    clock: Clock = time.time,
) -> TokenBundle:
    """Obtain a fresh bundle using a refresh token.

    Providers that do not rotate refresh tokens omit ``refresh_token`` from
    the response; the one passed in is then carried into the new bundle.

    Raises:
        NetworkError, ProviderRejectedError, MalformedResponseError: As for
            :func:`exchange_code`.
    """
    form = {
        "grant_type": "refresh_token",
        "client_id": client_id,
        "refresh_token": refresh_token,
    }
    response = _post_form(token_url, form, "Token refresh", timeout, client)
    bundle = _parse_bundle(response, "Token refresh", clock)
    if not bundle.refresh_token:
        bundle = bundle.model_copy(update={"refresh_token": refresh_token})
    return bundle


class TokenExchanger:
    """Token endpoint operations bound to one provider and client.

    Args:
        token_url: The provider's token endpoint.
        client_id: The public client identifier.
        timeout: Request timeout in seconds.
        client: Optional shared :class:`httpx.Client`.
        clock: Source of ``issued_at`` timestamps.
    """

    def __init__(
        self,
        token_url: str,
        client_id: str,
        timeout: float = DEFAULT_TIMEOUT,
        client: Optional[httpx.Client] = None,
        clock: Clock = time.time,
    ) -> None:
        self.token_url = token_url
        self.client_id = client_id
        self.timeout = timeout
        self._client = client
        self._clock = clock

    def exchange(self, code: str, redirect_uri: str, verifier: str) -> TokenBundle:
        """Redeem *code*; see :func:`exchange_code`."""
        return exchange_code(
            self.token_url,
            self.client_id,
            code,
            redirect_uri,
            verifier,
            timeout=self.timeout,
            client=self._client,
            clock=self._clock,
        )

    def refresh(self, refresh_token: str) -> TokenBundle:
        """Refresh with *refresh_token*; see :func:`refresh_tokens`."""
        return refresh_tokens(
            self.token_url,
            self.client_id,
            refresh_token,
            timeout=self.timeout,
            client=self._client,
            clock=self._clock,
        )
