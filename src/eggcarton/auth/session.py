"""Keep the stored session usable for API commands.

:func:`ensure_valid_token` is called by every command that talks to the
secret API. It returns the stored bundle while it is valid and transparently
refreshes it otherwise, persisting the result before handing it back.
"""

from __future__ import annotations

import logging
from typing import Optional

from eggcarton.auth.credential_store import CredentialStore
from eggcarton.auth.lifecycle import is_token_valid
from eggcarton.auth.token_exchange import TokenExchanger
from eggcarton.exceptions import NotLoggedInError, SessionExpiredError
from eggcarton.models import Settings, TokenBundle

logger = logging.getLogger(__name__)


def exchanger_for(settings: Settings) -> TokenExchanger:
    """Build a :class:`TokenExchanger` for the provider in *settings*."""
    return TokenExchanger(
        settings.token_url,
        settings.cognito.client_id,
        timeout=settings.http_timeout,
    )


def ensure_valid_token(
    settings: Settings,
    store: CredentialStore,
    *,
    exchanger: Optional[TokenExchanger] = None,
    now: Optional[float] = None,
    force_refresh: bool = False,
) -> TokenBundle:
    """Return a valid token bundle, refreshing and persisting it if needed.

    Args:
        settings: Effective settings (token endpoint and client id).
        store: Where the bundle is stored.
        exchanger: Token endpoint client. Built from *settings* when omitted.
        now: Unix time to judge validity at. Defaults to the current time.
        force_refresh: Refresh even if the stored bundle is still valid.

    Raises:
        NotLoggedInError: No credentials are stored.
        SessionExpiredError: The bundle expired and has no refresh token.
        TokenExchangeError: The refresh itself failed (propagated unchanged).
    """
    bundle = store.load()
    if bundle is None:
        raise NotLoggedInError("Not logged in. Run 'egg login' first.")

    valid = is_token_valid(bundle, now)
    if valid and not force_refresh:
        return bundle

    refresh_token = bundle.refresh_token
    if not refresh_token:
        reason = "No refresh token stored" if valid else "Session expired"
        raise SessionExpiredError(f"{reason}. Run 'egg login' again.")

    if exchanger is None:
        exchanger = exchanger_for(settings)
    logger.debug("Refreshing access token")
    refreshed = exchanger.refresh(refresh_token)
    store.save(refreshed)
    return refreshed
