"""Authentication for eggcarton: browser login with PKCE and session upkeep.

The main entry points are:

- :class:`LoginFlow` -- runs one interactive Authorization Code + PKCE login
  and returns a :class:`~eggcarton.models.TokenBundle`.
- :func:`ensure_valid_token` -- returns a usable bundle for API commands,
  refreshing and persisting it when it is close to expiry.
- :class:`CredentialStore` -- the on-disk home of the bundle.
- :func:`extract_owner` -- the ``sub`` claim that scopes the caller's secrets.

The building blocks (:mod:`~eggcarton.auth.pkce`,
:mod:`~eggcarton.auth.authorization`, :mod:`~eggcarton.auth.callback`,
:mod:`~eggcarton.auth.token_exchange`, :mod:`~eggcarton.auth.lifecycle`)
are usable on their own.

Typical usage::

    from eggcarton.auth import CredentialStore, LoginFlow

    store = CredentialStore()
    store.save(LoginFlow(settings).login())
"""

from eggcarton.auth.callback import CallbackListener, ListenerState
from eggcarton.auth.claims import extract_owner
from eggcarton.auth.credential_store import CredentialStore
from eggcarton.auth.flow import LoginFlow
from eggcarton.auth.lifecycle import SKEW_SECONDS, is_token_valid
from eggcarton.auth.session import ensure_valid_token
from eggcarton.auth.token_exchange import TokenExchanger

__all__ = [
    "CallbackListener",
    "CredentialStore",
    "ListenerState",
    "LoginFlow",
    "SKEW_SECONDS",
    "TokenExchanger",
    "ensure_valid_token",
    "extract_owner",
    "is_token_valid",
]
