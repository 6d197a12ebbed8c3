"""Tests for session upkeep (validity check, refresh, persistence)."""

from __future__ import annotations

from typing import Callable
from unittest.mock import MagicMock

import pytest

from eggcarton.auth.credential_store import CredentialStore
from eggcarton.auth.session import ensure_valid_token, exchanger_for
from eggcarton.auth.token_exchange import TokenExchanger
from eggcarton.exceptions import (
    NotLoggedInError,
    ProviderRejectedError,
    SessionExpiredError,
)
from eggcarton.models import Settings, TokenBundle

ISSUED = 1_700_000_000


@pytest.fixture()
def store(settings: Settings) -> CredentialStore:
    return CredentialStore(settings.token_path)


def _exchanger(result: TokenBundle | Exception) -> MagicMock:
    exchanger = MagicMock(spec=TokenExchanger)
    if isinstance(result, Exception):
        exchanger.refresh.side_effect = result
    else:
        exchanger.refresh.return_value = result
    return exchanger


class TestEnsureValidToken:
    def test_not_logged_in(self, settings: Settings, store: CredentialStore) -> None:
        with pytest.raises(NotLoggedInError, match="egg login"):
            ensure_valid_token(settings, store, now=ISSUED)

    def test_valid_bundle_returned_without_refresh(
        self,
        settings: Settings,
        store: CredentialStore,
        make_bundle: Callable[..., TokenBundle],
    ) -> None:
        bundle = make_bundle(issued_at=ISSUED)
        store.save(bundle)
        exchanger = _exchanger(make_bundle(access_token="new"))

        assert ensure_valid_token(settings, store, exchanger=exchanger, now=ISSUED + 60) == bundle
        exchanger.refresh.assert_not_called()

    def test_expired_bundle_is_refreshed_and_persisted(
        self,
        settings: Settings,
        store: CredentialStore,
        make_bundle: Callable[..., TokenBundle],
    ) -> None:
        store.save(make_bundle(issued_at=ISSUED, refresh_token="refresh-old"))
        fresh = make_bundle(access_token="new-access", issued_at=ISSUED + 4000)
        exchanger = _exchanger(fresh)

        result = ensure_valid_token(settings, store, exchanger=exchanger, now=ISSUED + 4000)

        assert result == fresh
        exchanger.refresh.assert_called_once_with("refresh-old")
        assert store.load() == fresh

    def test_expired_without_refresh_token(
        self,
        settings: Settings,
        store: CredentialStore,
        make_bundle: Callable[..., TokenBundle],
    ) -> None:
        store.save(make_bundle(issued_at=ISSUED, refresh_token=None))
        with pytest.raises(SessionExpiredError, match="expired"):
            ensure_valid_token(settings, store, exchanger=_exchanger(make_bundle()), now=ISSUED + 4000)

    def test_refresh_failure_propagates_and_keeps_old_file(
        self,
        settings: Settings,
        store: CredentialStore,
        make_bundle: Callable[..., TokenBundle],
    ) -> None:
        old = make_bundle(issued_at=ISSUED)
        store.save(old)
        exchanger = _exchanger(ProviderRejectedError("Token refresh", 400, '{"error":"invalid_grant"}'))

        with pytest.raises(ProviderRejectedError):
            ensure_valid_token(settings, store, exchanger=exchanger, now=ISSUED + 4000)
        assert store.load() == old

    def test_force_refresh(
        self,
        settings: Settings,
        store: CredentialStore,
        make_bundle: Callable[..., TokenBundle],
    ) -> None:
        store.save(make_bundle(issued_at=ISSUED))
        fresh = make_bundle(access_token="forced")
        exchanger = _exchanger(fresh)

        result = ensure_valid_token(
            settings, store, exchanger=exchanger, now=ISSUED + 10, force_refresh=True
        )
        assert result.access_token == "forced"

    def test_force_refresh_without_refresh_token(
        self,
        settings: Settings,
        store: CredentialStore,
        make_bundle: Callable[..., TokenBundle],
    ) -> None:
        store.save(make_bundle(issued_at=ISSUED, refresh_token=None))
        with pytest.raises(SessionExpiredError, match="No refresh token"):
            ensure_valid_token(settings, store, now=ISSUED + 10, force_refresh=True)


class TestExchangerFor:
    def test_uses_settings(self, settings: Settings) -> None:
        exchanger = exchanger_for(settings)
        assert exchanger.token_url == "https://auth.example.test/oauth2/token"
        assert exchanger.client_id == "client-abc"
        assert exchanger.timeout == settings.http_timeout
