"""Tests for the token validity policy and owner extraction."""

from __future__ import annotations

import base64
from typing import Callable

import pytest

from eggcarton.auth.claims import decode_claims, extract_owner
from eggcarton.auth.lifecycle import (
    SKEW_SECONDS,
    can_refresh,
    expires_at,
    is_token_valid,
    seconds_remaining,
)
from eggcarton.exceptions import InvalidTokenError
from eggcarton.models import TokenBundle

ISSUED = 1_700_000_000


class TestIsTokenValid:
    def test_valid_well_before_expiry(self, make_bundle: Callable[..., TokenBundle]) -> None:
        bundle = make_bundle(issued_at=ISSUED, expires_in=3600)
        assert is_token_valid(bundle, now=ISSUED)
        assert is_token_valid(bundle, now=ISSUED + 3600 - 301)

    def test_boundary_is_inclusive(self, make_bundle: Callable[..., TokenBundle]) -> None:
        bundle = make_bundle(issued_at=ISSUED, expires_in=3600)
        assert is_token_valid(bundle, now=ISSUED + 3600 - SKEW_SECONDS)
        assert not is_token_valid(bundle, now=ISSUED + 3600 - SKEW_SECONDS + 1)

    def test_invalid_at_and_after_expiry(self, make_bundle: Callable[..., TokenBundle]) -> None:
        bundle = make_bundle(issued_at=ISSUED, expires_in=3600)
        assert not is_token_valid(bundle, now=ISSUED + 3600)
        assert not is_token_valid(bundle, now=ISSUED + 7200)

    @pytest.mark.parametrize("expires_in", [601, 900, 3600, 86400])
    def test_property_for_long_lived_tokens(
        self, make_bundle: Callable[..., TokenBundle], expires_in: int
    ) -> None:
        bundle = make_bundle(issued_at=ISSUED, expires_in=expires_in)
        assert is_token_valid(bundle, now=ISSUED + expires_in - 301)
        assert not is_token_valid(bundle, now=ISSUED + expires_in)

    def test_short_token_is_never_valid(self, make_bundle: Callable[..., TokenBundle]) -> None:
        bundle = make_bundle(issued_at=ISSUED, expires_in=200)
        assert not is_token_valid(bundle, now=ISSUED)

    def test_custom_skew(self, make_bundle: Callable[..., TokenBundle]) -> None:
        bundle = make_bundle(issued_at=ISSUED, expires_in=3600)
        assert is_token_valid(bundle, now=ISSUED + 3599, skew=0)

    def test_now_defaults_to_current_time(self, make_bundle: Callable[..., TokenBundle]) -> None:
        assert not is_token_valid(make_bundle(issued_at=ISSUED))


class TestHelpers:
    def test_expires_at(self, make_bundle: Callable[..., TokenBundle]) -> None:
        assert expires_at(make_bundle(issued_at=ISSUED, expires_in=3600)) == ISSUED + 3600

    def test_seconds_remaining(self, make_bundle: Callable[..., TokenBundle]) -> None:
        bundle = make_bundle(issued_at=ISSUED, expires_in=3600)
        assert seconds_remaining(bundle, now=ISSUED + 600) == 3000
        assert seconds_remaining(bundle, now=ISSUED + 4000) == -400

    def test_can_refresh(self, make_bundle: Callable[..., TokenBundle]) -> None:
        assert can_refresh(make_bundle())
        assert not can_refresh(make_bundle(refresh_token=None))
        assert not can_refresh(make_bundle(refresh_token=""))


class TestExtractOwner:
    def test_returns_sub(self, make_jwt: Callable[..., str]) -> None:
        assert extract_owner(make_jwt(sub="user-123", email="a@b.c")) == "user-123"

    def test_padding_is_restored(self, make_jwt: Callable[..., str]) -> None:
        # Payload lengths that need one and two padding characters.
        for sub in ("a", "ab", "abc", "abcd"):
            assert extract_owner(make_jwt(sub=sub)) == sub

    @pytest.mark.parametrize("token", ["", "abc", "a.b", "a.b.c.d"])
    def test_wrong_segment_count(self, token: str) -> None:
        with pytest.raises(InvalidTokenError, match="three segments"):
            extract_owner(token)

    def test_bad_base64(self) -> None:
        with pytest.raises(InvalidTokenError):
            extract_owner("header.!!!not-base64*.sig")

    def test_bad_json(self) -> None:
        payload = base64.urlsafe_b64encode(b"not json").rstrip(b"=").decode()
        with pytest.raises(InvalidTokenError, match="decode"):
            extract_owner(f"h.{payload}.s")

    def test_payload_not_object(self) -> None:
        payload = base64.urlsafe_b64encode(b"[1, 2]").rstrip(b"=").decode()
        with pytest.raises(InvalidTokenError, match="object"):
            decode_claims(f"h.{payload}.s")

    def test_missing_sub(self, make_jwt: Callable[..., str]) -> None:
        with pytest.raises(InvalidTokenError, match="sub"):
            extract_owner(make_jwt(email="a@b.c"))

    def test_invalid_token_is_auth_failure(self) -> None:
        assert InvalidTokenError("x").exit_code == 3
