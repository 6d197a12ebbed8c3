"""Token validity policy.

A bundle counts as valid until ``SKEW_SECONDS`` before its computed expiry,
so a token handed to a command never expires mid-request. All functions are
pure; the current time is read only when the caller does not supply one.
"""

from __future__ import annotations

import time
from typing import Optional

from eggcarton.models import TokenBundle

SKEW_SECONDS = 300


def expires_at(bundle: TokenBundle) -> int:
    """Unix time at which *bundle* expires, per the provider's ``expires_in``."""
    return bundle.issued_at + bundle.expires_in


def is_token_valid(
    bundle: TokenBundle,
    now: Optional[float] = None,
    skew: int = SKEW_SECONDS,
) -> bool:
    """Return ``True`` while ``now <= issued_at + expires_in - skew``.

    Args:
        bundle: The stored token bundle.
        now: Unix time to evaluate at. Defaults to the current time.
        skew: Safety margin in seconds.
    """
    if now is None:
        now = time.time()
    return now <= expires_at(bundle) - skew


def seconds_remaining(bundle: TokenBundle, now: Optional[float] = None) -> int:
    """Seconds until the hard expiry of *bundle*; negative once expired."""
    if now is None:
        now = time.time()
    return int(expires_at(bundle) - now)


def can_refresh(bundle: TokenBundle) -> bool:
    """Whether *bundle* carries a refresh token."""
    return bool(bundle.refresh_token)
