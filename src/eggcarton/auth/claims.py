"""Read claims out of a JWT access token without verifying it.

The token was just issued to us over TLS by the provider and the API
verifies it server-side; the CLI only needs the ``sub`` claim to address
the caller's own secrets.
"""

from __future__ import annotations

import base64
import binascii
import json
from typing import Any

from eggcarton.exceptions import InvalidTokenError


def decode_claims(token: str) -> dict[str, Any]:
    """Decode the payload segment of *token*.

    Raises:
        InvalidTokenError: If the token is not three dot-separated segments
            or the payload is not base64url-encoded JSON.
    """
    segments = token.split(".")
    if len(segments) != 3:
        raise InvalidTokenError("Access token is not a JWT (expected three segments)")

    payload = segments[1]
    payload += "=" * (-len(payload) % 4)
    try:
        claims = json.loads(base64.urlsafe_b64decode(payload))
    except (binascii.Error, ValueError) as exc:
        raise InvalidTokenError(f"Cannot decode access token payload: {exc}") from exc

    if not isinstance(claims, dict):
        raise InvalidTokenError("Access token payload is not a JSON object")
    return claims


def extract_owner(access_token: str) -> str:
    """Return the ``sub`` claim of *access_token*.

    Raises:
        InvalidTokenError: If the token cannot be decoded or has no ``sub``.
    """
    sub = decode_claims(access_token).get("sub")
    if not isinstance(sub, str) or not sub:
        raise InvalidTokenError("Access token has no 'sub' claim")
    return sub
