"""PKCE verifier/challenge generation (:rfc:`7636`, ``S256`` method).

The verifier is 32 bytes from the operating system CSPRNG, encoded as
URL-safe base64 without padding (43 characters). The challenge is the
URL-safe, unpadded base64 encoding of ``SHA-256(verifier)``, so anyone
holding the verifier can recompute it, but not the other way round.
"""

from __future__ import annotations

import base64
import hashlib
import secrets

from eggcarton.exceptions import EntropyError
from eggcarton.models import PKCEChallenge

VERIFIER_BYTES = 32


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def compute_challenge(verifier: str) -> str:
    """Derive the ``S256`` code challenge for *verifier*.

    Args:
        verifier: The PKCE code verifier.

    Returns:
        ``BASE64URL(SHA256(verifier))`` without padding.
    """
    digest = hashlib.sha256(verifier.encode("utf-8")).digest()
    return _b64url(digest)


def generate_challenge() -> PKCEChallenge:
    """Generate a fresh verifier and its derived challenge.

    Returns:
        A new :class:`~eggcarton.models.PKCEChallenge`.

    Raises:
        EntropyError: If the OS randomness source is unavailable.
    """
    try:
        raw = secrets.token_bytes(VERIFIER_BYTES)
    except (NotImplementedError, OSError) as exc:
        raise EntropyError(f"Secure random source unavailable: {exc}") from exc

    verifier = _b64url(raw)
    return PKCEChallenge(verifier=verifier, challenge=compute_challenge(verifier))


def verify_challenge(pkce: PKCEChallenge) -> bool:
    """Return ``True`` if ``pkce.challenge`` is derived from ``pkce.verifier``."""
    return secrets.compare_digest(compute_challenge(pkce.verifier), pkce.challenge)
