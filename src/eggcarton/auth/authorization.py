"""Authorization URL construction for the Authorization Code + PKCE flow.

Pure functions only: nothing here touches the network. Parameters are
emitted in a fixed order so the resulting URL is stable for tests and logs.
"""

from __future__ import annotations

from urllib.parse import urlencode

from eggcarton.models import AuthorizationRequest


def authorization_params(request: AuthorizationRequest) -> list[tuple[str, str]]:
    """Return the query parameters for *request* in their canonical order."""
    return [
        ("client_id", request.client_id),
        ("response_type", request.response_type),
        ("scope", " ".join(request.scopes)),
        ("redirect_uri", request.redirect_uri),
        ("code_challenge", request.code_challenge),
        ("code_challenge_method", request.code_challenge_method),
    ]


def authorization_url(request: AuthorizationRequest) -> str:
    """Render *request* as the URL to open in the user's browser."""
    separator = "&" if "?" in request.endpoint else "?"
    return f"{request.endpoint}{separator}{urlencode(authorization_params(request))}"


def build_authorization_url(
    endpoint: str,
    client_id: str,
    redirect_uri: str,
    challenge: str,
) -> str:
    """Compose the provider authorization URL.

    Args:
        endpoint: The provider's authorization endpoint.
        client_id: The public client identifier.
        redirect_uri: Where the provider redirects after sign-in.
        challenge: The PKCE code challenge (never the verifier).

    Returns:
        The endpoint with ``client_id``, ``response_type=code``,
        ``scope=openid email profile``, ``redirect_uri``, ``code_challenge``
        and ``code_challenge_method=S256`` form-encoded into the query.

    Example::

        >>> build_authorization_url(
        ...     "https://idp.example/oauth2/authorize", "abc",
        ...     "http://localhost:8080/callback", "XYZ",
        ... )
        'https://idp.example/oauth2/authorize?client_id=abc&response_type=code&scope=openid+email+profile&redirect_uri=http%3A%2F%2Flocalhost%3A8080%2Fcallback&code_challenge=XYZ&code_challenge_method=S256'
    """
    return authorization_url(
        AuthorizationRequest(
            endpoint=endpoint,
            client_id=client_id,
            redirect_uri=redirect_uri,
            code_challenge=challenge,
        )
    )
