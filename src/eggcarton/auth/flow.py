"""Interactive browser login: Authorization Code grant with PKCE.

:class:`LoginFlow` sequences one login attempt:

1. Generate a PKCE verifier/challenge pair.
2. Start a :class:`~eggcarton.auth.callback.CallbackListener` on the
   configured redirect URI.
3. Build the authorization URL against the listener's redirect URI.
4. Print the URL and open it in the browser on a daemon thread.
5. Wait for the authorization code, up to the login deadline.
6. Tear the listener down, then redeem the code with the verifier.

The flow never persists anything; the caller decides what to do with the
returned bundle, so a failed attempt leaves existing credentials untouched.
Failures of any step propagate as the step's own exception.
"""

from __future__ import annotations

import logging
import threading
import time
import webbrowser
from typing import Callable, Optional

import httpx

from eggcarton.auth.authorization import build_authorization_url
from eggcarton.auth.callback import CallbackListener, ListenerState
from eggcarton.auth.pkce import generate_challenge
from eggcarton.auth.token_exchange import Clock, TokenExchanger
from eggcarton.exceptions import FlowError, ListenerError
from eggcarton.models import Settings, TokenBundle
from eggcarton.output import get_output

logger = logging.getLogger(__name__)

BrowserOpener = Callable[[str], object]
ListenerFactory = Callable[[str], CallbackListener]

_TERMINAL_STATES = (ListenerState.COMPLETED, ListenerState.CANCELLED)


class LoginFlow:
    """One interactive login attempt against the configured identity provider.

    Args:
        settings: Effective settings; supplies endpoints, client id,
            redirect URI and the default login deadline.
        open_browser: Called with the authorization URL on a daemon thread.
            ``None`` only prints the URL (``egg login --no-browser``).
        listener_factory: Builds the callback listener from the redirect URI.
        http_client: Optional :class:`httpx.Client` for the token exchange.
        clock: Source of the bundle's ``issued_at``.

    Example::

        bundle = LoginFlow(settings).login()
        CredentialStore().save(bundle)
    """

    def __init__(
        self,
        settings: Settings,
        *,
        open_browser: Optional[BrowserOpener] = webbrowser.open,
        listener_factory: ListenerFactory = CallbackListener.from_redirect_uri,
        http_client: Optional[httpx.Client] = None,
        clock: Clock = time.time,
    ) -> None:
        self._settings = settings
        self._open_browser = open_browser
        self._listener_factory = listener_factory
        self._http_client = http_client
        self._clock = clock
        self._started = False
        self.authorization_url: Optional[str] = None

    def login(self, timeout: Optional[float] = None) -> TokenBundle:
        """Run the flow to completion.

        Args:
            timeout: Seconds to wait for the browser callback. Defaults to
                ``settings.login_timeout``.

        Returns:
            The freshly issued :class:`~eggcarton.models.TokenBundle`.

        Raises:
            FlowError: The flow object was already used, or a listener,
                callback or provider failure occurred (see subclasses).
            EntropyError: No secure randomness is available.
            TokenExchangeError: The code could not be redeemed.
        """
        if self._started:
            raise FlowError("A login flow can only be run once")
        self._started = True

        settings = self._settings
        if timeout is None:
            timeout = settings.login_timeout

        pkce = generate_challenge()
        listener = self._listener_factory(settings.redirect_uri)
        with listener:
            redirect_uri = listener.redirect_uri
            self.authorization_url = build_authorization_url(
                settings.authorization_url,
                settings.cognito.client_id,
                redirect_uri,
                pkce.challenge,
            )
            self._present(self.authorization_url)
            code = listener.wait(timeout)

        if listener.state not in _TERMINAL_STATES or listener.is_bound:
            raise ListenerError(
                f"Callback listener still open after the login callback ({listener.state.value})"
            )

        exchanger = TokenExchanger(
            settings.token_url,
            settings.cognito.client_id,
            timeout=settings.http_timeout,
            client=self._http_client,
            clock=self._clock,
        )
        return exchanger.exchange(code, redirect_uri, pkce.verifier)

    def _present(self, url: str) -> None:
        output = get_output()
        output.info("Open the following URL in your browser to log in:")
        output.notice(url)

        opener = self._open_browser
        if opener is None:
            return

        def _open() -> None:
            try:
                opened = opener(url)
            except (webbrowser.Error, OSError) as exc:
                logger.debug("Browser launch failed: %s", exc)
                opened = False
            if opened is False:
                output.suggest("Could not open a browser automatically; copy the URL above.")

        threading.Thread(target=_open, name="eggcarton-browser", daemon=True).start()
        output.progress("Waiting for the login to complete in your browser...")
