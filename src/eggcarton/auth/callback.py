"""Single-use loopback HTTP listener for the OAuth2 redirect.

:class:`CallbackListener` binds the redirect port, serves on a background
thread, and hands the first callback it sees to whoever is blocked in
:meth:`CallbackListener.wait`. Its lifecycle is a small state machine::

    IDLE --start()--> LISTENING --first /callback--> COMPLETED
                          |
                          +--deadline / cancel() / close()--> CANCELLED

``COMPLETED`` and ``CANCELLED`` are terminal: a listener serves exactly one
login attempt, and a new attempt builds a new listener. The handoff between
the request handler thread and the waiting thread is a lock-guarded single
slot plus an :class:`threading.Event`; the handler never blocks on it, so
late requests (favicon fetches, a reloaded tab) are answered and ignored.

Whatever way :meth:`~CallbackListener.wait` exits, the server is shut down
and its socket closed before control returns, so the fixed port is free for
the next attempt.
"""

from __future__ import annotations

import html
import logging
import socketserver
import threading
from enum import Enum
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Optional
from urllib.parse import parse_qs, urlsplit

from eggcarton.exceptions import (
    CallbackTimeoutError,
    ListenerError,
    LoginCancelledError,
    MissingCodeError,
    ProviderError,
)
from eggcarton.models import CallbackResult

logger = logging.getLogger(__name__)

_LOOPBACK_HOSTS = ("localhost", "127.0.0.1")

_PAGE = """<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>{title}</title></head>
<body style="font-family: Arial, sans-serif; text-align: center; padding: 50px;">
<h1>{title}</h1>
{body}
</body>
</html>
"""


class ListenerState(str, Enum):
    """Lifecycle states of a :class:`CallbackListener`."""

    IDLE = "idle"
    LISTENING = "listening"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


def _render_page(result: CallbackResult) -> str:
    if result.code and not result.error:
        return _PAGE.format(
            title="Authentication Successful",
            body="<p>You can close this window and return to the terminal.</p>",
        )
    if result.error:
        detail = html.escape(result.error)
        if result.error_description:
            detail += f" - {html.escape(result.error_description)}"
        return _PAGE.format(
            title="Authentication Failed",
            body=f"<p>Error: {detail}</p><p>Please try again.</p>",
        )
    return _PAGE.format(
        title="Authentication Failed",
        body="<p>No authorization code was received. Please try again.</p>",
    )


def _first(params: dict[str, list[str]], name: str) -> Optional[str]:
    values = params.get(name)
    return values[0] if values else None


class _CallbackHandler(BaseHTTPRequestHandler):
    server: "_CallbackServer"

    def do_GET(self) -> None:  # noqa: N802
        listener = self.server.listener
        parsed = urlsplit(self.path)
        if parsed.path != listener.path:
            self._send(404, _PAGE.format(title="Not Found", body=""))
            return

        params = parse_qs(parsed.query)
        result = CallbackResult(
            code=_first(params, "code"),
            error=_first(params, "error"),
            error_description=_first(params, "error_description"),
        )
        if not listener._deliver(result):
            logger.debug("Ignoring extra callback request to %s", parsed.path)

        try:
            self._send(200, _render_page(result))
        except OSError as exc:
            # The browser went away; the callback itself still counts.
            logger.debug("Could not write callback page: %s", exc)

    def _send(self, status: int, page: str) -> None:
        payload = page.encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(payload)))
        self.send_header("Cache-Control", "no-store")
        self.end_headers()
        self.wfile.write(payload)

    def log_message(self, format: str, *args: Any) -> None:
        # The query string carries the authorization code; keep only the status line.
        logger.debug("callback server: %s", args[1] if len(args) > 1 else "")


class _CallbackServer(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(self, address: tuple[str, int], listener: "CallbackListener") -> None:
        self.listener = listener
        super().__init__(address, _CallbackHandler)

    def server_bind(self) -> None:
        # HTTPServer.server_bind does a reverse DNS lookup (getfqdn) we don't need.
        socketserver.TCPServer.server_bind(self)
        host, port = self.server_address[:2]
        self.server_name = str(host)
        self.server_port = int(port)


class CallbackListener:
    """Transient local endpoint that captures exactly one OAuth2 redirect.

    Args:
        host: Loopback interface to bind.
        port: Port to bind. ``0`` picks a free ephemeral port (tests).
        path: Route that accepts the redirect.
        poll_interval: How often the serving loop checks for shutdown;
            bounds how long teardown can take.

    Example::

        with CallbackListener(port=8080) as listener:
            webbrowser.open(auth_url)
            code = listener.wait(timeout=300)
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 8080,
        path: str = "/callback",
        poll_interval: float = 0.05,
    ) -> None:
        self._host = host
        self._port = port
        self._path = path
        self._poll_interval = poll_interval

        self._lock = threading.Lock()
        self._signal = threading.Event()
        self._state = ListenerState.IDLE
        self._result: Optional[CallbackResult] = None
        self._timed_out = False
        self._server: Optional[_CallbackServer] = None
        self._thread: Optional[threading.Thread] = None

    @classmethod
    def from_redirect_uri(cls, redirect_uri: str, **kwargs: Any) -> CallbackListener:
        """Create a listener bound to the host, port, and path of *redirect_uri*.

        Raises:
            ListenerError: If *redirect_uri* is not a plain ``http`` loopback URL.
        """
        parts = urlsplit(redirect_uri)
        if parts.scheme != "http" or parts.hostname not in _LOOPBACK_HOSTS:
            raise ListenerError(
                f"Redirect URI must be http://localhost:<port>/<path> or "
                f"http://127.0.0.1:<port>/<path>, got {redirect_uri!r}"
            )
        port = parts.port if parts.port is not None else 80
        return cls(host=parts.hostname, port=port, path=parts.path or "/", **kwargs)

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #

    @property
    def state(self) -> ListenerState:
        """Current lifecycle state."""
        return self._state

    @property
    def path(self) -> str:
        """The route that accepts the redirect."""
        return self._path

    @property
    def port(self) -> int:
        """The bound port while listening, otherwise the configured one."""
        server = self._server
        if server is not None:
            return server.server_port
        return self._port

    @property
    def redirect_uri(self) -> str:
        """The redirect URI this listener answers on."""
        return f"http://{self._host}:{self.port}{self._path}"

    @property
    def is_bound(self) -> bool:
        """Whether the listener still holds its socket."""
        return self._server is not None

    @property
    def result(self) -> Optional[CallbackResult]:
        """The delivered callback, if any."""
        return self._result

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    def start(self) -> None:
        """Bind the port and start serving on a background thread.

        Raises:
            ListenerError: If the listener was already used or the port
                cannot be bound (typically because it is in use).
        """
        with self._lock:
            if self._state is not ListenerState.IDLE:
                raise ListenerError(
                    f"Callback listener is {self._state.value}; "
                    "each login attempt needs a new listener"
                )
            try:
                server = _CallbackServer((self._host, self._port), self)
            except OSError as exc:
                raise ListenerError(
                    f"Cannot listen for the login callback on {self._host}:{self._port}: {exc}"
                ) from exc

            thread = threading.Thread(
                target=server.serve_forever,
                kwargs={"poll_interval": self._poll_interval},
                name="eggcarton-callback",
                daemon=True,
            )
            self._server = server
            self._thread = thread
            self._state = ListenerState.LISTENING
            thread.start()

        logger.debug("Callback listener started on %s", self.redirect_uri)

    def wait(self, timeout: Optional[float] = None) -> str:
        """Block until the callback arrives, the deadline passes, or :meth:`cancel` is called.

        The listener is torn down before this method returns or raises.

        Args:
            timeout: Seconds to wait. ``None`` waits indefinitely.

        Returns:
            The authorization code.

        Raises:
            CallbackTimeoutError: No callback arrived within *timeout*.
            LoginCancelledError: :meth:`cancel` or :meth:`close` was called first.
            ProviderError: The callback carried an ``error`` parameter.
            MissingCodeError: The callback carried neither ``code`` nor ``error``.
            ListenerError: The listener was never started.
        """
        if self._state is ListenerState.IDLE:
            raise ListenerError("Callback listener was not started")

        try:
            if not self._signal.wait(timeout):
                with self._lock:
                    if self._state is ListenerState.LISTENING:
                        self._state = ListenerState.CANCELLED
                        self._timed_out = True
        finally:
            self.close()

        return self._outcome(timeout)

    def run(self, timeout: Optional[float] = None) -> str:
        """Start the listener and wait for the callback in one call."""
        self.start()
        return self.wait(timeout)

    def cancel(self) -> None:
        """Abort a pending wait. Safe to call from any thread, any number of times."""
        with self._lock:
            if self._state in (ListenerState.IDLE, ListenerState.LISTENING):
                self._state = ListenerState.CANCELLED
        self._signal.set()

    def close(self) -> None:
        """Stop serving and release the port. Safe to call in any state."""
        with self._lock:
            if self._state in (ListenerState.IDLE, ListenerState.LISTENING):
                self._state = ListenerState.CANCELLED
            server, thread = self._server, self._thread
            self._server = None
            self._thread = None
        self._signal.set()

        if server is not None:
            server.shutdown()
            server.server_close()
            logger.debug("Callback listener on port %s closed", server.server_port)
        if thread is not None:
            thread.join(timeout=5.0)

    def __enter__(self) -> CallbackListener:
        self.start()
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _deliver(self, result: CallbackResult) -> bool:
        """Publish *result* if no result was delivered yet. Never blocks."""
        with self._lock:
            if self._state is not ListenerState.LISTENING:
                return False
            self._result = result
            self._state = ListenerState.COMPLETED
        self._signal.set()
        return True

    def _outcome(self, timeout: Optional[float]) -> str:
        with self._lock:
            state, result, timed_out = self._state, self._result, self._timed_out

        if state is ListenerState.CANCELLED or result is None:
            if timed_out:
                raise CallbackTimeoutError(
                    f"No login callback received within {timeout:g} seconds"
                )
            raise LoginCancelledError("Login was cancelled before the callback arrived")

        if result.error:
            raise ProviderError(result.error, result.error_description)
        if not result.code:
            raise MissingCodeError("Login callback carried no authorization code")
        return result.code
