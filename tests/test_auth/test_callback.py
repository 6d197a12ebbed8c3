"""Tests for the loopback callback listener (real sockets on ephemeral ports)."""

from __future__ import annotations

import socket
import threading
import time
from http.client import HTTPConnection

import pytest

from eggcarton.auth.callback import CallbackListener, ListenerState
from eggcarton.exceptions import (
    CallbackTimeoutError,
    ListenerError,
    LoginCancelledError,
    MissingCodeError,
    ProviderError,
)


def _simulate_callback(port: int, path: str) -> tuple[int, str]:
    """Send a GET to the local callback server and return (status, body)."""
    conn = HTTPConnection("127.0.0.1", port, timeout=5)
    try:
        conn.request("GET", path)
        response = conn.getresponse()
        return response.status, response.read().decode("utf-8")
    finally:
        conn.close()


@pytest.fixture()
def listener() -> CallbackListener:
    instance = CallbackListener(host="127.0.0.1", port=0, poll_interval=0.02)
    yield instance
    instance.close()


class TestCallbackDelivery:
    def test_returns_code(self, listener: CallbackListener) -> None:
        listener.start()
        status, body = _simulate_callback(listener.port, "/callback?code=abc123")
        assert status == 200
        assert "Successful" in body
        assert listener.wait(5) == "abc123"
        assert listener.state is ListenerState.COMPLETED

    def test_first_callback_wins(self, listener: CallbackListener) -> None:
        listener.start()
        _simulate_callback(listener.port, "/callback?code=abc123")
        status, _ = _simulate_callback(listener.port, "/callback?code=ignored")
        assert status == 200
        assert listener.wait(5) == "abc123"
        assert listener.result is not None
        assert listener.result.code == "abc123"

    def test_callback_from_another_thread(self, listener: CallbackListener) -> None:
        listener.start()
        port = listener.port
        sender = threading.Timer(0.05, _simulate_callback, args=(port, "/callback?code=late"))
        sender.start()
        try:
            assert listener.wait(5) == "late"
        finally:
            sender.join()

    def test_other_paths_get_404_and_do_not_complete(self, listener: CallbackListener) -> None:
        listener.start()
        status, _ = _simulate_callback(listener.port, "/favicon.ico")
        assert status == 404
        assert listener.state is ListenerState.LISTENING
        _simulate_callback(listener.port, "/callback?code=abc123")
        assert listener.wait(5) == "abc123"

    def test_provider_error(self, listener: CallbackListener) -> None:
        listener.start()
        status, body = _simulate_callback(
            listener.port, "/callback?error=access_denied&error_description=User+said+no"
        )
        assert status == 200
        assert "access_denied" in body
        with pytest.raises(ProviderError, match="access_denied") as exc_info:
            listener.wait(5)
        assert exc_info.value.reason == "access_denied"
        assert exc_info.value.description == "User said no"

    def test_error_text_is_escaped(self, listener: CallbackListener) -> None:
        listener.start()
        _, body = _simulate_callback(listener.port, "/callback?error=%3Cscript%3E")
        assert "<script>" not in body
        assert "&lt;script&gt;" in body
        with pytest.raises(ProviderError):
            listener.wait(5)

    def test_missing_code(self, listener: CallbackListener) -> None:
        listener.start()
        _simulate_callback(listener.port, "/callback?state=xyz")
        with pytest.raises(MissingCodeError):
            listener.wait(5)

    def test_empty_code_counts_as_missing(self, listener: CallbackListener) -> None:
        listener.start()
        _simulate_callback(listener.port, "/callback?code=")
        with pytest.raises(MissingCodeError):
            listener.wait(5)


class TestCallbackTeardown:
    def test_timeout_is_prompt_and_frees_port(self, listener: CallbackListener) -> None:
        listener.start()
        port = listener.port
        started = time.monotonic()
        with pytest.raises(CallbackTimeoutError):
            listener.wait(0.1)
        assert time.monotonic() - started < 0.15
        assert listener.state is ListenerState.CANCELLED
        assert not listener.is_bound

        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as probe:
            probe.bind(("127.0.0.1", port))

    def test_run_times_out(self, listener: CallbackListener) -> None:
        with pytest.raises(CallbackTimeoutError):
            listener.run(timeout=0.1)

    def test_cancel_unblocks_wait(self, listener: CallbackListener) -> None:
        listener.start()
        canceller = threading.Timer(0.05, listener.cancel)
        canceller.start()
        started = time.monotonic()
        try:
            with pytest.raises(LoginCancelledError):
                listener.wait(10)
        finally:
            canceller.join()
        assert time.monotonic() - started < 2.0
        assert not listener.is_bound

    def test_cancel_is_idempotent(self, listener: CallbackListener) -> None:
        listener.start()
        listener.cancel()
        listener.cancel()
        with pytest.raises(LoginCancelledError):
            listener.wait(1)

    def test_successful_wait_releases_socket(self, listener: CallbackListener) -> None:
        listener.start()
        _simulate_callback(listener.port, "/callback?code=abc123")
        listener.wait(5)
        assert not listener.is_bound
        # A new attempt can bind the same fixed port right away.
        again = CallbackListener(host="127.0.0.1", port=listener.port, poll_interval=0.02)
        try:
            again.start()
            assert again.is_bound
        finally:
            again.close()

    def test_context_manager_closes(self) -> None:
        with CallbackListener(host="127.0.0.1", port=0, poll_interval=0.02) as listener:
            assert listener.state is ListenerState.LISTENING
            assert listener.is_bound
        assert listener.state is ListenerState.CANCELLED
        assert not listener.is_bound

    def test_close_is_safe_in_any_state(self) -> None:
        listener = CallbackListener(host="127.0.0.1", port=0)
        listener.close()
        listener.close()
        assert listener.state is ListenerState.CANCELLED


class TestListenerLifecycle:
    def test_port_in_use_raises(self) -> None:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as blocker:
            blocker.bind(("127.0.0.1", 0))
            blocker.listen(1)
            port = blocker.getsockname()[1]
            with pytest.raises(ListenerError, match=str(port)):
                CallbackListener(host="127.0.0.1", port=port).start()

    def test_cannot_start_twice(self, listener: CallbackListener) -> None:
        listener.start()
        with pytest.raises(ListenerError, match="new listener"):
            listener.start()

    def test_terminal_listener_cannot_restart(self, listener: CallbackListener) -> None:
        listener.start()
        listener.close()
        with pytest.raises(ListenerError):
            listener.start()

    def test_wait_without_start(self, listener: CallbackListener) -> None:
        with pytest.raises(ListenerError, match="not started"):
            listener.wait(0.1)

    def test_redirect_uri_reflects_bound_port(self, listener: CallbackListener) -> None:
        assert listener.redirect_uri == "http://127.0.0.1:0/callback"
        listener.start()
        assert listener.port != 0
        assert listener.redirect_uri == f"http://127.0.0.1:{listener.port}/callback"


class TestFromRedirectUri:
    def test_parses_host_port_path(self) -> None:
        listener = CallbackListener.from_redirect_uri("http://localhost:8080/callback")
        assert listener.redirect_uri == "http://localhost:8080/callback"
        assert listener.path == "/callback"
        assert listener.port == 8080

    def test_default_path(self) -> None:
        listener = CallbackListener.from_redirect_uri("http://127.0.0.1:9000")
        assert listener.path == "/"

    @pytest.mark.parametrize(
        "uri",
        ["https://localhost:8080/callback", "http://example.com:8080/callback"],
    )
    def test_rejects_non_loopback_http(self, uri: str) -> None:
        with pytest.raises(ListenerError):
            CallbackListener.from_redirect_uri(uri)
