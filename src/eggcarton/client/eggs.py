"""Synchronous client for the secret ("egg") endpoints.

Endpoints:

* ``POST /eggs`` -- store a secret; body ``{"secret_id", "plaintext"}``.
  The owner is taken from the bearer token server-side.
* ``GET /eggs/{owner}`` -- all secrets of *owner* as ``{"eggs": [...]}``.
* ``DELETE /eggs/{owner}/{secret_id}`` -- delete one secret.

Requests are retried on 5xx status codes and connection/timeout errors with
exponential delay (1 s, 2 s, 4 s, ...). Other error statuses are raised
immediately as typed exceptions.
"""

from __future__ import annotations

import time
from typing import Any, Optional
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ValidationError

from eggcarton.exceptions import (
    ApiError,
    AuthError,
    ConnectionError_,
    NotFoundError,
    ServerError,
)
from eggcarton.models import Egg
from eggcarton.output import get_output


class _EggList(BaseModel):
    eggs: list[Egg] = []


def _segment(value: str) -> str:
    return quote(value, safe="")


class EggClient:
    """Client for the secret API.

    Must be used as a context manager so that the underlying transport is
    properly opened and closed.

    Args:
        base_url: API base URL, e.g. ``https://abc.execute-api.../prod``.
        access_token: Bearer token sent with every request.
        timeout: Per-request timeout in seconds.
        max_retries: Retries on 5xx and network errors.
        retry_backoff: Base delay in seconds; doubled after every attempt.
        transport: Optional httpx transport (tests pass a
            :class:`httpx.MockTransport`).

    Example::

        with EggClient(base_url, token) as client:
            client.put_egg("api_key", "s3cr3t")
    """

    def __init__(
        self,
        base_url: str,
        access_token: str,
        *,
        timeout: float = 30.0,
        max_retries: int = 2,
        retry_backoff: float = 1.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._access_token = access_token
        self._timeout = timeout
        self._max_retries = max_retries
        self._retry_backoff = retry_backoff
        self._transport = transport
        self._client: Optional[httpx.Client] = None

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> EggClient:
        self._client = httpx.Client(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
            headers={
                "Authorization": f"Bearer {self._access_token}",
                "Accept": "application/json",
            },
        )
        return self

    def __exit__(self, *args: object) -> None:
        if self._client:
            self._client.close()
            self._client = None

    # ------------------------------------------------------------------ #
    # Secret operations
    # ------------------------------------------------------------------ #

    def put_egg(self, secret_id: str, plaintext: str) -> None:
        """Store *plaintext* under *secret_id* for the token's owner."""
        self._request("POST", "/eggs", json_body={"secret_id": secret_id, "plaintext": plaintext})

    def get_eggs(self, owner: str) -> list[Egg]:
        """Return every secret stored for *owner*.

        Raises:
            ApiError: If the response body is not the expected shape.
        """
        response = self._request("GET", f"/eggs/{_segment(owner)}")
        try:
            return _EggList.model_validate_json(response.content).eggs
        except ValidationError as exc:
            raise ApiError(f"Unexpected response from GET /eggs: {exc.error_count()} invalid field(s)") from exc

    def get_egg(self, owner: str, secret_id: str) -> Egg:
        """Return the secret *secret_id* of *owner*.

        Raises:
            NotFoundError: If no such secret exists.
        """
        for egg in self.get_eggs(owner):
            if egg.secret_id == secret_id:
                return egg
        raise NotFoundError(f"No egg named '{secret_id}'")

    def break_egg(self, owner: str, secret_id: str) -> None:
        """Delete the secret *secret_id* of *owner*."""
        self._request("DELETE", f"/eggs/{_segment(owner)}/{_segment(secret_id)}")

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _request(self, method: str, path: str, json_body: Optional[Any] = None) -> httpx.Response:
        response = self._execute_with_retry(method, path, json_body)
        self._map_response_error(response)
        return response

    def _execute_with_retry(self, method: str, path: str, json_body: Any) -> httpx.Response:
        """Execute the request, retrying on 5xx and connection / timeout errors."""
        assert self._client is not None, "Client not initialised -- use as context manager"

        output = get_output()
        for attempt in range(self._max_retries + 1):
            delay = self._retry_backoff * (2 ** attempt)
            try:
                response = self._client.request(method, path, json=json_body)
            except (httpx.TimeoutException, httpx.NetworkError) as exc:
                if attempt < self._max_retries:
                    output.debug(
                        f"Connection error: {exc}, retrying in {delay:g}s "
                        f"(attempt {attempt + 1}/{self._max_retries})"
                    )
                    time.sleep(delay)
                    continue
                raise ConnectionError_(
                    f"Connection failed after {self._max_retries + 1} attempts: {exc}"
                ) from exc

            if response.status_code >= 500 and attempt < self._max_retries:
                output.debug(
                    f"Server error {response.status_code}, retrying in {delay:g}s "
                    f"(attempt {attempt + 1}/{self._max_retries})"
                )
                time.sleep(delay)
                continue
            return response

        raise AssertionError("unreachable")  # pragma: no cover

    @staticmethod
    def _map_response_error(response: httpx.Response) -> None:
        """Raise a typed exception for error HTTP status codes."""
        status = response.status_code
        if status < 400:
            return

        try:
            detail = response.json()
            if isinstance(detail, dict):
                msg = detail.get("message") or detail.get("error") or detail.get("detail") or ""
            else:
                msg = str(detail)
        except ValueError:
            msg = response.text[:200]

        prefix = f"HTTP {status}"
        full_msg = f"{prefix}: {msg}" if msg else prefix

        if status in (401, 403):
            raise AuthError(f"{full_msg}. Run 'egg login' to sign in again.")
        if status == 404:
            raise NotFoundError(full_msg)
        if status >= 500:
            raise ServerError(full_msg)
        raise ApiError(full_msg)
