"""HTTP client for the EggCarton secret API.

:class:`EggClient` wraps :class:`httpx.Client` with bearer-token auth,
retry with exponential backoff on 5xx and network errors, and mapping of
error statuses onto the :mod:`eggcarton.exceptions` hierarchy.

Example::

    from eggcarton.client import EggClient

    with EggClient(settings.api_base_url, bundle.access_token) as client:
        eggs = client.get_eggs(owner)
"""

from eggcarton.client.eggs import EggClient

__all__ = ["EggClient"]
