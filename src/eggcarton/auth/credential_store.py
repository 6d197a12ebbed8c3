"""Persistent store for the token bundle.

The bundle lives in ``<home>/credentials.json``. Writes go through
:func:`eggcarton.config._atomic_write` with mode ``0o600`` applied before
any content is written, so tokens are never world-readable, even
momentarily, and a crash mid-write leaves the previous file intact.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from eggcarton.config import _atomic_write, credentials_path
from eggcarton.models import TokenBundle

logger = logging.getLogger(__name__)


class CredentialStore:
    """Read/write the stored :class:`~eggcarton.models.TokenBundle`.

    Args:
        path: Credential file location. Defaults to ``<home>/credentials.json``.

    Example::

        store = CredentialStore(tmp_path / "credentials.json")
        store.save(bundle)
        assert store.load() == bundle
    """

    def __init__(self, path: Optional[Path] = None) -> None:
        self._path = path if path is not None else credentials_path()

    @property
    def path(self) -> Path:
        """The filesystem path to the credential file."""
        return self._path

    def exists(self) -> bool:
        """Whether a credential file is present (parsable or not)."""
        return self._path.is_file()

    def save(self, bundle: TokenBundle) -> None:
        """Persist *bundle* atomically with ``0o600`` permissions.

        Raises:
            OSError: If the file cannot be written.
        """
        text = json.dumps(bundle.model_dump(mode="json"), indent=2) + "\n"
        _atomic_write(self._path, text, mode=0o600)
        logger.debug("Saved credentials to %s", self._path)

    def load(self) -> Optional[TokenBundle]:
        """Load the stored bundle.

        Returns:
            The bundle, or ``None`` if the file does not exist or cannot be
            parsed.
        """
        if not self._path.is_file():
            return None
        try:
            return TokenBundle.model_validate_json(self._path.read_bytes())
        except (ValidationError, OSError) as exc:
            logger.warning("Ignoring unreadable credentials at %s: %s", self._path, exc)
            return None

    def clear(self) -> bool:
        """Delete the credential file.

        Returns:
            ``True`` if a file was removed, ``False`` if there was none.
        """
        if self._path.is_file():
            self._path.unlink()
            return True
        return False
