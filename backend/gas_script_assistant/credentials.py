"""Gemini API key validation and best-effort local persistence."""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path

from .errors import AuthError, StorageError

logger = logging.getLogger(__name__)

CREDENTIAL_PATTERN = re.compile(r"AIza[0-9A-Za-z_-]{35}")
CREDENTIAL_SLOT = "gemini_api_key"
CREDENTIAL_FILE_NAME = "credentials.json"


def is_valid_credential(raw: str | None) -> bool:
    """Return True when ``raw`` (trimmed) has the shape of a Gemini API key."""
    if not raw:
        return False
    return CREDENTIAL_PATTERN.fullmatch(raw.strip()) is not None


class CredentialStore:
    """Single-slot JSON file holding the last accepted credential."""

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def load(self) -> str | None:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Could not read stored credential from %s: %s", self.path, exc)
            return None

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.warning("Ignoring corrupt credential file %s: %s", self.path, exc)
            return None

        value = data.get(CREDENTIAL_SLOT) if isinstance(data, dict) else None
        return value if isinstance(value, str) else None

    def save(self, value: str) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps({CREDENTIAL_SLOT: value}), encoding="utf-8")
            self.path.chmod(0o600)
        except OSError as exc:
            raise StorageError(f"Could not persist credential to {self.path}: {exc}") from exc

    def clear(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            return
        except OSError as exc:
            raise StorageError(f"Could not remove stored credential {self.path}: {exc}") from exc


class CredentialGate:
    """Holds the session credential and gates every model call on it.

    The key is only checked locally against the expected shape. Whether the
    upstream actually accepts it is learned from the first real call.
    """

    def __init__(self, store: CredentialStore | None = None):
        self._store = store
        self._value = ""

    @property
    def value(self) -> str:
        return self._value

    @property
    def is_valid(self) -> bool:
        return is_valid_credential(self._value)

    def set_credential(self, raw: str) -> bool:
        """Validate ``raw`` and keep it. Returns whether it was accepted."""
        candidate = (raw or "").strip()
        if not is_valid_credential(candidate):
            return False
        self._value = candidate
        if self._store is not None:
            try:
                self._store.save(candidate)
            except StorageError as exc:
                logger.warning("Credential kept in memory only: %s", exc)
        return True

    def load(self, fallback: str | None = None) -> bool:
        """Restore a stored credential, else ``fallback``. Returns pre-auth state."""
        stored = self._store.load() if self._store is not None else None
        for candidate in (stored, fallback):
            if is_valid_credential(candidate):
                self._value = candidate.strip()  # type: ignore[union-attr]
                return True
        if stored:
            logger.info("Stored credential no longer matches the expected shape; ignoring it.")
        return False

    def clear(self) -> None:
        self._value = ""
        if self._store is not None:
            try:
                self._store.clear()
            except StorageError as exc:
                logger.warning("%s", exc)

    def require(self) -> str:
        """Return the credential or raise ``AuthError`` when it is unusable."""
        if not self.is_valid:
            raise AuthError(
                "Enter a valid Gemini API key first. Keys start with \"AIza\" "
                "and are 39 characters long."
            )
        return self._value
