"""Key store collaborators holding the user's Alpha Vantage API key.

A store exposes ``get``/``set``/``clear`` over a single string value. Storage
failures are logged and reported as "no key"; they never propagate.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Protocol

from av_dashboard.config import AppSettings
from av_dashboard.utils.encryption import decrypt, encrypt

logger = logging.getLogger(__name__)

SESSION_STORAGE_KEY = "av_api_key"
PERSISTENT_STORAGE_KEY = "av_api_key_persistent"


class KeyStore(Protocol):
    """Narrow storage interface for one API key value."""

    def get(self) -> str | None:
        ...

    def set(self, value: str) -> bool:
        ...

    def clear(self) -> bool:
        ...


class MemoryKeyStore:
    """Session-scoped store: lives as long as the process."""

    def __init__(self, initial: str | None = None) -> None:
        self._items: dict[str, str] = {}
        if initial:
            self._items[SESSION_STORAGE_KEY] = initial

    def get(self) -> str | None:
        return self._items.get(SESSION_STORAGE_KEY) or None

    def set(self, value: str) -> bool:
        if not value:
            return self.clear()
        self._items[SESSION_STORAGE_KEY] = value
        return True

    def clear(self) -> bool:
        self._items.pop(SESSION_STORAGE_KEY, None)
        return True


class EncryptedFileKeyStore:
    """Persistent store: a JSON file with the key obfuscated at rest."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path).expanduser()

    def _read(self) -> dict[str, str]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as exc:
            logger.warning("Key store %s unreadable: %s", self.path, exc)
            return {}
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.warning("Key store %s is corrupt: %s", self.path, exc)
            return {}
        if not isinstance(payload, dict):
            logger.warning("Key store %s has unexpected shape", self.path)
            return {}
        return {k: v for k, v in payload.items() if isinstance(v, str)}

    def _write(self, items: dict[str, str]) -> bool:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(items), encoding="utf-8")
        except OSError as exc:
            logger.warning("Key store %s not writable: %s", self.path, exc)
            return False
        return True

    def get(self) -> str | None:
        stored = self._read().get(PERSISTENT_STORAGE_KEY)
        if not stored:
            return None
        return decrypt(stored) or None

    def set(self, value: str) -> bool:
        if not value:
            return self.clear()
        items = self._read()
        items[PERSISTENT_STORAGE_KEY] = encrypt(value)
        return self._write(items)

    def clear(self) -> bool:
        items = self._read()
        if PERSISTENT_STORAGE_KEY not in items:
            return True
        del items[PERSISTENT_STORAGE_KEY]
        return self._write(items)


def build_key_store(settings: AppSettings, persistent: bool | None = None) -> KeyStore:
    """Return the store selected by configuration, or by ``persistent`` when given."""

    use_persistent = settings.key_store_mode == "persistent" if persistent is None else persistent
    if use_persistent:
        return EncryptedFileKeyStore(settings.key_store_path)
    return MemoryKeyStore()


__all__ = [
    "EncryptedFileKeyStore",
    "KeyStore",
    "MemoryKeyStore",
    "PERSISTENT_STORAGE_KEY",
    "SESSION_STORAGE_KEY",
    "build_key_store",
]
