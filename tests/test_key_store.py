"""Key store and obfuscation tests."""

from __future__ import annotations

import json
from pathlib import Path

from av_dashboard.config import AppSettings
from av_dashboard.providers.alpha_vantage import StoredKeySource
from av_dashboard.storage.key_store import (
    PERSISTENT_STORAGE_KEY,
    EncryptedFileKeyStore,
    MemoryKeyStore,
    build_key_store,
)
from av_dashboard.utils.encryption import decrypt, encrypt


def test_encrypt_hides_plain_value_and_decrypts_back():
    token = encrypt("KEY123")
    salt, _, payload = token.partition(":")
    assert len(salt) == 8
    assert "KEY123" not in payload
    assert decrypt(token) == "KEY123"


def test_decrypt_rejects_malformed_input():
    assert encrypt("") == ""
    assert decrypt("") == ""
    assert decrypt("no-separator") == ""
    assert decrypt("abcdefgh:%%%not-base64%%%") == ""


def test_memory_store_set_get_clear():
    store = MemoryKeyStore()
    assert store.get() is None
    assert store.set("ABC") is True
    assert store.get() == "ABC"
    store.set("")
    assert store.get() is None
    store.set("XYZ")
    assert store.clear() is True
    assert store.get() is None


def test_file_store_persists_obfuscated_value(tmp_path: Path):
    path = tmp_path / "nested" / "keys.json"
    store = EncryptedFileKeyStore(path)
    assert store.get() is None
    assert store.set("PERSISTED") is True

    raw = json.loads(path.read_text(encoding="utf-8"))
    assert PERSISTENT_STORAGE_KEY in raw
    assert raw[PERSISTENT_STORAGE_KEY] != "PERSISTED"
    assert EncryptedFileKeyStore(path).get() == "PERSISTED"

    assert store.clear() is True
    assert store.get() is None


def test_file_store_treats_corrupt_file_as_no_key(tmp_path: Path):
    path = tmp_path / "keys.json"
    path.write_text("{not json", encoding="utf-8")
    assert EncryptedFileKeyStore(path).get() is None

    path.write_text(json.dumps({PERSISTENT_STORAGE_KEY: "garbage"}), encoding="utf-8")
    assert EncryptedFileKeyStore(path).get() is None


def test_file_store_write_failure_reports_false(tmp_path: Path):
    blocker = tmp_path / "blocker"
    blocker.write_text("file, not a directory", encoding="utf-8")
    store = EncryptedFileKeyStore(blocker / "keys.json")
    assert store.set("KEY") is False
    assert store.get() is None


def test_stored_key_source_swallows_store_errors():
    class BrokenStore:
        def get(self):
            raise RuntimeError("storage unavailable")

        def set(self, value):
            return False

        def clear(self):
            return False

    source = StoredKeySource(BrokenStore())
    assert source.resolve() is None
    assert source.resolve("EXPLICIT") == "EXPLICIT"


def test_build_key_store_follows_settings(tmp_path: Path):
    session = build_key_store(AppSettings())
    assert isinstance(session, MemoryKeyStore)

    settings = AppSettings(key_store_mode="persistent", key_store_path=str(tmp_path / "k.json"))
    persistent = build_key_store(settings)
    assert isinstance(persistent, EncryptedFileKeyStore)
    assert isinstance(build_key_store(settings, persistent=False), MemoryKeyStore)
