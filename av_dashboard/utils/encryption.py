"""Salted XOR obfuscation for values kept in the persistent key store.

This is not strong encryption. It keeps the API key from sitting in the
store file as plain text and nothing more.
"""

from __future__ import annotations

import base64
import binascii
import logging
import secrets
import string

logger = logging.getLogger(__name__)

SALT_LENGTH = 8
_SALT_ALPHABET = string.digits + string.ascii_lowercase


def _xor(text: str, salt: str) -> str:
    salt_codes = [ord(c) for c in salt]
    return "".join(chr(ord(c) ^ salt_codes[i % len(salt_codes)]) for i, c in enumerate(text))


def encrypt(text: str) -> str:
    """Return ``salt:base64`` for ``text``; empty input yields an empty string."""

    if not text:
        return ""
    salt = "".join(secrets.choice(_SALT_ALPHABET) for _ in range(SALT_LENGTH))
    encoded = base64.b64encode(_xor(text, salt).encode("utf-8")).decode("ascii")
    return f"{salt}:{encoded}"


def decrypt(encrypted: str) -> str:
    """Reverse :func:`encrypt`. Malformed input yields an empty string."""

    if not encrypted or ":" not in encrypted:
        return ""
    salt, _, payload = encrypted.partition(":")
    if not salt:
        return ""
    try:
        scrambled = base64.b64decode(payload, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as exc:
        logger.warning("Could not decode stored value: %s", exc)
        return ""
    return _xor(scrambled, salt)


__all__ = ["decrypt", "encrypt"]
