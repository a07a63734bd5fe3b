"""Symmetric encryption utilities for protecting stored tokens."""

from __future__ import annotations

import base64
import binascii
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from app.core.errors import AuthenticationFailedError, MalformedCiphertextError
from app.core.keys import secret_key_from_hex

NONCE_SIZE = 24
TAG_SIZE = 16


class TokenCipherService:
    """
    Encrypt and decrypt sensitive strings with AES-256-GCM.

    Every call draws a fresh 24-byte nonce which is prepended to the sealed
    output; the combined value is base64-encoded for storage.
    """

    def __init__(self, *, secret: str) -> None:
        self._aead = AESGCM(secret_key_from_hex(secret))

    def encrypt(self, plaintext: str) -> str:
        """Encrypt a plaintext string and return the base64 ciphertext."""
        nonce = os.urandom(NONCE_SIZE)
        sealed = self._aead.encrypt(nonce, plaintext.encode("utf-8"), None)
        return base64.b64encode(nonce + sealed).decode("ascii")

    def decrypt(self, ciphertext: str) -> str:
        """Decrypt a base64 ciphertext produced by :meth:`encrypt`."""
        try:
            raw = base64.b64decode(ciphertext.encode("ascii"), validate=True)
        except (binascii.Error, ValueError, UnicodeEncodeError) as exc:
            raise MalformedCiphertextError("decryption failed: ciphertext is not base64") from exc

        if len(raw) < NONCE_SIZE + TAG_SIZE:
            raise MalformedCiphertextError("decryption failed: ciphertext too short")

        nonce, sealed = raw[:NONCE_SIZE], raw[NONCE_SIZE:]
        try:
            plaintext = self._aead.decrypt(nonce, sealed, None)
        except InvalidTag as exc:
            raise AuthenticationFailedError(
                "decryption failed: invalid secret or corrupted data"
            ) from exc
        return plaintext.decode("utf-8")


__all__ = ["NONCE_SIZE", "TokenCipherService"]
