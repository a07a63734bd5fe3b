"""Decoding of the deployment secret shared by the cipher and settings validation."""

from __future__ import annotations

import binascii

from app.core.errors import InvalidSecretError

SECRET_KEY_BYTES = 32


def secret_key_from_hex(hex_secret: str) -> bytes:
    """
    Decode a hex-encoded secret into a 32-byte symmetric key.

    Secrets longer than 32 bytes are truncated to their first 32 bytes.
    """
    try:
        decoded = binascii.unhexlify(hex_secret.strip())
    except (binascii.Error, ValueError) as exc:
        raise InvalidSecretError("secret is not valid hex") from exc

    if len(decoded) < SECRET_KEY_BYTES:
        raise InvalidSecretError(
            f"secret must be at least {SECRET_KEY_BYTES} bytes, got {len(decoded)} bytes"
        )
    return decoded[:SECRET_KEY_BYTES]


__all__ = ["SECRET_KEY_BYTES", "secret_key_from_hex"]
