"""
Single-use CSRF state values for the Strava authorization redirect.

A state value is a fixed-length random hex nonce, optionally followed by
``:<session_id>`` when the login was started by a polling CLI client. Because
the nonce length is fixed, the value is split by position and a session id
may itself contain ``:``.
"""

from __future__ import annotations

import hmac
import logging
import re
import secrets
from typing import Optional

from app.clients.redis_store import RedisStore
from app.core.errors import (
    CorrelatorMismatchError,
    InvalidCorrelatorError,
    InvalidOrExpiredStateError,
)
from app.core.logging import short_id

logger = logging.getLogger(__name__)

NONCE_BYTES = 32
NONCE_HEX_LENGTH = NONCE_BYTES * 2
CORRELATOR_SEPARATOR = ":"
MAX_CORRELATOR_LENGTH = 128

_NONCE_PATTERN = re.compile(rf"[0-9a-f]{{{NONCE_HEX_LENGTH}}}")
_CORRELATOR_PATTERN = re.compile(rf"[\x21-\x7e]{{1,{MAX_CORRELATOR_LENGTH}}}")


def validate_correlator(correlator: str) -> str:
    if not _CORRELATOR_PATTERN.fullmatch(correlator):
        raise InvalidCorrelatorError(
            f"session id must be 1-{MAX_CORRELATOR_LENGTH} visible ASCII characters"
        )
    return correlator


class OAuthStateLedger:
    """Issue and atomically consume OAuth state values stored in Redis."""

    KEY_PREFIX = "oauth:state:"

    def __init__(self, store: RedisStore, *, ttl_seconds: int = 600) -> None:
        self._store = store
        self._ttl_seconds = ttl_seconds

    def _key(self, nonce: str) -> str:
        return f"{self.KEY_PREFIX}{nonce}"

    async def issue(self, correlator: Optional[str] = None) -> str:
        """Store a new nonce and return the state value to hand to Strava."""
        if correlator is not None:
            validate_correlator(correlator)

        nonce = secrets.token_hex(NONCE_BYTES)
        await self._store.set_with_expiry(self._key(nonce), correlator or "", self._ttl_seconds)
        logger.debug("Issued OAuth state %s", short_id(nonce))

        if correlator:
            return f"{nonce}{CORRELATOR_SEPARATOR}{correlator}"
        return nonce

    async def consume(self, state: str) -> Optional[str]:
        """
        Consume a state value exactly once.

        Returns the session id embedded at issuance, or ``None`` for a browser
        login without one.
        """
        nonce, embedded = self._split(state)
        stored = await self._store.getdel(self._key(nonce))
        if stored is None:
            raise InvalidOrExpiredStateError("invalid or expired state token")

        if not hmac.compare_digest(stored.encode("utf-8"), (embedded or "").encode("utf-8")):
            logger.warning("OAuth state %s carried a mismatched session id", short_id(nonce))
            raise CorrelatorMismatchError("state session id does not match")

        return stored or None

    @staticmethod
    def _split(state: str) -> tuple[str, Optional[str]]:
        nonce, remainder = state[:NONCE_HEX_LENGTH], state[NONCE_HEX_LENGTH:]
        if not _NONCE_PATTERN.fullmatch(nonce):
            raise InvalidOrExpiredStateError("invalid or expired state token")
        if not remainder:
            return nonce, None
        if not remainder.startswith(CORRELATOR_SEPARATOR):
            raise InvalidOrExpiredStateError("invalid or expired state token")
        return nonce, remainder[len(CORRELATOR_SEPARATOR):]


__all__ = ["OAuthStateLedger", "validate_correlator"]
