"""Short-lived relay of bearer tokens to CLI clients polling for a browser login."""

from __future__ import annotations

import logging

from app.clients.redis_store import RedisStore
from app.core.errors import HandoffPendingError
from app.core.logging import short_id

logger = logging.getLogger(__name__)


class CLIHandoffBridge:
    """
    Stage a bearer token under a CLI session id until the client polls for it.

    Reads are not destructive so a client may repeat the same poll tick, but
    a successful read shortens the entry's lifetime to ``grace_seconds``.
    """

    KEY_PREFIX = "cli:session:"

    def __init__(
        self, store: RedisStore, *, ttl_seconds: int = 60, grace_seconds: int = 5
    ) -> None:
        self._store = store
        self._ttl_seconds = ttl_seconds
        self._grace_seconds = min(grace_seconds, ttl_seconds)

    def _key(self, session_id: str) -> str:
        return f"{self.KEY_PREFIX}{session_id}"

    async def stage(self, session_id: str, token: str) -> None:
        await self._store.set_with_expiry(self._key(session_id), token, self._ttl_seconds)
        logger.info("Staged bearer token for CLI session %s", short_id(session_id))

    async def retrieve(self, session_id: str) -> str:
        key = self._key(session_id)
        token = await self._store.get(key)
        if token is None:
            raise HandoffPendingError(f"no token staged for session {short_id(session_id)}")

        remaining = await self._store.ttl(key)
        if remaining > self._grace_seconds:
            await self._store.expire(key, self._grace_seconds)
        return token


__all__ = ["CLIHandoffBridge"]
