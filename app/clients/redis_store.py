"""
Thin Redis wrapper used by every ledger and store in the broker.

All commands run with explicit socket timeouts; transport failures are
converted into :class:`StorageError` subclasses so callers never see
``redis`` exceptions.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Mapping, Optional, Sequence

import redis.asyncio as aioredis
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError

from app.core.errors import StorageError, StorageTimeoutError


class RedisStore:
    """Key-value operations needed by the token broker."""

    DEFAULT_OPERATION_TIMEOUT = 5.0

    def __init__(
        self,
        redis_url: str,
        *,
        socket_timeout: float = DEFAULT_OPERATION_TIMEOUT,
        client: Optional[aioredis.Redis] = None,
    ) -> None:
        self.redis_url = redis_url
        self.client = client or aioredis.from_url(
            redis_url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )

    @asynccontextmanager
    async def _command(self, operation: str, key: str) -> AsyncIterator[None]:
        try:
            yield
        except RedisTimeoutError as exc:
            raise StorageTimeoutError(f"redis {operation} timed out for {key}") from exc
        except RedisError as exc:
            raise StorageError(f"redis {operation} failed for {key}: {exc}") from exc

    async def ping(self) -> bool:
        async with self._command("ping", "-"):
            return bool(await self.client.ping())

    async def hset_fields(self, key: str, mapping: Mapping[str, str]) -> None:
        async with self._command("hset", key):
            await self.client.hset(key, mapping=dict(mapping))

    async def hmget_fields(
        self, key: str, fields: Sequence[str]
    ) -> list[Optional[str]]:
        async with self._command("hmget", key):
            return list(await self.client.hmget(key, list(fields)))

    async def get(self, key: str) -> Optional[str]:
        async with self._command("get", key):
            return await self.client.get(key)

    async def set_with_expiry(self, key: str, value: str, ttl_seconds: int) -> None:
        async with self._command("set", key):
            await self.client.set(key, value, ex=ttl_seconds)

    async def getdel(self, key: str) -> Optional[str]:
        """Atomically read and delete ``key``."""
        async with self._command("getdel", key):
            return await self.client.getdel(key)

    async def exists(self, key: str) -> bool:
        async with self._command("exists", key):
            return bool(await self.client.exists(key))

    async def ttl(self, key: str) -> int:
        """Remaining TTL in seconds; -2 when missing, -1 when the key never expires."""
        async with self._command("ttl", key):
            return int(await self.client.ttl(key))

    async def expire(self, key: str, ttl_seconds: int) -> bool:
        async with self._command("expire", key):
            return bool(await self.client.expire(key, ttl_seconds))

    async def close(self) -> None:
        await self.client.aclose()


__all__ = ["RedisStore"]
