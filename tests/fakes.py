"""In-memory stand-ins for Redis and the Strava transport used across the suite."""

from __future__ import annotations

import math
from typing import Any, Mapping, Optional, Sequence

from app.core.errors import UpstreamError


class FakeRedisStore:
    """Implements the ``RedisStore`` surface with a manually advanced clock."""

    def __init__(self) -> None:
        self.now = 1_000_000.0
        self._strings: dict[str, str] = {}
        self._hashes: dict[str, dict[str, str]] = {}
        self._expiry: dict[str, float] = {}
        self.closed = False

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def _purge(self, key: str) -> None:
        deadline = self._expiry.get(key)
        if deadline is not None and deadline <= self.now:
            self._strings.pop(key, None)
            self._hashes.pop(key, None)
            self._expiry.pop(key, None)

    def _present(self, key: str) -> bool:
        self._purge(key)
        return key in self._strings or key in self._hashes

    async def ping(self) -> bool:
        return True

    async def hset_fields(self, key: str, mapping: Mapping[str, str]) -> None:
        self._purge(key)
        self._hashes.setdefault(key, {}).update(mapping)

    async def hmget_fields(self, key: str, fields: Sequence[str]) -> list[Optional[str]]:
        self._purge(key)
        record = self._hashes.get(key, {})
        return [record.get(field) for field in fields]

    async def get(self, key: str) -> Optional[str]:
        self._purge(key)
        return self._strings.get(key)

    async def set_with_expiry(self, key: str, value: str, ttl_seconds: int) -> None:
        self._strings[key] = value
        self._expiry[key] = self.now + ttl_seconds

    async def getdel(self, key: str) -> Optional[str]:
        self._purge(key)
        self._expiry.pop(key, None)
        return self._strings.pop(key, None)

    async def exists(self, key: str) -> bool:
        return self._present(key)

    async def ttl(self, key: str) -> int:
        if not self._present(key):
            return -2
        deadline = self._expiry.get(key)
        if deadline is None:
            return -1
        return math.ceil(deadline - self.now)

    async def expire(self, key: str, ttl_seconds: int) -> bool:
        if not self._present(key):
            return False
        self._expiry[key] = self.now + ttl_seconds
        return True

    async def close(self) -> None:
        self.closed = True

    def raw_hash(self, key: str) -> dict[str, str]:
        return dict(self._hashes.get(key, {}))


class FakeStravaTransport:
    """Records requests and replays queued JSON bodies or errors."""

    def __init__(self) -> None:
        self.requests: list[dict[str, Any]] = []
        self.form_requests: list[dict[str, Any]] = []
        self._responses: list[Any] = []

    def queue(self, body: Any) -> None:
        self._responses.append(body)

    def queue_error(self, error: Exception) -> None:
        self._responses.append(error)

    def _next(self) -> Any:
        if not self._responses:
            raise UpstreamError("no response queued")
        body = self._responses.pop(0)
        if isinstance(body, Exception):
            raise body
        return body

    async def perform_request(
        self,
        method: str,
        url: str,
        *,
        token: Optional[str] = None,
        params: Optional[Mapping[str, str]] = None,
    ) -> Any:
        self.requests.append(
            {"method": method, "url": url, "token": token, "params": dict(params or {})}
        )
        return self._next()

    async def perform_request_form(self, url: str, data: Mapping[str, str]) -> Any:
        self.form_requests.append({"url": url, "data": dict(data)})
        return self._next()


def token_payload(
    *,
    access_token: str = "strava-access",
    refresh_token: str = "strava-refresh",
    expires_at: int = 4_000_000_000,
    athlete_id: Optional[int] = 4242,
) -> dict[str, Any]:
    body: dict[str, Any] = {
        "token_type": "Bearer",
        "access_token": access_token,
        "refresh_token": refresh_token,
        "expires_at": expires_at,
        "expires_in": 21600,
    }
    if athlete_id is not None:
        body["athlete"] = {"id": athlete_id, "username": "climber"}
    return body
