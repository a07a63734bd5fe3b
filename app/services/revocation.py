"""Registration and revocation of issued bearer tokens."""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import Optional

from pydantic import ValidationError

from app.clients.redis_store import RedisStore
from app.core.errors import AlreadyExpiredError, RevocationNotFoundError, StorageError
from app.core.logging import short_id
from app.models.oauth import BearerTokenRegistration, RevocationMarker

logger = logging.getLogger(__name__)


class RevocationLedger:
    """
    Tracks issued bearer tokens by ``jti``.

    Registrations live exactly as long as the token; revocation markers copy
    the registration's remaining TTL so they disappear with the token they
    block.
    """

    TOKEN_PREFIX = "jwt:token:"
    REVOKED_PREFIX = "jwt:revoked:"

    def __init__(self, store: RedisStore) -> None:
        self._store = store

    async def register(
        self,
        jti: str,
        athlete_id: int,
        issued_at: datetime,
        expires_at: datetime,
        *,
        now: Optional[datetime] = None,
    ) -> None:
        current = now or datetime.now(timezone.utc)
        ttl_seconds = math.ceil((expires_at - current).total_seconds())
        if ttl_seconds <= 0:
            raise AlreadyExpiredError(f"bearer token {short_id(jti)} is already expired")

        registration = BearerTokenRegistration(
            athlete_id=athlete_id, issued_at=issued_at, expires_at=expires_at
        )
        await self._store.set_with_expiry(
            f"{self.TOKEN_PREFIX}{jti}", registration.model_dump_json(), ttl_seconds
        )
        logger.info("Registered bearer token %s for athlete %s", short_id(jti), athlete_id)

    async def get_registration(self, jti: str) -> Optional[BearerTokenRegistration]:
        raw = await self._store.get(f"{self.TOKEN_PREFIX}{jti}")
        if raw is None:
            return None
        try:
            return BearerTokenRegistration.model_validate_json(raw)
        except ValidationError as exc:
            raise StorageError(f"registration for {short_id(jti)} is corrupt") from exc

    async def revoke(self, jti: str) -> None:
        registration_key = f"{self.TOKEN_PREFIX}{jti}"
        registration = await self.get_registration(jti)
        remaining = await self._store.ttl(registration_key)
        if registration is None or remaining == -2 or remaining == 0:
            raise RevocationNotFoundError(f"bearer token {short_id(jti)} is not registered")
        if remaining < 0:
            # registration without an expiry: bound the marker by the token itself
            remaining = math.ceil(
                (registration.expires_at - datetime.now(timezone.utc)).total_seconds()
            )
            if remaining <= 0:
                raise RevocationNotFoundError(f"bearer token {short_id(jti)} has expired")

        marker = RevocationMarker(athlete_id=registration.athlete_id)
        await self._store.set_with_expiry(
            f"{self.REVOKED_PREFIX}{jti}", marker.model_dump_json(), remaining
        )
        logger.info(
            "Revoked bearer token %s for athlete %s", short_id(jti), registration.athlete_id
        )

    async def is_revoked(self, jti: str) -> bool:
        return await self._store.exists(f"{self.REVOKED_PREFIX}{jti}")


__all__ = ["RevocationLedger"]
