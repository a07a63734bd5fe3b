"""
Helpers for retrieving and refreshing Strava OAuth tokens.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from app.clients.redis_store import RedisStore
from app.clients.strava import StravaOAuthClient
from app.core.errors import (
    DecryptionFailedError,
    RefreshFailedError,
    StorageError,
    SubjectNotFoundError,
    UpstreamError,
)
from app.models.oauth import UpstreamTokenPair
from app.services.token_cipher import TokenCipherService

logger = logging.getLogger(__name__)

_FIELDS = ("access_token", "refresh_token", "expires_at")


class UpstreamTokenStore:
    """
    Manages access to persisted Strava tokens.

    Both token fields are encrypted independently; only the expiry is stored
    in plaintext. Expired pairs are refreshed once, inline, with no retry and
    no cross-request coordination: concurrent refreshes for the same athlete
    simply overwrite each other.
    """

    def __init__(
        self,
        store: RedisStore,
        cipher: TokenCipherService,
        oauth_client: StravaOAuthClient,
    ) -> None:
        self._store = store
        self._cipher = cipher
        self._oauth = oauth_client

    @staticmethod
    def _key(athlete_id: int) -> str:
        return f"athlete:{athlete_id}:strava-token"

    async def save(self, athlete_id: int, pair: UpstreamTokenPair) -> None:
        """Encrypt and persist a token pair for an athlete."""
        await self._store.hset_fields(
            self._key(athlete_id),
            {
                "access_token": self._cipher.encrypt(pair.access_token),
                "refresh_token": self._cipher.encrypt(pair.refresh_token),
                "expires_at": str(pair.expires_at),
            },
        )
        logger.info("Saved Strava token for athlete %s", athlete_id)

    async def get_access_token(self, athlete_id: int) -> str:
        pair = await self.get_token_pair(athlete_id)
        return pair.access_token

    async def get_token_pair(
        self, athlete_id: int, *, now: Optional[float] = None
    ) -> UpstreamTokenPair:
        """Return a usable token pair, refreshing it first when it has expired."""
        pair = await self._load(athlete_id)
        if pair.is_expired(now):
            logger.info("Strava token expired, refreshing for athlete %s", athlete_id)
            pair = await self._refresh(athlete_id, pair)
        return pair

    async def _load(self, athlete_id: int) -> UpstreamTokenPair:
        encrypted_access, encrypted_refresh, expires_at = await self._store.hmget_fields(
            self._key(athlete_id), _FIELDS
        )
        if encrypted_access is None and encrypted_refresh is None and expires_at is None:
            raise SubjectNotFoundError(f"no Strava token stored for athlete {athlete_id}")
        if not encrypted_access or not encrypted_refresh or not expires_at:
            raise StorageError(f"Strava token record for athlete {athlete_id} is incomplete")

        try:
            access_token = self._cipher.decrypt(encrypted_access)
            refresh_token = self._cipher.decrypt(encrypted_refresh)
        except DecryptionFailedError as exc:
            logger.error("Stored Strava token for athlete %s failed to decrypt", athlete_id)
            raise DecryptionFailedError(
                f"decryption failed for athlete {athlete_id} token record"
            ) from exc

        try:
            expiry = int(expires_at)
        except ValueError as exc:
            raise StorageError(
                f"Strava token record for athlete {athlete_id} has a malformed expiry"
            ) from exc

        return UpstreamTokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=expiry,
        )

    async def _refresh(self, athlete_id: int, pair: UpstreamTokenPair) -> UpstreamTokenPair:
        try:
            refreshed = await self._oauth.refresh_token(pair.refresh_token)
        except UpstreamError as exc:
            logger.error("Refreshing Strava token failed for athlete %s", athlete_id)
            raise RefreshFailedError(f"token refresh failed for athlete {athlete_id}") from exc

        new_pair = refreshed.to_pair()
        await self.save(athlete_id, new_pair)
        logger.info(
            "Refreshed Strava token for athlete %s, new expiry %s",
            athlete_id,
            datetime.fromtimestamp(new_pair.expires_at, tz=timezone.utc).isoformat(),
        )
        return new_pair


__all__ = ["UpstreamTokenStore"]
