"""
Domain models for OAuth token persistence and bearer token claims.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field


class UpstreamTokenPair(BaseModel):
    """Strava access/refresh token pair, held decrypted only in memory."""

    access_token: str
    refresh_token: str
    expires_at: int = Field(..., description="Absolute expiry in epoch seconds.")

    def is_expired(self, now: Optional[float] = None) -> bool:
        current = now if now is not None else datetime.now(timezone.utc).timestamp()
        return self.expires_at <= int(current)


class StravaAthlete(BaseModel):
    id: int
    username: Optional[str] = None


class StravaTokenResponse(BaseModel):
    """JSON body returned by the Strava token endpoint."""

    token_type: str = "Bearer"
    access_token: str
    refresh_token: str
    expires_at: int
    expires_in: Optional[int] = None
    athlete: Optional[StravaAthlete] = None

    def to_pair(self) -> UpstreamTokenPair:
        return UpstreamTokenPair(
            access_token=self.access_token,
            refresh_token=self.refresh_token,
            expires_at=self.expires_at,
        )


class BearerClaims(BaseModel):
    """Decoded contents of a broker-issued bearer token."""

    athlete_id: int
    issued_at: datetime
    expires_at: datetime
    jti: str

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        current = now or datetime.now(timezone.utc)
        return self.expires_at <= current


class IssuedBearerToken(BaseModel):
    token: str
    jti: str
    athlete_id: int
    issued_at: datetime
    expires_at: datetime


class BearerTokenRegistration(BaseModel):
    """Metadata kept for every issued bearer token until it expires."""

    athlete_id: int
    issued_at: datetime
    expires_at: datetime


class RevocationMarker(BaseModel):
    athlete_id: int
    revoked_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


__all__ = [
    "BearerClaims",
    "BearerTokenRegistration",
    "IssuedBearerToken",
    "RevocationMarker",
    "StravaAthlete",
    "StravaTokenResponse",
    "UpstreamTokenPair",
]
