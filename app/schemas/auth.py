"""Schemas returned by the token API."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class TokenCallbackResponse(BaseModel):
    """Bearer token handed back to browser logins without a CLI session."""

    access_token: str
    token_type: Literal["Bearer"] = "Bearer"
    athlete_id: int


class TokenVerifyResponse(BaseModel):
    valid: bool = True
    athlete_id: int
    expires_at: datetime
    issued_at: datetime
    jti: str


class TokenRevokeResponse(BaseModel):
    revoked: bool = True
    jti: str
    athlete_id: int


class TokenPollResponse(BaseModel):
    token: str
    expires_at: datetime = Field(..., description="Bearer token expiry (RFC 3339).")


class PendingResponse(BaseModel):
    status: Literal["pending"] = "pending"


class StravaAccessTokenResponse(BaseModel):
    """Decrypted Strava access token for the authenticated athlete."""

    athlete_id: int
    access_token: str
    expires_at: int = Field(..., description="Strava token expiry in epoch seconds.")


class AuthErrorDetail(BaseModel):
    reason: Literal["invalid_token", "token_expired", "token_revoked"]
    message: str


__all__ = [
    "AuthErrorDetail",
    "PendingResponse",
    "StravaAccessTokenResponse",
    "TokenCallbackResponse",
    "TokenPollResponse",
    "TokenRevokeResponse",
    "TokenVerifyResponse",
]
