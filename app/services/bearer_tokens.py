"""Issue and verify the broker's signed bearer tokens (HS256 JWTs)."""

from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from app.core.errors import InvalidTokenError
from app.models.oauth import BearerClaims, IssuedBearerToken

SIGNING_ALGORITHM = "HS256"
ACCEPTED_ALGORITHMS = ["HS256", "HS384", "HS512"]


def generate_jti() -> str:
    """Random revocation identifier, independent of subject and time."""
    return secrets.token_hex(32)


class BearerTokenCodec:
    """
    Signs bearer tokens for an athlete and decodes them again.

    ``verify`` only proves the token was minted with our secret. Expiry and
    revocation must be checked by the caller on every use.
    """

    def __init__(self, *, secret: str, default_ttl: timedelta = timedelta(days=30)) -> None:
        self._secret = secret
        self._default_ttl = default_ttl

    def issue(
        self,
        athlete_id: int,
        ttl: Optional[timedelta] = None,
        *,
        now: Optional[datetime] = None,
    ) -> IssuedBearerToken:
        issued_at = (now or datetime.now(timezone.utc)).replace(microsecond=0)
        expires_at = issued_at + (ttl if ttl is not None else self._default_ttl)
        jti = generate_jti()
        payload = {
            "athlete_id": athlete_id,
            "expires_at": int(expires_at.timestamp()),
            "jti": jti,
            "sub": str(athlete_id),
            "exp": expires_at,
            "iat": issued_at,
            "nbf": issued_at,
        }
        token = jwt.encode(payload, self._secret, algorithm=SIGNING_ALGORITHM)
        return IssuedBearerToken(
            token=token,
            jti=jti,
            athlete_id=athlete_id,
            issued_at=issued_at,
            expires_at=expires_at,
        )

    def verify(self, token: str) -> BearerClaims:
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=ACCEPTED_ALGORITHMS,
                options={
                    "verify_exp": False,
                    "verify_nbf": False,
                    "verify_iat": False,
                    "require": ["iat", "jti", "athlete_id", "expires_at"],
                },
            )
        except jwt.PyJWTError as exc:
            raise InvalidTokenError("bearer token failed verification") from exc

        try:
            return BearerClaims(
                athlete_id=int(payload["athlete_id"]),
                issued_at=datetime.fromtimestamp(int(payload["iat"]), tz=timezone.utc),
                expires_at=datetime.fromtimestamp(int(payload["expires_at"]), tz=timezone.utc),
                jti=str(payload["jti"]),
            )
        except (TypeError, ValueError) as exc:
            raise InvalidTokenError("bearer token claims are malformed") from exc


__all__ = ["ACCEPTED_ALGORITHMS", "BearerTokenCodec", "generate_jti"]
