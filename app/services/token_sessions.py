"""
Login orchestration for the token API.

Drives a login from ``start_login`` (state issued) through code exchange,
bearer token issuance and either direct delivery or staging for a polling
CLI client, and authenticates every later use of the bearer token.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from app.clients.strava import StravaOAuthClient
from app.core.errors import TokenExpiredError, TokenRevokedError
from app.core.logging import short_id
from app.models.oauth import BearerClaims, IssuedBearerToken, UpstreamTokenPair
from app.services.bearer_tokens import BearerTokenCodec
from app.services.cli_handoff import CLIHandoffBridge
from app.services.oauth_state import OAuthStateLedger
from app.services.revocation import RevocationLedger
from app.services.upstream_tokens import UpstreamTokenStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoginResult:
    bearer: IssuedBearerToken
    session_id: Optional[str]

    @property
    def staged_for_cli(self) -> bool:
        return self.session_id is not None


@dataclass(frozen=True)
class PolledToken:
    token: str
    expires_at: datetime


class TokenSessionService:
    """Coordinates the ledgers, stores and codec behind the token endpoints."""

    def __init__(
        self,
        *,
        oauth_client: StravaOAuthClient,
        state_ledger: OAuthStateLedger,
        token_store: UpstreamTokenStore,
        codec: BearerTokenCodec,
        revocations: RevocationLedger,
        handoff: CLIHandoffBridge,
        callback_url: str,
    ) -> None:
        self._oauth = oauth_client
        self._states = state_ledger
        self._tokens = token_store
        self._codec = codec
        self._revocations = revocations
        self._handoff = handoff
        self._callback_url = callback_url

    async def start_login(self, session_id: Optional[str] = None) -> str:
        """Issue a CSRF state and return the Strava authorization URL."""
        state = await self._states.issue(session_id or None)
        return self._oauth.build_authorization_url(state=state, redirect_uri=self._callback_url)

    async def complete_login(self, *, code: str, state: str) -> LoginResult:
        session_id = await self._states.consume(state)

        token_response = await self._oauth.exchange_authorization_code(code)
        athlete = token_response.athlete  # guaranteed by the exchange
        logger.info(
            "Token exchange completed for athlete %s (%s)", athlete.id, athlete.username or "-"
        )

        await self._tokens.save(athlete.id, token_response.to_pair())

        bearer = self._codec.issue(athlete.id)
        await self._revocations.register(
            bearer.jti, athlete.id, bearer.issued_at, bearer.expires_at
        )

        if session_id:
            await self._handoff.stage(session_id, bearer.token)

        return LoginResult(bearer=bearer, session_id=session_id)

    async def authenticate(self, token: str, *, now: Optional[datetime] = None) -> BearerClaims:
        """Verify signature, then expiry, then revocation status."""
        claims = self._codec.verify(token)
        if claims.is_expired(now or datetime.now(timezone.utc)):
            raise TokenExpiredError("token has expired")
        if await self._revocations.is_revoked(claims.jti):
            raise TokenRevokedError("token has been revoked")
        return claims

    async def revoke(self, token: str) -> BearerClaims:
        claims = await self.authenticate(token)
        await self._revocations.revoke(claims.jti)
        logger.info("Bearer token %s revoked by athlete %s", short_id(claims.jti), claims.athlete_id)
        return claims

    async def poll(self, session_id: str) -> PolledToken:
        token = await self._handoff.retrieve(session_id)
        claims = self._codec.verify(token)
        return PolledToken(token=token, expires_at=claims.expires_at)

    async def upstream_token(self, token: str) -> tuple[BearerClaims, UpstreamTokenPair]:
        claims = await self.authenticate(token)
        pair = await self._tokens.get_token_pair(claims.athlete_id)
        return claims, pair


__all__ = ["LoginResult", "PolledToken", "TokenSessionService"]
