"""
Strava OAuth and API utilities.

``HttpxStravaTransport`` is the only code that talks HTTP to Strava. The OAuth
client, the upstream token store and the subscription bootstrap all depend on
the narrow ``StravaTransport`` protocol so tests can substitute a fake.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Protocol
from urllib.parse import urlencode

import httpx
from pydantic import ValidationError

from app.core.config import StravaSettings
from app.core.errors import TokenExchangeError, UpstreamError, UpstreamTimeoutError
from app.models.oauth import StravaTokenResponse

logger = logging.getLogger(__name__)


class StravaTransport(Protocol):
    """Minimal request surface used for token exchange, refresh and resources."""

    async def perform_request(
        self,
        method: str,
        url: str,
        *,
        token: Optional[str] = None,
        params: Optional[Mapping[str, str]] = None,
    ) -> Any:
        ...

    async def perform_request_form(self, url: str, data: Mapping[str, str]) -> Any:
        ...


class HttpxStravaTransport:
    """``StravaTransport`` backed by ``httpx`` with a bounded timeout per call."""

    def __init__(
        self,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._timeout = timeout
        self._transport = transport

    async def perform_request(
        self,
        method: str,
        url: str,
        *,
        token: Optional[str] = None,
        params: Optional[Mapping[str, str]] = None,
    ) -> Any:
        headers = {"Authorization": f"Bearer {token}"} if token else None
        return await self._send(method, url, headers=headers, params=params)

    async def perform_request_form(self, url: str, data: Mapping[str, str]) -> Any:
        return await self._send("POST", url, data=dict(data))

    async def _send(self, method: str, url: str, **kwargs: Any) -> Any:
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.request(method, url, **kwargs)
        except httpx.TimeoutException as exc:
            logger.error("Strava request timed out: %s %s", method, url)
            raise UpstreamTimeoutError(f"{method} {url} timed out") from exc
        except httpx.HTTPError as exc:
            logger.error("Strava request failed: %s %s (%s)", method, url, type(exc).__name__)
            raise UpstreamError(f"{method} {url} failed: {type(exc).__name__}") from exc

        if not response.is_success:
            logger.error(
                "Strava responded with bad status: %s %s -> %s",
                method,
                url,
                response.status_code,
            )
            raise UpstreamError(f"{method} {url} returned status {response.status_code}")

        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamError(f"{method} {url} returned a non-JSON body") from exc


class StravaOAuthClient:
    """Build Strava authorization URLs and exchange codes or refresh tokens."""

    def __init__(self, settings: StravaSettings, transport: StravaTransport) -> None:
        self._strava = settings
        self._transport = transport

    def build_authorization_url(self, *, state: str, redirect_uri: str) -> str:
        """Construct the Strava consent URL carrying the CSRF state."""
        params = {
            "client_id": self._strava.client_id,
            "redirect_uri": redirect_uri,
            "response_type": "code",
            "scope": self._strava.scopes,
            "state": state,
        }
        return f"{self._strava.authorize_url}?{urlencode(params)}"

    async def exchange_authorization_code(self, code: str) -> StravaTokenResponse:
        """Exchange an authorization code for a token pair and athlete identity."""
        payload = {
            "client_id": self._strava.client_id,
            "client_secret": self._strava.client_secret,
            "code": code,
            "grant_type": "authorization_code",
        }
        try:
            body = await self._transport.perform_request_form(self._strava.token_url, payload)
        except UpstreamError as exc:
            raise TokenExchangeError("authorization code exchange failed") from exc

        token = self._parse_token_response(body, "authorization code exchange")
        if token.athlete is None:
            raise TokenExchangeError("token response is missing the athlete block")
        return token

    async def refresh_token(self, refresh_token: str) -> StravaTokenResponse:
        """Exchange a refresh token for a new token pair."""
        payload = {
            "client_id": self._strava.client_id,
            "client_secret": self._strava.client_secret,
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
        }
        body = await self._transport.perform_request_form(self._strava.token_url, payload)
        return self._parse_token_response(body, "token refresh")

    async def list_subscriptions(self) -> list[dict[str, Any]]:
        body = await self._transport.perform_request(
            "GET",
            self._strava.subscriptions_url,
            params={
                "client_id": self._strava.client_id,
                "client_secret": self._strava.client_secret,
            },
        )
        if not isinstance(body, list):
            raise UpstreamError("subscription listing did not return a list")
        return body

    async def create_subscription(self, *, callback_url: str, verify_token: str) -> dict[str, Any]:
        body = await self._transport.perform_request_form(
            self._strava.subscriptions_url,
            {
                "client_id": self._strava.client_id,
                "client_secret": self._strava.client_secret,
                "callback_url": callback_url,
                "verify_token": verify_token,
            },
        )
        if not isinstance(body, dict):
            raise UpstreamError("subscription creation returned an unexpected body")
        return body

    @staticmethod
    def _parse_token_response(body: Any, operation: str) -> StravaTokenResponse:
        try:
            return StravaTokenResponse.model_validate(body)
        except ValidationError as exc:
            raise TokenExchangeError(f"incomplete token payload returned from {operation}") from exc


__all__ = [
    "HttpxStravaTransport",
    "StravaOAuthClient",
    "StravaTransport",
]
