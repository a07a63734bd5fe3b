from __future__ import annotations

from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from app.clients.strava import HttpxStravaTransport, StravaOAuthClient
from app.core.config import StravaSettings
from app.core.errors import TokenExchangeError, UpstreamError, UpstreamTimeoutError

from fakes import token_payload


def _settings() -> StravaSettings:
    return StravaSettings(STRAVA_CLIENT_ID="client-42", STRAVA_CLIENT_SECRET="shh")


def test_authorization_url_carries_state_and_redirect(strava_transport) -> None:
    client = StravaOAuthClient(_settings(), strava_transport)

    url = client.build_authorization_url(
        state="abc:sess", redirect_uri="https://broker.example.com/token/callback"
    )

    parsed = urlparse(url)
    params = parse_qs(parsed.query)
    assert f"{parsed.scheme}://{parsed.netloc}{parsed.path}" == "https://www.strava.com/oauth/authorize"
    assert params["client_id"] == ["client-42"]
    assert params["response_type"] == ["code"]
    assert params["state"] == ["abc:sess"]
    assert params["scope"] == ["read,activity:read_all"]
    assert params["redirect_uri"] == ["https://broker.example.com/token/callback"]


@pytest.mark.asyncio
async def test_exchange_posts_authorization_code(strava_transport) -> None:
    strava_transport.queue(token_payload(athlete_id=77))
    client = StravaOAuthClient(_settings(), strava_transport)

    token = await client.exchange_authorization_code("the-code")

    assert token.athlete is not None and token.athlete.id == 77
    sent = strava_transport.form_requests[0]
    assert sent["url"] == "https://www.strava.com/oauth/token"
    assert sent["data"] == {
        "client_id": "client-42",
        "client_secret": "shh",
        "code": "the-code",
        "grant_type": "authorization_code",
    }


@pytest.mark.asyncio
async def test_exchange_without_athlete_is_rejected(strava_transport) -> None:
    strava_transport.queue(token_payload(athlete_id=None))
    client = StravaOAuthClient(_settings(), strava_transport)

    with pytest.raises(TokenExchangeError):
        await client.exchange_authorization_code("the-code")


@pytest.mark.asyncio
async def test_exchange_upstream_failure_becomes_exchange_error(strava_transport) -> None:
    strava_transport.queue_error(UpstreamError("400"))
    client = StravaOAuthClient(_settings(), strava_transport)

    with pytest.raises(TokenExchangeError):
        await client.exchange_authorization_code("bad-code")


@pytest.mark.asyncio
async def test_refresh_posts_refresh_grant(strava_transport) -> None:
    strava_transport.queue(token_payload(access_token="new", athlete_id=None))
    client = StravaOAuthClient(_settings(), strava_transport)

    token = await client.refresh_token("old-refresh")

    assert token.access_token == "new"
    assert strava_transport.form_requests[0]["data"]["grant_type"] == "refresh_token"
    assert strava_transport.form_requests[0]["data"]["refresh_token"] == "old-refresh"


@pytest.mark.asyncio
async def test_httpx_transport_sends_bearer_and_decodes_json() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"ok": True})

    transport = HttpxStravaTransport(transport=httpx.MockTransport(handler))

    body = await transport.perform_request(
        "GET", "https://www.strava.com/api/v3/athlete", token="tok"
    )

    assert body == {"ok": True}
    assert seen[0].headers["Authorization"] == "Bearer tok"


@pytest.mark.asyncio
async def test_httpx_transport_form_encodes_body() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={})

    transport = HttpxStravaTransport(transport=httpx.MockTransport(handler))

    await transport.perform_request_form("https://www.strava.com/oauth/token", {"code": "x"})

    assert seen[0].method == "POST"
    assert seen[0].headers["content-type"] == "application/x-www-form-urlencoded"
    assert seen[0].content == b"code=x"


@pytest.mark.asyncio
async def test_httpx_transport_raises_on_bad_status() -> None:
    transport = HttpxStravaTransport(
        transport=httpx.MockTransport(lambda request: httpx.Response(500, text="boom"))
    )

    with pytest.raises(UpstreamError) as excinfo:
        await transport.perform_request("GET", "https://www.strava.com/api/v3/athlete")

    assert "500" in str(excinfo.value)


@pytest.mark.asyncio
async def test_httpx_transport_rejects_non_json_body() -> None:
    transport = HttpxStravaTransport(
        transport=httpx.MockTransport(lambda request: httpx.Response(200, text="<html>"))
    )

    with pytest.raises(UpstreamError):
        await transport.perform_request("GET", "https://www.strava.com/api/v3/athlete")


@pytest.mark.asyncio
async def test_httpx_transport_maps_timeouts() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    transport = HttpxStravaTransport(transport=httpx.MockTransport(handler))

    with pytest.raises(UpstreamTimeoutError):
        await transport.perform_request_form("https://www.strava.com/oauth/token", {})
