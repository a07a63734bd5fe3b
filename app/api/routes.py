"""
FastAPI routes for the Strava token broker.

Domain errors are translated here, and only here, into HTTP responses that
reveal as little as possible: CSRF failures always read "invalid or
expired", authentication failures carry a machine-readable reason.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Annotated, Any, NoReturn, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse

from app.core.errors import (
    AuthenticationError,
    AuthorizationFlowError,
    CryptoError,
    HandoffPendingError,
    InvalidCorrelatorError,
    InvalidTokenError,
    RevocationNotFoundError,
    StorageError,
    SubjectNotFoundError,
    TokenRevokedError,
    UpstreamError,
)
from app.core.logging import short_id
from app.dependencies import get_app_settings, get_bearer_token, get_token_session_service
from app.schemas import (
    AuthErrorDetail,
    PendingResponse,
    StravaAccessTokenResponse,
    TokenCallbackResponse,
    TokenPollResponse,
    TokenRevokeResponse,
    TokenVerifyResponse,
)
from app.services.subscriptions import PushEvent, classify_push_event

router = APIRouter()
logger = logging.getLogger(__name__)


_CLI_SUCCESS_PAGE = """<!DOCTYPE html>
<html>
<head>
    <title>Authentication Successful</title>
    <style>
        body { font-family: sans-serif; text-align: center; padding: 50px; }
        .success { color: #22c55e; font-size: 24px; font-weight: bold; }
        .message { color: #64748b; margin-top: 20px; }
    </style>
</head>
<body>
    <div class="success">&#10003; Authentication Successful!</div>
    <div class="message">You can close this window and return to your terminal.</div>
</body>
</html>"""


def _raise_unauthorized(exc: AuthenticationError) -> NoReturn:
    messages = {
        "token_expired": "Token has expired.",
        "token_revoked": "Token has been revoked.",
        "invalid_token": "Invalid token.",
    }
    detail = AuthErrorDetail(reason=exc.reason, message=messages[exc.reason])
    raise HTTPException(
        status_code=HTTPStatus.UNAUTHORIZED,
        detail=detail.model_dump(),
        headers={"WWW-Authenticate": "Bearer"},
    ) from exc


def _raise_server_error(message: str, exc: Exception) -> NoReturn:
    raise HTTPException(status_code=HTTPStatus.INTERNAL_SERVER_ERROR, detail=message) from exc


@router.get("/healthcheck", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"ok": True}


@router.get("/token/start", status_code=HTTPStatus.FOUND)
async def start_token_flow(
    sessions: Annotated[Any, Depends(get_token_session_service)],
    session_id: Optional[str] = Query(
        default=None,
        description="Opaque id chosen by a CLI client that will poll for the token.",
    ),
) -> RedirectResponse:
    """Kick off the OAuth flow by issuing a state value and redirecting to Strava."""
    try:
        authorization_url = await sessions.start_login(session_id)
    except InvalidCorrelatorError as exc:
        raise HTTPException(status_code=HTTPStatus.BAD_REQUEST, detail=str(exc)) from exc
    except StorageError as exc:
        logger.error("Failed to save OAuth state: %s", exc)
        _raise_server_error("Failed to initiate OAuth flow", exc)

    return RedirectResponse(url=authorization_url, status_code=HTTPStatus.FOUND)


@router.get("/token/callback", status_code=HTTPStatus.OK)
async def handle_token_callback(
    sessions: Annotated[Any, Depends(get_token_session_service)],
    code: Optional[str] = Query(default=None, description="Authorization code from Strava."),
    state: Optional[str] = Query(default=None, description="State issued by /token/start."),
):
    """Complete the OAuth exchange and hand out a bearer token."""
    if not code:
        raise HTTPException(status_code=HTTPStatus.BAD_REQUEST, detail="No code in callback")
    if not state:
        raise HTTPException(status_code=HTTPStatus.BAD_REQUEST, detail="No state in callback")

    try:
        result = await sessions.complete_login(code=code, state=state)
    except AuthorizationFlowError as exc:
        logger.warning("Rejected OAuth callback: %s", type(exc).__name__)
        raise HTTPException(
            status_code=HTTPStatus.FORBIDDEN, detail="Invalid or expired state token"
        ) from exc
    except UpstreamError as exc:
        logger.error("Failed to exchange code with Strava: %s", exc)
        _raise_server_error("Failed to exchange temporary code with strava", exc)
    except (StorageError, CryptoError) as exc:
        logger.error("Failed to persist login: %s", exc)
        _raise_server_error("Failed to save token", exc)

    if result.staged_for_cli:
        return HTMLResponse(content=_CLI_SUCCESS_PAGE, status_code=HTTPStatus.OK)

    return TokenCallbackResponse(
        access_token=result.bearer.token,
        athlete_id=result.bearer.athlete_id,
    )


@router.post("/token/verify", response_model=TokenVerifyResponse)
async def verify_token(
    sessions: Annotated[Any, Depends(get_token_session_service)],
    bearer_token: Annotated[str, Depends(get_bearer_token)],
) -> TokenVerifyResponse:
    """Report whether the presented bearer token is currently usable."""
    try:
        claims = await sessions.authenticate(bearer_token)
    except AuthenticationError as exc:
        _raise_unauthorized(exc)
    except StorageError as exc:
        logger.error("Failed to check revocation status: %s", exc)
        _raise_server_error("Failed to verify token revocation status", exc)

    return TokenVerifyResponse(
        athlete_id=claims.athlete_id,
        expires_at=claims.expires_at,
        issued_at=claims.issued_at,
        jti=claims.jti,
    )


@router.post("/token/revoke", response_model=TokenRevokeResponse)
async def revoke_token(
    sessions: Annotated[Any, Depends(get_token_session_service)],
    bearer_token: Annotated[str, Depends(get_bearer_token)],
) -> TokenRevokeResponse:
    """Revoke the presented bearer token."""
    try:
        claims = await sessions.revoke(bearer_token)
    except TokenRevokedError as exc:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST, detail="Token is already revoked"
        ) from exc
    except RevocationNotFoundError as exc:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST, detail="Token is not registered"
        ) from exc
    except AuthenticationError as exc:
        _raise_unauthorized(exc)
    except StorageError as exc:
        logger.error("Failed to revoke token: %s", exc)
        _raise_server_error("Failed to revoke token", exc)

    return TokenRevokeResponse(jti=claims.jti, athlete_id=claims.athlete_id)


@router.get(
    "/token/poll",
    response_model=TokenPollResponse,
    responses={HTTPStatus.ACCEPTED: {"model": PendingResponse}},
)
async def poll_token(
    sessions: Annotated[Any, Depends(get_token_session_service)],
    session_id: Optional[str] = Query(default=None, description="CLI session id."),
):
    """Let a CLI client pick up the bearer token once the browser login finished."""
    if not session_id:
        raise HTTPException(status_code=HTTPStatus.BAD_REQUEST, detail="session_id is required")

    try:
        polled = await sessions.poll(session_id)
    except HandoffPendingError:
        return JSONResponse(
            status_code=HTTPStatus.ACCEPTED, content=PendingResponse().model_dump()
        )
    except InvalidTokenError as exc:
        logger.error("Staged token for CLI session %s failed verification", short_id(session_id))
        _raise_server_error("Invalid token in session", exc)
    except StorageError as exc:
        logger.error("Failed to read CLI session: %s", exc)
        _raise_server_error("Failed to read CLI session", exc)

    return TokenPollResponse(token=polled.token, expires_at=polled.expires_at)


@router.get("/api/strava-token", response_model=StravaAccessTokenResponse)
async def get_strava_token(
    sessions: Annotated[Any, Depends(get_token_session_service)],
    bearer_token: Annotated[str, Depends(get_bearer_token)],
) -> StravaAccessTokenResponse:
    """Return a valid Strava access token for the authenticated athlete."""
    try:
        claims, pair = await sessions.upstream_token(bearer_token)
    except AuthenticationError as exc:
        _raise_unauthorized(exc)
    except SubjectNotFoundError as exc:
        raise HTTPException(
            status_code=HTTPStatus.NOT_FOUND, detail="Strava account not connected."
        ) from exc
    except UpstreamError as exc:
        logger.error("Error refreshing Strava token: %s", exc)
        _raise_server_error("Failed to refresh Strava token", exc)
    except (StorageError, CryptoError) as exc:
        logger.error("Error fetching Strava token: %s", exc)
        _raise_server_error("Failed to fetch Strava token", exc)

    return StravaAccessTokenResponse(
        athlete_id=claims.athlete_id,
        access_token=pair.access_token,
        expires_at=pair.expires_at,
    )


@router.get("/subscriptions/callback", status_code=HTTPStatus.OK)
async def verify_subscription_callback(
    request: Request,
    settings: Annotated[Any, Depends(get_app_settings)],
) -> dict:
    """Answer Strava's webhook verification handshake."""
    if request.query_params.get("hub.verify_token") != settings.verify_token:
        logger.warning("Received subscription callback with incorrect verify_token")
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST, detail="hub.verify_token is incorrect"
        )
    return {"hub.challenge": request.query_params.get("hub.challenge", "")}


@router.post("/subscriptions/callback", status_code=HTTPStatus.OK)
async def receive_push_event(event: PushEvent) -> dict:
    """Acknowledge a webhook push event."""
    return {"received": classify_push_event(event)}
