"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    get_bearer_token_codec,
    get_cli_handoff_bridge,
    get_oauth_state_ledger,
    get_redis_store,
    get_revocation_ledger,
    get_strava_oauth_client,
    get_strava_transport,
    get_subscription_supervisor,
    get_token_cipher_service,
    get_token_session_service,
    get_upstream_token_store,
)
from .request import get_app_settings, get_bearer_token

__all__ = [
    "get_app_settings",
    "get_bearer_token",
    "get_bearer_token_codec",
    "get_cli_handoff_bridge",
    "get_oauth_state_ledger",
    "get_redis_store",
    "get_revocation_ledger",
    "get_strava_oauth_client",
    "get_strava_transport",
    "get_subscription_supervisor",
    "get_token_cipher_service",
    "get_token_session_service",
    "get_upstream_token_store",
]
