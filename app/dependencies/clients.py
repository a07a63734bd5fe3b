"""
Factory functions to provide shared clients and services as FastAPI dependencies.
"""

from datetime import timedelta
from functools import lru_cache

from app.clients import HttpxStravaTransport, RedisStore, StravaOAuthClient
from app.core.config import get_settings
from app.services import (
    BearerTokenCodec,
    CLIHandoffBridge,
    OAuthStateLedger,
    RevocationLedger,
    SubscriptionSupervisor,
    TokenCipherService,
    TokenSessionService,
    UpstreamTokenStore,
)


@lru_cache()
def _settings():
    """Internal helper to cache settings for client factories."""
    return get_settings()


@lru_cache()
def get_redis_store() -> RedisStore:
    """Provide the shared, concurrency-safe Redis handle."""
    settings = _settings()
    return RedisStore(settings.redis.url, socket_timeout=settings.redis.socket_timeout)


@lru_cache()
def get_strava_transport() -> HttpxStravaTransport:
    settings = _settings()
    return HttpxStravaTransport(timeout=settings.http_timeout_seconds)


@lru_cache()
def get_strava_oauth_client() -> StravaOAuthClient:
    """Create a singleton Strava OAuth client."""
    settings = _settings()
    return StravaOAuthClient(settings.strava, get_strava_transport())


@lru_cache()
def get_token_cipher_service() -> TokenCipherService:
    """Provide symmetric encryption helper for token storage."""
    return TokenCipherService(secret=_settings().security.app_secret)


@lru_cache()
def get_bearer_token_codec() -> BearerTokenCodec:
    security = _settings().security
    return BearerTokenCodec(
        secret=security.app_secret,
        default_ttl=timedelta(seconds=security.bearer_token_ttl_seconds),
    )


@lru_cache()
def get_oauth_state_ledger() -> OAuthStateLedger:
    return OAuthStateLedger(
        get_redis_store(), ttl_seconds=_settings().security.oauth_state_ttl_seconds
    )


@lru_cache()
def get_upstream_token_store() -> UpstreamTokenStore:
    """Provide helper for managing Strava OAuth tokens."""
    return UpstreamTokenStore(
        store=get_redis_store(),
        cipher=get_token_cipher_service(),
        oauth_client=get_strava_oauth_client(),
    )


@lru_cache()
def get_revocation_ledger() -> RevocationLedger:
    return RevocationLedger(get_redis_store())


@lru_cache()
def get_cli_handoff_bridge() -> CLIHandoffBridge:
    return CLIHandoffBridge(
        get_redis_store(), ttl_seconds=_settings().security.cli_session_ttl_seconds
    )


@lru_cache()
def get_token_session_service() -> TokenSessionService:
    """Build the login orchestration service from the shared components."""
    return TokenSessionService(
        oauth_client=get_strava_oauth_client(),
        state_ledger=get_oauth_state_ledger(),
        token_store=get_upstream_token_store(),
        codec=get_bearer_token_codec(),
        revocations=get_revocation_ledger(),
        handoff=get_cli_handoff_bridge(),
        callback_url=_settings().callback_url(),
    )


def get_subscription_supervisor() -> SubscriptionSupervisor:
    settings = _settings()
    return SubscriptionSupervisor(
        get_strava_oauth_client(),
        callback_url=settings.subscription_callback_url(),
        verify_token=settings.verify_token,
    )


__all__ = [
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
