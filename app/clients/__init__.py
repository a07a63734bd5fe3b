"""Expose constructed client wrappers."""

from .redis_store import RedisStore
from .strava import HttpxStravaTransport, StravaOAuthClient, StravaTransport

__all__ = [
    "HttpxStravaTransport",
    "RedisStore",
    "StravaOAuthClient",
    "StravaTransport",
]
