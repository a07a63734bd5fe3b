"""
Per-request dependencies: application settings and the presented bearer token.
"""

from functools import lru_cache
from http import HTTPStatus
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.config import AppSettings, get_settings

_bearer_scheme = HTTPBearer(auto_error=False)


@lru_cache()
def _settings_singleton() -> AppSettings:
    """Ensure configuration is created once per process."""
    return get_settings()


def get_app_settings() -> AppSettings:
    """FastAPI dependency returning application settings."""
    return _settings_singleton()


def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> str:
    """Extract the token from an ``Authorization: Bearer <token>`` header."""
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=HTTPStatus.UNAUTHORIZED,
            detail={
                "reason": "invalid_token",
                "message": "Authorization header with a Bearer token is required.",
            },
            headers={"WWW-Authenticate": "Bearer"},
        )
    return credentials.credentials


__all__ = ["get_app_settings", "get_bearer_token"]
