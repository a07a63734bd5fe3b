"""Public schema exports."""

from .auth import (
    AuthErrorDetail,
    PendingResponse,
    StravaAccessTokenResponse,
    TokenCallbackResponse,
    TokenPollResponse,
    TokenRevokeResponse,
    TokenVerifyResponse,
)

__all__ = [
    "AuthErrorDetail",
    "PendingResponse",
    "StravaAccessTokenResponse",
    "TokenCallbackResponse",
    "TokenPollResponse",
    "TokenRevokeResponse",
    "TokenVerifyResponse",
]
