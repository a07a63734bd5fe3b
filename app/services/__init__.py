"""Service layer exports."""

from .bearer_tokens import BearerTokenCodec
from .cli_handoff import CLIHandoffBridge
from .oauth_state import OAuthStateLedger
from .revocation import RevocationLedger
from .subscriptions import SubscriptionSupervisor
from .token_cipher import TokenCipherService
from .token_sessions import LoginResult, PolledToken, TokenSessionService
from .upstream_tokens import UpstreamTokenStore

__all__ = [
    "BearerTokenCodec",
    "CLIHandoffBridge",
    "LoginResult",
    "OAuthStateLedger",
    "PolledToken",
    "RevocationLedger",
    "SubscriptionSupervisor",
    "TokenCipherService",
    "TokenSessionService",
    "UpstreamTokenStore",
]
