"""
Exception hierarchy for the token broker.

Services raise these; only the API layer translates them into HTTP responses.
Messages carry enough context to diagnose (athlete id, truncated jti,
operation) and never include secrets, tokens or ciphertexts.
"""

from __future__ import annotations


class TokenBrokerError(Exception):
    """Base class for all token broker failures."""


class ConfigurationError(TokenBrokerError):
    """Raised at startup when required settings are missing or malformed."""


class InvalidSecretError(ConfigurationError):
    """The deployment secret is not valid hex or decodes to fewer than 32 bytes."""


class AuthenticationError(TokenBrokerError):
    """A bearer token is malformed, expired or revoked."""

    reason = "invalid_token"


class InvalidTokenError(AuthenticationError):
    reason = "invalid_token"


class TokenExpiredError(AuthenticationError):
    reason = "token_expired"


class TokenRevokedError(AuthenticationError):
    reason = "token_revoked"


class AuthorizationFlowError(TokenBrokerError):
    """The OAuth redirect could not be matched to a pending login."""


class InvalidOrExpiredStateError(AuthorizationFlowError):
    pass


class CorrelatorMismatchError(AuthorizationFlowError):
    pass


class InvalidCorrelatorError(AuthorizationFlowError):
    """Session correlators must be 1-128 visible ASCII characters."""


class UpstreamError(TokenBrokerError):
    """The Strava API failed during code exchange, refresh or a resource call."""


class TokenExchangeError(UpstreamError):
    pass


class RefreshFailedError(UpstreamError):
    pass


class UpstreamTimeoutError(UpstreamError):
    pass


class StorageError(TokenBrokerError):
    """The key-value store is unavailable or holds unusable data."""


class StorageTimeoutError(StorageError):
    pass


class SubjectNotFoundError(StorageError):
    """No upstream token record exists for the athlete."""


class AlreadyExpiredError(StorageError):
    """Refusing to register a bearer token that has already expired."""


class RevocationNotFoundError(StorageError):
    """The bearer token registration is gone, so there is nothing to revoke."""


class CryptoError(TokenBrokerError):
    """Decryption or integrity failure on stored data."""


class DecryptionFailedError(CryptoError):
    def __init__(self, message: str = "decryption failed") -> None:
        super().__init__(message)


class MalformedCiphertextError(DecryptionFailedError):
    pass


class AuthenticationFailedError(DecryptionFailedError):
    pass


class HandoffPendingError(TokenBrokerError):
    """No bearer token has been staged for the CLI session yet."""


__all__ = [
    "AlreadyExpiredError",
    "AuthenticationError",
    "AuthenticationFailedError",
    "AuthorizationFlowError",
    "ConfigurationError",
    "CorrelatorMismatchError",
    "CryptoError",
    "DecryptionFailedError",
    "HandoffPendingError",
    "InvalidCorrelatorError",
    "InvalidOrExpiredStateError",
    "InvalidSecretError",
    "InvalidTokenError",
    "MalformedCiphertextError",
    "RefreshFailedError",
    "RevocationNotFoundError",
    "StorageError",
    "StorageTimeoutError",
    "SubjectNotFoundError",
    "TokenBrokerError",
    "TokenExchangeError",
    "TokenExpiredError",
    "TokenRevokedError",
    "UpstreamError",
    "UpstreamTimeoutError",
]
