"""
Logging utilities for the token broker and its background tasks.

Provides a consistent logging format and keeps third-party request logging
quiet, since Strava subscription calls carry client credentials in the query
string.
"""

import logging
import sys

_QUIET_LOGGERS = ("httpx", "httpcore")


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging with a sensible default format."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stdout,
    )
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def short_id(value: str, length: int = 8) -> str:
    """Truncate an identifier (jti, session id) for log output."""
    if len(value) <= length:
        return value
    return f"{value[:length]}..."


__all__ = ["configure_logging", "short_id"]
