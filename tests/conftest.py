"""Pytest configuration shared across the suite."""

try:
    from . import _bootstrap  # noqa: F401
except ImportError:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import pytest

from fakes import FakeRedisStore, FakeStravaTransport


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO-powered tests to run against asyncio backend only."""
    return "asyncio"


@pytest.fixture
def redis_store() -> FakeRedisStore:
    return FakeRedisStore()


@pytest.fixture
def strava_transport() -> FakeStravaTransport:
    return FakeStravaTransport()
