"""
FastAPI application entrypoint for the Strava token broker.
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable

from fastapi import FastAPI, Request, Response

from app.api.routes import router as api_router
from app.core.config import get_settings
from app.core.logging import configure_logging
from app.dependencies import get_redis_store, get_subscription_supervisor

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Start the subscription bootstrap in the background and clean up on shutdown."""
    settings = get_settings()
    supervisor = None
    if settings.subscriptions_enabled:
        logger.info("Establishing subscriptions in background")
        supervisor = get_subscription_supervisor()
        supervisor.start()
    try:
        yield
    finally:
        if supervisor is not None:
            await supervisor.stop()
        await get_redis_store().close()


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Strava Token Broker",
        version="0.1.0",
        description="Brokers Strava OAuth tokens to browser and CLI clients.",
        lifespan=lifespan,
    )

    @app.middleware("http")
    async def log_requests(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        """Log method, path and status of every request, without the query string."""
        started = time.perf_counter()
        response = await call_next(request)
        logger.info(
            "%s %s -> %s (%.1f ms)",
            request.method,
            request.url.path,
            response.status_code,
            (time.perf_counter() - started) * 1000,
        )
        return response

    app.include_router(api_router)
    return app


app = create_app()

__all__ = ["app", "create_app"]
