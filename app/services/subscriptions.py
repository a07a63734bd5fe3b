"""
Strava webhook subscription bootstrap and push event classification.

The bootstrap runs once per process as a supervised background task. Its
failures are logged and never reach the request-serving path.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from pydantic import BaseModel, Field

from app.clients.strava import StravaOAuthClient
from app.core.errors import UpstreamError

logger = logging.getLogger(__name__)


class PushEvent(BaseModel):
    """Webhook event body posted by Strava."""

    object_type: str = ""
    object_id: Optional[int] = None
    aspect_type: str = ""
    updates: dict[str, Any] = Field(default_factory=dict)
    owner_id: Optional[int] = None
    subscription_id: Optional[int] = None
    event_time: Optional[int] = None


def classify_push_event(event: PushEvent) -> str:
    """Log a push event and return its category."""
    if event.object_type == "activity":
        logger.info(
            "Webhook received: activity %s (%s) for athlete %s",
            event.object_id,
            event.aspect_type,
            event.owner_id,
        )
        return "activity"
    if event.object_type == "athlete":
        logger.info("Webhook received: athlete %s revoked access", event.owner_id)
        return "athlete"
    logger.warning("Webhook received: unrecognized object type %r", event.object_type)
    return "unknown"


async def establish_subscription(
    oauth_client: StravaOAuthClient, *, callback_url: str, verify_token: str
) -> Optional[int]:
    """Reuse the existing push subscription or create one. Returns its id."""
    logger.info("Fetching current Strava subscription")
    try:
        current = await oauth_client.list_subscriptions()
    except UpstreamError as exc:
        logger.warning("Fetching subscription failed, will attempt to create one: %s", exc)
        current = []

    if current:
        subscription_id = current[0].get("id")
        logger.info("Fetched current subscription %s", subscription_id)
        return subscription_id

    logger.info("No existing subscription found, creating one")
    created = await oauth_client.create_subscription(
        callback_url=callback_url, verify_token=verify_token
    )
    subscription_id = created.get("id")
    logger.info("Created new subscription %s", subscription_id)
    return subscription_id


class SubscriptionSupervisor:
    """Owns the background bootstrap task for the lifetime of the app."""

    def __init__(
        self, oauth_client: StravaOAuthClient, *, callback_url: str, verify_token: str
    ) -> None:
        self._oauth = oauth_client
        self._callback_url = callback_url
        self._verify_token = verify_token
        self._task: Optional[asyncio.Task] = None

    @property
    def task(self) -> Optional[asyncio.Task]:
        return self._task

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run(), name="strava-subscription-bootstrap")
        return self._task

    async def _run(self) -> Optional[int]:
        try:
            return await establish_subscription(
                self._oauth, callback_url=self._callback_url, verify_token=self._verify_token
            )
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Establishing Strava subscription failed")
            return None

    async def stop(self) -> None:
        if self._task is None or self._task.done():
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            logger.info("Subscription bootstrap cancelled during shutdown")


__all__ = [
    "PushEvent",
    "SubscriptionSupervisor",
    "classify_push_event",
    "establish_subscription",
]
