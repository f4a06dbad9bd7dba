"""Built-in notification sinks."""

from __future__ import annotations

import logging
from typing import List, Optional

import httpx

from ..models import Notification
from ..status import NotificationType
from .base import NotificationSink

logger = logging.getLogger(__name__)


class LoggingNotificationSink(NotificationSink):
    """Write notifications to the deployflow log."""

    async def deliver(self, notification: Notification) -> None:
        level = (
            logging.WARNING
            if notification.type is NotificationType.FAILURE
            else logging.INFO
        )
        logger.log(level, f"[{notification.type.value}] {notification.title}: {notification.message}")


class InMemoryNotificationSink(NotificationSink):
    """Collect delivered notifications in a list, in delivery order."""

    def __init__(self) -> None:
        self.delivered: List[Notification] = []

    async def deliver(self, notification: Notification) -> None:
        self.delivered.append(notification)


class WebhookNotificationSink(NotificationSink):
    """POST each notification as JSON to a chat or alerting webhook."""

    def __init__(
        self,
        url: str,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self._client = client

    async def _post(self, client: httpx.AsyncClient, notification: Notification) -> None:
        response = await client.post(
            self.url,
            json={
                "text": f"{notification.title}: {notification.message}",
                "notification": notification.model_dump(mode="json"),
            },
            timeout=self.timeout,
        )
        response.raise_for_status()

    async def deliver(self, notification: Notification) -> None:
        if self._client is not None:
            await self._post(self._client, notification)
            return
        async with httpx.AsyncClient() as client:
            await self._post(client, notification)
