"""Notification sink factory."""

from __future__ import annotations

from typing import Optional

from ..config import DeployflowConfig, load_config
from .base import NotificationSink
from .sinks import (
    InMemoryNotificationSink,
    LoggingNotificationSink,
    WebhookNotificationSink,
)


def get_sink(
    kind: Optional[str] = None, config: Optional[DeployflowConfig] = None
) -> NotificationSink:
    """Factory function to get the configured notification sink."""

    config = config or load_config()
    conf = config.notifications
    kind = (kind or conf.sink).lower()

    if kind == "log":
        return LoggingNotificationSink()
    elif kind == "memory":
        return InMemoryNotificationSink()
    elif kind == "webhook":
        if not conf.webhook_url:
            raise ValueError("notifications.webhook_url is required for the webhook sink")
        return WebhookNotificationSink(conf.webhook_url, timeout=conf.timeout)
    else:
        raise ValueError(f"Unsupported notification sink: {kind}")


__all__ = [
    "InMemoryNotificationSink",
    "LoggingNotificationSink",
    "NotificationSink",
    "WebhookNotificationSink",
    "get_sink",
]
