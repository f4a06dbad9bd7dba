"""Base notification sink interface."""

from __future__ import annotations

import abc

from ..models import Notification


class NotificationSink(metaclass=abc.ABCMeta):
    """Delivers notification records to the outside world."""

    @abc.abstractmethod
    async def deliver(self, notification: Notification) -> None:
        """Hand ``notification`` off. May raise on delivery failure."""
        raise NotImplementedError
