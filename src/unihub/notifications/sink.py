from __future__ import annotations

import logging
from typing import Protocol

from .model import NotificationIntent

logger = logging.getLogger(__name__)


class NotificationSink(Protocol):
    """Delivery endpoint for notification intents (push, mail, ...)."""

    def deliver(self, intent: NotificationIntent) -> bool:
        raise NotImplementedError


class LoggingSink(NotificationSink):
    """Default sink: records the delivery decision in the log."""

    def deliver(self, intent: NotificationIntent) -> bool:
        logger.info(
            "Notify %s %s from %s: %s",
            intent.target_type.value,
            intent.target_id,
            intent.sender_id,
            intent.title,
        )
        return True
