from __future__ import annotations

from typing import Protocol, Sequence

from ..org.model import Target
from .model import Notification, NotificationIntent


class NotificationRepository(Protocol):
    def create_many(self, intents: Sequence[NotificationIntent]) -> int:
        """Persist intents; returns how many rows were written."""

        raise NotImplementedError

    def list_for_targets(self, targets: Sequence[Target]) -> Sequence[Notification]:
        raise NotImplementedError
