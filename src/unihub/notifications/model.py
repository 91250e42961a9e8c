from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import TargetType


@dataclass(frozen=True)
class NotificationIntent:
    """Fire-and-forget request to tell a target about something."""

    title: str
    content: str
    sender_id: int
    target_type: TargetType
    target_id: int


@dataclass(frozen=True)
class Notification:
    notification_id: int
    title: str
    content: str
    sender_id: int
    target_type: TargetType
    target_id: int
    created_at: Optional[datetime] = None
