from __future__ import annotations

import logging
from typing import Dict, Sequence

from ..common.validators import require_non_empty
from ..core.enums import TargetType
from ..core.exceptions import ValidationError
from ..org.model import Target
from ..org.service import OrgMembershipService
from .model import Notification, NotificationIntent
from .repository import NotificationRepository
from .sink import NotificationSink

logger = logging.getLogger(__name__)


class NotificationCenter:
    """Decides whom to notify; persistence and delivery are separate steps.

    ``record`` belongs inside the caller's transaction, ``dispatch`` runs only
    after it committed. Delivery failures never change workflow state.
    """

    def __init__(self, notifications: NotificationRepository, org: OrgMembershipService, sink: NotificationSink):
        self._notifications = notifications
        self._org = org
        self._sink = sink

    def record(self, intents: Sequence[NotificationIntent]) -> int:
        return self._notifications.create_many(list(intents))

    def dispatch(self, intents: Sequence[NotificationIntent]) -> Dict[int, bool]:
        results: Dict[int, bool] = {}
        for intent in intents:
            try:
                results[intent.target_id] = bool(self._sink.deliver(intent))
            except Exception:
                logger.exception("Delivery to %s %s failed", intent.target_type.value, intent.target_id)
                results[intent.target_id] = False
        return results

    def publish(self, *, sender_id: int, title: str, content: str, target: Target) -> Dict[int, bool]:
        """Announce to a department or class the sender owns."""

        if target.target_type == TargetType.STUDENT:
            raise ValidationError("Notifications target a department or a class")
        title = require_non_empty(title, "Title")
        content = require_non_empty(content, "Content")
        self._org.authorize_target(sender_id, target)

        group_intent = NotificationIntent(
            title=title,
            content=content,
            sender_id=int(sender_id),
            target_type=target.target_type,
            target_id=target.target_id,
        )
        self.record([group_intent])

        per_student = [
            NotificationIntent(
                title=title,
                content=content,
                sender_id=int(sender_id),
                target_type=TargetType.STUDENT,
                target_id=student_id,
            )
            for student_id in self._org.resolve_students(target)
        ]
        logger.info("Notification published to %s %s (%d students)", target.target_type.value, target.target_id, len(per_student))
        return self.dispatch(per_student)

    def list_mine(self, student_id: int) -> Sequence[Notification]:
        return self._notifications.list_for_targets(self._org.targets_for_student(student_id))
