from __future__ import annotations

from typing import Sequence

from ..core.enums import TargetType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall
from ..org.model import Target
from .model import Notification, NotificationIntent
from .repository import NotificationRepository


class MySQLNotificationRepository(NotificationRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create_many(self, intents: Sequence[NotificationIntent]) -> int:
        if not intents:
            return 0
        with db_cursor(self._conn_factory) as (_, cur):
            cur.executemany(
                """
                INSERT INTO notifications(title, content, sender_id, target_type, target_id)
                VALUES(%s,%s,%s,%s,%s)
                """,
                [(i.title, i.content, int(i.sender_id), i.target_type.value, int(i.target_id)) for i in intents],
            )
            return int(cur.rowcount)

    def list_for_targets(self, targets: Sequence[Target]) -> Sequence[Notification]:
        if not targets:
            return []
        where = " OR ".join(["(target_type=%s AND target_id=%s)"] * len(targets))
        params: list[object] = []
        for t in targets:
            params.extend([t.target_type.value, int(t.target_id)])

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT id, title, content, sender_id, target_type, target_id, created_at
                FROM notifications
                WHERE {where}
                ORDER BY created_at DESC, id DESC
                """,
                tuple(params),
            )
            return [
                Notification(
                    notification_id=int(r["id"]),
                    title=r["title"],
                    content=r["content"],
                    sender_id=int(r["sender_id"]),
                    target_type=TargetType(r["target_type"]),
                    target_id=int(r["target_id"]),
                    created_at=r.get("created_at"),
                )
                for r in fetchall(cur)
            ]
