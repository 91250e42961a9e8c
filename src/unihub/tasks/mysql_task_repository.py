from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Optional, Sequence, Set

import mysql.connector

from ..core.enums import TargetType, TaskRecordStatus
from ..core.exceptions import DuplicateEntry
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause, is_duplicate_key
from ..org.model import Target
from .model import Task, TaskRecord
from .repository import TaskRepository

_COLUMNS = "id, title, task_type, description, creator_id, target_type, target_id, deadline, config, created_at"


def _load_json(value):
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    if isinstance(value, str):
        return json.loads(value)
    return value


def _to_task(r: dict) -> Task:
    return Task(
        task_id=r["id"],
        title=r["title"],
        task_type=r["task_type"],
        description=r.get("description") or "",
        creator_id=int(r["creator_id"]),
        target=Target(target_type=TargetType(r["target_type"]), target_id=int(r["target_id"])),
        deadline=r["deadline"],
        config=_load_json(r.get("config")) or {},
        created_at=r.get("created_at"),
    )


class MySQLTaskRepository(TaskRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create_task(self, task: Task) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO tasks(id, title, task_type, description, creator_id, target_type, target_id, deadline, config)
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    task.task_id,
                    task.title,
                    task.task_type,
                    task.description,
                    int(task.creator_id),
                    task.target.target_type.value,
                    int(task.target.target_id),
                    task.deadline,
                    json.dumps(task.config),
                ),
            )

    def get_task(self, task_id: str) -> Optional[Task]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM tasks WHERE id=%s", (task_id,))
            r = fetchone(cur)
            return _to_task(r) if r else None

    def get_record(self, *, task_id: str, student_id: int) -> Optional[TaskRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT id, task_id, student_id, status, data, created_at FROM task_records WHERE task_id=%s AND student_id=%s",
                (task_id, int(student_id)),
            )
            r = fetchone(cur)
            if not r:
                return None
            return TaskRecord(
                record_id=int(r["id"]),
                task_id=r["task_id"],
                student_id=int(r["student_id"]),
                status=TaskRecordStatus(r["status"]),
                data=_load_json(r.get("data")),
                created_at=r.get("created_at"),
            )

    def create_record(self, *, task_id: str, student_id: int, data: Any, submitted_at: datetime) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            try:
                cur.execute(
                    "INSERT INTO task_records(task_id, student_id, status, data, created_at) VALUES(%s,%s,%s,%s,%s)",
                    (task_id, int(student_id), TaskRecordStatus.COMPLETED.value, json.dumps(data), submitted_at),
                )
            except mysql.connector.IntegrityError as exc:
                if is_duplicate_key(exc):
                    raise DuplicateEntry("Task already submitted") from exc
                raise
            return int(cur.lastrowid)

    def list_for_targets(self, targets: Sequence[Target]) -> Sequence[Task]:
        if not targets:
            return []
        pairs = " OR ".join(["(target_type=%s AND target_id=%s)"] * len(targets))
        params = []
        for t in targets:
            params.extend([t.target_type.value, int(t.target_id)])
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM tasks WHERE {pairs} ORDER BY deadline ASC", tuple(params))
            return [_to_task(r) for r in fetchall(cur)]

    def submitted_task_ids(self, *, student_id: int, task_ids: Sequence[str]) -> Set[str]:
        if not task_ids:
            return set()
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT task_id FROM task_records WHERE student_id=%s AND task_id IN ({in_clause(task_ids)})",
                (int(student_id), *task_ids),
            )
            return {r["task_id"] for r in fetchall(cur)}
