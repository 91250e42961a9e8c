from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..core.enums import DingStatus, LeaveStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause
from .model import LeaveRequest, LeaveReturn
from .repository import LeaveRepository

_COLUMNS = (
    "l.id, l.student_id, l.leave_type, l.start_time, l.end_time, l.reason, "
    "l.status, l.created_at, l.auditor_id, l.audit_time, l.ding_id"
)


def _to_leave(r: dict) -> LeaveRequest:
    return LeaveRequest(
        leave_id=r["id"],
        student_id=int(r["student_id"]),
        leave_type=r["leave_type"],
        start_time=r["start_time"],
        end_time=r["end_time"],
        reason=r.get("reason") or "",
        status=LeaveStatus(r["status"]),
        created_at=r.get("created_at"),
        auditor_id=int(r["auditor_id"]) if r.get("auditor_id") is not None else None,
        audit_time=r.get("audit_time"),
        ding_id=r.get("ding_id"),
    )


class MySQLLeaveRepository(LeaveRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(self, leave: LeaveRequest) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO leave_requests(id, student_id, leave_type, start_time, end_time, reason, status)
                VALUES(%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    leave.leave_id,
                    int(leave.student_id),
                    leave.leave_type,
                    leave.start_time,
                    leave.end_time,
                    leave.reason,
                    leave.status.value,
                ),
            )

    def get(self, leave_id: str) -> Optional[LeaveRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM leave_requests l WHERE l.id=%s", (leave_id,))
            r = fetchone(cur)
            return _to_leave(r) if r else None

    def decide(self, *, leave_id: str, status: LeaveStatus, auditor_id: int, audit_time: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE leave_requests
                SET status=%s, auditor_id=%s, audit_time=%s
                WHERE id=%s AND status=%s
                """,
                (status.value, int(auditor_id), audit_time, leave_id, LeaveStatus.PENDING.value),
            )
            return cur.rowcount > 0

    def attach_ding(self, *, leave_id: str, ding_id: str) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE leave_requests SET ding_id=%s WHERE id=%s", (ding_id, leave_id))

    def list_by_student(self, student_id: int) -> Sequence[LeaveRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM leave_requests l WHERE l.student_id=%s ORDER BY l.created_at DESC",
                (int(student_id),),
            )
            return [_to_leave(r) for r in fetchall(cur)]

    def list_by_students(
        self, student_ids: Sequence[int], *, status: Optional[LeaveStatus] = None
    ) -> Sequence[LeaveRequest]:
        if not student_ids:
            return []
        sql = f"SELECT {_COLUMNS} FROM leave_requests l WHERE l.student_id IN ({in_clause(student_ids)})"
        params: list[object] = [int(s) for s in student_ids]
        if status is not None:
            sql += " AND l.status=%s"
            params.append(status.value)
        sql += " ORDER BY l.created_at DESC"

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_to_leave(r) for r in fetchall(cur)]

    def list_returns(self, student_ids: Sequence[int]) -> Sequence[LeaveReturn]:
        if not student_ids:
            return []
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}, r.status AS record_status, r.submitted_at
                FROM leave_requests l
                LEFT JOIN ding_records r ON r.ding_id = l.ding_id AND r.student_id = l.student_id
                WHERE l.status=%s AND l.student_id IN ({in_clause(student_ids)})
                ORDER BY l.end_time DESC
                """,
                (LeaveStatus.APPROVED.value, *[int(s) for s in student_ids]),
            )
            return [
                LeaveReturn(
                    leave=_to_leave(r),
                    checked_in=r.get("record_status") == DingStatus.COMPLETE.value,
                    submitted_at=r.get("submitted_at"),
                )
                for r in fetchall(cur)
            ]
