from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..core.enums import DingKind, DingStatus, TargetType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from ..org.model import Target
from .model import (
    Assignment,
    AttendanceStats,
    Ding,
    DingProgress,
    DingRecord,
    Geofence,
    Location,
    TimeWindow,
)
from .repository import DingRepository

_DING_COLUMNS = (
    "d.id, d.launcher_id, d.title, d.kind, d.start_time, d.end_time, "
    "d.latitude, d.longitude, d.radius_m, d.target_type, d.target_id, d.created_at"
)


def _to_ding(r: dict) -> Ding:
    return Ding(
        ding_id=r["id"],
        launcher_id=int(r["launcher_id"]),
        title=r["title"],
        kind=DingKind(r["kind"]),
        window=TimeWindow(start=r["start_time"], end=r["end_time"]),
        geofence=Geofence(
            center=Location(latitude=float(r["latitude"]), longitude=float(r["longitude"])),
            radius_m=float(r["radius_m"]),
        ),
        target=Target(target_type=TargetType(r["target_type"]), target_id=int(r["target_id"])),
        created_at=r.get("created_at"),
    )


def _to_record(r: dict) -> DingRecord:
    location = None
    if r.get("rec_latitude") is not None and r.get("rec_longitude") is not None:
        location = Location(latitude=float(r["rec_latitude"]), longitude=float(r["rec_longitude"]))
    return DingRecord(
        record_id=int(r["record_id"]),
        ding_id=r["ding_id"],
        student_id=int(r["student_id"]),
        status=DingStatus(r["status"]),
        submitted_at=r.get("submitted_at"),
        location=location,
    )


class MySQLDingRepository(DingRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create_ding(self, ding: Ding) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO dings(
                    id, launcher_id, title, kind, start_time, end_time,
                    latitude, longitude, radius_m, target_type, target_id
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    ding.ding_id,
                    int(ding.launcher_id),
                    ding.title,
                    ding.kind.value,
                    ding.window.start,
                    ding.window.end,
                    ding.geofence.center.latitude,
                    ding.geofence.center.longitude,
                    ding.geofence.radius_m,
                    ding.target.target_type.value,
                    int(ding.target.target_id),
                ),
            )

    def create_records(self, *, ding_id: str, student_ids: Sequence[int]) -> int:
        if not student_ids:
            return 0
        with db_cursor(self._conn_factory) as (_, cur):
            cur.executemany(
                "INSERT INTO ding_records(ding_id, student_id, status) VALUES(%s,%s,%s)",
                [(ding_id, int(sid), DingStatus.PENDING.value) for sid in student_ids],
            )
            return int(cur.rowcount)

    def get_ding(self, ding_id: str) -> Optional[Ding]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_DING_COLUMNS} FROM dings d WHERE d.id=%s", (ding_id,))
            r = fetchone(cur)
            return _to_ding(r) if r else None

    def get_record(self, *, ding_id: str, student_id: int) -> Optional[DingRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT id AS record_id, ding_id, student_id, status, submitted_at,
                       latitude AS rec_latitude, longitude AS rec_longitude
                FROM ding_records
                WHERE ding_id=%s AND student_id=%s
                """,
                (ding_id, int(student_id)),
            )
            r = fetchone(cur)
            return _to_record(r) if r else None

    def complete_record(self, *, record_id: int, submitted_at: datetime, location: Location) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE ding_records
                SET status=%s, submitted_at=%s, latitude=%s, longitude=%s
                WHERE id=%s AND status=%s
                """,
                (
                    DingStatus.COMPLETE.value,
                    submitted_at,
                    location.latitude,
                    location.longitude,
                    int(record_id),
                    DingStatus.PENDING.value,
                ),
            )
            return cur.rowcount > 0

    def count_records(self, *, launcher_id: int, exclude_kind: Optional[DingKind] = None) -> AttendanceStats:
        clauses = ["d.launcher_id=%s"]
        params: list[object] = [DingStatus.COMPLETE.value, int(launcher_id)]
        if exclude_kind is not None:
            clauses.append("d.kind<>%s")
            params.append(exclude_kind.value)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT COUNT(r.id) AS total,
                       COALESCE(SUM(r.status=%s), 0) AS checked
                FROM ding_records r
                JOIN dings d ON d.id = r.ding_id
                WHERE {" AND ".join(clauses)}
                """,
                tuple(params),
            )
            r = fetchone(cur) or {"total": 0, "checked": 0}
            return AttendanceStats(total=int(r["total"]), checked=int(r["checked"]))

    def list_assignments(self, student_id: int) -> Sequence[Assignment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_DING_COLUMNS},
                       r.id AS record_id, r.ding_id, r.student_id, r.status, r.submitted_at,
                       r.latitude AS rec_latitude, r.longitude AS rec_longitude
                FROM ding_records r
                JOIN dings d ON d.id = r.ding_id
                WHERE r.student_id=%s
                ORDER BY d.start_time DESC
                """,
                (int(student_id),),
            )
            return [Assignment(ding=_to_ding(r), record=_to_record(r)) for r in fetchall(cur)]

    def list_created(self, launcher_id: int) -> Sequence[DingProgress]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_DING_COLUMNS},
                       COUNT(r.id) AS total,
                       COALESCE(SUM(r.status=%s), 0) AS checked
                FROM dings d
                LEFT JOIN ding_records r ON r.ding_id = d.id
                WHERE d.launcher_id=%s
                GROUP BY d.id
                ORDER BY d.created_at DESC
                """,
                (DingStatus.COMPLETE.value, int(launcher_id)),
            )
            return [
                DingProgress(ding=_to_ding(r), stats=AttendanceStats(total=int(r["total"]), checked=int(r["checked"])))
                for r in fetchall(cur)
            ]
