from __future__ import annotations

from typing import Collection, Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause
from .model import PublicProfile, StudentSummary, User
from .repository import UserRepository

_USER_COLUMNS = "id, nickname, email, password_hash, role_id, org_unit_id, department_id, student_no, staff_no"
_STUDENT_ROLE_KEY = "student"


def _to_user(row: dict) -> User:
    return User(
        user_id=int(row["id"]),
        nickname=row["nickname"],
        email=row["email"],
        password_hash=row["password_hash"],
        role_id=int(row["role_id"]),
        org_unit_id=row.get("org_unit_id"),
        department_id=row.get("department_id"),
        student_no=row.get("student_no"),
        staff_no=row.get("staff_no"),
    )


def _to_student(row: dict) -> StudentSummary:
    return StudentSummary(
        user_id=int(row["id"]),
        nickname=row["nickname"],
        email=row["email"],
        student_no=row.get("student_no"),
        org_unit_id=row.get("org_unit_id"),
    )


class MySQLUserRepository(UserRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, user_id: int) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE id=%s", (int(user_id),))
            row = fetchone(cur)
            return _to_user(row) if row else None

    def get_by_email(self, email: str) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE email=%s", (email,))
            row = fetchone(cur)
            return _to_user(row) if row else None

    def student_exists(self, user_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT COUNT(*) AS n
                FROM users u
                JOIN roles r ON r.id = u.role_id
                WHERE u.id=%s AND r.role_key=%s
                """,
                (int(user_id), _STUDENT_ROLE_KEY),
            )
            row = fetchone(cur)
            return bool(row and int(row["n"]) > 0)

    def set_department(self, user_id: int, department_id: Optional[int]) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE users SET department_id=%s WHERE id=%s", (department_id, int(user_id)))
            return cur.rowcount > 0

    def list_students(self, *, org_ids: Optional[Collection[int]] = None) -> Sequence[StudentSummary]:
        clauses = ["r.role_key=%s"]
        params: list[object] = [_STUDENT_ROLE_KEY]
        if org_ids is not None:
            if not org_ids:
                return []
            ids = sorted(int(i) for i in org_ids)
            clauses.append(f"u.org_unit_id IN ({in_clause(ids)})")
            params.extend(ids)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT u.id, u.nickname, u.email, u.student_no, u.org_unit_id
                FROM users u
                JOIN roles r ON r.id = u.role_id
                WHERE {" AND ".join(clauses)}
                ORDER BY u.id
                """,
                tuple(params),
            )
            return [_to_student(r) for r in fetchall(cur)]

    def list_students_by_ids(self, user_ids: Collection[int]) -> Sequence[StudentSummary]:
        ids = sorted({int(i) for i in user_ids})
        if not ids:
            return []
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT id, nickname, email, student_no, org_unit_id
                FROM users
                WHERE id IN ({in_clause(ids)})
                ORDER BY id
                """,
                tuple(ids),
            )
            return [_to_student(r) for r in fetchall(cur)]

    def get_public_profile(self, user_id: int) -> Optional[PublicProfile]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT u.id, u.nickname, r.name AS role_name
                FROM users u
                JOIN roles r ON r.id = u.role_id
                WHERE u.id=%s
                """,
                (int(user_id),),
            )
            row = fetchone(cur)
            if not row:
                return None
            return PublicProfile(user_id=int(row["id"]), nickname=row["nickname"], role_name=row["role_name"])
