from __future__ import annotations

from typing import Optional, Sequence

import mysql.connector

from ..core.exceptions import DuplicateEntry
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause, is_duplicate_key
from .model import Department, SchoolClass
from .repository import OrgRepository


def _to_department(r: dict) -> Department:
    return Department(
        dept_id=int(r["id"]),
        name=r["name"],
        invite_code=r["invite_code"],
        counselor_id=int(r["counselor_id"]),
        created_at=r.get("created_at"),
    )


def _to_class(r: dict) -> SchoolClass:
    return SchoolClass(
        class_id=int(r["id"]),
        name=r["name"],
        invite_code=r["invite_code"],
        teacher_id=int(r["teacher_id"]),
        created_at=r.get("created_at"),
    )


class MySQLOrgRepository(OrgRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    # -------- Groups --------
    def invite_code_taken(self, code: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT (SELECT COUNT(*) FROM departments WHERE invite_code=%s)
                     + (SELECT COUNT(*) FROM classes WHERE invite_code=%s) AS n
                """,
                (code, code),
            )
            r = fetchone(cur)
            return bool(r and int(r["n"]) > 0)

    def create_department(self, *, name: str, invite_code: str, counselor_id: int) -> Department:
        with db_cursor(self._conn_factory) as (_, cur):
            try:
                cur.execute(
                    "INSERT INTO departments(name, invite_code, counselor_id) VALUES(%s,%s,%s)",
                    (name, invite_code, int(counselor_id)),
                )
            except mysql.connector.IntegrityError as exc:
                if is_duplicate_key(exc):
                    raise DuplicateEntry("Invite code already in use") from exc
                raise
            return Department(
                dept_id=int(cur.lastrowid), name=name, invite_code=invite_code, counselor_id=int(counselor_id)
            )

    def create_class(self, *, name: str, invite_code: str, teacher_id: int) -> SchoolClass:
        with db_cursor(self._conn_factory) as (_, cur):
            try:
                cur.execute(
                    "INSERT INTO classes(name, invite_code, teacher_id) VALUES(%s,%s,%s)",
                    (name, invite_code, int(teacher_id)),
                )
            except mysql.connector.IntegrityError as exc:
                if is_duplicate_key(exc):
                    raise DuplicateEntry("Invite code already in use") from exc
                raise
            return SchoolClass(
                class_id=int(cur.lastrowid), name=name, invite_code=invite_code, teacher_id=int(teacher_id)
            )

    def get_department(self, dept_id: int) -> Optional[Department]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT id, name, invite_code, counselor_id, created_at FROM departments WHERE id=%s",
                (int(dept_id),),
            )
            r = fetchone(cur)
            return _to_department(r) if r else None

    def get_class(self, class_id: int) -> Optional[SchoolClass]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT id, name, invite_code, teacher_id, created_at FROM classes WHERE id=%s",
                (int(class_id),),
            )
            r = fetchone(cur)
            return _to_class(r) if r else None

    def get_department_by_invite_code(self, code: str) -> Optional[Department]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT id, name, invite_code, counselor_id, created_at FROM departments WHERE invite_code=%s",
                (code,),
            )
            r = fetchone(cur)
            return _to_department(r) if r else None

    def get_class_by_invite_code(self, code: str) -> Optional[SchoolClass]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT id, name, invite_code, teacher_id, created_at FROM classes WHERE invite_code=%s",
                (code,),
            )
            r = fetchone(cur)
            return _to_class(r) if r else None

    def list_departments_by_counselor(self, counselor_id: int) -> Sequence[Department]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT id, name, invite_code, counselor_id, created_at
                FROM departments
                WHERE counselor_id=%s
                ORDER BY id
                """,
                (int(counselor_id),),
            )
            return [_to_department(r) for r in fetchall(cur)]

    def list_classes_by_teacher(self, teacher_id: int) -> Sequence[SchoolClass]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT id, name, invite_code, teacher_id, created_at
                FROM classes
                WHERE teacher_id=%s
                ORDER BY id
                """,
                (int(teacher_id),),
            )
            return [_to_class(r) for r in fetchall(cur)]

    # -------- Membership --------
    def get_student_department_id(self, student_id: int) -> Optional[int]:
        with db_cursor(self._conn_factory) as (_, cur):
            # FOR UPDATE: inside a join transaction this locks the student's slot.
            cur.execute(
                "SELECT department_id FROM student_departments WHERE student_id=%s FOR UPDATE",
                (int(student_id),),
            )
            r = fetchone(cur)
            return int(r["department_id"]) if r else None

    def add_student_to_department(self, *, student_id: int, dept_id: int) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            try:
                cur.execute(
                    "INSERT INTO student_departments(student_id, department_id) VALUES(%s,%s)",
                    (int(student_id), int(dept_id)),
                )
            except mysql.connector.IntegrityError as exc:
                if is_duplicate_key(exc):
                    raise DuplicateEntry("Student already belongs to a department") from exc
                raise

    def is_class_member(self, *, student_id: int, class_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT COUNT(*) AS n FROM student_classes WHERE student_id=%s AND class_id=%s",
                (int(student_id), int(class_id)),
            )
            r = fetchone(cur)
            return bool(r and int(r["n"]) > 0)

    def add_student_to_class(self, *, student_id: int, class_id: int) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            try:
                cur.execute(
                    "INSERT INTO student_classes(student_id, class_id) VALUES(%s,%s)",
                    (int(student_id), int(class_id)),
                )
            except mysql.connector.IntegrityError as exc:
                if is_duplicate_key(exc):
                    raise DuplicateEntry("Student already in class") from exc
                raise

    def student_ids_in_departments(self, dept_ids: Sequence[int]) -> Sequence[int]:
        ids = [int(i) for i in dept_ids]
        if not ids:
            return []
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT student_id FROM student_departments WHERE department_id IN ({in_clause(ids)})",
                tuple(ids),
            )
            return [int(r["student_id"]) for r in fetchall(cur)]

    def student_ids_in_classes(self, class_ids: Sequence[int]) -> Sequence[int]:
        ids = [int(i) for i in class_ids]
        if not ids:
            return []
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT student_id FROM student_classes WHERE class_id IN ({in_clause(ids)})",
                tuple(ids),
            )
            return [int(r["student_id"]) for r in fetchall(cur)]

    def get_student_class_ids(self, student_id: int) -> Sequence[int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT class_id FROM student_classes WHERE student_id=%s ORDER BY class_id",
                (int(student_id),),
            )
            return [int(r["class_id"]) for r in fetchall(cur)]
