from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

import mysql.connector
from werkzeug.security import generate_password_hash

from ..core.enums import DataScopePolicy, Permission

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).resolve().parent / "schema.sql"

# role_key -> (display name, data scope, granted permissions)
REFERENCE_ROLES = {
    "super_admin": ("Super admin", DataScopePolicy.ALL, tuple(Permission)),
    "counselor": (
        "Counselor",
        DataScopePolicy.DEPT_AND_SUB,
        (
            Permission.DEPT_CREATE,
            Permission.DEPT_LIST,
            Permission.LEAVE_APPROVE,
            Permission.DING_CREATE,
            Permission.STUDENT_LIST,
        ),
    ),
    "teacher": (
        "Homeroom teacher",
        DataScopePolicy.DEPT,
        (Permission.CLASS_CREATE, Permission.DING_CREATE, Permission.STUDENT_LIST),
    ),
    "student": ("Student", DataScopePolicy.SELF, (Permission.DEPT_JOIN, Permission.CLASS_JOIN)),
}


@dataclass(frozen=True)
class DBTarget:
    host: str
    port: int
    user: str
    password: str
    database: str


def _as_target(db_config: dict) -> DBTarget:
    return DBTarget(
        host=str(db_config.get("host", "localhost")),
        port=int(db_config.get("port", 3306)),
        user=str(db_config.get("user", "root")),
        password=str(db_config.get("password", "")),
        database=str(db_config.get("database", "unihub")),
    )


def _connect(target: DBTarget, *, with_database: bool = True):
    kwargs = dict(host=target.host, port=target.port, user=target.user, password=target.password, use_pure=True)
    if with_database:
        kwargs["database"] = target.database
    return mysql.connector.connect(**kwargs)


def _iter_sql_statements(sql: str) -> Iterable[str]:
    # Strip line comments, then split on ';' outside quotes.
    sql = re.sub(r"(?m)^\s*--.*$", "", sql)
    buf: list[str] = []
    quote = ""

    for ch in sql:
        if quote:
            buf.append(ch)
            if ch == quote:
                quote = ""
            continue
        if ch in ("'", '"'):
            quote = ch
            buf.append(ch)
            continue
        if ch == ";":
            stmt = "".join(buf).strip()
            buf.clear()
            if stmt:
                yield stmt
            continue
        buf.append(ch)

    tail = "".join(buf).strip()
    if tail:
        yield tail


def ensure_database_exists(db_config: dict) -> None:
    target = _as_target(db_config)
    conn = _connect(target, with_database=False)
    try:
        cur = conn.cursor()
        cur.execute(
            f"CREATE DATABASE IF NOT EXISTS `{target.database}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci;"
        )
        conn.commit()
    finally:
        conn.close()


def apply_schema(db_config: dict, *, schema_path: str | Path = SCHEMA_PATH) -> None:
    ensure_database_exists(db_config)
    sql = Path(schema_path).read_text(encoding="utf-8")

    conn = _connect(_as_target(db_config))
    try:
        cur = conn.cursor()
        for stmt in _iter_sql_statements(sql):
            cur.execute(stmt)
        conn.commit()
    finally:
        conn.close()
    logger.info("Schema applied from %s", schema_path)


def ensure_reference_data(db_config: dict) -> None:
    """Upsert roles, permissions and their grants. Safe to run repeatedly."""
    conn = _connect(_as_target(db_config))
    try:
        cur = conn.cursor(dictionary=True)
        for perm in Permission:
            cur.execute(
                "INSERT INTO permissions(code, name) VALUES(%s,%s) ON DUPLICATE KEY UPDATE name=VALUES(name)",
                (perm.value, perm.name.replace("_", " ").title()),
            )

        for role_key, (name, scope, perms) in REFERENCE_ROLES.items():
            cur.execute(
                """
                INSERT INTO roles(name, role_key, data_scope) VALUES(%s,%s,%s)
                ON DUPLICATE KEY UPDATE name=VALUES(name), data_scope=VALUES(data_scope)
                """,
                (name, role_key, scope.value),
            )
            cur.execute("SELECT id FROM roles WHERE role_key=%s", (role_key,))
            role_id = int(cur.fetchone()["id"])
            for perm in perms:
                cur.execute(
                    """
                    INSERT IGNORE INTO role_permissions(role_id, permission_id)
                    SELECT %s, id FROM permissions WHERE code=%s
                    """,
                    (role_id, perm.value),
                )
        conn.commit()
    finally:
        conn.close()


def ensure_demo_users(db_config: dict) -> None:
    conn = _connect(_as_target(db_config))
    try:
        cur = conn.cursor(dictionary=True)

        def role_id(role_key: str) -> int:
            cur.execute("SELECT id FROM roles WHERE role_key=%s", (role_key,))
            row = cur.fetchone()
            if not row:
                raise RuntimeError(f"Missing role {role_key}; run ensure_reference_data first")
            return int(row["id"])

        def upsert_user(nickname: str, email: str, password: str, role_key: str) -> None:
            cur.execute(
                """
                INSERT INTO users(nickname, email, password_hash, role_id) VALUES(%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE nickname=VALUES(nickname), password_hash=VALUES(password_hash),
                                        role_id=VALUES(role_id)
                """,
                (nickname, email, generate_password_hash(password), role_id(role_key)),
            )

        upsert_user("Admin Demo", "admin@unihub.local", "admin123", "super_admin")
        upsert_user("Counselor Demo", "counselor@unihub.local", "counselor123", "counselor")
        upsert_user("Teacher Demo", "teacher@unihub.local", "teacher123", "teacher")
        upsert_user("Student Demo", "student@unihub.local", "student123", "student")
        conn.commit()
    finally:
        conn.close()


def list_tables(db_config: dict) -> list[str]:
    conn = _connect(_as_target(db_config))
    try:
        cur = conn.cursor()
        cur.execute("SHOW TABLES")
        return [row[0] for row in cur.fetchall()]
    finally:
        conn.close()
