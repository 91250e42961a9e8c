from __future__ import annotations

from typing import Optional

import mysql.connector

from ..core.exceptions import DuplicateEntry
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone, is_duplicate_key
from .model import App, Developer
from .repository import OpenRepository


def _to_developer(r: dict) -> Developer:
    return Developer(
        developer_id=int(r["id"]),
        name=r["name"],
        email=r["email"],
        secret=r["secret"],
        created_at=r.get("created_at"),
    )


class MySQLOpenRepository(OpenRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create_developer(self, *, name: str, email: str, secret: str) -> Developer:
        with db_cursor(self._conn_factory) as (_, cur):
            try:
                cur.execute(
                    "INSERT INTO developers(name, email, secret) VALUES(%s,%s,%s)",
                    (name, email, secret),
                )
            except mysql.connector.IntegrityError as exc:
                if is_duplicate_key(exc):
                    raise DuplicateEntry("Email is already registered") from exc
                raise
            return Developer(developer_id=int(cur.lastrowid), name=name, email=email, secret=secret)

    def get_developer_by_secret(self, secret: str) -> Optional[Developer]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT id, name, email, secret, created_at FROM developers WHERE secret=%s", (secret,))
            r = fetchone(cur)
            return _to_developer(r) if r else None

    def create_app(self, app: App) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO apps(developer_id, name, app_id, app_secret, rate_limit)
                VALUES(%s,%s,%s,%s,%s)
                """,
                (int(app.developer_id), app.name, app.app_id, app.app_secret, int(app.rate_limit)),
            )

    def get_app(self, app_id: str) -> Optional[App]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT developer_id, name, app_id, app_secret, rate_limit, created_at FROM apps WHERE app_id=%s",
                (app_id,),
            )
            r = fetchone(cur)
            if not r:
                return None
            return App(
                developer_id=int(r["developer_id"]),
                name=r["name"],
                app_id=r["app_id"],
                app_secret=r["app_secret"],
                rate_limit=int(r["rate_limit"]),
                created_at=r.get("created_at"),
            )
