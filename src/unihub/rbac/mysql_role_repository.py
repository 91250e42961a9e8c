from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import OrgUnit, Role
from .repository import RoleRepository


class MySQLRoleRepository(RoleRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_role(self, role_id: int) -> Optional[Role]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT id, name, role_key, data_scope FROM roles WHERE id=%s", (int(role_id),))
            r = fetchone(cur)
            if not r:
                return None
            return Role(role_id=int(r["id"]), name=r["name"], key=r["role_key"], data_scope=r["data_scope"])

    def has_permission(self, role_id: int, code: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT COUNT(*) AS n
                FROM permissions p
                JOIN role_permissions rp ON rp.permission_id = p.id
                WHERE rp.role_id=%s AND p.code=%s
                """,
                (int(role_id), code),
            )
            r = fetchone(cur)
            return bool(r and int(r["n"]) > 0)

    def list_org_units(self) -> Sequence[OrgUnit]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT id, name, unit_type, parent_id FROM org_units")
            return [
                OrgUnit(
                    org_id=int(r["id"]),
                    name=r["name"],
                    unit_type=r["unit_type"],
                    parent_id=int(r["parent_id"]) if r.get("parent_id") is not None else None,
                )
                for r in fetchall(cur)
            ]
