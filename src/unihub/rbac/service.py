from __future__ import annotations

import logging
from typing import Optional, Union

from ..core.enums import DataScopePolicy, Permission
from ..core.exceptions import NotFound, PermissionDenied, TransientStorageError
from .model import NO_ORGS, UNRESTRICTED, DataScope, Role
from .org_tree import OrgTree
from .repository import RoleRepository

logger = logging.getLogger(__name__)


class PermissionResolver:
    """Decides whether a role may perform an action and what data it may see.

    A lookup that fails in storage is a deny, never an implicit allow.
    """

    def __init__(self, roles: RoleRepository):
        self._roles = roles

    @staticmethod
    def _code(permission: Union[Permission, str]) -> str:
        return permission.value if isinstance(permission, Permission) else str(permission)

    def check(self, role_id: int, permission: Union[Permission, str]) -> bool:
        code = self._code(permission)
        try:
            allowed = self._roles.has_permission(int(role_id), code)
        except TransientStorageError:
            logger.exception("Permission lookup failed (role=%s, code=%s); denying", role_id, code)
            return False

        if not allowed:
            logger.warning("Role %s lacks permission %s", role_id, code)
        return bool(allowed)

    def require(self, role_id: int, permission: Union[Permission, str], message: str = "") -> None:
        if not self.check(role_id, permission):
            raise PermissionDenied(message or f"Missing permission {self._code(permission)}")

    def get_role(self, role_id: int) -> Role:
        role = self._roles.get_role(int(role_id))
        if not role:
            raise NotFound("Role does not exist")
        return role

    def resolve_data_scope(self, role: Role, org_id: Optional[int]) -> DataScope:
        try:
            policy = DataScopePolicy(role.data_scope)
        except ValueError:
            logger.warning("Role %s has unknown data scope %r; denying", role.role_id, role.data_scope)
            return NO_ORGS

        if policy == DataScopePolicy.ALL:
            return UNRESTRICTED
        if policy == DataScopePolicy.SELF or org_id is None:
            # self: the caller filters to its own records
            return NO_ORGS
        if policy == DataScopePolicy.DEPT:
            return DataScope(org_ids=frozenset({int(org_id)}))

        tree = OrgTree(self._roles.list_org_units())
        return DataScope(org_ids=frozenset({int(org_id)} | tree.descendants(int(org_id))))
