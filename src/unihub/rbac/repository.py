from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import OrgUnit, Role


class RoleRepository(Protocol):
    def get_role(self, role_id: int) -> Optional[Role]:
        raise NotImplementedError

    def has_permission(self, role_id: int, code: str) -> bool:
        """True iff the role<->permission relation holds a row for both."""

        raise NotImplementedError

    def list_org_units(self) -> Sequence[OrgUnit]:
        raise NotImplementedError
