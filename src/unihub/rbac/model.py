from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet, Optional


@dataclass(frozen=True)
class Role:
    """Immutable reference data.

    ``data_scope`` is kept as the raw stored string so that unknown policies can
    be denied instead of failing to load.
    """

    role_id: int
    name: str
    key: str
    data_scope: str


@dataclass(frozen=True)
class OrgUnit:
    org_id: int
    name: str
    unit_type: str
    parent_id: Optional[int] = None


@dataclass(frozen=True)
class DataScope:
    """Organizational subset a caller may see: either everything or a set of org ids."""

    unrestricted: bool = False
    org_ids: FrozenSet[int] = frozenset()

    def allows(self, org_id: Optional[int]) -> bool:
        if self.unrestricted:
            return True
        return org_id is not None and org_id in self.org_ids

    @property
    def is_empty(self) -> bool:
        return not self.unrestricted and not self.org_ids


UNRESTRICTED = DataScope(unrestricted=True)
NO_ORGS = DataScope()
