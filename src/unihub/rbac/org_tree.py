from __future__ import annotations

from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Set

from .model import OrgUnit


class OrgTree:
    """Arena of org units linked by parent id.

    Traversals keep a visited set so a corrupted parent chain cannot loop.
    """

    def __init__(self, units: Iterable[OrgUnit]):
        self._parent: Dict[int, Optional[int]] = {}
        self._children: Dict[int, List[int]] = defaultdict(list)
        for unit in units:
            self._parent[unit.org_id] = unit.parent_id
            if unit.parent_id is not None:
                self._children[unit.parent_id].append(unit.org_id)

    def __contains__(self, org_id: int) -> bool:
        return org_id in self._parent

    def descendants(self, org_id: int) -> Set[int]:
        found: Set[int] = set()
        stack = list(self._children.get(org_id, ()))
        while stack:
            current = stack.pop()
            if current in found or current == org_id:
                continue
            found.add(current)
            stack.extend(self._children.get(current, ()))
        return found

    def ancestors(self, org_id: int) -> List[int]:
        """Parent chain from the direct parent up to the root."""
        chain: List[int] = []
        seen = {org_id}
        current = self._parent.get(org_id)
        while current is not None and current not in seen:
            chain.append(current)
            seen.add(current)
            current = self._parent.get(current)
        return chain

    def is_descendant(self, org_id: int, ancestor_id: int) -> bool:
        return ancestor_id in self.ancestors(org_id)
