from __future__ import annotations

from typing import Collection, Optional, Protocol, Sequence

from .model import PublicProfile, StudentSummary, User


class UserRepository(Protocol):
    """Repository interface for users.

    Services depend on this protocol, never on a concrete database.
    """

    def get_by_id(self, user_id: int) -> Optional[User]:
        raise NotImplementedError

    def get_by_email(self, email: str) -> Optional[User]:
        raise NotImplementedError

    def student_exists(self, user_id: int) -> bool:
        raise NotImplementedError

    def set_department(self, user_id: int, department_id: Optional[int]) -> bool:
        """Refresh the cached department pointer."""

        raise NotImplementedError

    def list_students(self, *, org_ids: Optional[Collection[int]] = None) -> Sequence[StudentSummary]:
        """All students when ``org_ids`` is None, else those whose org unit is in the set."""

        raise NotImplementedError

    def list_students_by_ids(self, user_ids: Collection[int]) -> Sequence[StudentSummary]:
        raise NotImplementedError

    def get_public_profile(self, user_id: int) -> Optional[PublicProfile]:
        raise NotImplementedError
