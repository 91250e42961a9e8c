from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from werkzeug.security import check_password_hash

from ..common.validators import require_non_empty
from ..core.enums import Permission
from ..core.exceptions import AuthenticationError, NotFound
from ..rbac.service import PermissionResolver
from .model import StudentSummary
from .repository import UserRepository


@dataclass(frozen=True)
class SessionUser:
    """What we store into the Flask session after login."""

    user_id: int
    role_id: int
    nickname: str


class AuthService:
    """Use case: authenticate user (login)."""

    def __init__(self, users: UserRepository):
        self._users = users

    def authenticate(self, email: str, password: str) -> SessionUser:
        email = require_non_empty(email, "Email")
        user = self._users.get_by_email(email)
        if not user:
            raise AuthenticationError("Wrong email or password")

        try:
            ok = check_password_hash(user.password_hash, password or "")
        except ValueError:
            # e.g. placeholder hashes or corrupted values
            ok = False

        if not ok:
            raise AuthenticationError("Wrong email or password")

        return SessionUser(user_id=user.user_id, role_id=user.role_id, nickname=user.nickname)


class StudentDirectory:
    """Use case: list the students a viewer is allowed to see."""

    def __init__(self, users: UserRepository, resolver: PermissionResolver):
        self._users = users
        self._resolver = resolver

    def list_students(self, *, viewer_id: int, role_id: int) -> Sequence[StudentSummary]:
        viewer = self._users.get_by_id(int(viewer_id))
        if not viewer:
            raise NotFound("User does not exist")

        role = self._resolver.get_role(role_id)
        scope = self._resolver.resolve_data_scope(role, viewer.org_unit_id)
        if scope.is_empty:
            return list(self._users.list_students_by_ids([viewer.user_id]))

        self._resolver.require(role_id, Permission.STUDENT_LIST)
        if scope.unrestricted:
            return self._users.list_students()
        return self._users.list_students(org_ids=scope.org_ids)
