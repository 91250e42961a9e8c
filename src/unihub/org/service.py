from __future__ import annotations

import logging
from typing import Callable, ContextManager, List, Sequence, Set, TypeVar, Union

from ..common.codes import generate_invite_code
from ..common.validators import require_non_empty
from ..core.constants import MAX_INVITE_CODE_ATTEMPTS
from ..core.enums import GroupKind, Permission, TargetType
from ..core.exceptions import (
    AlreadyMember,
    Conflict,
    DuplicateEntry,
    Forbidden,
    InvalidCode,
    NotFound,
    SingleDepartmentViolation,
)
from ..rbac.service import PermissionResolver
from ..users.repository import UserRepository
from .model import Department, SchoolClass, Target
from .repository import OrgRepository

logger = logging.getLogger(__name__)

G = TypeVar("G", Department, SchoolClass)


class OrgMembershipService:
    """Use cases: create departments/classes and enroll students through invite codes."""

    def __init__(
        self,
        org: OrgRepository,
        users: UserRepository,
        resolver: PermissionResolver,
        *,
        transaction: Callable[[], ContextManager],
        code_generator: Callable[[], str] = generate_invite_code,
    ):
        self._org = org
        self._users = users
        self._resolver = resolver
        self._transaction = transaction
        self._new_code = code_generator

    def _create_with_code(self, create: Callable[[str], G]) -> G:
        for _ in range(MAX_INVITE_CODE_ATTEMPTS):
            code = self._new_code()
            if self._org.invite_code_taken(code):
                continue
            try:
                return create(code)
            except DuplicateEntry:
                # Lost a race for the same code; draw again.
                continue
        raise Conflict("Could not allocate a unique invite code")

    def create_department(self, *, creator_id: int, role_id: int, name: str) -> Department:
        self._resolver.require(role_id, Permission.DEPT_CREATE, "Not allowed to create departments")
        name = require_non_empty(name, "Department name")

        dept = self._create_with_code(
            lambda code: self._org.create_department(name=name, invite_code=code, counselor_id=int(creator_id))
        )
        logger.info("Department %s created by counselor %s", dept.dept_id, creator_id)
        return dept

    def create_class(self, *, creator_id: int, role_id: int, name: str) -> SchoolClass:
        self._resolver.require(role_id, Permission.CLASS_CREATE, "Not allowed to create classes")
        name = require_non_empty(name, "Class name")

        klass = self._create_with_code(
            lambda code: self._org.create_class(name=name, invite_code=code, teacher_id=int(creator_id))
        )
        logger.info("Class %s created by teacher %s", klass.class_id, creator_id)
        return klass

    def join_department(self, *, student_id: int, role_id: int, invite_code: str) -> Department:
        self._resolver.require(role_id, Permission.DEPT_JOIN, "Not allowed to join departments")
        code = require_non_empty(invite_code, "Invite code").upper()

        dept = self._org.get_department_by_invite_code(code)
        if not dept:
            raise InvalidCode("Invite code is invalid")

        with self._transaction():
            current = self._org.get_student_department_id(int(student_id))
            if current == dept.dept_id:
                raise AlreadyMember("Already a member of this department")
            if current is not None:
                raise SingleDepartmentViolation("A student can only join one department")

            try:
                self._org.add_student_to_department(student_id=int(student_id), dept_id=dept.dept_id)
            except DuplicateEntry as exc:
                raise SingleDepartmentViolation("A student can only join one department") from exc
            self._users.set_department(int(student_id), dept.dept_id)

        logger.info("Student %s joined department %s", student_id, dept.dept_id)
        return dept

    def join_class(self, *, student_id: int, role_id: int, invite_code: str) -> SchoolClass:
        self._resolver.require(role_id, Permission.CLASS_JOIN, "Not allowed to join classes")
        code = require_non_empty(invite_code, "Invite code").upper()

        klass = self._org.get_class_by_invite_code(code)
        if not klass:
            raise InvalidCode("Invite code is invalid")
        if self._org.is_class_member(student_id=int(student_id), class_id=klass.class_id):
            raise AlreadyMember("Already a member of this class")

        try:
            self._org.add_student_to_class(student_id=int(student_id), class_id=klass.class_id)
        except DuplicateEntry as exc:
            raise AlreadyMember("Already a member of this class") from exc

        logger.info("Student %s joined class %s", student_id, klass.class_id)
        return klass

    def list_managed(self, *, owner_id: int, kind: GroupKind) -> Sequence[Union[Department, SchoolClass]]:
        if kind == GroupKind.DEPARTMENT:
            return self._org.list_departments_by_counselor(int(owner_id))
        return self._org.list_classes_by_teacher(int(owner_id))

    def list_members(self, *, owner_id: int, kind: GroupKind, group_id: int) -> dict:
        if kind == GroupKind.DEPARTMENT:
            group = self._org.get_department(int(group_id))
            owner = group.counselor_id if group else None
            student_ids = self._org.student_ids_in_departments([int(group_id)])
        else:
            group = self._org.get_class(int(group_id))
            owner = group.teacher_id if group else None
            student_ids = self._org.student_ids_in_classes([int(group_id)])

        if not group:
            raise NotFound("Group does not exist")
        if owner != int(owner_id):
            raise Forbidden("Only the owner can list members")

        return {"group": group, "students": list(self._users.list_students_by_ids(student_ids))}

    # -------- Targeting helpers shared by attendance, tasks and notifications --------
    def managed_student_ids(self, owner_id: int) -> Set[int]:
        dept_ids = [d.dept_id for d in self._org.list_departments_by_counselor(int(owner_id))]
        class_ids = [c.class_id for c in self._org.list_classes_by_teacher(int(owner_id))]
        return set(self._org.student_ids_in_departments(dept_ids)) | set(self._org.student_ids_in_classes(class_ids))

    def authorize_target(self, owner_id: int, target: Target) -> None:
        """Only the owner of a department/class (or of a student's group) may target it."""

        owner_id = int(owner_id)
        if target.target_type == TargetType.DEPARTMENT:
            owned = {d.dept_id for d in self._org.list_departments_by_counselor(owner_id)}
            allowed = target.target_id in owned
        elif target.target_type == TargetType.CLASS:
            owned = {c.class_id for c in self._org.list_classes_by_teacher(owner_id)}
            allowed = target.target_id in owned
        else:
            allowed = target.target_id in self.managed_student_ids(owner_id)

        if not allowed:
            raise Forbidden("Not allowed to target this group")

    def resolve_students(self, target: Target) -> List[int]:
        """Ordered, de-duplicated student ids behind a target."""

        if target.target_type == TargetType.DEPARTMENT:
            ids = self._org.student_ids_in_departments([target.target_id])
        elif target.target_type == TargetType.CLASS:
            ids = self._org.student_ids_in_classes([target.target_id])
        else:
            ids = [target.target_id] if self._users.student_exists(target.target_id) else []
        return sorted({int(i) for i in ids})

    def targets_for_student(self, student_id: int) -> List[Target]:
        """Every target a student is reached through: itself, its department, its classes."""

        targets = [Target.student(student_id)]
        dept_id = self._org.get_student_department_id(int(student_id))
        if dept_id is not None:
            targets.append(Target(target_type=TargetType.DEPARTMENT, target_id=dept_id))
        for class_id in self._org.get_student_class_ids(int(student_id)):
            targets.append(Target(target_type=TargetType.CLASS, target_id=class_id))
        return targets
