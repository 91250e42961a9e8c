from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import Department, SchoolClass


class OrgRepository(Protocol):
    # Groups
    def invite_code_taken(self, code: str) -> bool:
        """True if any department or class already holds ``code``."""

        raise NotImplementedError

    def create_department(self, *, name: str, invite_code: str, counselor_id: int) -> Department:
        """Raises DuplicateEntry if the invite code is already stored."""

        raise NotImplementedError

    def create_class(self, *, name: str, invite_code: str, teacher_id: int) -> SchoolClass:
        raise NotImplementedError

    def get_department(self, dept_id: int) -> Optional[Department]:
        raise NotImplementedError

    def get_class(self, class_id: int) -> Optional[SchoolClass]:
        raise NotImplementedError

    def get_department_by_invite_code(self, code: str) -> Optional[Department]:
        raise NotImplementedError

    def get_class_by_invite_code(self, code: str) -> Optional[SchoolClass]:
        raise NotImplementedError

    def list_departments_by_counselor(self, counselor_id: int) -> Sequence[Department]:
        raise NotImplementedError

    def list_classes_by_teacher(self, teacher_id: int) -> Sequence[SchoolClass]:
        raise NotImplementedError

    # Membership
    def get_student_department_id(self, student_id: int) -> Optional[int]:
        """Read from the membership table, not the cached user column."""

        raise NotImplementedError

    def add_student_to_department(self, *, student_id: int, dept_id: int) -> None:
        """Raises DuplicateEntry if the student already has a department row."""

        raise NotImplementedError

    def is_class_member(self, *, student_id: int, class_id: int) -> bool:
        raise NotImplementedError

    def add_student_to_class(self, *, student_id: int, class_id: int) -> None:
        raise NotImplementedError

    def student_ids_in_departments(self, dept_ids: Sequence[int]) -> Sequence[int]:
        raise NotImplementedError

    def student_ids_in_classes(self, class_ids: Sequence[int]) -> Sequence[int]:
        raise NotImplementedError

    def get_student_class_ids(self, student_id: int) -> Sequence[int]:
        raise NotImplementedError
