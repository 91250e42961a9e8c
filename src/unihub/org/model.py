from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..common.validators import require_positive_id
from ..core.enums import TargetType
from ..core.exceptions import ValidationError


@dataclass(frozen=True)
class Department:
    """Counselor-owned group; a student belongs to at most one."""

    dept_id: int
    name: str
    invite_code: str
    counselor_id: int
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class SchoolClass:
    """Teacher-owned group; a student may join any number."""

    class_id: int
    name: str
    invite_code: str
    teacher_id: int
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class Target:
    """Exactly one of a department, a class or a single student."""

    target_type: TargetType
    target_id: int

    @classmethod
    def of(
        cls,
        *,
        department_id: Optional[int] = None,
        class_id: Optional[int] = None,
        student_id: Optional[int] = None,
    ) -> "Target":
        given = [
            (TargetType.DEPARTMENT, department_id),
            (TargetType.CLASS, class_id),
            (TargetType.STUDENT, student_id),
        ]
        chosen = [(t, v) for t, v in given if v not in (None, "")]
        if len(chosen) != 1:
            raise ValidationError("Exactly one of department, class or student must be targeted")
        target_type, raw_id = chosen[0]
        return cls(target_type=target_type, target_id=require_positive_id(raw_id, "Target id"))

    @classmethod
    def from_payload(cls, data: dict) -> "Target":
        """Either ``target_type``/``target_id`` or one of the ``*_id`` shortcuts."""

        if data.get("target_type"):
            try:
                target_type = TargetType(str(data["target_type"]).strip().lower())
            except ValueError:
                raise ValidationError("Target type is invalid")
            return cls(target_type=target_type, target_id=require_positive_id(data.get("target_id"), "Target id"))
        return cls.of(
            department_id=data.get("department_id"),
            class_id=data.get("class_id"),
            student_id=data.get("student_id"),
        )

    @classmethod
    def student(cls, student_id: int) -> "Target":
        return cls(target_type=TargetType.STUDENT, target_id=int(student_id))
