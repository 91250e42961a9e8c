from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class User:
    """Login identity.

    ``department_id`` is a cached projection of the student's department
    membership; the membership table is the source of truth.
    """

    user_id: int
    nickname: str
    email: str
    password_hash: str
    role_id: int
    org_unit_id: Optional[int] = None
    department_id: Optional[int] = None
    student_no: Optional[str] = None
    staff_no: Optional[str] = None


@dataclass(frozen=True)
class StudentSummary:
    user_id: int
    nickname: str
    email: str
    student_no: Optional[str]
    org_unit_id: Optional[int]


@dataclass(frozen=True)
class PublicProfile:
    user_id: int
    nickname: str
    role_name: str
