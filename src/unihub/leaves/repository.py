from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import LeaveStatus
from .model import LeaveRequest, LeaveReturn


class LeaveRepository(Protocol):
    def create(self, leave: LeaveRequest) -> None:
        raise NotImplementedError

    def get(self, leave_id: str) -> Optional[LeaveRequest]:
        raise NotImplementedError

    def decide(self, *, leave_id: str, status: LeaveStatus, auditor_id: int, audit_time: datetime) -> bool:
        """Move a pending leave to a terminal status; False when it was no longer pending."""

        raise NotImplementedError

    def attach_ding(self, *, leave_id: str, ding_id: str) -> None:
        raise NotImplementedError

    def list_by_student(self, student_id: int) -> Sequence[LeaveRequest]:
        raise NotImplementedError

    def list_by_students(
        self, student_ids: Sequence[int], *, status: Optional[LeaveStatus] = None
    ) -> Sequence[LeaveRequest]:
        raise NotImplementedError

    def list_returns(self, student_ids: Sequence[int]) -> Sequence[LeaveReturn]:
        """Approved leaves of the given students with their return check-in state."""

        raise NotImplementedError
