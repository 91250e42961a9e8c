from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import LeaveStatus


@dataclass(frozen=True)
class LeaveRequest:
    leave_id: str
    student_id: int
    leave_type: str
    start_time: datetime
    end_time: datetime
    reason: str
    status: LeaveStatus
    created_at: Optional[datetime] = None
    auditor_id: Optional[int] = None
    audit_time: Optional[datetime] = None
    # Return check-in generated on approval
    ding_id: Optional[str] = None


@dataclass(frozen=True)
class LeaveReturn:
    """An approved leave joined with the state of its return check-in."""

    leave: LeaveRequest
    checked_in: bool
    submitted_at: Optional[datetime] = None
