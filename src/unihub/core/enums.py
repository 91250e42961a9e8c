from __future__ import annotations

from enum import Enum


class DataScopePolicy(str, Enum):
    """Which organizational subset a role may see."""

    ALL = "all"
    DEPT = "dept"
    DEPT_AND_SUB = "dept_and_sub"
    SELF = "self"


class Permission(str, Enum):
    """Action codes checked against the role/permission relation."""

    DEPT_CREATE = "dept:create"
    DEPT_JOIN = "dept:join"
    DEPT_LIST = "dept:list"
    CLASS_CREATE = "class:create"
    CLASS_JOIN = "class:join"
    LEAVE_APPROVE = "leave:approve"
    DING_CREATE = "ding:create"
    STUDENT_LIST = "student:list"


class GroupKind(str, Enum):
    DEPARTMENT = "dept"
    CLASS = "class"


class TargetType(str, Enum):
    DEPARTMENT = "dept"
    CLASS = "class"
    STUDENT = "student"


class DingKind(str, Enum):
    """Why an attendance task exists; never inferred from its title."""

    COUNSELOR_INITIATED = "counselor_initiated"
    LEAVE_RETURN = "leave_return"


class DingStatus(str, Enum):
    PENDING = "pending"
    COMPLETE = "complete"


class CheckInOutcome(str, Enum):
    CHECKED_IN = "checked_in"
    ALREADY_CHECKED_IN = "already_checked_in"
    OUT_OF_RANGE = "out_of_range"
    OUT_OF_WINDOW = "out_of_window"


class LeaveStatus(str, Enum):
    """Leave request workflow: pending -> approved | rejected (terminal)."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class TaskRecordStatus(str, Enum):
    COMPLETED = "completed"
