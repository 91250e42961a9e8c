from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, ContextManager, Dict, List, Sequence, Union

from ..attendance.service import AttendanceOrchestrator
from ..common.codes import new_public_id
from ..common.datetime_utils import now_local
from ..common.validators import require_non_empty
from ..core.enums import DingKind, LeaveStatus, Permission
from ..core.exceptions import (
    AlreadyAudited,
    DomainError,
    FollowUpTaskFailed,
    Forbidden,
    NoDepartment,
    NotFound,
    ValidationError,
)
from ..org.model import Target
from ..org.repository import OrgRepository
from ..rbac.service import PermissionResolver
from .model import LeaveRequest, LeaveReturn
from .policy import ReturnCheckInPolicy
from .repository import LeaveRepository

logger = logging.getLogger(__name__)


class LeaveWorkflow:
    """Use cases: apply for leave, audit it, and follow up on approved returns.

    Approval and the creation of the return check-in commit together; when the
    check-in cannot be created the approval is rolled back and
    ``FollowUpTaskFailed`` is raised so the auditor can retry.
    """

    def __init__(
        self,
        leaves: LeaveRepository,
        org: OrgRepository,
        attendance: AttendanceOrchestrator,
        resolver: PermissionResolver,
        policy: ReturnCheckInPolicy,
        *,
        transaction: Callable[[], ContextManager],
    ):
        self._leaves = leaves
        self._org = org
        self._attendance = attendance
        self._resolver = resolver
        self._policy = policy
        self._transaction = transaction

    def apply(
        self,
        *,
        student_id: int,
        leave_type: str,
        start_time: datetime,
        end_time: datetime,
        reason: str = "",
    ) -> LeaveRequest:
        leave_type = require_non_empty(leave_type, "Leave type")
        if end_time <= start_time:
            raise ValidationError("Leave end must be after its start")

        leave = LeaveRequest(
            leave_id=new_public_id(),
            student_id=int(student_id),
            leave_type=leave_type,
            start_time=start_time,
            end_time=end_time,
            reason=(reason or "").strip(),
            status=LeaveStatus.PENDING,
        )
        self._leaves.create(leave)
        logger.info("Student %s applied for leave %s (%s)", student_id, leave.leave_id, leave_type)
        return leave

    def audit(
        self,
        *,
        auditor_id: int,
        role_id: int,
        leave_id: str,
        decision: Union[str, LeaveStatus],
        now: datetime | None = None,
    ) -> LeaveRequest:
        self._resolver.require(role_id, Permission.LEAVE_APPROVE, "Not allowed to audit leave requests")
        try:
            status = LeaveStatus(decision)
        except ValueError:
            raise ValidationError("Decision must be 'approved' or 'rejected'")
        if status == LeaveStatus.PENDING:
            raise ValidationError("Decision must be 'approved' or 'rejected'")

        leave = self._leaves.get(leave_id)
        if not leave:
            raise NotFound("Leave request does not exist")
        if leave.status != LeaveStatus.PENDING:
            raise AlreadyAudited("Leave request has already been audited")

        dept_id = self._org.get_student_department_id(leave.student_id)
        if dept_id is None:
            raise NoDepartment("Student has not joined a department")
        dept = self._org.get_department(dept_id)
        if not dept or dept.counselor_id != int(auditor_id):
            raise Forbidden("Only the student's counselor can audit this leave")

        now = now or now_local()
        fan_out = None
        with self._transaction():
            if not self._leaves.decide(leave_id=leave.leave_id, status=status, auditor_id=int(auditor_id), audit_time=now):
                raise AlreadyAudited("Leave request has already been audited")

            if status == LeaveStatus.APPROVED:
                try:
                    fan_out = self._attendance.fan_out(
                        launcher_id=int(auditor_id),
                        title=self._policy.title,
                        target=Target.student(leave.student_id),
                        window=self._policy.window_for(leave.end_time),
                        geofence=self._policy.geofence,
                        kind=DingKind.LEAVE_RETURN,
                    )
                    self._leaves.attach_ding(leave_id=leave.leave_id, ding_id=fan_out.ding_id)
                except DomainError as exc:
                    logger.exception("Return check-in for leave %s failed; approval rolled back", leave.leave_id)
                    raise FollowUpTaskFailed(leave.leave_id) from exc

        if fan_out is not None:
            self._attendance.announce(fan_out)

        logger.info("Leave %s %s by %s", leave.leave_id, status.value, auditor_id)
        return self._leaves.get(leave.leave_id) or leave

    def _managed_student_ids(self, counselor_id: int, role_id: int) -> List[int]:
        self._resolver.require(role_id, Permission.LEAVE_APPROVE, "Not allowed to review leave requests")
        dept_ids = [d.dept_id for d in self._org.list_departments_by_counselor(int(counselor_id))]
        return sorted(set(self._org.student_ids_in_departments(dept_ids)))

    def list_pending(self, *, counselor_id: int, role_id: int) -> Sequence[LeaveRequest]:
        student_ids = self._managed_student_ids(counselor_id, role_id)
        return self._leaves.list_by_students(student_ids, status=LeaveStatus.PENDING)

    def list_mine(self, student_id: int) -> Sequence[LeaveRequest]:
        return self._leaves.list_by_student(int(student_id))

    def overview(self, *, counselor_id: int, role_id: int) -> Dict[str, List[LeaveRequest]]:
        grouped: Dict[str, List[LeaveRequest]] = {s.value: [] for s in LeaveStatus}
        for leave in self._leaves.list_by_students(self._managed_student_ids(counselor_id, role_id)):
            grouped[leave.status.value].append(leave)
        return grouped

    def return_overview(
        self, *, counselor_id: int, role_id: int, now: datetime | None = None
    ) -> Dict[str, List[LeaveReturn]]:
        """Approved leaves split into returned, late (ended, not checked in) and awaiting."""

        now = now or now_local()
        result: Dict[str, List[LeaveReturn]] = {"returned": [], "late": [], "awaiting": []}
        for item in self._leaves.list_returns(self._managed_student_ids(counselor_id, role_id)):
            if item.checked_in:
                result["returned"].append(item)
            elif item.leave.end_time < now:
                result["late"].append(item)
            else:
                result["awaiting"].append(item)
        return result
