from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, ContextManager, Dict, List, Sequence

from ..common.codes import new_public_id
from ..common.datetime_utils import now_local
from ..common.validators import require_non_empty
from ..core.enums import CheckInOutcome, DingKind, DingStatus, Permission, TargetType
from ..core.exceptions import NoTargetStudents, NotFound, TransientStorageError
from ..notifications.model import NotificationIntent
from ..notifications.service import NotificationCenter
from ..org.model import Target
from ..org.service import OrgMembershipService
from ..rbac.service import PermissionResolver
from .model import (
    Assignment,
    AttendanceStats,
    CheckInResult,
    Ding,
    DingProgress,
    FanOutResult,
    Geofence,
    Location,
    TimeWindow,
)
from .repository import DingRepository

logger = logging.getLogger(__name__)


class AttendanceOrchestrator:
    """Creates geofenced check-in tasks, fans them out and tracks completion.

    Sole owner of Ding/DingRecord creation and transitions.
    """

    def __init__(
        self,
        dings: DingRepository,
        org: OrgMembershipService,
        notifications: NotificationCenter,
        resolver: PermissionResolver,
        *,
        transaction: Callable[[], ContextManager],
    ):
        self._dings = dings
        self._org = org
        self._notifications = notifications
        self._resolver = resolver
        self._transaction = transaction

    def create_task(
        self,
        *,
        launcher_id: int,
        role_id: int,
        title: str,
        target: Target,
        window: TimeWindow,
        geofence: Geofence,
    ) -> str:
        self._resolver.require(role_id, Permission.DING_CREATE, "Not allowed to launch check-ins")
        self._org.authorize_target(launcher_id, target)

        with self._transaction():
            result = self.fan_out(
                launcher_id=launcher_id,
                title=title,
                target=target,
                window=window,
                geofence=geofence,
                kind=DingKind.COUNSELOR_INITIATED,
            )
        self.announce(result)
        return result.ding_id

    def fan_out(
        self,
        *,
        launcher_id: int,
        title: str,
        target: Target,
        window: TimeWindow,
        geofence: Geofence,
        kind: DingKind,
    ) -> FanOutResult:
        """Write the parent task, one pending record and one notification intent per student.

        Must run inside a transaction owned by the caller; nothing is delivered
        here. Call ``announce`` once that transaction committed.
        """

        title = require_non_empty(title, "Title")
        student_ids = self._org.resolve_students(target)
        if not student_ids:
            raise NoTargetStudents("No students to check in for this target")

        ding = Ding(
            ding_id=new_public_id(),
            launcher_id=int(launcher_id),
            title=title,
            kind=kind,
            window=window,
            geofence=geofence,
            target=target,
        )
        intents = tuple(
            NotificationIntent(
                title=f"New check-in: {title}",
                content="Please check in within the scheduled time window.",
                sender_id=int(launcher_id),
                target_type=TargetType.STUDENT,
                target_id=student_id,
            )
            for student_id in student_ids
        )

        with self._transaction():
            self._dings.create_ding(ding)
            created = self._dings.create_records(ding_id=ding.ding_id, student_ids=student_ids)
            if created != len(student_ids):
                raise TransientStorageError(
                    f"Fan-out wrote {created} of {len(student_ids)} records for check-in {ding.ding_id}"
                )
            self._notifications.record(intents)

        logger.info("Check-in %s (%s) fanned out to %d students", ding.ding_id, kind.value, len(student_ids))
        return FanOutResult(ding_id=ding.ding_id, student_ids=tuple(student_ids), intents=intents)

    def announce(self, result: FanOutResult) -> Dict[int, bool]:
        return self._notifications.dispatch(result.intents)

    def submit(self, *, ding_id: str, student_id: int, location: Location, now: datetime | None = None) -> CheckInResult:
        record = self._dings.get_record(ding_id=ding_id, student_id=int(student_id))
        if not record:
            raise NotFound("No check-in assigned to this student")
        if record.status == DingStatus.COMPLETE:
            return CheckInResult(status=DingStatus.COMPLETE, outcome=CheckInOutcome.ALREADY_CHECKED_IN)

        ding = self._dings.get_ding(ding_id)
        if not ding:
            raise NotFound("Check-in does not exist")

        now = now or now_local()
        if not ding.window.contains(now):
            return CheckInResult(status=DingStatus.PENDING, outcome=CheckInOutcome.OUT_OF_WINDOW)

        distance = ding.geofence.distance_to(location)
        if distance > ding.geofence.radius_m:
            return CheckInResult(status=DingStatus.PENDING, outcome=CheckInOutcome.OUT_OF_RANGE, distance_m=distance)

        if not self._dings.complete_record(record_id=record.record_id, submitted_at=now, location=location):
            # A concurrent submission completed it first.
            return CheckInResult(
                status=DingStatus.COMPLETE, outcome=CheckInOutcome.ALREADY_CHECKED_IN, distance_m=distance
            )

        logger.info("Student %s checked in to %s (%.1f m)", student_id, ding_id, distance)
        return CheckInResult(status=DingStatus.COMPLETE, outcome=CheckInOutcome.CHECKED_IN, distance_m=distance)

    def stats(self, launcher_id: int) -> AttendanceStats:
        """Records under tasks the launcher created, leave-return check-ins excluded."""
        return self._dings.count_records(launcher_id=int(launcher_id), exclude_kind=DingKind.LEAVE_RETURN)

    def list_mine(self, student_id: int) -> Dict[str, List[Assignment]]:
        result: Dict[str, List[Assignment]] = {DingStatus.PENDING.value: [], DingStatus.COMPLETE.value: []}
        for assignment in self._dings.list_assignments(int(student_id)):
            result[assignment.record.status.value].append(assignment)
        return result

    def list_created(self, launcher_id: int) -> Sequence[DingProgress]:
        return self._dings.list_created(int(launcher_id))
