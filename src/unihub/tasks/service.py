from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..common.codes import new_public_id
from ..common.datetime_utils import now_local
from ..common.validators import require_non_empty
from ..core.exceptions import AlreadySubmitted, DuplicateEntry, Expired, NotFound, ValidationError
from ..org.model import Target
from ..org.service import OrgMembershipService
from .model import StudentTask, Task
from .repository import TaskRepository

logger = logging.getLogger(__name__)


def _require_json(value: Any, field_name: str) -> None:
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be JSON-serializable")


class TaskWorkflow:
    """Use cases: publish deadline-bound tasks and collect one submission per student."""

    def __init__(self, tasks: TaskRepository, org: OrgMembershipService):
        self._tasks = tasks
        self._org = org

    def create_task(
        self,
        *,
        creator_id: int,
        title: str,
        task_type: str,
        target: Target,
        deadline: datetime,
        description: str = "",
        config: Optional[Dict[str, Any]] = None,
        now: datetime | None = None,
    ) -> Task:
        title = require_non_empty(title, "Title")
        task_type = require_non_empty(task_type, "Task type")
        now = now or now_local()
        if deadline <= now:
            raise ValidationError("Deadline must be in the future")
        config = dict(config or {})
        _require_json(config, "Config")

        self._org.authorize_target(creator_id, target)

        task = Task(
            task_id=new_public_id(),
            title=title,
            task_type=task_type,
            creator_id=int(creator_id),
            target=target,
            deadline=deadline,
            description=(description or "").strip(),
            config=config,
        )
        self._tasks.create_task(task)
        logger.info("Task %s published to %s %s", task.task_id, target.target_type.value, target.target_id)
        return task

    def submit(self, *, student_id: int, task_id: str, payload: Any = None, now: datetime | None = None) -> int:
        task = self._tasks.get_task(task_id)
        if not task:
            raise NotFound("Task does not exist")
        if task.target not in self._org.targets_for_student(student_id):
            raise NotFound("Task is not assigned to this student")

        now = now or now_local()
        if now > task.deadline:
            raise Expired("Task deadline has passed")
        _require_json(payload, "Submission")

        if self._tasks.get_record(task_id=task.task_id, student_id=int(student_id)):
            raise AlreadySubmitted("Task already submitted")
        try:
            record_id = self._tasks.create_record(
                task_id=task.task_id, student_id=int(student_id), data=payload, submitted_at=now
            )
        except DuplicateEntry as exc:
            raise AlreadySubmitted("Task already submitted") from exc

        logger.info("Student %s submitted task %s", student_id, task.task_id)
        return record_id

    def list_mine(self, student_id: int) -> List[StudentTask]:
        tasks = self._tasks.list_for_targets(self._org.targets_for_student(student_id))
        done = self._tasks.submitted_task_ids(student_id=int(student_id), task_ids=[t.task_id for t in tasks])
        return [StudentTask(task=t, submitted=t.task_id in done) for t in tasks]
