from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Protocol, Sequence, Set

from ..org.model import Target
from .model import Task, TaskRecord


class TaskRepository(Protocol):
    def create_task(self, task: Task) -> None:
        raise NotImplementedError

    def get_task(self, task_id: str) -> Optional[Task]:
        raise NotImplementedError

    def get_record(self, *, task_id: str, student_id: int) -> Optional[TaskRecord]:
        raise NotImplementedError

    def create_record(self, *, task_id: str, student_id: int, data: Any, submitted_at: datetime) -> int:
        """Insert the single record of a (task, student) pair.

        Raises ``DuplicateEntry`` when one already exists.
        """

        raise NotImplementedError

    def list_for_targets(self, targets: Sequence[Target]) -> Sequence[Task]:
        raise NotImplementedError

    def submitted_task_ids(self, *, student_id: int, task_ids: Sequence[str]) -> Set[str]:
        raise NotImplementedError
