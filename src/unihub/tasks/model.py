from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from ..core.enums import TaskRecordStatus
from ..org.model import Target


@dataclass(frozen=True)
class Task:
    """Deadline-bound task; submissions are pulled, no rows are fanned out."""

    task_id: str
    title: str
    task_type: str
    creator_id: int
    target: Target
    deadline: datetime
    description: str = ""
    config: Dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class TaskRecord:
    record_id: int
    task_id: str
    student_id: int
    status: TaskRecordStatus
    data: Any = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class StudentTask:
    task: Task
    submitted: bool
