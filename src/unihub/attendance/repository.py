from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import DingKind
from .model import Assignment, AttendanceStats, Ding, DingProgress, DingRecord, Location


class DingRepository(Protocol):
    def create_ding(self, ding: Ding) -> None:
        raise NotImplementedError

    def create_records(self, *, ding_id: str, student_ids: Sequence[int]) -> int:
        """Insert one pending record per student; returns the number inserted."""

        raise NotImplementedError

    def get_ding(self, ding_id: str) -> Optional[Ding]:
        raise NotImplementedError

    def get_record(self, *, ding_id: str, student_id: int) -> Optional[DingRecord]:
        raise NotImplementedError

    def complete_record(self, *, record_id: int, submitted_at: datetime, location: Location) -> bool:
        """Conditional pending -> complete; False if it was already complete."""

        raise NotImplementedError

    def count_records(self, *, launcher_id: int, exclude_kind: Optional[DingKind] = None) -> AttendanceStats:
        raise NotImplementedError

    def list_assignments(self, student_id: int) -> Sequence[Assignment]:
        raise NotImplementedError

    def list_created(self, launcher_id: int) -> Sequence[DingProgress]:
        raise NotImplementedError
