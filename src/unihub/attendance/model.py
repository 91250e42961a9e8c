from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Tuple

from ..common.geo import haversine_meters
from ..core.enums import CheckInOutcome, DingKind, DingStatus
from ..core.exceptions import ValidationError
from ..notifications.model import NotificationIntent
from ..org.model import Target


@dataclass(frozen=True)
class TimeWindow:
    """Closed interval: both edges count as inside."""

    start: datetime
    end: datetime

    def __post_init__(self):
        if self.end < self.start:
            raise ValidationError("Window end must not precede its start")

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end


@dataclass(frozen=True)
class Location:
    latitude: float
    longitude: float

    def __post_init__(self):
        if not -90.0 <= self.latitude <= 90.0:
            raise ValidationError("Latitude must be within [-90, 90]")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValidationError("Longitude must be within [-180, 180]")


@dataclass(frozen=True)
class Geofence:
    """Registered point plus radius in meters; the boundary counts as inside."""

    center: Location
    radius_m: float

    def __post_init__(self):
        if not math.isfinite(self.radius_m) or self.radius_m <= 0:
            raise ValidationError("Radius must be a positive number")

    def distance_to(self, location: Location) -> float:
        return haversine_meters(
            self.center.latitude, self.center.longitude, location.latitude, location.longitude
        )


@dataclass(frozen=True)
class Ding:
    """Geofenced, time-windowed check-in task."""

    ding_id: str
    launcher_id: int
    title: str
    kind: DingKind
    window: TimeWindow
    geofence: Geofence
    target: Target
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class DingRecord:
    """One per targeted student; moves pending -> complete exactly once."""

    record_id: int
    ding_id: str
    student_id: int
    status: DingStatus
    submitted_at: Optional[datetime] = None
    location: Optional[Location] = None


@dataclass(frozen=True)
class Assignment:
    ding: Ding
    record: DingRecord


@dataclass(frozen=True)
class CheckInResult:
    status: DingStatus
    outcome: CheckInOutcome
    distance_m: Optional[float] = None


@dataclass(frozen=True)
class AttendanceStats:
    total: int
    checked: int

    @property
    def missed(self) -> int:
        return self.total - self.checked

    def as_dict(self) -> dict:
        return {"total": self.total, "checked": self.checked, "missed": self.missed}


@dataclass(frozen=True)
class DingProgress:
    ding: Ding
    stats: AttendanceStats


@dataclass(frozen=True)
class FanOutResult:
    """Outcome of a committed fan-out; intents are dispatched after commit."""

    ding_id: str
    student_ids: Tuple[int, ...]
    intents: Tuple[NotificationIntent, ...] = field(default_factory=tuple)
