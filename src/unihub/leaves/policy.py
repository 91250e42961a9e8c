from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from ..attendance.model import Geofence, Location, TimeWindow
from ..core.constants import (
    DEFAULT_RETURN_CHECKIN_OFFSET_MINUTES,
    DEFAULT_RETURN_CHECKIN_RADIUS_METERS,
    DEFAULT_RETURN_CHECKIN_TITLE,
)
from ..core.exceptions import ValidationError

BEFORE = "before"
AFTER = "after"


@dataclass(frozen=True)
class ReturnCheckInPolicy:
    """Where and when a student checks back in after an approved leave.

    ``before`` opens the window ``offset`` ahead of the leave end and closes it
    at the end; ``after`` opens at the end and stays open for ``offset``.
    """

    offset: timedelta
    geofence: Geofence
    direction: str = BEFORE
    title: str = DEFAULT_RETURN_CHECKIN_TITLE

    def __post_init__(self):
        if self.direction not in (BEFORE, AFTER):
            raise ValidationError("Return check-in direction must be 'before' or 'after'")
        if self.offset <= timedelta(0):
            raise ValidationError("Return check-in offset must be positive")

    def window_for(self, leave_end: datetime) -> TimeWindow:
        if self.direction == BEFORE:
            return TimeWindow(start=leave_end - self.offset, end=leave_end)
        return TimeWindow(start=leave_end, end=leave_end + self.offset)

    @classmethod
    def from_settings(cls, settings) -> "ReturnCheckInPolicy":
        return cls(
            offset=timedelta(
                minutes=int(getattr(settings, "RETURN_CHECKIN_OFFSET_MINUTES", DEFAULT_RETURN_CHECKIN_OFFSET_MINUTES))
            ),
            geofence=Geofence(
                center=Location(
                    latitude=float(getattr(settings, "RETURN_CHECKIN_LATITUDE")),
                    longitude=float(getattr(settings, "RETURN_CHECKIN_LONGITUDE")),
                ),
                radius_m=float(getattr(settings, "RETURN_CHECKIN_RADIUS_METERS", DEFAULT_RETURN_CHECKIN_RADIUS_METERS)),
            ),
            direction=str(getattr(settings, "RETURN_CHECKIN_DIRECTION", BEFORE)).strip().lower(),
            title=str(getattr(settings, "RETURN_CHECKIN_TITLE", DEFAULT_RETURN_CHECKIN_TITLE)),
        )
