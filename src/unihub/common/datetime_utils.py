from __future__ import annotations

from datetime import datetime

from ..core.exceptions import ValidationError


def parse_iso_datetime(value: str, field_name: str = "Time") -> datetime:
    """Parse an ISO-8601 timestamp (``YYYY-MM-DDTHH:MM[:SS][+HH:MM]``).

    Offset-qualified values are converted to naive local time so they compare
    with :func:`now_local` and the naive DATETIME columns.
    """
    if not isinstance(value, str):
        raise ValidationError(f"{field_name} must be an ISO-8601 timestamp")
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError:
        raise ValidationError(f"{field_name} must be an ISO-8601 timestamp")
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def now_local() -> datetime:
    """Current local time, naive."""
    return datetime.now()
