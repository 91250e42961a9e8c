from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class Developer:
    developer_id: int
    name: str
    email: str
    # Shown once at registration
    secret: str
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class App:
    """Third-party client of the open API, limited to ``rate_limit`` calls per window."""

    developer_id: int
    name: str
    app_id: str
    app_secret: str
    rate_limit: int
    created_at: Optional[datetime] = None
