from __future__ import annotations

from typing import Optional, Protocol

from .model import App, Developer


class OpenRepository(Protocol):
    def create_developer(self, *, name: str, email: str, secret: str) -> Developer:
        """Raises ``DuplicateEntry`` when the email is already registered."""

        raise NotImplementedError

    def get_developer_by_secret(self, secret: str) -> Optional[Developer]:
        raise NotImplementedError

    def create_app(self, app: App) -> None:
        raise NotImplementedError

    def get_app(self, app_id: str) -> Optional[App]:
        raise NotImplementedError
