from __future__ import annotations

import hmac
import logging

from ..common.codes import new_secret
from ..common.validators import require_non_empty
from ..core.constants import DEFAULT_APP_RATE_LIMIT
from ..core.exceptions import AuthenticationError, NotFound, ValidationError
from ..users.model import PublicProfile
from ..users.repository import UserRepository
from .model import App, Developer
from .rate_limit import AdmissionControl
from .repository import OpenRepository

logger = logging.getLogger(__name__)


class OpenPlatform:
    """Developer registration, app credentials and the public read API."""

    def __init__(
        self,
        apps: OpenRepository,
        users: UserRepository,
        admission: AdmissionControl,
        *,
        default_rate_limit: int = DEFAULT_APP_RATE_LIMIT,
    ):
        self._apps = apps
        self._users = users
        self._admission = admission
        self._default_rate_limit = int(default_rate_limit)

    def register_developer(self, *, name: str, email: str) -> Developer:
        name = require_non_empty(name, "Name")
        email = require_non_empty(email, "Email").lower()
        if "@" not in email:
            raise ValidationError("Email is invalid")

        dev = self._apps.create_developer(name=name, email=email, secret=new_secret(32))
        logger.info("Developer %s registered", dev.developer_id)
        return dev

    def create_app(self, *, developer_secret: str, name: str) -> App:
        dev = self._apps.get_developer_by_secret((developer_secret or "").strip())
        if not dev:
            raise AuthenticationError("Invalid developer secret")
        name = require_non_empty(name, "App name")

        app = App(
            developer_id=dev.developer_id,
            name=name,
            app_id=new_secret(8),
            app_secret=new_secret(16),
            rate_limit=self._default_rate_limit,
        )
        self._apps.create_app(app)
        logger.info("App %s created for developer %s", app.app_id, dev.developer_id)
        return app

    def authenticate_app(self, app_id: str, app_secret: str) -> App:
        if not app_id or not app_secret:
            raise AuthenticationError("Missing app credentials")
        app = self._apps.get_app(app_id)
        if not app or not hmac.compare_digest(app.app_secret, app_secret):
            raise AuthenticationError("Invalid app credentials")
        return app

    def admit(self, app_id: str, app_secret: str) -> App:
        """Authenticate a caller and count the call against its rate limit."""

        app = self.authenticate_app(app_id, app_secret)
        self._admission.admit(app.app_id, app.rate_limit)
        return app

    def public_profile(self, user_id: int) -> PublicProfile:
        profile = self._users.get_public_profile(int(user_id))
        if not profile:
            raise NotFound("User does not exist")
        return profile
