from __future__ import annotations

import importlib
import logging

from dotenv import load_dotenv
from flask import Flask

from .attendance.controller import register as register_attendance
from .config import get_settings_module
from .container import build_container
from .common.web import register_error_handlers
from .database.bootstrap import apply_schema, ensure_demo_users, ensure_reference_data, list_tables
from .leaves.controller import register as register_leaves
from .notifications.controller import register as register_notifications
from .openapi.controller import register as register_openapi
from .org.controller import register as register_org
from .tasks.controller import register as register_tasks
from .users.controller import register as register_users

logger = logging.getLogger(__name__)


def create_app() -> Flask:
    load_dotenv(override=False)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    logging.basicConfig(
        level=str(getattr(settings, "LOG_LEVEL", "INFO")).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = Flask(__name__)
    app.secret_key = getattr(settings, "SECRET_KEY")
    db_config = getattr(settings, "DB_CONFIG")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    logger.info(
        "settings=%s db=%s@%s:%s/%s",
        settings_module,
        db_config.get("user"),
        db_config.get("host"),
        db_config.get("port", 3306),
        db_config.get("database"),
    )

    if bool(getattr(settings, "AUTO_INIT_DB", False)):
        apply_schema(db_config)
        logger.info("Schema ready (tables=%d)", len(list_tables(db_config)))
    if bool(getattr(settings, "AUTO_SEED_DB", False)):
        ensure_reference_data(db_config)
        ensure_demo_users(db_config)
        logger.info("Reference data and demo users ready")

    container = build_container(settings=settings)

    register_error_handlers(app)
    register_users(app, container)
    register_org(app, container)
    register_attendance(app, container)
    register_leaves(app, container)
    register_tasks(app, container)
    register_notifications(app, container)
    register_openapi(app, container)

    return app
