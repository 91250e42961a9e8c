from __future__ import annotations

import dataclasses
import logging
from datetime import date, datetime
from enum import Enum
from functools import wraps
from typing import Any, Dict, Tuple

from flask import Flask, jsonify, request, session

from ..core.exceptions import AuthenticationError, DomainError, RateLimited, ValidationError

logger = logging.getLogger(__name__)


def to_json(value: Any) -> Any:
    """Dataclasses, enums and datetimes into JSON-ready primitives."""

    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_json(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(to_json(k)): to_json(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_json(v) for v in value]
    return value


def json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def current_identity() -> Tuple[int, int]:
    """(user_id, role_id) of the logged-in user."""

    if "user_id" not in session:
        raise AuthenticationError("Please log in to continue")
    return int(session["user_id"]), int(session["role_id"])


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            raise AuthenticationError("Please log in to continue")
        return view(*args, **kwargs)

    return wrapper


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(exc: DomainError):
        if exc.status_code >= 500:
            logger.exception("Request to %s failed", request.path)
        body = {"error": {"kind": exc.kind, "message": str(exc)}}
        if exc.retryable:
            body["error"]["retryable"] = True
        response = jsonify(body)
        response.status_code = exc.status_code
        if isinstance(exc, RateLimited):
            response.headers["Retry-After"] = str(max(1, int(round(exc.retry_after))))
        return response
