from __future__ import annotations

from functools import wraps

from flask import Flask, g, jsonify, request

from ..common.web import json_body, to_json
from ..container import Container


def register(app: Flask, container: Container) -> None:
    platform = container.open_platform

    def open_api(view):
        """Authenticate X-App-ID / X-App-Secret and apply the app's rate limit."""

        @wraps(view)
        def wrapper(*args, **kwargs):
            g.open_app = platform.admit(request.headers.get("X-App-ID", ""), request.headers.get("X-App-Secret", ""))
            return view(*args, **kwargs)

        return wrapper

    @app.route("/open/developers", methods=["POST"], endpoint="register_developer")
    def register_developer():
        data = json_body()
        dev = platform.register_developer(name=str(data.get("name", "")), email=str(data.get("email", "")))
        # The secret is only ever shown here.
        return jsonify({"dev_id": dev.developer_id, "dev_secret": dev.secret}), 201

    @app.route("/open/apps", methods=["POST"], endpoint="create_open_app")
    def create_open_app():
        created = platform.create_app(
            developer_secret=request.headers.get("X-Dev-Secret", ""), name=str(json_body().get("name", ""))
        )
        return jsonify({"app_id": created.app_id, "app_secret": created.app_secret, "rate_limit": created.rate_limit}), 201

    @app.route("/open/v1/users/<int:user_id>", methods=["GET"], endpoint="open_user_profile")
    @open_api
    def open_user_profile(user_id: int):
        return jsonify(to_json(platform.public_profile(user_id)))
