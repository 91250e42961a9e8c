from __future__ import annotations

from flask import Flask, jsonify

from ..common.web import current_identity, json_body, login_required, to_json
from ..container import Container
from ..org.model import Target


def register(app: Flask, container: Container) -> None:
    center = container.notification_center

    @app.route("/notifications", methods=["POST"], endpoint="publish_notification")
    @login_required
    def publish_notification():
        user_id, _ = current_identity()
        data = json_body()
        delivered = center.publish(
            sender_id=user_id,
            title=str(data.get("title", "")),
            content=str(data.get("content", "")),
            target=Target.from_payload(data),
        )
        return jsonify({"recipients": len(delivered), "delivered": sum(1 for ok in delivered.values() if ok)}), 201

    @app.route("/notifications/mine", methods=["GET"], endpoint="my_notifications")
    @login_required
    def my_notifications():
        user_id, _ = current_identity()
        return jsonify(to_json(list(center.list_mine(user_id))))
