from __future__ import annotations

from flask import Flask, jsonify

from ..common.datetime_utils import parse_iso_datetime
from ..common.web import current_identity, json_body, login_required, to_json
from ..container import Container
from ..core.exceptions import ValidationError
from ..org.model import Target


def register(app: Flask, container: Container) -> None:
    tasks = container.task_service

    @app.route("/tasks", methods=["POST"], endpoint="create_task")
    @login_required
    def create_task():
        user_id, _ = current_identity()
        data = json_body()
        config = data.get("config") or {}
        if not isinstance(config, dict):
            raise ValidationError("Config must be a JSON object")
        task = tasks.create_task(
            creator_id=user_id,
            title=str(data.get("title", "")),
            task_type=str(data.get("type", "")),
            description=str(data.get("description", "")),
            target=Target.from_payload(data),
            deadline=parse_iso_datetime(data.get("deadline"), "Deadline"),
            config=config,
        )
        return jsonify({"id": task.task_id}), 201

    @app.route("/tasks/<task_id>/submit", methods=["POST"], endpoint="submit_task")
    @login_required
    def submit_task(task_id: str):
        user_id, _ = current_identity()
        tasks.submit(student_id=user_id, task_id=task_id, payload=json_body().get("data"))
        return jsonify({"ok": True})

    @app.route("/tasks/mine", methods=["GET"], endpoint="my_tasks")
    @login_required
    def my_tasks():
        user_id, _ = current_identity()
        rows = []
        for item in tasks.list_mine(user_id):
            row = to_json(item.task)
            row["submitted"] = item.submitted
            rows.append(row)
        return jsonify(rows)
