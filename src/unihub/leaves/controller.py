from __future__ import annotations

from flask import Flask, jsonify

from ..common.datetime_utils import parse_iso_datetime
from ..common.web import current_identity, json_body, login_required, to_json
from ..container import Container


def register(app: Flask, container: Container) -> None:
    leaves = container.leave_service

    @app.route("/leaves", methods=["POST"], endpoint="apply_leave")
    @login_required
    def apply_leave():
        user_id, _ = current_identity()
        data = json_body()
        leave = leaves.apply(
            student_id=user_id,
            leave_type=str(data.get("type", "")),
            start_time=parse_iso_datetime(data.get("start_time"), "Start time"),
            end_time=parse_iso_datetime(data.get("end_time"), "End time"),
            reason=str(data.get("reason", "")),
        )
        return jsonify({"id": leave.leave_id}), 201

    @app.route("/leaves/<leave_id>/audit", methods=["POST"], endpoint="audit_leave")
    @login_required
    def audit_leave(leave_id: str):
        user_id, role_id = current_identity()
        leave = leaves.audit(
            auditor_id=user_id,
            role_id=role_id,
            leave_id=leave_id,
            decision=str(json_body().get("decision", "")).strip().lower(),
        )
        return jsonify(to_json(leave))

    @app.route("/leaves/pending", methods=["GET"], endpoint="pending_leaves")
    @login_required
    def pending_leaves():
        user_id, role_id = current_identity()
        return jsonify(to_json(list(leaves.list_pending(counselor_id=user_id, role_id=role_id))))

    @app.route("/leaves/mine", methods=["GET"], endpoint="my_leaves")
    @login_required
    def my_leaves():
        user_id, _ = current_identity()
        return jsonify(to_json(list(leaves.list_mine(user_id))))

    @app.route("/leaves/overview", methods=["GET"], endpoint="leave_overview")
    @login_required
    def leave_overview():
        user_id, role_id = current_identity()
        return jsonify(to_json(leaves.overview(counselor_id=user_id, role_id=role_id)))

    @app.route("/leaves/returns", methods=["GET"], endpoint="leave_returns")
    @login_required
    def leave_returns():
        user_id, role_id = current_identity()
        return jsonify(to_json(leaves.return_overview(counselor_id=user_id, role_id=role_id)))
