from __future__ import annotations

from flask import Flask, jsonify

from ..common.datetime_utils import parse_iso_datetime
from ..common.validators import require_float
from ..common.web import current_identity, json_body, login_required, to_json
from ..container import Container
from ..org.model import Target
from .model import Geofence, Location, TimeWindow


def _location(data: dict) -> Location:
    return Location(
        latitude=require_float(data.get("latitude"), "Latitude"),
        longitude=require_float(data.get("longitude"), "Longitude"),
    )


def register(app: Flask, container: Container) -> None:
    attendance = container.attendance_service

    @app.route("/dings", methods=["POST"], endpoint="create_ding")
    @login_required
    def create_ding():
        user_id, role_id = current_identity()
        data = json_body()
        ding_id = attendance.create_task(
            launcher_id=user_id,
            role_id=role_id,
            title=str(data.get("title", "")),
            target=Target.from_payload(data),
            window=TimeWindow(
                start=parse_iso_datetime(data.get("start_time"), "Start time"),
                end=parse_iso_datetime(data.get("end_time"), "End time"),
            ),
            geofence=Geofence(center=_location(data), radius_m=require_float(data.get("radius"), "Radius")),
        )
        return jsonify({"id": ding_id}), 201

    @app.route("/dings/<ding_id>/submit", methods=["POST"], endpoint="submit_ding")
    @login_required
    def submit_ding(ding_id: str):
        user_id, _ = current_identity()
        result = attendance.submit(ding_id=ding_id, student_id=user_id, location=_location(json_body()))
        return jsonify(to_json(result))

    @app.route("/dings/mine", methods=["GET"], endpoint="my_dings")
    @login_required
    def my_dings():
        user_id, _ = current_identity()
        return jsonify(to_json(attendance.list_mine(user_id)))

    @app.route("/dings/created", methods=["GET"], endpoint="created_dings")
    @login_required
    def created_dings():
        user_id, _ = current_identity()
        rows = []
        for progress in attendance.list_created(user_id):
            row = to_json(progress.ding)
            row.update(progress.stats.as_dict())
            rows.append(row)
        return jsonify(rows)

    @app.route("/dings/stats", methods=["GET"], endpoint="ding_stats")
    @login_required
    def ding_stats():
        user_id, _ = current_identity()
        return jsonify(attendance.stats(user_id).as_dict())
