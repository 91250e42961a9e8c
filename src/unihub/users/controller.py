from __future__ import annotations

from datetime import timedelta

from flask import Flask, jsonify, session

from ..common.web import current_identity, json_body, login_required, to_json
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/login", methods=["POST"], endpoint="login")
    def login():
        data = json_body()
        s_user = container.auth_service.authenticate(str(data.get("email", "")), str(data.get("password", "")))

        session.clear()
        session.permanent = bool(data.get("remember_me"))
        app.permanent_session_lifetime = timedelta(days=7)
        session["user_id"] = s_user.user_id
        session["role_id"] = s_user.role_id
        session["nickname"] = s_user.nickname
        return jsonify(to_json(s_user))

    @app.route("/logout", methods=["POST"], endpoint="logout")
    def logout():
        session.clear()
        return jsonify({"ok": True})

    @app.route("/me", methods=["GET"], endpoint="me")
    @login_required
    def me():
        user_id, role_id = current_identity()
        return jsonify({"user_id": user_id, "role_id": role_id, "nickname": session.get("nickname")})

    @app.route("/students", methods=["GET"], endpoint="list_students")
    @login_required
    def list_students():
        user_id, role_id = current_identity()
        students = container.student_directory.list_students(viewer_id=user_id, role_id=role_id)
        return jsonify(to_json(list(students)))
