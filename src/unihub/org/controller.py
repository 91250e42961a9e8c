from __future__ import annotations

from flask import Flask, jsonify

from ..common.web import current_identity, json_body, login_required, to_json
from ..container import Container
from ..core.enums import GroupKind


def _group_payload(group) -> dict:
    data = to_json(group)
    data["id"] = getattr(group, "dept_id", None) or getattr(group, "class_id", None)
    return data


def register(app: Flask, container: Container) -> None:
    org = container.org_service

    @app.route("/departments", methods=["POST"], endpoint="create_department")
    @login_required
    def create_department():
        user_id, role_id = current_identity()
        dept = org.create_department(creator_id=user_id, role_id=role_id, name=str(json_body().get("name", "")))
        return jsonify({"id": dept.dept_id, "invite_code": dept.invite_code}), 201

    @app.route("/classes", methods=["POST"], endpoint="create_class")
    @login_required
    def create_class():
        user_id, role_id = current_identity()
        klass = org.create_class(creator_id=user_id, role_id=role_id, name=str(json_body().get("name", "")))
        return jsonify({"id": klass.class_id, "invite_code": klass.invite_code}), 201

    @app.route("/departments/join", methods=["POST"], endpoint="join_department")
    @login_required
    def join_department():
        user_id, role_id = current_identity()
        dept = org.join_department(
            student_id=user_id, role_id=role_id, invite_code=str(json_body().get("invite_code", ""))
        )
        return jsonify({"id": dept.dept_id, "name": dept.name})

    @app.route("/classes/join", methods=["POST"], endpoint="join_class")
    @login_required
    def join_class():
        user_id, role_id = current_identity()
        klass = org.join_class(student_id=user_id, role_id=role_id, invite_code=str(json_body().get("invite_code", "")))
        return jsonify({"id": klass.class_id, "name": klass.name})

    @app.route("/departments", methods=["GET"], endpoint="my_departments")
    @login_required
    def my_departments():
        user_id, _ = current_identity()
        return jsonify([_group_payload(d) for d in org.list_managed(owner_id=user_id, kind=GroupKind.DEPARTMENT)])

    @app.route("/classes", methods=["GET"], endpoint="my_classes")
    @login_required
    def my_classes():
        user_id, _ = current_identity()
        return jsonify([_group_payload(c) for c in org.list_managed(owner_id=user_id, kind=GroupKind.CLASS)])

    @app.route("/departments/<int:dept_id>/members", methods=["GET"], endpoint="department_members")
    @login_required
    def department_members(dept_id: int):
        user_id, _ = current_identity()
        data = org.list_members(owner_id=user_id, kind=GroupKind.DEPARTMENT, group_id=dept_id)
        return jsonify({"group": _group_payload(data["group"]), "students": to_json(data["students"])})

    @app.route("/classes/<int:class_id>/members", methods=["GET"], endpoint="class_members")
    @login_required
    def class_members(class_id: int):
        user_id, _ = current_identity()
        data = org.list_members(owner_id=user_id, kind=GroupKind.CLASS, group_id=class_id)
        return jsonify({"group": _group_payload(data["group"]), "students": to_json(data["students"])})
