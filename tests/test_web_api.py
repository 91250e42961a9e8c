from __future__ import annotations

from datetime import datetime, timedelta

import pytest
from flask import Flask

from unihub.attendance.controller import register as register_attendance
from unihub.common.web import register_error_handlers
from unihub.container import Container
from unihub.leaves.controller import register as register_leaves
from unihub.notifications.controller import register as register_notifications
from unihub.openapi.controller import register as register_openapi
from unihub.org.controller import register as register_org
from unihub.tasks.controller import register as register_tasks
from unihub.users.controller import register as register_users

from conftest import COUNSELOR


def _container(world) -> Container:
    return Container(
        conn=None,
        roles_repo=world.roles,
        users_repo=world.users,
        org_repo=world.org_repo,
        dings_repo=world.dings,
        leaves_repo=world.leaves_repo,
        tasks_repo=world.tasks_repo,
        notifications_repo=world.notifications_repo,
        open_repo=world.open_repo,
        permission_resolver=world.resolver,
        auth_service=world.auth,
        student_directory=world.directory,
        org_service=world.org,
        notification_center=world.notifications,
        attendance_service=world.attendance,
        leave_service=world.leaves,
        task_service=world.tasks,
        admission_control=world.admission,
        open_platform=world.platform,
    )


@pytest.fixture
def app(world):
    app = Flask("unihub-test")
    app.secret_key = "test-secret"
    app.config["TESTING"] = True
    container = _container(world)
    register_error_handlers(app)
    for register in (
        register_users,
        register_org,
        register_attendance,
        register_leaves,
        register_tasks,
        register_notifications,
        register_openapi,
    ):
        register(app, container)
    return app


def _client(app, email=None):
    client = app.test_client()
    if email:
        resp = client.post("/login", json={"email": email, "password": "secret123"})
        assert resp.status_code == 200
    return client


def test_login_and_logout(app):
    client = app.test_client()
    assert client.post("/login", json={"email": "ann@unihub.local", "password": "nope"}).status_code == 401

    resp = client.post("/login", json={"email": "ann@unihub.local", "password": "secret123"})
    assert resp.get_json()["user_id"] == 101
    assert client.get("/me").get_json()["user_id"] == 101

    client.post("/logout")
    resp = client.get("/me")
    assert resp.status_code == 401
    assert resp.get_json()["error"]["kind"] == "authentication_error"


def test_errors_render_kind_and_status(app):
    student = _client(app, "ann@unihub.local")
    resp = student.post("/departments", json={"name": "Mine"})
    assert resp.status_code == 403
    assert resp.get_json()["error"]["kind"] == "permission_denied"

    resp = student.post("/departments/join", json={"invite_code": "ABCDEFGH"})
    assert resp.status_code == 404
    assert resp.get_json()["error"]["kind"] == "invalid_code"


def test_department_check_in_flow(app):
    counselor = _client(app, "counselor@unihub.local")
    created = counselor.post("/departments", json={"name": "Software 2026"})
    assert created.status_code == 201
    code = created.get_json()["invite_code"]

    student = _client(app, "ann@unihub.local")
    assert student.post("/departments/join", json={"invite_code": code}).status_code == 200
    again = _client(app, "ann@unihub.local").post("/departments/join", json={"invite_code": code})
    assert again.status_code == 409
    assert again.get_json()["error"]["kind"] == "already_member"

    now = datetime.now()
    resp = counselor.post(
        "/dings",
        json={
            "title": "Roll call",
            "department_id": created.get_json()["id"],
            "start_time": (now - timedelta(hours=1)).isoformat(),
            "end_time": (now + timedelta(hours=1)).isoformat(),
            "latitude": 30.0,
            "longitude": 104.0,
            "radius": 100,
        },
    )
    assert resp.status_code == 201
    ding_id = resp.get_json()["id"]

    resp = student.post(f"/dings/{ding_id}/submit", json={"latitude": 30.0, "longitude": 104.0})
    assert resp.get_json()["outcome"] == "checked_in"

    mine = student.get("/dings/mine").get_json()
    assert [a["ding"]["ding_id"] for a in mine["complete"]] == [ding_id]
    assert counselor.get("/dings/stats").get_json() == {"total": 1, "checked": 1, "missed": 0}
    (row,) = counselor.get("/dings/created").get_json()
    assert row["checked"] == 1 and row["kind"] == "counselor_initiated"


def test_bad_timestamps_are_validation_errors(app):
    counselor = _client(app, "counselor@unihub.local")
    resp = counselor.post("/dings", json={"title": "x", "student_id": 101, "start_time": "soon", "end_time": "later"})
    assert resp.status_code == 400
    assert resp.get_json()["error"]["kind"] == "validation_error"

    resp = counselor.post(
        "/dings", json={"title": "x", "student_id": 101, "start_time": 1700000000, "end_time": 1700003600}
    )
    assert resp.status_code == 400
    assert resp.get_json()["error"]["kind"] == "validation_error"


def test_non_finite_radius_is_rejected(app):
    counselor = _client(app, "counselor@unihub.local")
    start = datetime.now()
    for radius in ("nan", "inf"):
        resp = counselor.post(
            "/dings",
            json={
                "title": "Roll call",
                "student_id": 101,
                "start_time": start.isoformat(),
                "end_time": (start + timedelta(hours=1)).isoformat(),
                "latitude": 30.0,
                "longitude": 104.0,
                "radius": radius,
            },
        )
        assert resp.status_code == 400
        assert resp.get_json()["error"]["kind"] == "validation_error"


def test_task_deadline_with_utc_offset(app, world):
    dept = world.department()
    world.enroll(dept, 101)
    counselor = _client(app, "counselor@unihub.local")
    student = _client(app, "ann@unihub.local")

    resp = counselor.post(
        "/tasks",
        json={
            "title": "Survey",
            "type": "survey",
            "target_type": "dept",
            "target_id": dept.dept_id,
            "deadline": "2099-01-01T00:00:00+08:00",
        },
    )
    assert resp.status_code == 201
    task_id = resp.get_json()["id"]
    assert student.post(f"/tasks/{task_id}/submit", json={"data": {"answer": 1}}).status_code == 200

    resp = counselor.post(
        "/tasks",
        json={
            "title": "Survey",
            "type": "survey",
            "target_type": "dept",
            "target_id": -3,
            "deadline": "2099-01-01T00:00:00+08:00",
        },
    )
    assert resp.status_code == 400


def test_leave_flow(app, world):
    dept = world.department()
    world.enroll(dept, 101)
    student = _client(app, "ann@unihub.local")
    counselor = _client(app, "counselor@unihub.local")

    end = datetime.now() + timedelta(days=2)
    resp = student.post(
        "/leaves",
        json={
            "type": "sick",
            "start_time": datetime.now().isoformat(),
            "end_time": end.isoformat(),
            "reason": "flu",
        },
    )
    leave_id = resp.get_json()["id"]
    assert [l["leave_id"] for l in counselor.get("/leaves/pending").get_json()] == [leave_id]

    resp = counselor.post(f"/leaves/{leave_id}/audit", json={"decision": "Approved"})
    body = resp.get_json()
    assert body["status"] == "approved"
    assert body["ding_id"]

    assert counselor.get("/leaves/pending").get_json() == []
    returns = counselor.get("/leaves/returns").get_json()
    assert [r["leave"]["leave_id"] for r in returns["awaiting"]] == [leave_id]
    assert student.get("/leaves/mine").get_json()[0]["status"] == "approved"

    resp = counselor.post(f"/leaves/{leave_id}/audit", json={"decision": "rejected"})
    assert resp.status_code == 409


def test_task_and_notification_endpoints(app, world):
    dept = world.department()
    world.enroll(dept, 101)
    counselor = _client(app, "counselor@unihub.local")
    student = _client(app, "ann@unihub.local")

    resp = counselor.post(
        "/tasks",
        json={
            "title": "Survey",
            "type": "survey",
            "target_type": "dept",
            "target_id": dept.dept_id,
            "deadline": (datetime.now() + timedelta(days=1)).isoformat(),
        },
    )
    task_id = resp.get_json()["id"]
    assert student.post(f"/tasks/{task_id}/submit", json={"data": {"answer": 1}}).status_code == 200
    assert student.post(f"/tasks/{task_id}/submit", json={"data": {"answer": 2}}).status_code == 409
    assert student.get("/tasks/mine").get_json()[0]["submitted"] is True

    resp = counselor.post(
        "/notifications", json={"title": "Hi", "content": "Welcome", "department_id": dept.dept_id}
    )
    assert resp.get_json() == {"recipients": 1, "delivered": 1}
    assert [n["title"] for n in student.get("/notifications/mine").get_json()] == ["Hi"]


def test_open_api_is_authenticated_and_rate_limited(app):
    client = app.test_client()
    dev = client.post("/open/developers", json={"name": "Acme", "email": "dev@acme.io"}).get_json()
    creds = client.post("/open/apps", json={"name": "Sync"}, headers={"X-Dev-Secret": dev["dev_secret"]}).get_json()
    headers = {"X-App-ID": creds["app_id"], "X-App-Secret": creds["app_secret"]}

    assert client.get(f"/open/v1/users/{COUNSELOR}").status_code == 401
    for _ in range(creds["rate_limit"]):
        resp = client.get(f"/open/v1/users/{COUNSELOR}", headers=headers)
        assert resp.status_code == 200
    assert resp.get_json() == {"user_id": COUNSELOR, "nickname": "Counselor", "role_name": "Counselor"}

    limited = client.get(f"/open/v1/users/{COUNSELOR}", headers=headers)
    assert limited.status_code == 429
    assert int(limited.headers["Retry-After"]) >= 1
