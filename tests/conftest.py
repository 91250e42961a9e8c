from __future__ import annotations

import copy
import threading
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Optional

import pytest
from werkzeug.security import generate_password_hash

from unihub.attendance.model import Assignment, AttendanceStats, DingProgress, DingRecord, Geofence, Location
from unihub.attendance.service import AttendanceOrchestrator
from unihub.core.enums import DataScopePolicy, DingStatus, LeaveStatus, Permission, TaskRecordStatus
from unihub.core.exceptions import DuplicateEntry, TransientStorageError
from unihub.leaves.model import LeaveReturn
from unihub.leaves.policy import ReturnCheckInPolicy
from unihub.leaves.service import LeaveWorkflow
from unihub.notifications.model import Notification
from unihub.notifications.service import NotificationCenter
from unihub.openapi.model import Developer
from unihub.openapi.rate_limit import AdmissionControl
from unihub.openapi.service import OpenPlatform
from unihub.org.model import Department, SchoolClass
from unihub.org.service import OrgMembershipService
from unihub.rbac.model import OrgUnit, Role
from unihub.rbac.service import PermissionResolver
from unihub.tasks.model import TaskRecord
from unihub.tasks.service import TaskWorkflow
from unihub.users.model import PublicProfile, StudentSummary, User
from unihub.users.service import AuthService, StudentDirectory

NOW = datetime(2026, 3, 2, 9, 0, 0)

SUPER_ADMIN_ROLE = 1
COUNSELOR_ROLE = 2
TEACHER_ROLE = 3
STUDENT_ROLE = 4

ADMIN = 1
COUNSELOR = 10
OTHER_COUNSELOR = 11
TEACHER = 20
STUDENTS = (101, 102, 103, 104)

RETURN_POINT = Location(latitude=30.5728, longitude=104.0668)


class MemoryStore:
    """Tables as plain dicts; ``transaction()`` snapshots them and restores on error."""

    def __init__(self):
        self.lock = threading.RLock()
        self._depth = 0
        self.t = {
            "roles": {},
            "role_permissions": set(),
            "org_units": {},
            "users": {},
            "departments": {},
            "classes": {},
            "student_departments": {},
            "student_classes": set(),
            "dings": {},
            "ding_records": {},
            "leaves": {},
            "tasks": {},
            "task_records": {},
            "notifications": [],
            "developers": {},
            "apps": {},
            "seq": 0,
        }

    def next_id(self) -> int:
        with self.lock:
            self.t["seq"] += 1
            return self.t["seq"]

    @contextmanager
    def transaction(self):
        with self.lock:
            if self._depth:
                self._depth += 1
                try:
                    yield
                finally:
                    self._depth -= 1
                return

            snapshot = copy.deepcopy(self.t)
            self._depth = 1
            try:
                yield
            except BaseException:
                self.t = snapshot
                raise
            finally:
                self._depth = 0


class MemoryRoles:
    def __init__(self, store: MemoryStore):
        self.s = store
        self.fail = False

    def get_role(self, role_id):
        return self.s.t["roles"].get(int(role_id))

    def has_permission(self, role_id, code):
        if self.fail:
            raise TransientStorageError("Storage operation failed")
        return (int(role_id), code) in self.s.t["role_permissions"]

    def list_org_units(self):
        return list(self.s.t["org_units"].values())


class MemoryUsers:
    def __init__(self, store: MemoryStore):
        self.s = store

    def _summary(self, u: User) -> StudentSummary:
        return StudentSummary(
            user_id=u.user_id, nickname=u.nickname, email=u.email, student_no=u.student_no, org_unit_id=u.org_unit_id
        )

    def _students(self):
        return [u for u in self.s.t["users"].values() if u.role_id == STUDENT_ROLE]

    def get_by_id(self, user_id):
        return self.s.t["users"].get(int(user_id))

    def get_by_email(self, email):
        return next((u for u in self.s.t["users"].values() if u.email == email), None)

    def student_exists(self, user_id):
        u = self.get_by_id(user_id)
        return bool(u and u.role_id == STUDENT_ROLE)

    def set_department(self, user_id, department_id):
        u = self.get_by_id(user_id)
        if not u:
            return False
        self.s.t["users"][u.user_id] = replace(u, department_id=department_id)
        return True

    def list_students(self, *, org_ids=None):
        return [
            self._summary(u) for u in self._students() if org_ids is None or u.org_unit_id in set(org_ids)
        ]

    def list_students_by_ids(self, user_ids):
        wanted = {int(i) for i in user_ids}
        return [self._summary(u) for u in self._students() if u.user_id in wanted]

    def get_public_profile(self, user_id):
        u = self.get_by_id(user_id)
        if not u:
            return None
        role = self.s.t["roles"][u.role_id]
        return PublicProfile(user_id=u.user_id, nickname=u.nickname, role_name=role.name)


class MemoryOrg:
    def __init__(self, store: MemoryStore):
        self.s = store

    def invite_code_taken(self, code):
        groups = list(self.s.t["departments"].values()) + list(self.s.t["classes"].values())
        return any(g.invite_code == code for g in groups)

    def create_department(self, *, name, invite_code, counselor_id):
        if self.invite_code_taken(invite_code):
            raise DuplicateEntry("Invite code already in use")
        dept = Department(dept_id=self.s.next_id(), name=name, invite_code=invite_code, counselor_id=counselor_id)
        self.s.t["departments"][dept.dept_id] = dept
        return dept

    def create_class(self, *, name, invite_code, teacher_id):
        if self.invite_code_taken(invite_code):
            raise DuplicateEntry("Invite code already in use")
        klass = SchoolClass(class_id=self.s.next_id(), name=name, invite_code=invite_code, teacher_id=teacher_id)
        self.s.t["classes"][klass.class_id] = klass
        return klass

    def get_department(self, dept_id):
        return self.s.t["departments"].get(int(dept_id))

    def get_class(self, class_id):
        return self.s.t["classes"].get(int(class_id))

    def get_department_by_invite_code(self, code):
        return next((d for d in self.s.t["departments"].values() if d.invite_code == code), None)

    def get_class_by_invite_code(self, code):
        return next((c for c in self.s.t["classes"].values() if c.invite_code == code), None)

    def list_departments_by_counselor(self, counselor_id):
        return [d for d in self.s.t["departments"].values() if d.counselor_id == int(counselor_id)]

    def list_classes_by_teacher(self, teacher_id):
        return [c for c in self.s.t["classes"].values() if c.teacher_id == int(teacher_id)]

    def get_student_department_id(self, student_id):
        return self.s.t["student_departments"].get(int(student_id))

    def add_student_to_department(self, *, student_id, dept_id):
        with self.s.lock:
            if int(student_id) in self.s.t["student_departments"]:
                raise DuplicateEntry("Student already belongs to a department")
            self.s.t["student_departments"][int(student_id)] = int(dept_id)

    def is_class_member(self, *, student_id, class_id):
        return (int(student_id), int(class_id)) in self.s.t["student_classes"]

    def add_student_to_class(self, *, student_id, class_id):
        key = (int(student_id), int(class_id))
        if key in self.s.t["student_classes"]:
            raise DuplicateEntry("Already in class")
        self.s.t["student_classes"].add(key)

    def student_ids_in_departments(self, dept_ids):
        wanted = {int(d) for d in dept_ids}
        return [sid for sid, did in self.s.t["student_departments"].items() if did in wanted]

    def student_ids_in_classes(self, class_ids):
        wanted = {int(c) for c in class_ids}
        return [sid for sid, cid in self.s.t["student_classes"] if cid in wanted]

    def get_student_class_ids(self, student_id):
        return sorted(cid for sid, cid in self.s.t["student_classes"] if sid == int(student_id))


class MemoryDings:
    def __init__(self, store: MemoryStore):
        self.s = store
        # Number of record inserts that succeed before the next one fails
        self.fail_after: Optional[int] = None

    def create_ding(self, ding):
        self.s.t["dings"][ding.ding_id] = ding

    def create_records(self, *, ding_id, student_ids):
        for n, sid in enumerate(student_ids):
            if self.fail_after is not None and n >= self.fail_after:
                raise TransientStorageError("Storage operation failed")
            rid = self.s.next_id()
            self.s.t["ding_records"][rid] = DingRecord(
                record_id=rid, ding_id=ding_id, student_id=int(sid), status=DingStatus.PENDING
            )
        return len(student_ids)

    def get_ding(self, ding_id):
        return self.s.t["dings"].get(ding_id)

    def get_record(self, *, ding_id, student_id):
        return next(
            (r for r in self.s.t["ding_records"].values() if r.ding_id == ding_id and r.student_id == int(student_id)),
            None,
        )

    def complete_record(self, *, record_id, submitted_at, location):
        with self.s.lock:
            r = self.s.t["ding_records"].get(int(record_id))
            if not r or r.status != DingStatus.PENDING:
                return False
            self.s.t["ding_records"][r.record_id] = DingRecord(
                record_id=r.record_id,
                ding_id=r.ding_id,
                student_id=r.student_id,
                status=DingStatus.COMPLETE,
                submitted_at=submitted_at,
                location=location,
            )
            return True

    def records_of(self, ding_id):
        return [r for r in self.s.t["ding_records"].values() if r.ding_id == ding_id]

    def _stats(self, records) -> AttendanceStats:
        return AttendanceStats(total=len(records), checked=sum(1 for r in records if r.status == DingStatus.COMPLETE))

    def count_records(self, *, launcher_id, exclude_kind=None):
        ding_ids = {
            d.ding_id
            for d in self.s.t["dings"].values()
            if d.launcher_id == int(launcher_id) and (exclude_kind is None or d.kind != exclude_kind)
        }
        return self._stats([r for r in self.s.t["ding_records"].values() if r.ding_id in ding_ids])

    def list_assignments(self, student_id):
        return [
            Assignment(ding=self.s.t["dings"][r.ding_id], record=r)
            for r in self.s.t["ding_records"].values()
            if r.student_id == int(student_id)
        ]

    def list_created(self, launcher_id):
        return [
            DingProgress(ding=d, stats=self._stats(self.records_of(d.ding_id)))
            for d in self.s.t["dings"].values()
            if d.launcher_id == int(launcher_id)
        ]


class MemoryNotifications:
    def __init__(self, store: MemoryStore):
        self.s = store

    def create_many(self, intents):
        for i in intents:
            self.s.t["notifications"].append(
                Notification(
                    notification_id=self.s.next_id(),
                    title=i.title,
                    content=i.content,
                    sender_id=i.sender_id,
                    target_type=i.target_type,
                    target_id=i.target_id,
                )
            )
        return len(intents)

    def list_for_targets(self, targets):
        wanted = {(t.target_type, t.target_id) for t in targets}
        return [n for n in self.s.t["notifications"] if (n.target_type, n.target_id) in wanted]


class MemoryLeaves:
    def __init__(self, store: MemoryStore):
        self.s = store
        self.fail_attach = False

    def _replace(self, leave, **changes):
        self.s.t["leaves"][leave.leave_id] = replace(leave, **changes)

    def create(self, leave):
        self.s.t["leaves"][leave.leave_id] = leave

    def get(self, leave_id):
        return self.s.t["leaves"].get(leave_id)

    def decide(self, *, leave_id, status, auditor_id, audit_time):
        leave = self.get(leave_id)
        if not leave or leave.status != LeaveStatus.PENDING:
            return False
        self._replace(leave, status=status, auditor_id=auditor_id, audit_time=audit_time)
        return True

    def attach_ding(self, *, leave_id, ding_id):
        if self.fail_attach:
            raise TransientStorageError("Storage operation failed")
        self._replace(self.get(leave_id), ding_id=ding_id)

    def list_by_student(self, student_id):
        return [l for l in self.s.t["leaves"].values() if l.student_id == int(student_id)]

    def list_by_students(self, student_ids, *, status=None):
        wanted = set(student_ids)
        return [
            l for l in self.s.t["leaves"].values()
            if l.student_id in wanted and (status is None or l.status == status)
        ]

    def list_returns(self, student_ids):
        result = []
        for leave in self.list_by_students(student_ids, status=LeaveStatus.APPROVED):
            record = next(
                (
                    r for r in self.s.t["ding_records"].values()
                    if r.ding_id == leave.ding_id and r.student_id == leave.student_id
                ),
                None,
            )
            checked = bool(record and record.status == DingStatus.COMPLETE)
            result.append(
                LeaveReturn(leave=leave, checked_in=checked, submitted_at=record.submitted_at if record else None)
            )
        return result


class MemoryTasks:
    def __init__(self, store: MemoryStore):
        self.s = store

    def create_task(self, task):
        self.s.t["tasks"][task.task_id] = task

    def get_task(self, task_id):
        return self.s.t["tasks"].get(task_id)

    def get_record(self, *, task_id, student_id):
        return self.s.t["task_records"].get((task_id, int(student_id)))

    def create_record(self, *, task_id, student_id, data, submitted_at):
        key = (task_id, int(student_id))
        with self.s.lock:
            if key in self.s.t["task_records"]:
                raise DuplicateEntry("Task already submitted")
            rid = self.s.next_id()
            self.s.t["task_records"][key] = TaskRecord(
                record_id=rid,
                task_id=task_id,
                student_id=int(student_id),
                status=TaskRecordStatus.COMPLETED,
                data=data,
                created_at=submitted_at,
            )
            return rid

    def list_for_targets(self, targets):
        wanted = set(targets)
        return [t for t in self.s.t["tasks"].values() if t.target in wanted]

    def submitted_task_ids(self, *, student_id, task_ids):
        return {tid for tid in task_ids if (tid, int(student_id)) in self.s.t["task_records"]}


class MemoryOpen:
    def __init__(self, store: MemoryStore):
        self.s = store

    def create_developer(self, *, name, email, secret):
        if any(d.email == email for d in self.s.t["developers"].values()):
            raise DuplicateEntry("Email is already registered")
        dev = Developer(developer_id=self.s.next_id(), name=name, email=email, secret=secret)
        self.s.t["developers"][dev.developer_id] = dev
        return dev

    def get_developer_by_secret(self, secret):
        return next((d for d in self.s.t["developers"].values() if d.secret == secret), None)

    def create_app(self, app):
        self.s.t["apps"][app.app_id] = app

    def get_app(self, app_id):
        return self.s.t["apps"].get(app_id)


class RecordingSink:
    def __init__(self):
        self.delivered = []
        self.fail_for = set()

    def deliver(self, intent):
        if intent.target_id in self.fail_for:
            raise RuntimeError("push gateway down")
        self.delivered.append(intent)
        return True


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


REFERENCE_PERMISSIONS = {
    SUPER_ADMIN_ROLE: list(Permission),
    COUNSELOR_ROLE: [
        Permission.DEPT_CREATE,
        Permission.DEPT_LIST,
        Permission.LEAVE_APPROVE,
        Permission.DING_CREATE,
        Permission.STUDENT_LIST,
    ],
    TEACHER_ROLE: [Permission.CLASS_CREATE, Permission.DING_CREATE, Permission.STUDENT_LIST],
    STUDENT_ROLE: [Permission.DEPT_JOIN, Permission.CLASS_JOIN],
}


def seed(store: MemoryStore) -> None:
    t = store.t
    t["roles"] = {
        SUPER_ADMIN_ROLE: Role(SUPER_ADMIN_ROLE, "Super admin", "super_admin", DataScopePolicy.ALL.value),
        COUNSELOR_ROLE: Role(COUNSELOR_ROLE, "Counselor", "counselor", DataScopePolicy.DEPT_AND_SUB.value),
        TEACHER_ROLE: Role(TEACHER_ROLE, "Teacher", "teacher", DataScopePolicy.DEPT.value),
        STUDENT_ROLE: Role(STUDENT_ROLE, "Student", "student", DataScopePolicy.SELF.value),
    }
    t["role_permissions"] = {
        (role_id, p.value) for role_id, perms in REFERENCE_PERMISSIONS.items() for p in perms
    }
    # school(1) -> college(2) -> {major 3, major 4}; college(5) separate
    t["org_units"] = {
        1: OrgUnit(1, "School", "school", None),
        2: OrgUnit(2, "Computing", "college", 1),
        3: OrgUnit(3, "Software", "major", 2),
        4: OrgUnit(4, "Networks", "major", 2),
        5: OrgUnit(5, "Arts", "college", 1),
    }
    pw = generate_password_hash("secret123")
    people = [
        User(ADMIN, "Admin", "admin@unihub.local", pw, SUPER_ADMIN_ROLE, org_unit_id=1),
        User(COUNSELOR, "Counselor", "counselor@unihub.local", pw, COUNSELOR_ROLE, org_unit_id=2),
        User(OTHER_COUNSELOR, "Other counselor", "other@unihub.local", pw, COUNSELOR_ROLE, org_unit_id=5),
        User(TEACHER, "Teacher", "teacher@unihub.local", pw, TEACHER_ROLE, org_unit_id=3),
        User(101, "Ann", "ann@unihub.local", pw, STUDENT_ROLE, org_unit_id=3, student_no="S101"),
        User(102, "Bo", "bo@unihub.local", pw, STUDENT_ROLE, org_unit_id=4, student_no="S102"),
        User(103, "Cy", "cy@unihub.local", pw, STUDENT_ROLE, org_unit_id=3, student_no="S103"),
        User(104, "Di", "di@unihub.local", pw, STUDENT_ROLE, org_unit_id=5, student_no="S104"),
    ]
    t["users"] = {u.user_id: u for u in people}
    t["seq"] = 1000


class World:
    def __init__(self, *, code_generator=None):
        self.store = MemoryStore()
        seed(self.store)
        self.roles = MemoryRoles(self.store)
        self.users = MemoryUsers(self.store)
        self.org_repo = MemoryOrg(self.store)
        self.dings = MemoryDings(self.store)
        self.notifications_repo = MemoryNotifications(self.store)
        self.leaves_repo = MemoryLeaves(self.store)
        self.tasks_repo = MemoryTasks(self.store)
        self.open_repo = MemoryOpen(self.store)
        self.sink = RecordingSink()
        self.clock = FakeClock()

        self.resolver = PermissionResolver(self.roles)
        self.auth = AuthService(self.users)
        self.directory = StudentDirectory(self.users, self.resolver)
        extra = {"code_generator": code_generator} if code_generator else {}
        self.org = OrgMembershipService(
            self.org_repo, self.users, self.resolver, transaction=self.store.transaction, **extra
        )
        self.notifications = NotificationCenter(self.notifications_repo, self.org, self.sink)
        self.attendance = AttendanceOrchestrator(
            self.dings, self.org, self.notifications, self.resolver, transaction=self.store.transaction
        )
        self.policy = ReturnCheckInPolicy(
            offset=timedelta(minutes=60), geofence=Geofence(center=RETURN_POINT, radius_m=50.0)
        )
        self.leaves = LeaveWorkflow(
            self.leaves_repo, self.org_repo, self.attendance, self.resolver, self.policy,
            transaction=self.store.transaction,
        )
        self.tasks = TaskWorkflow(self.tasks_repo, self.org)
        self.admission = AdmissionControl(window_seconds=60, idle_ttl_seconds=600, shards=4, clock=self.clock)
        self.platform = OpenPlatform(self.open_repo, self.users, self.admission, default_rate_limit=3)

    # -------- Scenario helpers --------
    def department(self, owner=COUNSELOR, name="Software 2026"):
        return self.org.create_department(creator_id=owner, role_id=COUNSELOR_ROLE, name=name)

    def school_class(self, owner=TEACHER, name="Algorithms"):
        return self.org.create_class(creator_id=owner, role_id=TEACHER_ROLE, name=name)

    def enroll(self, dept, *student_ids):
        for sid in student_ids:
            self.org.join_department(student_id=sid, role_id=STUDENT_ROLE, invite_code=dept.invite_code)

    def enroll_class(self, klass, *student_ids):
        for sid in student_ids:
            self.org.join_class(student_id=sid, role_id=STUDENT_ROLE, invite_code=klass.invite_code)


@pytest.fixture
def world() -> World:
    return World()
