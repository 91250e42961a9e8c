from __future__ import annotations

import threading

import pytest

from unihub.core.enums import GroupKind, TargetType
from unihub.core.exceptions import (
    AlreadyMember,
    Conflict,
    Forbidden,
    InvalidCode,
    PermissionDenied,
    SingleDepartmentViolation,
    ValidationError,
)
from unihub.org.model import Target

from conftest import COUNSELOR, COUNSELOR_ROLE, OTHER_COUNSELOR, STUDENT_ROLE, TEACHER, TEACHER_ROLE, World


def test_create_department_issues_eight_letter_code(world):
    dept = world.department()
    assert len(dept.invite_code) == 8
    assert dept.invite_code.isalpha() and dept.invite_code.isupper()
    assert dept.counselor_id == COUNSELOR


def test_create_requires_permission(world):
    with pytest.raises(PermissionDenied):
        world.org.create_department(creator_id=TEACHER, role_id=TEACHER_ROLE, name="Nope")
    with pytest.raises(PermissionDenied):
        world.org.create_class(creator_id=COUNSELOR, role_id=COUNSELOR_ROLE, name="Nope")
    with pytest.raises(ValidationError):
        world.org.create_department(creator_id=COUNSELOR, role_id=COUNSELOR_ROLE, name="  ")


def test_invite_code_collisions_are_retried_across_groups():
    codes = iter(["AAAAAAAA", "AAAAAAAA", "BBBBBBBB"])
    w = World(code_generator=lambda: next(codes))

    dept = w.department()
    klass = w.school_class()

    assert dept.invite_code == "AAAAAAAA"
    assert klass.invite_code == "BBBBBBBB"


def test_invite_code_gives_up_after_bounded_attempts():
    w = World(code_generator=lambda: "ZZZZZZZZ")
    w.department()
    with pytest.raises(Conflict):
        w.department(name="Second")


def test_join_department_updates_membership_and_cached_pointer(world):
    dept = world.department()
    joined = world.org.join_department(student_id=101, role_id=STUDENT_ROLE, invite_code=dept.invite_code.lower())

    assert joined.dept_id == dept.dept_id
    assert world.org_repo.get_student_department_id(101) == dept.dept_id
    assert world.users.get_by_id(101).department_id == dept.dept_id


def test_join_department_errors(world):
    dept = world.department()
    other = world.department(owner=OTHER_COUNSELOR, name="Arts")
    world.enroll(dept, 101)

    with pytest.raises(InvalidCode):
        world.org.join_department(student_id=102, role_id=STUDENT_ROLE, invite_code="QQQQQQQQ")
    with pytest.raises(AlreadyMember):
        world.enroll(dept, 101)
    with pytest.raises(SingleDepartmentViolation):
        world.enroll(other, 101)
    with pytest.raises(PermissionDenied):
        world.org.join_department(student_id=COUNSELOR, role_id=COUNSELOR_ROLE, invite_code=dept.invite_code)


def test_failed_pointer_update_rolls_back_membership(world, monkeypatch):
    dept = world.department()

    def broken(user_id, department_id):
        raise RuntimeError("lost connection")

    monkeypatch.setattr(world.users, "set_department", broken)
    with pytest.raises(RuntimeError):
        world.enroll(dept, 101)

    assert world.org_repo.get_student_department_id(101) is None


def test_concurrent_joins_leave_at_most_one_department(world):
    depts = [world.department(name=f"D{i}") for i in range(6)]
    outcomes = []
    barrier = threading.Barrier(len(depts))

    def join(dept):
        barrier.wait()
        try:
            world.enroll(dept, 103)
            outcomes.append("ok")
        except SingleDepartmentViolation:
            outcomes.append("rejected")

    threads = [threading.Thread(target=join, args=(d,)) for d in depts]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert outcomes.count("ok") == 1
    assert outcomes.count("rejected") == len(depts) - 1
    assert list(world.store.t["student_departments"]).count(103) == 1


def test_classes_have_no_cardinality_cap(world):
    a = world.school_class(name="A")
    b = world.school_class(name="B")
    world.enroll_class(a, 101)
    world.enroll_class(b, 101)

    assert world.org_repo.get_student_class_ids(101) == sorted([a.class_id, b.class_id])
    with pytest.raises(AlreadyMember):
        world.enroll_class(a, 101)


def test_list_managed_and_members(world):
    dept = world.department()
    world.department(owner=OTHER_COUNSELOR, name="Arts")
    world.enroll(dept, 101, 102)

    managed = world.org.list_managed(owner_id=COUNSELOR, kind=GroupKind.DEPARTMENT)
    assert [d.dept_id for d in managed] == [dept.dept_id]

    members = world.org.list_members(owner_id=COUNSELOR, kind=GroupKind.DEPARTMENT, group_id=dept.dept_id)
    assert sorted(s.user_id for s in members["students"]) == [101, 102]

    with pytest.raises(Forbidden):
        world.org.list_members(owner_id=OTHER_COUNSELOR, kind=GroupKind.DEPARTMENT, group_id=dept.dept_id)


def test_resolve_students_is_sorted_and_verified(world):
    dept = world.department()
    world.enroll(dept, 103, 101)

    assert world.org.resolve_students(Target(TargetType.DEPARTMENT, dept.dept_id)) == [101, 103]
    assert world.org.resolve_students(Target.student(102)) == [102]
    # Not a student
    assert world.org.resolve_students(Target.student(COUNSELOR)) == []


def test_target_requires_exactly_one_group():
    assert Target.of(class_id=4) == Target(TargetType.CLASS, 4)
    with pytest.raises(ValidationError):
        Target.of(department_id=1, class_id=2)
    with pytest.raises(ValidationError):
        Target.of()
    assert Target.from_payload({"target_type": "dept", "target_id": "7"}) == Target(TargetType.DEPARTMENT, 7)
    with pytest.raises(ValidationError):
        Target.from_payload({"target_type": "galaxy", "target_id": 1})


@pytest.mark.parametrize(
    "payload",
    [
        {"target_type": "dept", "target_id": -1},
        {"target_type": "class", "target_id": 0},
        {"target_type": "student", "target_id": "abc"},
        {"target_type": "student"},
        {"student_id": -5},
        {"class_id": True},
    ],
)
def test_target_ids_must_be_positive(payload):
    with pytest.raises(ValidationError):
        Target.from_payload(payload)
