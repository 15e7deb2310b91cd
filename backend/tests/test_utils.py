"""
Tests for shared helpers and permission checks
"""
from uuid import uuid4

import pytest

from quimica.core.permissions import (Permission, ensure_owner,
                                      has_permission, is_admin, owns)
from quimica.core.utils import (average, format_time, parse_id, percentage,
                                round_half_up)
from quimica.models.user import User, UserRole


def test_parse_id_accepts_numbers_and_numeric_strings():
    assert parse_id(12) == 12
    assert parse_id("12") == 12
    assert parse_id(" 7 ") == 7
    assert parse_id("3.0") == 3
    assert parse_id(4.0) == 4


@pytest.mark.parametrize("value", [None, "", "abc", "inf", "nan", True, 4.9, "3.9"])
def test_parse_id_rejects_non_ids(value):
    assert parse_id(value) is None


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(3.5) == 4
    assert round_half_up(2.4) == 2
    assert round_half_up(0.125, 2) == 0.13
    assert round_half_up(66.666, 2) == 66.67


def test_percentage():
    assert percentage(1, 3) == 33
    assert percentage(2, 3) == 67
    assert percentage(1, 2) == 50
    assert percentage(3, 3) == 100
    assert percentage(0, 0) == 0


def test_format_time():
    assert format_time(3909) == "1:05:09"
    assert format_time(247) == "4:07"
    assert format_time(59.9) == "0:59"
    assert format_time(0) == "0:00"


@pytest.mark.parametrize("value", [None, -5, float("nan"), float("inf"), "soon"])
def test_format_time_invalid_values(value):
    assert format_time(value) == "0:00"


def test_average():
    assert average([]) == 0.0
    assert average([1, 2]) == 1.5
    assert average(x for x in (10, 20, 30)) == 20


def _user(role):
    return User(id=uuid4(), email=f"{role}@example.com", role=role)


def test_role_permissions():
    student = _user(UserRole.STUDENT.value)
    teacher = _user(UserRole.TEACHER.value)
    admin = _user(UserRole.ADMIN.value)

    assert has_permission(student, Permission.QUIZ_TAKE)
    assert not has_permission(student, Permission.QUIZ_MANAGE)
    assert not has_permission(student, Permission.PERFORMANCE_VIEW)

    assert has_permission(teacher, Permission.LESSON_MANAGE)
    assert has_permission(teacher, Permission.MODEL_GENERATE)
    assert not has_permission(teacher, Permission.USER_MANAGE)

    for permission in (Permission.USER_MANAGE, Permission.QUIZ_MANAGE, Permission.SYSTEM_CONFIG):
        assert has_permission(admin, permission)

    assert not has_permission(None, Permission.LESSON_VIEW)


def test_ownership():
    teacher = _user(UserRole.TEACHER.value)
    admin = _user(UserRole.ADMIN.value)

    assert owns(teacher, teacher.id)
    assert not owns(teacher, uuid4())
    assert not owns(teacher, None)
    assert owns(admin, uuid4())
    assert is_admin(admin) and not is_admin(teacher)

    ensure_owner(teacher, teacher.id, "lesson")
    with pytest.raises(PermissionError, match="lesson"):
        ensure_owner(teacher, uuid4(), "lesson")
