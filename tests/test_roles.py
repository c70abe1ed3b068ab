import pytest

from smokeboard.roles import (
    ADMIN,
    PARENT,
    POLICY,
    ROLES,
    STATE_DIRECTOR,
    STUDENT,
    TEACHER,
    has_permission,
    has_role,
    is_valid_role,
    load_permissions,
)


def test_admin_can_manage_everything():
    for permission in POLICY:
        if permission == "schools:request":
            continue
        assert has_permission(ADMIN, permission), permission


def test_teacher_can_create_but_not_delete_teams():
    assert has_permission(TEACHER, "teams:create")
    assert not has_permission(TEACHER, "teams:delete")


def test_everyone_can_view_events():
    assert all(has_permission(role, "events:view") for role in ROLES)


def test_state_director_reports():
    assert has_permission(STATE_DIRECTOR, "reports:state")
    assert not has_permission(STATE_DIRECTOR, "reports:own")


def test_missing_role_or_unknown_permission_is_denied():
    assert not has_permission(None, "events:view")
    assert not has_permission("", "events:view")
    assert not has_permission(ADMIN, "events:launch_rockets")


def test_has_role():
    assert has_role(STUDENT, [STUDENT, PARENT])
    assert not has_role(TEACHER, [STUDENT, PARENT])
    assert not has_role(None, [STUDENT])


def test_is_valid_role():
    assert is_valid_role("state_director")
    assert not is_valid_role("superuser")
    assert not is_valid_role(None)


def test_policy_with_unknown_role_is_rejected():
    with pytest.raises(ValueError):
        load_permissions({"events:create": ["admin", "janitor"]})
