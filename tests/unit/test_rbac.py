"""Tests for roles and permission checks."""

import pytest

from safework.core.rbac import (
    ROLE_HIERARCHY,
    ActorContext,
    PermissionChecker,
    Role,
    can_decide_step,
    can_manage_session,
    get_role_display_name,
    has_role,
    parse_role,
)
from safework.models import ApprovalStep

from tests.factories import make_actor, make_session


class TestRoles:
    """Test role definitions and hierarchy."""

    def test_hierarchy_order(self):
        assert ROLE_HIERARCHY[Role.FIELD_WORKER] < ROLE_HIERARCHY[Role.SUPERVISOR]
        assert ROLE_HIERARCHY[Role.SUPERVISOR] < ROLE_HIERARCHY[Role.SAFETY_MANAGER]
        assert ROLE_HIERARCHY[Role.SAFETY_MANAGER] < ROLE_HIERARCHY[Role.ADMIN]

    @pytest.mark.parametrize("actual,required,expected", [
        (Role.ADMIN, Role.FIELD_WORKER, True),
        (Role.SAFETY_MANAGER, Role.SAFETY_MANAGER, True),
        (Role.SUPERVISOR, Role.SAFETY_MANAGER, False),
        ("field_worker", "supervisor", False),
        ("unknown", Role.FIELD_WORKER, False),
        (None, Role.FIELD_WORKER, False),
    ])
    def test_has_role(self, actual, required, expected):
        assert has_role(actual, required) is expected

    def test_parse_role(self):
        assert parse_role("safety_manager") == Role.SAFETY_MANAGER
        assert parse_role(Role.ADMIN) == Role.ADMIN
        assert parse_role("root") is None
        assert parse_role(None) is None

    def test_display_name(self):
        assert get_role_display_name(Role.SAFETY_MANAGER)
        assert isinstance(get_role_display_name("field_worker"), str)


class TestDecideStep:
    """Approval rights: admin, exact role, or explicit approver."""

    def step(self, role=Role.SUPERVISOR, approvers=None):
        return ApprovalStep(step_number=1, required_role=role, approvers=approvers or [])

    def test_exact_role(self):
        assert can_decide_step(make_actor(Role.SUPERVISOR), self.step())

    def test_higher_role_is_not_an_approver(self):
        assert not can_decide_step(make_actor(Role.SAFETY_MANAGER), self.step())

    def test_admin(self):
        assert can_decide_step(make_actor(Role.ADMIN), self.step())

    def test_listed_approver(self):
        actor = make_actor(Role.FIELD_WORKER)
        assert can_decide_step(actor, self.step(approvers=[actor.actor_id]))

    def test_missing_step_denies(self):
        assert not PermissionChecker(make_actor(Role.ADMIN)).can_decide_step(None)

    def test_empty_actor_id_is_not_an_approver(self):
        actor = ActorContext(actor_id="", role=Role.FIELD_WORKER, organization_id="org-1")
        assert not can_decide_step(actor, self.step(approvers=[""]))


class TestManageSession:
    """LMRA rights: performer, or safety manager and above."""

    def test_performer(self):
        actor = make_actor(Role.FIELD_WORKER)
        assert can_manage_session(actor, make_session(performed_by=actor.actor_id))

    @pytest.mark.parametrize("role,expected", [
        (Role.FIELD_WORKER, False),
        (Role.SUPERVISOR, False),
        (Role.SAFETY_MANAGER, True),
        (Role.ADMIN, True),
    ])
    def test_other_users(self, role, expected):
        assert can_manage_session(make_actor(role), make_session(performed_by="someone-else")) is expected

    def test_actor_name_fallback(self):
        actor = ActorContext(actor_id="u1", role=Role.FIELD_WORKER, organization_id="org-1")
        assert actor.name == "unknown"
        assert not actor.is_admin
