"""Access-control policy, role normalisation and the leave state machine."""

from __future__ import annotations

import uuid

import pytest

from hrms.auth.policy import (
    Resource,
    can,
    can_change_role,
    can_view_sensitive_compliance,
    require,
)
from hrms.auth.schemas import Actor
from hrms.common.constants import LeaveStatus, UserRole
from hrms.common.exceptions import ForbiddenException, ValidationException
from hrms.leave.state_machine import action_for_transition, ensure_transition, is_reversal

DEPT_A = uuid.uuid4()
DEPT_B = uuid.uuid4()


def _actor(role: UserRole, department_id=DEPT_A) -> Actor:
    return Actor(
        id=uuid.uuid4(),
        role=role,
        employee_id=uuid.uuid4(),
        department_id=department_id,
        name=f"{role.value} user",
    )


# ═════════════════════════════════════════════════════════════════════
# Role normalisation
# ═════════════════════════════════════════════════════════════════════


class TestUserRoleParse:

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("Admin", UserRole.admin),
            ("hr", UserRole.hr_manager),
            ("HR Manager", UserRole.hr_manager),
            ("Manager", UserRole.department_manager),
            ("department_head", UserRole.department_manager),
            ("Employee", UserRole.employee),
            ("", UserRole.employee),
            (None, UserRole.employee),
            ("intern", UserRole.employee),
        ],
    )
    def test_legacy_spellings(self, raw, expected):
        assert UserRole.parse(raw) == expected


# ═════════════════════════════════════════════════════════════════════
# can()
# ═════════════════════════════════════════════════════════════════════


class TestScopes:

    def test_employee_reads_own_leave_only(self):
        actor = _actor(UserRole.employee)
        own = Resource(employee_id=actor.employee_id, department_id=DEPT_A)
        other = Resource(employee_id=uuid.uuid4(), department_id=DEPT_A)
        assert can(actor, "leave:read", own)
        assert not can(actor, "leave:read", other)

    def test_employee_never_approves(self):
        actor = _actor(UserRole.employee)
        own = Resource(employee_id=actor.employee_id, status=LeaveStatus.pending)
        assert not can(actor, "leave:approve", own)

    def test_own_cancel_only_while_pending(self):
        actor = _actor(UserRole.employee)
        pending = Resource(employee_id=actor.employee_id, status=LeaveStatus.pending)
        approved = Resource(employee_id=actor.employee_id, status=LeaveStatus.approved)
        assert can(actor, "leave:cancel", pending)
        assert not can(actor, "leave:cancel", approved)
        assert not can(actor, "leave:edit", approved)
        assert not can(actor, "leave:delete", approved)

    def test_manager_scoped_to_department(self):
        actor = _actor(UserRole.department_manager)
        inside = Resource(employee_id=uuid.uuid4(), department_id=DEPT_A)
        outside = Resource(employee_id=uuid.uuid4(), department_id=DEPT_B)
        assert can(actor, "leave:approve", inside)
        assert not can(actor, "leave:approve", outside)

    def test_manager_department_grant_ignores_pending_rule(self):
        actor = _actor(UserRole.department_manager)
        approved = Resource(
            employee_id=uuid.uuid4(), department_id=DEPT_A, status=LeaveStatus.approved,
        )
        assert can(actor, "leave:delete", approved)

    def test_manager_without_department_sees_only_own(self):
        actor = _actor(UserRole.department_manager, department_id=None)
        assert can(actor, "leave:read", Resource(employee_id=actor.employee_id))
        assert not can(actor, "leave:read", Resource(employee_id=uuid.uuid4()))

    def test_hr_has_all_scope(self):
        actor = _actor(UserRole.hr_manager)
        assert can(actor, "leave:approve", Resource(employee_id=uuid.uuid4(), department_id=DEPT_B))
        assert can(actor, "leave:approve")

    @pytest.mark.parametrize(
        "role", [UserRole.admin, UserRole.hr_manager, UserRole.department_manager],
    )
    def test_approvers_may_approve_their_own_leave(self, role):
        actor = _actor(role)
        own = Resource(employee_id=actor.employee_id, department_id=actor.department_id)
        assert can(actor, "leave:approve", own)

    def test_balance_writes_are_hr_and_admin_only(self):
        assert can(_actor(UserRole.admin), "leave_balance:write")
        assert can(_actor(UserRole.hr_manager), "leave_balance:write")
        manager = _actor(UserRole.department_manager)
        in_dept = Resource(employee_id=uuid.uuid4(), department_id=manager.department_id)
        assert not can(manager, "leave_balance:write", in_dept)
        assert not can(_actor(UserRole.employee), "leave_balance:write")

    def test_department_delete_is_admin_only(self):
        assert can(_actor(UserRole.admin), "department:delete")
        assert not can(_actor(UserRole.hr_manager), "department:delete")

    def test_scoped_grant_without_resource_is_denied(self):
        assert not can(_actor(UserRole.employee), "leave:read")

    def test_require_raises_forbidden(self):
        with pytest.raises(ForbiddenException):
            require(_actor(UserRole.employee), "compliance:write")


class TestExtraPredicates:

    def test_sensitive_compliance(self):
        assert can_view_sensitive_compliance(_actor(UserRole.admin))
        assert can_view_sensitive_compliance(_actor(UserRole.hr_manager))
        assert not can_view_sensitive_compliance(_actor(UserRole.department_manager))
        assert not can_view_sensitive_compliance(_actor(UserRole.employee))

    def test_admin_changes_any_role(self):
        admin = _actor(UserRole.admin)
        assert can_change_role(admin, uuid.uuid4(), UserRole.employee, UserRole.admin)

    def test_hr_cannot_grant_admin(self):
        hr = _actor(UserRole.hr_manager)
        assert not can_change_role(hr, uuid.uuid4(), UserRole.employee, UserRole.admin)

    def test_hr_cannot_demote_admin(self):
        hr = _actor(UserRole.hr_manager)
        assert not can_change_role(hr, uuid.uuid4(), UserRole.admin, UserRole.employee)

    def test_hr_cannot_change_own_role(self):
        hr = _actor(UserRole.hr_manager)
        assert not can_change_role(hr, hr.id, UserRole.hr_manager, UserRole.employee)

    def test_hr_changes_other_non_admin_roles(self):
        hr = _actor(UserRole.hr_manager)
        assert can_change_role(
            hr, uuid.uuid4(), UserRole.employee, UserRole.department_manager,
        )

    def test_manager_cannot_change_roles(self):
        mgr = _actor(UserRole.department_manager)
        assert not can_change_role(mgr, uuid.uuid4(), UserRole.employee, UserRole.employee)


# ═════════════════════════════════════════════════════════════════════
# Leave state machine
# ═════════════════════════════════════════════════════════════════════


class TestStateMachine:

    @pytest.mark.parametrize(
        "current, new, action",
        [
            (LeaveStatus.pending, LeaveStatus.approved, "leave:approve"),
            (LeaveStatus.pending, LeaveStatus.rejected, "leave:approve"),
            (LeaveStatus.pending, LeaveStatus.cancelled, "leave:cancel"),
            (LeaveStatus.approved, LeaveStatus.rejected, "leave:approve"),
            (LeaveStatus.approved, LeaveStatus.cancelled, "leave:approve"),
        ],
    )
    def test_allowed_transitions(self, current, new, action):
        assert action_for_transition(current, new) == action

    @pytest.mark.parametrize(
        "current, new",
        [
            (LeaveStatus.rejected, LeaveStatus.approved),
            (LeaveStatus.cancelled, LeaveStatus.pending),
            (LeaveStatus.approved, LeaveStatus.pending),
            (LeaveStatus.pending, LeaveStatus.completed),
            (LeaveStatus.pending, LeaveStatus.pending),
        ],
    )
    def test_rejected_transitions(self, current, new):
        with pytest.raises(ValidationException):
            ensure_transition(current, new)

    def test_reversal(self):
        assert is_reversal(LeaveStatus.approved, LeaveStatus.cancelled)
        assert is_reversal(LeaveStatus.approved, LeaveStatus.rejected)
        assert not is_reversal(LeaveStatus.pending, LeaveStatus.cancelled)
