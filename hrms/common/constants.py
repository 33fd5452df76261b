"""Enums and constants for HRMS — matching PostgreSQL ENUM types."""

from __future__ import annotations

import enum
from typing import Optional


# ── Employee / Core HR ──────────────────────────────────────────────

class EmploymentStatus(str, enum.Enum):
    onboarding = "onboarding"
    active = "active"
    on_leave = "on_leave"
    suspended = "suspended"
    terminated = "terminated"


class EmploymentType(str, enum.Enum):
    full_time = "full_time"
    part_time = "part_time"
    contract = "contract"
    intern = "intern"


class PayRateType(str, enum.Enum):
    salary = "salary"
    hourly = "hourly"


# ── Auth / Roles ────────────────────────────────────────────────────

class UserRole(str, enum.Enum):
    admin = "admin"
    hr_manager = "hr_manager"
    department_manager = "department_manager"
    employee = "employee"

    @classmethod
    def parse(cls, value: Optional[str]) -> "UserRole":
        """Normalise any legacy role spelling into the four-tier enum.

        Unknown or empty values fall back to ``employee``.
        """
        if isinstance(value, cls):
            return value
        key = (value or "").strip().lower().replace("-", "_").replace(" ", "_")
        return _ROLE_ALIASES.get(key, cls.employee)


_ROLE_ALIASES: dict[str, UserRole] = {
    "admin": UserRole.admin,
    "administrator": UserRole.admin,
    "system_admin": UserRole.admin,
    "hr": UserRole.hr_manager,
    "hr_manager": UserRole.hr_manager,
    "hr_admin": UserRole.hr_manager,
    "manager": UserRole.department_manager,
    "department_manager": UserRole.department_manager,
    "department_head": UserRole.department_manager,
    "departmenthead": UserRole.department_manager,
    "employee": UserRole.employee,
}


# ── Leave ───────────────────────────────────────────────────────────

class LeaveStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    cancelled = "cancelled"
    completed = "completed"


class LeaveType(str, enum.Enum):
    vacation = "vacation"
    sick = "sick"
    personal = "personal"
    bereavement = "bereavement"
    jury_duty = "jury_duty"
    maternity = "maternity"
    paternity = "paternity"
    unpaid = "unpaid"
    other = "other"

    @property
    def label(self) -> str:
        """Human label, e.g. ``Jury Duty``; used in the attendance notes marker."""
        return self.value.replace("_", " ").title()


# ── Attendance ──────────────────────────────────────────────────────

class AttendanceStatus(str, enum.Enum):
    present = "present"
    absent = "absent"
    late = "late"
    half_day = "half_day"
    remote = "remote"
    on_leave = "on_leave"
    holiday = "holiday"
    # Leave-derived statuses written by the attendance sync
    leave = "leave"
    sick = "sick"
    vacation = "vacation"
    personal = "personal"
    excused = "excused"
    maternity = "maternity"
    unpaid = "unpaid"


LEAVE_ATTENDANCE_STATUSES: frozenset[AttendanceStatus] = frozenset({
    AttendanceStatus.leave,
    AttendanceStatus.sick,
    AttendanceStatus.vacation,
    AttendanceStatus.personal,
    AttendanceStatus.excused,
    AttendanceStatus.maternity,
    AttendanceStatus.unpaid,
    AttendanceStatus.on_leave,
})


# ── Compliance ──────────────────────────────────────────────────────

class ComplianceStatus(str, enum.Enum):
    valid = "valid"
    pending = "pending"
    expiring_soon = "expiring_soon"
    expired = "expired"


# ── Role-based permissions ──────────────────────────────────────────
#
# action → scope. Scopes: "own" (the actor's own employee record),
# "department" (records in the actor's department, own included),
# "all". Missing action means denied.

OWN = "own"
DEPARTMENT = "department"
ALL = "all"

PERMISSIONS: dict[UserRole, dict[str, str]] = {
    UserRole.employee: {
        "employee:read": OWN,
        "employee:update": OWN,
        "department:read": ALL,
        "attendance:read": OWN,
        "attendance:write": OWN,
        "leave:read": OWN,
        "leave:create": OWN,
        "leave:edit": OWN,
        "leave:cancel": OWN,
        "leave:delete": OWN,
        "compliance:read": OWN,
        "user:read": OWN,
        "user:update": OWN,
    },
    UserRole.department_manager: {
        "employee:read": DEPARTMENT,
        "employee:update": DEPARTMENT,
        "department:read": ALL,
        "attendance:read": DEPARTMENT,
        "attendance:write": DEPARTMENT,
        "leave:read": DEPARTMENT,
        "leave:create": DEPARTMENT,
        "leave:edit": DEPARTMENT,
        "leave:cancel": DEPARTMENT,
        "leave:approve": DEPARTMENT,
        "leave:delete": DEPARTMENT,
        "compliance:read": DEPARTMENT,
        "user:read": OWN,
        "user:update": OWN,
    },
    UserRole.hr_manager: {
        "employee:read": ALL,
        "employee:create": ALL,
        "employee:update": ALL,
        "employee:manage": ALL,
        "employee:delete": ALL,
        "department:read": ALL,
        "department:create": ALL,
        "department:update": ALL,
        "attendance:read": ALL,
        "attendance:write": ALL,
        "leave:read": ALL,
        "leave:create": ALL,
        "leave:edit": ALL,
        "leave:cancel": ALL,
        "leave:approve": ALL,
        "leave:delete": ALL,
        "leave_balance:write": ALL,
        "compliance:read": ALL,
        "compliance:read_sensitive": ALL,
        "compliance:write": ALL,
        "user:read": ALL,
        "user:update": ALL,
        "user:change_role": ALL,
    },
    UserRole.admin: {
        "employee:read": ALL,
        "employee:create": ALL,
        "employee:update": ALL,
        "employee:manage": ALL,
        "employee:delete": ALL,
        "department:read": ALL,
        "department:create": ALL,
        "department:update": ALL,
        "department:delete": ALL,
        "attendance:read": ALL,
        "attendance:write": ALL,
        "leave:read": ALL,
        "leave:create": ALL,
        "leave:edit": ALL,
        "leave:cancel": ALL,
        "leave:approve": ALL,
        "leave:delete": ALL,
        "leave_balance:write": ALL,
        "compliance:read": ALL,
        "compliance:read_sensitive": ALL,
        "compliance:write": ALL,
        "user:read": ALL,
        "user:update": ALL,
        "user:change_role": ALL,
        "user:delete": ALL,
    },
}

# Own-scoped grants on these actions only apply while the request is pending.
PENDING_ONLY_OWN_ACTIONS = frozenset({"leave:edit", "leave:cancel", "leave:delete"})

# ── Misc constants ──────────────────────────────────────────────────

LEAVE_MARKER_TEMPLATE = "(Leave Request #{leave_id})"
MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 50
