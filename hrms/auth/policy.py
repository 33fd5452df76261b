"""Access-control policy — pure predicates over (actor, action, resource).

Every service asks ``can()`` (or ``require()``) before it writes. Grants come
from ``PERMISSIONS`` in ``hrms.common.constants``: each role maps an action
to a scope.

* ``own``        the resource belongs to the actor's employee record
                 (or, for user records, is the actor's own user row)
* ``department`` the resource sits in the actor's department, or is own
* ``all``        always

Own-scoped grants on ``leave:edit`` / ``leave:cancel`` / ``leave:delete``
hold only while the leave request is still pending.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Any, Optional

from hrms.auth.schemas import Actor
from hrms.common.constants import (
    ALL,
    DEPARTMENT,
    OWN,
    PENDING_ONLY_OWN_ACTIONS,
    PERMISSIONS,
    LeaveStatus,
    UserRole,
)
from hrms.common.exceptions import ForbiddenException


@dataclass(frozen=True)
class Resource:
    """What an action targets, reduced to the fields the policy looks at."""

    employee_id: Optional[uuid.UUID] = None
    department_id: Optional[uuid.UUID] = None
    status: Any = None
    user_id: Optional[uuid.UUID] = None


def _is_own(actor: Actor, resource: Resource) -> bool:
    if resource.user_id is not None and resource.user_id == actor.id:
        return True
    return (
        actor.employee_id is not None
        and resource.employee_id is not None
        and resource.employee_id == actor.employee_id
    )


def _in_department(actor: Actor, resource: Resource) -> bool:
    return (
        actor.department_id is not None
        and resource.department_id is not None
        and resource.department_id == actor.department_id
    )


def scope_for(actor: Actor, action: str) -> Optional[str]:
    """The scope *actor*'s role holds for *action*, or ``None`` when denied."""
    return PERMISSIONS.get(actor.role, {}).get(action)


def can(actor: Actor, action: str, resource: Optional[Resource] = None) -> bool:
    scope = scope_for(actor, action)
    if scope is None:
        return False
    if scope == ALL:
        return True
    if resource is None:
        return False

    own = _is_own(actor, resource)
    if scope == OWN:
        if not own:
            return False
        if action in PENDING_ONLY_OWN_ACTIONS:
            return resource.status == LeaveStatus.pending
        return True
    if scope == DEPARTMENT:
        return own or _in_department(actor, resource)
    return False


def require(
    actor: Actor,
    action: str,
    resource: Optional[Resource] = None,
    detail: Optional[str] = None,
) -> None:
    """Raise ``ForbiddenException`` unless ``can(actor, action, resource)``."""
    if not can(actor, action, resource):
        raise ForbiddenException(
            detail=detail or f"Role '{actor.role.value}' may not perform '{action}' on this record.",
        )


# ── Extra predicates ────────────────────────────────────────────────

def can_view_sensitive_compliance(actor: Actor) -> bool:
    return can(actor, "compliance:read_sensitive")


def can_change_role(
    actor: Actor,
    target_user_id: uuid.UUID,
    target_role: UserRole,
    new_role: UserRole,
) -> bool:
    """Admins change any role; HR managers change non-admin roles of others
    and never grant admin."""
    if not can(actor, "user:change_role"):
        return False
    if actor.role == UserRole.admin:
        return True
    return (
        target_role != UserRole.admin
        and new_role != UserRole.admin
        and target_user_id != actor.id
    )
