"""Leave request lifecycle.

    pending  -> approved | rejected | cancelled
    approved -> rejected | cancelled

``completed`` is only ever set by batch processes and has no user transitions.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from hrms.auth.schemas import Actor
from hrms.common.constants import LeaveStatus
from hrms.common.exceptions import ValidationException
from hrms.leave.models import LeaveRequest

TRANSITIONS: dict[LeaveStatus, frozenset[LeaveStatus]] = {
    LeaveStatus.pending: frozenset({
        LeaveStatus.approved,
        LeaveStatus.rejected,
        LeaveStatus.cancelled,
    }),
    LeaveStatus.approved: frozenset({LeaveStatus.rejected, LeaveStatus.cancelled}),
    LeaveStatus.rejected: frozenset(),
    LeaveStatus.cancelled: frozenset(),
    LeaveStatus.completed: frozenset(),
}

# Statuses whose dates may still be edited
EDITABLE_STATUSES = frozenset({LeaveStatus.pending, LeaveStatus.approved})


def ensure_transition(current: LeaveStatus, new: LeaveStatus) -> None:
    if new == current:
        raise ValidationException({"status": [f"Leave request is already {current.value}."]})
    if new not in TRANSITIONS.get(current, frozenset()):
        raise ValidationException(
            {"status": [f"Cannot change a {current.value} leave request to {new.value}."]}
        )


def action_for_transition(current: LeaveStatus, new: LeaveStatus) -> str:
    """Policy action guarding ``current -> new``.

    Cancelling a pending request is the owner's call; revoking an approved
    one is an approver's.
    """
    ensure_transition(current, new)
    if new == LeaveStatus.cancelled and current == LeaveStatus.pending:
        return "leave:cancel"
    return "leave:approve"


def is_reversal(current: LeaveStatus, new: LeaveStatus) -> bool:
    return current == LeaveStatus.approved and new in (
        LeaveStatus.rejected, LeaveStatus.cancelled,
    )


def stamp_approval(
    leave: LeaveRequest,
    actor: Actor,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> None:
    leave.approved_by_id = actor.id
    leave.approver_name = actor.name
    leave.approved_at = now or datetime.now(timezone.utc)
    if notes is not None:
        leave.approver_notes = notes
