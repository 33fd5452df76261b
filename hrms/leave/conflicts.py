"""Conflict detection for leave requests.

Two checks gate every create, date edit and approval:

* attendance: a day in range that already has a real workday logged
  (clock times, or a status that is not a leave placeholder)
* leave overlap: another pending/approved request whose dates intersect

Rows left behind by an earlier leave sync are placeholders and do not block,
so an approved leave can be edited across its own attendance rows.
"""

from __future__ import annotations

import uuid
from datetime import date
from typing import Any, Optional

from hrms.attendance.models import AttendanceRecord
from hrms.attendance.repository import AttendanceRepository
from hrms.common.constants import LEAVE_ATTENDANCE_STATUSES, AttendanceStatus, LeaveStatus
from hrms.common.dates import intervals_overlap
from hrms.common.exceptions import LeaveConflictError
from hrms.leave.models import LeaveRequest
from hrms.leave.repository import LeaveRepository

PLACEHOLDER_STATUSES = frozenset({AttendanceStatus.absent}) | LEAVE_ATTENDANCE_STATUSES

# Requests in these states hold their dates
BLOCKING_LEAVE_STATUSES = (LeaveStatus.pending, LeaveStatus.approved)


def is_conflicting_attendance(row: AttendanceRecord) -> bool:
    if row.time_in is not None or row.time_out is not None:
        return True
    return row.status not in PLACEHOLDER_STATUSES


async def find_attendance_conflicts(
    attendance_repo: AttendanceRepository,
    employee_id: uuid.UUID,
    start: date,
    end: date,
) -> list[AttendanceRecord]:
    rows = await attendance_repo.find(employee_id, start=start, end=end)
    return [row for row in rows if is_conflicting_attendance(row)]


async def find_leave_overlaps(
    leave_repo: LeaveRepository,
    employee_id: uuid.UUID,
    start: date,
    end: date,
    exclude_id: Optional[uuid.UUID] = None,
) -> list[LeaveRequest]:
    candidates = await leave_repo.find(employee_id, statuses=BLOCKING_LEAVE_STATUSES)
    return [
        leave for leave in candidates
        if leave.id != exclude_id
        and intervals_overlap(start, end, leave.start_date, leave.end_date)
    ]


# ── Serialisation for the 409 body ──────────────────────────────────

def _attendance_summary(row: AttendanceRecord) -> dict[str, Any]:
    return {
        "id": str(row.id),
        "date": row.date.isoformat(),
        "status": AttendanceStatus(row.status).value,
        "time_in": row.time_in.isoformat() if row.time_in else None,
        "time_out": row.time_out.isoformat() if row.time_out else None,
        "notes": row.notes,
    }


def _leave_summary(leave: LeaveRequest) -> dict[str, Any]:
    return {
        "id": str(leave.id),
        "leave_type": leave.leave_type.value,
        "status": leave.status.value,
        "start_date": leave.start_date.isoformat(),
        "end_date": leave.end_date.isoformat(),
    }


class ConflictDetector:
    """Runs both checks; raises ``LeaveConflictError`` on the first that fails."""

    def __init__(
        self,
        attendance_repo: AttendanceRepository,
        leave_repo: LeaveRepository,
    ) -> None:
        self.attendance_repo = attendance_repo
        self.leave_repo = leave_repo

    async def ensure_admissible(
        self,
        employee_id: uuid.UUID,
        start: date,
        end: date,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        attendance = await find_attendance_conflicts(
            self.attendance_repo, employee_id, start, end,
        )
        if attendance:
            raise LeaveConflictError(
                f"Attendance is already recorded on {len(attendance)} day(s) in this range.",
                [_attendance_summary(row) for row in attendance],
                kind="attendance",
            )

        overlaps = await find_leave_overlaps(
            self.leave_repo, employee_id, start, end, exclude_id=exclude_id,
        )
        if overlaps:
            raise LeaveConflictError(
                "A pending or approved leave request already covers some of these dates.",
                [_leave_summary(leave) for leave in overlaps],
                kind="leave-overlap",
            )

