"""Attendance sync — materialise and retract attendance rows for leave.

An approved leave owns one attendance row per calendar day in its range,
weekends included. Each row carries ``source_leave_id`` and a notes marker
of the form ``"<Leave Type> (Leave Request #<id>)"``; retraction matches
either, and never touches rows that have neither.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession

from hrms.attendance.models import AttendanceRecord
from hrms.attendance.repository import AttendanceRepository
from hrms.common.constants import (
    LEAVE_MARKER_TEMPLATE,
    AttendanceStatus,
    LeaveStatus,
    LeaveType,
)
from hrms.common.dates import date_range
from hrms.common.exceptions import NotFoundException
from hrms.leave.models import LeaveRequest
from hrms.leave.repository import LeaveRepository

logger = logging.getLogger(__name__)

STATUS_BY_LEAVE_TYPE: dict[LeaveType, AttendanceStatus] = {
    LeaveType.sick: AttendanceStatus.sick,
    LeaveType.vacation: AttendanceStatus.vacation,
    LeaveType.personal: AttendanceStatus.personal,
    LeaveType.bereavement: AttendanceStatus.excused,
    LeaveType.maternity: AttendanceStatus.maternity,
    LeaveType.paternity: AttendanceStatus.maternity,
    LeaveType.unpaid: AttendanceStatus.unpaid,
}


def attendance_status_for(leave_type: LeaveType) -> AttendanceStatus:
    return STATUS_BY_LEAVE_TYPE.get(leave_type, AttendanceStatus.leave)


def leave_marker(leave_id: uuid.UUID) -> str:
    """``(Leave Request #<id>)`` — the substring retraction searches for."""
    return LEAVE_MARKER_TEMPLATE.format(leave_id=leave_id)


def notes_for(leave: LeaveRequest) -> str:
    return f"{LeaveType(leave.leave_type).label} {leave_marker(leave.id)}"


class AttendanceSyncEngine:
    """Runs inside the caller's transaction; flushes but never commits."""

    def __init__(self, session: AsyncSession) -> None:
        self.attendance = AttendanceRepository(session)
        self.leaves = LeaveRepository(session)

    async def sync_attendance_with_leave(self, leave_id: uuid.UUID) -> list[AttendanceRecord]:
        """Upsert one row per day of an approved leave. Idempotent.

        Returns an empty list when the leave is not approved.
        """
        leave = await self.leaves.get(leave_id)
        if leave is None:
            raise NotFoundException("LeaveRequest", str(leave_id))
        if leave.status != LeaveStatus.approved:
            logger.debug("Leave request %s is %s; nothing to sync", leave.id, leave.status.value)
            return []

        status = attendance_status_for(leave.leave_type)
        notes = notes_for(leave)
        records = []
        for day in date_range(leave.start_date, leave.end_date):
            records.append(
                await self.attendance.upsert(
                    leave.employee_id,
                    day,
                    time_in=None,
                    time_out=None,
                    total_hours=None,
                    status=status,
                    notes=notes,
                    source_leave_id=leave.id,
                )
            )

        logger.info("Synced %d attendance records for leave request %s", len(records), leave.id)
        return records

    async def remove_attendance_for_leave(
        self,
        leave_id: uuid.UUID,
        employee_id: uuid.UUID,
        start_date: date,
        end_date: date,
    ) -> int:
        """Delete the in-range rows this leave produced; returns how many."""
        rows = await self.attendance.find_leave_artifacts(
            leave_id, leave_marker(leave_id), employee_id, start_date, end_date,
        )
        removed = await self.attendance.delete(rows)
        logger.info("Removed %d attendance records for leave request %s", removed, leave_id)
        return removed
