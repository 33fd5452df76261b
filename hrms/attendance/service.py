"""Attendance service layer — manual logging, listing and period summaries.

Rows produced by approved leave are written by ``hrms.leave.sync``; this
module only handles days logged by people.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, time, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.attendance.models import AttendanceRecord
from hrms.attendance.repository import AttendanceRepository
from hrms.attendance.schemas import AttendanceCreate, AttendanceOut, AttendanceSummary
from hrms.auth.policy import require, scope_for
from hrms.auth.schemas import Actor
from hrms.common.constants import (
    ALL,
    DEPARTMENT,
    LEAVE_ATTENDANCE_STATUSES,
    OWN,
    AttendanceStatus,
)
from hrms.common.dates import working_days_between
from hrms.common.exceptions import ConflictError, ForbiddenException, ValidationException
from hrms.common.pagination import PaginatedResponse, PaginationParams, paginate
from hrms.core_hr.models import Employee
from hrms.core_hr.service import employee_resource, load_employee

logger = logging.getLogger(__name__)

_TWO_PLACES = Decimal("0.01")


def calculate_total_hours(time_in: Optional[time], time_out: Optional[time]) -> Optional[Decimal]:
    """Hours between clock-in and clock-out, rounded to 2 places.

    A clock-out earlier than the clock-in is taken to be after midnight.
    """
    if time_in is None or time_out is None:
        return None
    anchor = date(2000, 1, 1)
    start = datetime.combine(anchor, time_in)
    end = datetime.combine(anchor, time_out)
    if end < start:
        end += timedelta(days=1)
    hours = Decimal((end - start).total_seconds()) / Decimal(3600)
    return hours.quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)


class AttendanceService:
    """Async attendance operations."""

    @staticmethod
    async def log_attendance(
        db: AsyncSession,
        actor: Actor,
        data: AttendanceCreate,
    ) -> AttendanceOut:
        employee_id = data.employee_id or actor.employee_id
        if employee_id is None:
            raise ValidationException({"employee_id": ["Employee ID is required."]})

        employee = await load_employee(db, employee_id)
        require(
            actor, "attendance:write", employee_resource(employee),
            "You can only log attendance for yourself or your department.",
        )

        repo = AttendanceRepository(db)
        if await repo.get_for_day(employee_id, data.date) is not None:
            raise ConflictError("date", data.date.isoformat())

        record = await repo.add(
            AttendanceRecord(
                employee_id=employee_id,
                date=data.date,
                time_in=data.time_in,
                time_out=data.time_out,
                status=data.status,
                notes=data.notes,
                total_hours=calculate_total_hours(data.time_in, data.time_out),
            )
        )
        logger.info(
            "Attendance logged for employee %s on %s (%s) by %s",
            employee_id, data.date, data.status.value, actor.id,
        )
        return AttendanceOut.model_validate(record)

    @staticmethod
    async def list_attendance(
        db: AsyncSession,
        actor: Actor,
        pagination: PaginationParams,
        *,
        employee_id: Optional[uuid.UUID] = None,
        status: Optional[AttendanceStatus] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> PaginatedResponse:
        scope = scope_for(actor, "attendance:read")
        query = select(AttendanceRecord).order_by(AttendanceRecord.date.desc())

        if scope == OWN:
            query = query.where(AttendanceRecord.employee_id == actor.employee_id)
        elif scope == DEPARTMENT:
            dept_members = select(Employee.id).where(
                Employee.department_id == actor.department_id
            )
            query = query.where(
                or_(
                    AttendanceRecord.employee_id.in_(dept_members),
                    AttendanceRecord.employee_id == actor.employee_id,
                )
            )
        elif scope != ALL:
            raise ForbiddenException()

        if employee_id is not None:
            query = query.where(AttendanceRecord.employee_id == employee_id)
        if status is not None:
            query = query.where(AttendanceRecord.status == status)
        if start_date is not None:
            query = query.where(AttendanceRecord.date >= start_date)
        if end_date is not None:
            query = query.where(AttendanceRecord.date <= end_date)

        return await paginate(
            db, query, pagination,
            model=AttendanceRecord, transform=AttendanceOut.model_validate,
        )

    @staticmethod
    async def get_summary(
        db: AsyncSession,
        actor: Actor,
        employee_id: uuid.UUID,
        start_date: date,
        end_date: date,
    ) -> AttendanceSummary:
        """Status counts plus an attendance rate over working days.

        rate = (present + remote + 0.5 * half_day) / (working_days - holidays)
        """
        if end_date < start_date:
            raise ValidationException({"end_date": ["end_date must be on or after start_date"]})

        employee = await load_employee(db, employee_id)
        require(actor, "attendance:read", employee_resource(employee))

        rows = await AttendanceRepository(db).find(employee_id, start=start_date, end=end_date)
        summary = AttendanceSummary(
            employee_id=employee_id,
            start_date=start_date,
            end_date=end_date,
            working_days=working_days_between(start_date, end_date),
        )

        for row in rows:
            if row.status == AttendanceStatus.present:
                summary.present += 1
            elif row.status == AttendanceStatus.absent:
                summary.absent += 1
            elif row.status == AttendanceStatus.late:
                summary.late += 1
            elif row.status == AttendanceStatus.half_day:
                summary.half_day += 1
            elif row.status == AttendanceStatus.remote:
                summary.remote += 1
            elif row.status == AttendanceStatus.holiday:
                summary.holidays += 1
            elif row.status in LEAVE_ATTENDANCE_STATUSES:
                summary.on_leave += 1
            if row.total_hours:
                summary.total_hours_worked += Decimal(row.total_hours)

        effective_days = summary.working_days - summary.holidays
        if effective_days > 0:
            attended = Decimal(summary.present + summary.remote) + Decimal(summary.half_day) / 2
            summary.attendance_rate = (attended / effective_days * 100).quantize(
                _TWO_PLACES, rounding=ROUND_HALF_UP,
            )
        return summary
