"""Attendance router — log a day, list records, period summary.

All endpoints require authentication; scope follows the access-control policy.
"""


import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.attendance.schemas import AttendanceCreate, AttendanceSummary
from hrms.attendance.service import AttendanceService
from hrms.auth.dependencies import get_current_actor
from hrms.auth.schemas import Actor
from hrms.common.constants import AttendanceStatus
from hrms.common.exceptions import ValidationException
from hrms.common.pagination import PaginationParams
from hrms.database import get_db

router = APIRouter(prefix="", tags=["attendance"])


# ── GET /attendance ─────────────────────────────────────────────────

@router.get("")
async def list_attendance(
    employee_id: Optional[uuid.UUID] = Query(None),
    status: Optional[AttendanceStatus] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    pagination: PaginationParams = Depends(),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    result = await AttendanceService.list_attendance(
        db,
        actor,
        pagination,
        employee_id=employee_id,
        status=status,
        start_date=start_date,
        end_date=end_date,
    )
    return result.model_dump(mode="json")


# ── GET /attendance/summary ─────────────────────────────────────────

@router.get("/summary", response_model=AttendanceSummary)
async def attendance_summary(
    start_date: date = Query(...),
    end_date: date = Query(...),
    employee_id: Optional[uuid.UUID] = Query(None, description="Defaults to the caller"),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    target = employee_id or actor.employee_id
    if target is None:
        raise ValidationException({"employee_id": ["Employee ID is required."]})
    return await AttendanceService.get_summary(db, actor, target, start_date, end_date)


# ── POST /attendance ────────────────────────────────────────────────

@router.post("", status_code=201)
async def log_attendance(
    body: AttendanceCreate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Log one attendance day; 409 if the employee already has a row for that date."""
    record = await AttendanceService.log_attendance(db, actor, body)
    return {
        "data": record.model_dump(mode="json"),
        "message": "Attendance recorded.",
    }
