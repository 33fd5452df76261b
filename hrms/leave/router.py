"""Leave router — request, approve/reject/cancel, re-date, delete, list,
plus the balance accrual run.

All endpoints require authentication; the service applies the access-control
policy per request.
"""


import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.dependencies import get_current_actor
from hrms.auth.schemas import Actor
from hrms.common.constants import LeaveStatus, LeaveType
from hrms.common.pagination import PaginationParams
from hrms.common.rate_limit import limiter
from hrms.database import get_db
from hrms.leave.schemas import (
    LeaveAccrualRequest,
    LeaveAccrualResult,
    LeaveDatesUpdate,
    LeaveRequestCreate,
    LeaveRequestOut,
    LeaveStatusUpdate,
)
from hrms.leave.service import LeaveBalanceService, LeaveService

router = APIRouter(prefix="", tags=["leave"])


# ── POST /leave ─────────────────────────────────────────────────────

@router.post("", status_code=201, response_model=LeaveRequestOut)
@limiter.limit("30/minute")
async def create_leave_request(
    request: Request,
    body: LeaveRequestCreate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """File a leave request. 409 when it collides with logged attendance
    or another pending/approved request."""
    return await LeaveService.create_leave_request(db, actor, body)


# ── GET /leave ──────────────────────────────────────────────────────

@router.get("")
async def list_leave_requests(
    employee_id: Optional[uuid.UUID] = Query(None),
    status: Optional[LeaveStatus] = Query(None),
    leave_type: Optional[LeaveType] = Query(None),
    from_date: Optional[date] = Query(None),
    to_date: Optional[date] = Query(None),
    pagination: PaginationParams = Depends(),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    result = await LeaveService.list_leave_requests(
        db,
        actor,
        pagination,
        employee_id=employee_id,
        status=status,
        leave_type=leave_type,
        from_date=from_date,
        to_date=to_date,
    )
    return result.model_dump(mode="json")


# ── POST /leave/balances/accrual ────────────────────────────────────

@router.post("/balances/accrual", response_model=LeaveAccrualResult)
@limiter.limit("5/minute")
async def run_leave_accrual(
    request: Request,
    body: Optional[LeaveAccrualRequest] = None,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Credit every non-terminated employee. Defaults come from
    ``LEAVE_ACCRUAL_TYPE`` / ``LEAVE_ACCRUAL_DAYS``."""
    return await LeaveBalanceService.run_accrual(db, actor, body)


# ── GET /leave/{id} ─────────────────────────────────────────────────

@router.get("/{leave_id}", response_model=LeaveRequestOut)
async def get_leave_request(
    leave_id: uuid.UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await LeaveService.get_leave_request(db, actor, leave_id)


# ── PUT /leave/{id}/status ──────────────────────────────────────────

@router.put("/{leave_id}/status", response_model=LeaveRequestOut)
async def update_leave_status(
    leave_id: uuid.UUID,
    body: LeaveStatusUpdate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Approve, reject or cancel. Approval writes attendance rows for every
    day of the leave; moving out of approved removes them."""
    return await LeaveService.update_leave_status(
        db, actor, leave_id, body.status, approver_notes=body.approver_notes,
    )


# ── PUT /leave/{id}/dates ───────────────────────────────────────────

@router.put("/{leave_id}/dates", response_model=LeaveRequestOut)
async def update_leave_dates(
    leave_id: uuid.UUID,
    body: LeaveDatesUpdate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await LeaveService.update_leave_dates(db, actor, leave_id, body)


# ── DELETE /leave/{id} ──────────────────────────────────────────────

@router.delete("/{leave_id}")
async def delete_leave_request(
    leave_id: uuid.UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    await LeaveService.delete_leave_request(db, actor, leave_id)
    return {"message": "Leave request deleted successfully."}
