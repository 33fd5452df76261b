"""Leave service layer — requests, status workflow, date edits, deletion.

Every mutation follows the same order inside the request's transaction:

  1. load the request / employee (404)
  2. access-control policy (403)
  3. state-machine and date validation (422)
  4. per-employee row lock, then conflict detection (409)
  5. write (balance deduction or restore included), then attendance reconciliation

Reconciliation shares the transaction with the status write. If it fails the
error is logged and re-raised, and ``get_db`` rolls the whole request back.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.attendance.repository import AttendanceRepository
from hrms.auth.policy import Resource, require, scope_for
from hrms.auth.schemas import Actor
from hrms.common.constants import (
    ALL,
    DEPARTMENT,
    OWN,
    EmploymentStatus,
    LeaveStatus,
    LeaveType,
)
from hrms.common.dates import business_days_between
from hrms.common.exceptions import ForbiddenException, NotFoundException, ValidationException
from hrms.common.pagination import PaginatedResponse, PaginationParams, paginate
from hrms.config import settings
from hrms.core_hr.models import Employee
from hrms.core_hr.service import load_employee
from hrms.leave.balances import LeaveBalanceLedger
from hrms.leave.conflicts import ConflictDetector
from hrms.leave.models import LeaveRequest
from hrms.leave.repository import LeaveRepository
from hrms.leave.schemas import (
    LeaveAccrualRequest,
    LeaveAccrualResult,
    LeaveBalanceOut,
    LeaveBalanceSet,
    LeaveDatesUpdate,
    LeaveRequestCreate,
    LeaveRequestOut,
    check_leave_dates,
)
from hrms.leave.state_machine import (
    EDITABLE_STATUSES,
    action_for_transition,
    is_reversal,
    stamp_approval,
)
from hrms.leave.sync import AttendanceSyncEngine

logger = logging.getLogger(__name__)


# ═════════════════════════════════════════════════════════════════════
# LeaveService
# ═════════════════════════════════════════════════════════════════════


class LeaveService:
    """Async leave operations: create, transition, re-date, delete, read."""

    # ─────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def _load(db: AsyncSession, leave_id: uuid.UUID) -> tuple[LeaveRequest, Employee]:
        leave = await LeaveRepository(db).get(leave_id)
        if leave is None:
            raise NotFoundException("LeaveRequest", str(leave_id))
        employee = await load_employee(db, leave.employee_id)
        return leave, employee

    @staticmethod
    def _resource(leave: LeaveRequest, employee: Employee) -> Resource:
        return Resource(
            employee_id=leave.employee_id,
            department_id=employee.department_id,
            status=leave.status,
        )

    @staticmethod
    async def _lock_and_check(
        db: AsyncSession,
        employee_id: uuid.UUID,
        start: date,
        end: date,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        leaves = LeaveRepository(db)
        await leaves.lock_employee(employee_id)
        detector = ConflictDetector(AttendanceRepository(db), leaves)
        await detector.ensure_admissible(employee_id, start, end, exclude_id=exclude_id)

    # ─────────────────────────────────────────────────────────────────
    # Create
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def create_leave_request(
        db: AsyncSession,
        actor: Actor,
        data: LeaveRequestCreate,
    ) -> LeaveRequestOut:
        """File a new request in ``pending``."""
        employee_id = data.employee_id or actor.employee_id
        if employee_id is None:
            raise ValidationException(
                {"employee_id": ["Your account is not linked to an employee; specify employee_id."]}
            )

        employee = await load_employee(db, employee_id)
        require(
            actor,
            "leave:create",
            Resource(employee_id=employee.id, department_id=employee.department_id),
            "You can only request leave for yourself or, as a manager, your department.",
        )

        await LeaveService._lock_and_check(db, employee.id, data.start_date, data.end_date)

        total_days = business_days_between(
            data.start_date, data.end_date,
            data.is_first_day_half, data.is_last_day_half,
        )
        await LeaveBalanceLedger(db).ensure_sufficient(employee.id, data.leave_type, total_days)

        leave = LeaveRequest(
            employee_id=employee.id,
            leave_type=data.leave_type,
            status=LeaveStatus.pending,
            start_date=data.start_date,
            end_date=data.end_date,
            is_first_day_half=data.is_first_day_half,
            is_last_day_half=data.is_last_day_half,
            total_days=total_days,
            reason=data.reason,
            created_by_id=actor.id,
        )
        await LeaveRepository(db).add(leave)

        logger.info(
            "Leave request %s created for employee %s (%s, %s..%s) by %s",
            leave.id, employee.id, LeaveType(leave.leave_type).value,
            leave.start_date, leave.end_date, actor.id,
        )
        return LeaveRequestOut.model_validate(leave)

    # ─────────────────────────────────────────────────────────────────
    # Status transitions
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def update_leave_status(
        db: AsyncSession,
        actor: Actor,
        leave_id: uuid.UUID,
        new_status: LeaveStatus,
        approver_notes: Optional[str] = None,
    ) -> LeaveRequestOut:
        """Approve, reject or cancel.

        Approval re-runs conflict detection, deducts any tracked balance and
        materialises attendance; leaving ``approved`` restores the balance
        and retracts the attendance.
        """
        leave, employee = await LeaveService._load(db, leave_id)
        current = LeaveStatus(leave.status)

        action = action_for_transition(current, new_status)
        require(
            actor, action, LeaveService._resource(leave, employee),
            f"You do not have permission to change this leave request to {new_status.value}.",
        )

        ledger = LeaveBalanceLedger(db)
        if new_status == LeaveStatus.approved:
            await LeaveService._lock_and_check(
                db, leave.employee_id, leave.start_date, leave.end_date, exclude_id=leave.id,
            )
            await ledger.deduct(leave)
        else:
            await LeaveRepository(db).lock_employee(leave.employee_id)
            if is_reversal(current, new_status):
                await ledger.restore(leave)

        leave.status = new_status
        if new_status in (LeaveStatus.approved, LeaveStatus.rejected):
            stamp_approval(leave, actor, approver_notes)
        elif approver_notes is not None:
            leave.approver_notes = approver_notes
        await db.flush()

        sync = AttendanceSyncEngine(db)
        try:
            if new_status == LeaveStatus.approved:
                await sync.sync_attendance_with_leave(leave.id)
            elif is_reversal(current, new_status):
                await sync.remove_attendance_for_leave(
                    leave.id, leave.employee_id, leave.start_date, leave.end_date,
                )
        except Exception:
            logger.exception(
                "Attendance reconciliation failed for leave request %s (%s -> %s)",
                leave.id, current.value, new_status.value,
            )
            raise

        logger.info(
            "Leave request %s %s -> %s by %s (%s)",
            leave.id, current.value, new_status.value, actor.name, actor.id,
        )
        return LeaveRequestOut.model_validate(leave)

    # ─────────────────────────────────────────────────────────────────
    # Date edits
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def update_leave_dates(
        db: AsyncSession,
        actor: Actor,
        leave_id: uuid.UUID,
        data: LeaveDatesUpdate,
    ) -> LeaveRequestOut:
        """Move a pending or approved request.

        An approved request has its balance deduction redone for the new
        length, its old attendance retracted and the new range synced, all in
        the same transaction.
        """
        leave, employee = await LeaveService._load(db, leave_id)
        current = LeaveStatus(leave.status)
        if current not in EDITABLE_STATUSES:
            raise ValidationException(
                {"status": [f"A {current.value} leave request can no longer be edited."]}
            )
        require(
            actor, "leave:edit", LeaveService._resource(leave, employee),
            "You do not have permission to edit this leave request.",
        )

        first_half = (
            leave.is_first_day_half if data.is_first_day_half is None else data.is_first_day_half
        )
        last_half = (
            leave.is_last_day_half if data.is_last_day_half is None else data.is_last_day_half
        )
        errors = check_leave_dates(data.start_date, data.end_date, first_half, last_half)
        if errors:
            raise ValidationException(errors)

        await LeaveService._lock_and_check(
            db, leave.employee_id, data.start_date, data.end_date, exclude_id=leave.id,
        )

        ledger = LeaveBalanceLedger(db)
        total_days = business_days_between(
            data.start_date, data.end_date, first_half, last_half,
        )
        if current == LeaveStatus.approved:
            await ledger.restore(leave)
        else:
            await ledger.ensure_sufficient(leave.employee_id, leave.leave_type, total_days)

        old_start, old_end = leave.start_date, leave.end_date
        leave.start_date = data.start_date
        leave.end_date = data.end_date
        leave.is_first_day_half = first_half
        leave.is_last_day_half = last_half
        leave.total_days = total_days
        await db.flush()

        if current == LeaveStatus.approved:
            await ledger.deduct(leave)
            sync = AttendanceSyncEngine(db)
            try:
                await sync.remove_attendance_for_leave(
                    leave.id, leave.employee_id, old_start, old_end,
                )
                await sync.sync_attendance_with_leave(leave.id)
            except Exception:
                logger.exception(
                    "Attendance re-sync failed for leave request %s (%s..%s -> %s..%s)",
                    leave.id, old_start, old_end, leave.start_date, leave.end_date,
                )
                raise

        logger.info(
            "Leave request %s re-dated %s..%s -> %s..%s by %s",
            leave.id, old_start, old_end, leave.start_date, leave.end_date, actor.id,
        )
        return LeaveRequestOut.model_validate(leave)

    # ─────────────────────────────────────────────────────────────────
    # Delete
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def delete_leave_request(
        db: AsyncSession,
        actor: Actor,
        leave_id: uuid.UUID,
    ) -> None:
        """Owners delete while pending; admin / HR (and managers in their
        department) at any status. Deleting an approved request restores its
        balance and retracts its attendance."""
        leave, employee = await LeaveService._load(db, leave_id)
        require(
            actor, "leave:delete", LeaveService._resource(leave, employee),
            "You do not have permission to delete this leave request.",
        )

        if leave.status == LeaveStatus.approved:
            await LeaveRepository(db).lock_employee(leave.employee_id)
            await LeaveBalanceLedger(db).restore(leave)
            try:
                await AttendanceSyncEngine(db).remove_attendance_for_leave(
                    leave.id, leave.employee_id, leave.start_date, leave.end_date,
                )
            except Exception:
                logger.exception("Attendance retraction failed for deleted leave request %s", leave.id)
                raise

        logger.info(
            "[AUDIT] Leave request %s (%s, %s..%s, %s) deleted by %s (%s)",
            leave.id, LeaveType(leave.leave_type).value, leave.start_date, leave.end_date,
            LeaveStatus(leave.status).value, actor.name, actor.id,
        )
        await LeaveRepository(db).delete(leave)

    # ─────────────────────────────────────────────────────────────────
    # Read
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def get_leave_request(
        db: AsyncSession,
        actor: Actor,
        leave_id: uuid.UUID,
    ) -> LeaveRequestOut:
        leave, employee = await LeaveService._load(db, leave_id)
        require(
            actor, "leave:read", LeaveService._resource(leave, employee),
            "You do not have access to this leave request.",
        )
        return LeaveRequestOut.model_validate(leave)

    @staticmethod
    async def list_leave_requests(
        db: AsyncSession,
        actor: Actor,
        pagination: PaginationParams,
        *,
        employee_id: Optional[uuid.UUID] = None,
        status: Optional[LeaveStatus] = None,
        leave_type: Optional[LeaveType] = None,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
    ) -> PaginatedResponse:
        """Requests visible to *actor*, newest start date first."""
        scope = scope_for(actor, "leave:read")
        query = select(LeaveRequest).order_by(LeaveRequest.start_date.desc())

        if scope == OWN:
            query = query.where(LeaveRequest.employee_id == actor.employee_id)
        elif scope == DEPARTMENT:
            dept_members = select(Employee.id).where(
                Employee.department_id == actor.department_id
            )
            query = query.where(
                or_(
                    LeaveRequest.employee_id.in_(dept_members),
                    LeaveRequest.employee_id == actor.employee_id,
                )
            )
        elif scope != ALL:
            raise ForbiddenException()

        if employee_id is not None:
            query = query.where(LeaveRequest.employee_id == employee_id)
        if status is not None:
            query = query.where(LeaveRequest.status == status)
        if leave_type is not None:
            query = query.where(LeaveRequest.leave_type == leave_type)
        # Any request touching [from_date, to_date]
        if from_date is not None:
            query = query.where(LeaveRequest.end_date >= from_date)
        if to_date is not None:
            query = query.where(LeaveRequest.start_date <= to_date)

        return await paginate(
            db, query, pagination,
            model=LeaveRequest, transform=LeaveRequestOut.model_validate,
        )


# ═════════════════════════════════════════════════════════════════════
# LeaveBalanceService
# ═════════════════════════════════════════════════════════════════════


class LeaveBalanceService:
    """Balance reads for anyone who may read the employee's leave; balance
    writes and accrual runs for HR and admins."""

    @staticmethod
    async def get_balances(
        db: AsyncSession,
        actor: Actor,
        employee_id: uuid.UUID,
    ) -> list[LeaveBalanceOut]:
        employee = await load_employee(db, employee_id)
        require(
            actor,
            "leave:read",
            Resource(employee_id=employee.id, department_id=employee.department_id),
            "You do not have permission to view this employee's leave balance.",
        )
        rows = await LeaveBalanceLedger(db).for_employee(employee.id)
        return [LeaveBalanceOut.model_validate(r) for r in rows]

    @staticmethod
    async def set_balance(
        db: AsyncSession,
        actor: Actor,
        employee_id: uuid.UUID,
        data: LeaveBalanceSet,
    ) -> LeaveBalanceOut:
        employee = await load_employee(db, employee_id)
        require(
            actor,
            "leave_balance:write",
            Resource(employee_id=employee.id, department_id=employee.department_id),
            "Only HR and admins can set leave balances.",
        )

        await LeaveRepository(db).lock_employee(employee.id)
        row = await LeaveBalanceLedger(db).set_balance(employee.id, data.leave_type, data.balance)

        logger.info(
            "[AUDIT] %s balance for employee %s set to %s by %s (%s)",
            data.leave_type.value, employee.id, data.balance, actor.name, actor.id,
        )
        return LeaveBalanceOut.model_validate(row)

    @staticmethod
    async def run_accrual(
        db: AsyncSession,
        actor: Actor,
        data: Optional[LeaveAccrualRequest] = None,
    ) -> LeaveAccrualResult:
        """Credit every employee who is not terminated.

        All credits share the request's transaction, so one failure rolls
        the whole run back.
        """
        require(actor, "leave_balance:write", detail="Only HR and admins can run leave accrual.")
        data = data or LeaveAccrualRequest()
        leave_type = data.leave_type or LeaveType(settings.LEAVE_ACCRUAL_TYPE)
        amount = data.amount or settings.LEAVE_ACCRUAL_DAYS

        result = await db.execute(
            select(Employee.id)
            .where(Employee.employment_status != EmploymentStatus.terminated)
            .order_by(Employee.id)
        )
        employee_ids = result.scalars().all()

        leaves = LeaveRepository(db)
        ledger = LeaveBalanceLedger(db)
        for employee_id in employee_ids:
            await leaves.lock_employee(employee_id)
            await ledger.accrue(employee_id, leave_type, amount)

        logger.info(
            "Leave accrual: %s day(s) of %s credited to %d employee(s) by %s",
            amount, leave_type.value, len(employee_ids), actor.id,
        )
        return LeaveAccrualResult(
            leave_type=leave_type, amount=amount, employees_credited=len(employee_ids),
        )
