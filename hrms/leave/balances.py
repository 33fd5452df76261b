"""Leave balance ledger — the only place that reads or writes ``leave_balances``.

Balances are tracked per employee and leave type. A type with no balance
row is untracked and never blocks a request. For tracked types:

* creating or re-dating a request checks the balance covers ``total_days``
* approval deducts ``total_days`` and records it on the request
* leaving ``approved`` (reject, cancel, delete) restores what was deducted

Callers hold the per-employee lock (``LeaveRepository.lock_employee``)
before any mutation here.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.common.constants import LeaveType
from hrms.common.exceptions import ValidationException
from hrms.leave.models import LeaveBalance, LeaveRequest

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


class LeaveBalanceLedger:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    # ── Reads ───────────────────────────────────────────────────────

    async def get(
        self,
        employee_id: uuid.UUID,
        leave_type: LeaveType,
    ) -> Optional[LeaveBalance]:
        result = await self.session.execute(
            select(LeaveBalance).where(
                LeaveBalance.employee_id == employee_id,
                LeaveBalance.leave_type == leave_type,
            )
        )
        return result.scalars().first()

    async def for_employee(self, employee_id: uuid.UUID) -> list[LeaveBalance]:
        """All rows for *employee_id*, alphabetical by leave type."""
        result = await self.session.execute(
            select(LeaveBalance).where(LeaveBalance.employee_id == employee_id)
        )
        # PostgreSQL sorts enums by declaration order; sort by name instead
        return sorted(result.scalars().all(), key=lambda r: LeaveType(r.leave_type).value)

    async def get_or_create(
        self,
        employee_id: uuid.UUID,
        leave_type: LeaveType,
    ) -> LeaveBalance:
        """Existing row, or a new zero balance inserted in a SAVEPOINT."""
        existing = await self.get(employee_id, leave_type)
        if existing is not None:
            return existing

        row = LeaveBalance(
            employee_id=employee_id,
            leave_type=leave_type,
            balance=ZERO,
            accrued_ytd=ZERO,
            used_ytd=ZERO,
        )
        try:
            async with self.session.begin_nested():
                self.session.add(row)
        except IntegrityError:
            existing = await self.get(employee_id, leave_type)
            if existing is None:
                raise
            return existing

        logger.info(
            "Created %s leave balance for employee %s",
            LeaveType(leave_type).value, employee_id,
        )
        return row

    # ── Checks ──────────────────────────────────────────────────────

    async def ensure_sufficient(
        self,
        employee_id: uuid.UUID,
        leave_type: LeaveType,
        amount: Decimal,
    ) -> None:
        """422 when a tracked balance cannot cover *amount*."""
        row = await self.get(employee_id, leave_type)
        if row is None:
            return
        if row.balance < amount:
            message = (
                f"Insufficient {LeaveType(leave_type).label} balance: "
                f"{row.balance} day(s) available, {amount} requested."
            )
            raise ValidationException({"leave_type": [message]}, detail=message)

    # ── Mutations ───────────────────────────────────────────────────

    async def deduct(self, leave: LeaveRequest) -> Optional[LeaveBalance]:
        """Take ``leave.total_days`` from the balance and note it on *leave*."""
        row = await self.get(leave.employee_id, leave.leave_type)
        if row is None:
            leave.balance_deducted = None
            return None

        amount = Decimal(leave.total_days)
        await self.ensure_sufficient(leave.employee_id, leave.leave_type, amount)
        row.balance -= amount
        row.used_ytd += amount
        row.last_updated = datetime.now(timezone.utc)
        leave.balance_deducted = amount
        await self.session.flush()

        logger.info(
            "Deducted %s day(s) of %s for leave request %s; employee %s now has %s",
            amount, LeaveType(leave.leave_type).value, leave.id, leave.employee_id, row.balance,
        )
        return row

    async def restore(self, leave: LeaveRequest) -> Optional[LeaveBalance]:
        """Give back whatever approval of *leave* deducted."""
        amount = leave.balance_deducted
        if not amount:
            return None

        leave.balance_deducted = None
        row = await self.get(leave.employee_id, leave.leave_type)
        if row is None:
            logger.warning(
                "Leave request %s had %s day(s) deducted but employee %s has no %s balance",
                leave.id, amount, leave.employee_id, LeaveType(leave.leave_type).value,
            )
            await self.session.flush()
            return None

        row.balance += amount
        row.used_ytd = max(ZERO, row.used_ytd - amount)
        row.last_updated = datetime.now(timezone.utc)
        await self.session.flush()

        logger.info(
            "Restored %s day(s) of %s from leave request %s; employee %s now has %s",
            amount, LeaveType(leave.leave_type).value, leave.id, leave.employee_id, row.balance,
        )
        return row

    async def accrue(
        self,
        employee_id: uuid.UUID,
        leave_type: LeaveType,
        amount: Decimal,
    ) -> LeaveBalance:
        if amount <= 0:
            raise ValidationException({"amount": ["Amount to accrue must be positive."]})

        row = await self.get_or_create(employee_id, leave_type)
        row.balance += amount
        row.accrued_ytd += amount
        row.last_updated = datetime.now(timezone.utc)
        await self.session.flush()
        return row

    async def set_balance(
        self,
        employee_id: uuid.UUID,
        leave_type: LeaveType,
        balance: Decimal,
    ) -> LeaveBalance:
        """Overwrite the available days; year-to-date counters are kept."""
        row = await self.get_or_create(employee_id, leave_type)
        row.balance = balance
        row.last_updated = datetime.now(timezone.utc)
        await self.session.flush()
        return row
