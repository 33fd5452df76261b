"""Leave ORM models: LeaveRequest, LeaveBalance."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from hrms.common.constants import LeaveStatus, LeaveType
from hrms.database import Base


class LeaveRequest(Base):
    __tablename__ = "leave_requests"
    __table_args__ = (
        sa.CheckConstraint("start_date <= end_date", name="ck_leave_date_order"),
        sa.Index("ix_leave_employee_dates", "employee_id", "start_date", "end_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
    )
    leave_type: Mapped[LeaveType] = mapped_column(
        sa.Enum(LeaveType, name="leave_type"), nullable=False,
    )
    status: Mapped[LeaveStatus] = mapped_column(
        sa.Enum(LeaveStatus, name="leave_status"),
        nullable=False,
        default=LeaveStatus.pending,
    )
    start_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    end_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    is_first_day_half: Mapped[bool] = mapped_column(sa.Boolean, default=False)
    is_last_day_half: Mapped[bool] = mapped_column(sa.Boolean, default=False)
    total_days: Mapped[Decimal] = mapped_column(sa.Numeric(5, 1), nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(sa.Text)

    # ── Approval stamp ──────────────────────────────────────────────
    approved_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="SET NULL"),
    )
    approver_name: Mapped[Optional[str]] = mapped_column(sa.String(255))
    approved_at: Mapped[Optional[datetime]] = mapped_column(
        sa.DateTime(timezone=True)
    )
    approver_notes: Mapped[Optional[str]] = mapped_column(sa.Text)
    # Days taken from a tracked balance at approval; NULL when none was taken
    balance_deducted: Mapped[Optional[Decimal]] = mapped_column(sa.Numeric(5, 1))

    created_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="SET NULL"),
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        return (
            f"<LeaveRequest {self.id} {self.leave_type} "
            f"{self.start_date}..{self.end_date} {self.status}>"
        )


class LeaveBalance(Base):
    """Days available per employee and leave type.

    A leave type with no row for an employee is untracked: requests of that
    type are neither checked nor deducted.
    """

    __tablename__ = "leave_balances"
    __table_args__ = (
        sa.UniqueConstraint("employee_id", "leave_type", name="uq_leave_balance_emp_type"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
    )
    leave_type: Mapped[LeaveType] = mapped_column(
        sa.Enum(LeaveType, name="leave_type"), nullable=False,
    )
    balance: Mapped[Decimal] = mapped_column(
        sa.Numeric(6, 1), nullable=False, default=Decimal("0"),
    )
    accrued_ytd: Mapped[Decimal] = mapped_column(
        sa.Numeric(6, 1), nullable=False, default=Decimal("0"),
    )
    used_ytd: Mapped[Decimal] = mapped_column(
        sa.Numeric(6, 1), nullable=False, default=Decimal("0"),
    )
    last_updated: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        return f"<LeaveBalance {self.employee_id} {self.leave_type} {self.balance}>"
