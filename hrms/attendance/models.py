"""Attendance ORM model: AttendanceRecord (one row per employee per day)."""

from __future__ import annotations

import uuid
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from hrms.common.constants import AttendanceStatus
from hrms.database import Base


class AttendanceRecord(Base):
    __tablename__ = "attendance_records"
    __table_args__ = (
        sa.UniqueConstraint("employee_id", "date", name="uq_attendance_emp_date"),
        sa.Index("ix_attendance_source_leave", "source_leave_id"),
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
    date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    time_in: Mapped[Optional[time]] = mapped_column(sa.Time)
    time_out: Mapped[Optional[time]] = mapped_column(sa.Time)
    status: Mapped[AttendanceStatus] = mapped_column(
        sa.Enum(AttendanceStatus, name="attendance_status"),
        nullable=False,
        default=AttendanceStatus.present,
    )
    notes: Mapped[Optional[str]] = mapped_column(sa.Text)
    total_hours: Mapped[Optional[Decimal]] = mapped_column(sa.Numeric(4, 2))
    # Set only by the leave sync; NULL means a manually logged day
    source_leave_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("leave_requests.id", ondelete="SET NULL"),
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
        return f"<AttendanceRecord {self.employee_id} {self.date} {self.status}>"
