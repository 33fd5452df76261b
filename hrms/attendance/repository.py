"""Attendance repository — the only place that queries ``attendance_records``.

Injected with the request's ``AsyncSession``; services and the leave sync
engine go through it instead of building their own queries.
"""

from __future__ import annotations

import uuid
from datetime import date
from typing import Any, Iterable, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.attendance.models import AttendanceRecord


class AttendanceRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, record_id: uuid.UUID) -> Optional[AttendanceRecord]:
        return await self.session.get(AttendanceRecord, record_id)

    async def get_for_day(
        self,
        employee_id: uuid.UUID,
        day: date,
    ) -> Optional[AttendanceRecord]:
        result = await self.session.execute(
            select(AttendanceRecord).where(
                AttendanceRecord.employee_id == employee_id,
                AttendanceRecord.date == day,
            )
        )
        return result.scalars().first()

    async def find(
        self,
        employee_id: uuid.UUID,
        *,
        on: Optional[date] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Sequence[AttendanceRecord]:
        """Rows for *employee_id* on one day (``on``) or within ``[start, end]``."""
        query = select(AttendanceRecord).where(AttendanceRecord.employee_id == employee_id)
        if on is not None:
            query = query.where(AttendanceRecord.date == on)
        if start is not None:
            query = query.where(AttendanceRecord.date >= start)
        if end is not None:
            query = query.where(AttendanceRecord.date <= end)
        result = await self.session.execute(query.order_by(AttendanceRecord.date))
        return result.scalars().all()

    async def find_by_source_leave(self, leave_id: uuid.UUID) -> Sequence[AttendanceRecord]:
        result = await self.session.execute(
            select(AttendanceRecord)
            .where(AttendanceRecord.source_leave_id == leave_id)
            .order_by(AttendanceRecord.date)
        )
        return result.scalars().all()

    async def find_leave_artifacts(
        self,
        leave_id: uuid.UUID,
        marker: str,
        employee_id: uuid.UUID,
        start: date,
        end: date,
    ) -> Sequence[AttendanceRecord]:
        """In-range rows produced by a leave: linked by ``source_leave_id``,
        or unlinked but carrying its notes *marker*."""
        linked = [
            row for row in await self.find_by_source_leave(leave_id)
            if row.employee_id == employee_id and start <= row.date <= end
        ]
        unlinked = await self.session.execute(
            select(AttendanceRecord).where(
                AttendanceRecord.employee_id == employee_id,
                AttendanceRecord.date >= start,
                AttendanceRecord.date <= end,
                AttendanceRecord.source_leave_id.is_(None),
                AttendanceRecord.notes.contains(marker, autoescape=True),
            )
        )
        return [*linked, *unlinked.scalars().all()]

    async def add(self, record: AttendanceRecord) -> AttendanceRecord:
        self.session.add(record)
        await self.session.flush()
        return record

    async def upsert(
        self,
        employee_id: uuid.UUID,
        day: date,
        **values: Any,
    ) -> AttendanceRecord:
        """Insert or update the single row for ``(employee_id, day)``.

        The insert runs in a SAVEPOINT; a unique-constraint violation from a
        concurrent writer means the row now exists, so reload and update it.
        """
        existing = await self.get_for_day(employee_id, day)
        if existing is None:
            record = AttendanceRecord(employee_id=employee_id, date=day, **values)
            try:
                async with self.session.begin_nested():
                    self.session.add(record)
                return record
            except IntegrityError:
                existing = await self.get_for_day(employee_id, day)
                if existing is None:
                    raise

        for field, value in values.items():
            setattr(existing, field, value)
        await self.session.flush()
        return existing

    async def delete(self, rows: Iterable[AttendanceRecord]) -> int:
        count = 0
        for row in rows:
            await self.session.delete(row)
            count += 1
        await self.session.flush()
        return count
