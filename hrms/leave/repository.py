"""Leave repository — queries over ``leave_requests`` plus the per-employee lock."""

from __future__ import annotations

import uuid
from typing import Iterable, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.common.constants import LeaveStatus
from hrms.core_hr.models import Employee
from hrms.leave.models import LeaveRequest


class LeaveRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, leave_id: uuid.UUID) -> Optional[LeaveRequest]:
        return await self.session.get(LeaveRequest, leave_id)

    async def find(
        self,
        employee_id: uuid.UUID,
        statuses: Optional[Iterable[LeaveStatus]] = None,
    ) -> Sequence[LeaveRequest]:
        query = select(LeaveRequest).where(LeaveRequest.employee_id == employee_id)
        if statuses is not None:
            query = query.where(LeaveRequest.status.in_(list(statuses)))
        result = await self.session.execute(query.order_by(LeaveRequest.start_date))
        return result.scalars().all()

    async def add(self, leave: LeaveRequest) -> LeaveRequest:
        self.session.add(leave)
        await self.session.flush()
        return leave

    async def delete(self, leave: LeaveRequest) -> None:
        await self.session.delete(leave)
        await self.session.flush()

    async def lock_employee(self, employee_id: uuid.UUID) -> Optional[Employee]:
        """``SELECT ... FOR UPDATE`` on the employee row.

        Serialises leave writes per employee until the transaction ends, so
        the conflict check and the write that follows it cannot interleave
        with another request for the same person.
        """
        result = await self.session.execute(
            select(Employee).where(Employee.id == employee_id).with_for_update()
        )
        return result.scalars().first()
