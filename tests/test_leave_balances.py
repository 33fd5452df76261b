"""Leave balances — checks on filing, deduction on approval, restore on
revocation, accrual runs and the balance endpoints."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.common.constants import EmploymentStatus, LeaveStatus, LeaveType
from hrms.common.exceptions import ForbiddenException, ValidationException
from hrms.config import settings
from hrms.leave.balances import LeaveBalanceLedger
from hrms.leave.models import LeaveBalance
from hrms.leave.schemas import LeaveAccrualRequest, LeaveBalanceSet, LeaveDatesUpdate
from hrms.leave.service import LeaveBalanceService, LeaveService
from tests.conftest import (
    actor_for,
    auth_headers,
    seed_department,
    seed_employee,
    seed_user,
)
from tests.test_leave import _attendance, _leave_count, _request, _seed_people


async def _balance(db: AsyncSession, employee_id, leave_type=LeaveType.vacation) -> LeaveBalance:
    return await LeaveBalanceLedger(db).get(employee_id, leave_type)


async def _grant(db: AsyncSession, employee_id, days: str, leave_type=LeaveType.vacation):
    return await LeaveBalanceLedger(db).set_balance(employee_id, leave_type, Decimal(days))


# ═════════════════════════════════════════════════════════════════════
# 1. Balance check when filing
# ═════════════════════════════════════════════════════════════════════


class TestBalanceCheck:

    async def test_untracked_type_is_unrestricted(self, db: AsyncSession):
        emp, employee, hr = await _seed_people(db)
        leave = await LeaveService.create_leave_request(db, employee, _request())

        result = await LeaveService.update_leave_status(db, hr, leave.id, LeaveStatus.approved)

        assert result.balance_deducted is None
        count = await db.execute(select(func.count()).select_from(LeaveBalance))
        assert count.scalar_one() == 0

    async def test_insufficient_balance_refuses_request(self, db: AsyncSession):
        emp, employee, _ = await _seed_people(db)
        await _grant(db, emp.id, "2")

        with pytest.raises(ValidationException) as exc_info:
            await LeaveService.create_leave_request(db, employee, _request())

        assert exc_info.value.status_code == 422
        assert "Insufficient Vacation balance" in exc_info.value.detail
        assert "leave_type" in exc_info.value.errors
        assert await _leave_count(db, emp.id) == 0

    async def test_other_type_balance_does_not_apply(self, db: AsyncSession):
        emp, employee, _ = await _seed_people(db)
        await _grant(db, emp.id, "0", LeaveType.sick)

        result = await LeaveService.create_leave_request(db, employee, _request())
        assert result.status == LeaveStatus.pending

    async def test_half_day_fits_exact_balance(self, db: AsyncSession):
        emp, employee, _ = await _seed_people(db)
        await _grant(db, emp.id, "2.5")

        result = await LeaveService.create_leave_request(
            db, employee, _request(is_first_day_half=True),
        )
        assert result.total_days == Decimal("2.5")


# ═════════════════════════════════════════════════════════════════════
# 2. Deduction on approval, restore on revocation
# ═════════════════════════════════════════════════════════════════════


class TestBalanceDeduction:

    async def test_approval_deducts_and_records_amount(self, db: AsyncSession):
        emp, employee, hr = await _seed_people(db)
        await _grant(db, emp.id, "10")
        leave = await LeaveService.create_leave_request(db, employee, _request())

        result = await LeaveService.update_leave_status(db, hr, leave.id, LeaveStatus.approved)

        assert result.balance_deducted == Decimal("3")
        row = await _balance(db, emp.id)
        assert row.balance == Decimal("7")
        assert row.used_ytd == Decimal("3")
        assert row.last_updated is not None

    async def test_approval_refused_once_balance_is_spent(self, db: AsyncSession):
        emp, employee, hr = await _seed_people(db)
        await _grant(db, emp.id, "5")
        first = await LeaveService.create_leave_request(db, employee, _request())
        second = await LeaveService.create_leave_request(
            db, employee, _request(date(2024, 8, 5), date(2024, 8, 7)),
        )
        await LeaveService.update_leave_status(db, hr, first.id, LeaveStatus.approved)

        with pytest.raises(ValidationException):
            await LeaveService.update_leave_status(db, hr, second.id, LeaveStatus.approved)

        unchanged = await LeaveService.get_leave_request(db, hr, second.id)
        assert unchanged.status == LeaveStatus.pending
        assert unchanged.balance_deducted is None
        assert (await _balance(db, emp.id)).balance == Decimal("2")
        assert len(await _attendance(db, emp.id)) == 3

    @pytest.mark.parametrize("revoked_to", [LeaveStatus.rejected, LeaveStatus.cancelled])
    async def test_revoking_approval_restores_balance(self, db: AsyncSession, revoked_to):
        emp, employee, hr = await _seed_people(db)
        await _grant(db, emp.id, "10")
        leave = await LeaveService.create_leave_request(db, employee, _request())
        await LeaveService.update_leave_status(db, hr, leave.id, LeaveStatus.approved)

        result = await LeaveService.update_leave_status(db, hr, leave.id, revoked_to)

        assert result.balance_deducted is None
        row = await _balance(db, emp.id)
        assert row.balance == Decimal("10")
        assert row.used_ytd == Decimal("0")

    async def test_rejecting_pending_leaves_balance_alone(self, db: AsyncSession):
        emp, employee, hr = await _seed_people(db)
        await _grant(db, emp.id, "10")
        leave = await LeaveService.create_leave_request(db, employee, _request())

        await LeaveService.update_leave_status(db, hr, leave.id, LeaveStatus.rejected)

        assert (await _balance(db, emp.id)).balance == Decimal("10")

    async def test_deleting_approved_restores_balance(self, db: AsyncSession):
        emp, employee, hr = await _seed_people(db)
        await _grant(db, emp.id, "10")
        leave = await LeaveService.create_leave_request(db, employee, _request())
        await LeaveService.update_leave_status(db, hr, leave.id, LeaveStatus.approved)

        await LeaveService.delete_leave_request(db, hr, leave.id)

        assert (await _balance(db, emp.id)).balance == Decimal("10")

    async def test_untracked_approval_refunds_nothing(self, db: AsyncSession):
        emp, employee, hr = await _seed_people(db)
        leave = await LeaveService.create_leave_request(db, employee, _request())
        await LeaveService.update_leave_status(db, hr, leave.id, LeaveStatus.approved)
        # Tracking starts after the leave was approved untracked
        await _grant(db, emp.id, "4")

        await LeaveService.update_leave_status(db, hr, leave.id, LeaveStatus.cancelled)

        assert (await _balance(db, emp.id)).balance == Decimal("4")


# ═════════════════════════════════════════════════════════════════════
# 3. Date edits
# ═════════════════════════════════════════════════════════════════════


class TestBalanceOnDateEdits:

    async def test_redating_approved_rededucts_new_length(self, db: AsyncSession):
        emp, employee, hr = await _seed_people(db)
        await _grant(db, emp.id, "10")
        leave = await LeaveService.create_leave_request(db, employee, _request())
        await LeaveService.update_leave_status(db, hr, leave.id, LeaveStatus.approved)

        result = await LeaveService.update_leave_dates(
            db, hr, leave.id,
            LeaveDatesUpdate(start_date=date(2024, 7, 8), end_date=date(2024, 7, 12)),
        )

        assert result.balance_deducted == Decimal("5")
        row = await _balance(db, emp.id)
        assert row.balance == Decimal("5")
        assert row.used_ytd == Decimal("5")

    async def test_redating_approved_beyond_balance_is_refused(self, db: AsyncSession):
        emp, employee, hr = await _seed_people(db)
        await _grant(db, emp.id, "4")
        leave = await LeaveService.create_leave_request(db, employee, _request())
        await LeaveService.update_leave_status(db, hr, leave.id, LeaveStatus.approved)

        with pytest.raises(ValidationException):
            await LeaveService.update_leave_dates(
                db, hr, leave.id,
                LeaveDatesUpdate(start_date=date(2024, 7, 8), end_date=date(2024, 7, 12)),
            )

    async def test_redating_pending_checks_balance(self, db: AsyncSession):
        emp, employee, _ = await _seed_people(db)
        await _grant(db, emp.id, "3")
        leave = await LeaveService.create_leave_request(db, employee, _request())

        with pytest.raises(ValidationException):
            await LeaveService.update_leave_dates(
                db, employee, leave.id,
                LeaveDatesUpdate(start_date=date(2024, 7, 8), end_date=date(2024, 7, 12)),
            )
        assert (await _balance(db, emp.id)).balance == Decimal("3")


# ═════════════════════════════════════════════════════════════════════
# 4. Ledger, manual balances and accrual
# ═════════════════════════════════════════════════════════════════════


class TestAccrual:

    async def test_accrual_credits_everyone_but_terminated(self, db: AsyncSession):
        emp, _, hr = await _seed_people(db)
        colleague = await seed_employee(db, department_id=emp.department_id)
        leaver = await seed_employee(db, department_id=emp.department_id)
        leaver.employment_status = EmploymentStatus.terminated
        await _grant(db, colleague.id, "2")

        result = await LeaveBalanceService.run_accrual(
            db, hr, LeaveAccrualRequest(leave_type=LeaveType.vacation, amount=Decimal("1.5")),
        )

        assert result.employees_credited == 2
        fresh = await _balance(db, emp.id)
        assert fresh.balance == Decimal("1.5")
        assert fresh.accrued_ytd == Decimal("1.5")
        topped_up = await _balance(db, colleague.id)
        assert topped_up.balance == Decimal("3.5")
        assert await _balance(db, leaver.id) is None

    async def test_accrual_defaults_come_from_settings(self, db: AsyncSession):
        emp, _, hr = await _seed_people(db)

        result = await LeaveBalanceService.run_accrual(db, hr)

        assert result.leave_type == LeaveType(settings.LEAVE_ACCRUAL_TYPE)
        assert result.amount == settings.LEAVE_ACCRUAL_DAYS
        row = await _balance(db, emp.id, result.leave_type)
        assert row.balance == settings.LEAVE_ACCRUAL_DAYS

    async def test_employee_cannot_run_accrual(self, db: AsyncSession):
        _, employee, _ = await _seed_people(db)
        with pytest.raises(ForbiddenException):
            await LeaveBalanceService.run_accrual(db, employee)

    async def test_accrue_rejects_non_positive_amount(self, db: AsyncSession):
        emp, _, _ = await _seed_people(db)
        with pytest.raises(ValidationException):
            await LeaveBalanceLedger(db).accrue(emp.id, LeaveType.vacation, Decimal("0"))

    async def test_manager_cannot_set_balance(self, db: AsyncSession):
        emp, _, _ = await _seed_people(db)
        manager = actor_for(await seed_user(
            db, role="department_manager", department_id=emp.department_id,
        ))

        with pytest.raises(ForbiddenException):
            await LeaveBalanceService.set_balance(
                db, manager, emp.id,
                LeaveBalanceSet(leave_type=LeaveType.sick, balance=Decimal("5")),
            )

    async def test_set_balance_keeps_year_to_date_counters(self, db: AsyncSession):
        emp, employee, hr = await _seed_people(db)
        await _grant(db, emp.id, "10")
        leave = await LeaveService.create_leave_request(db, employee, _request())
        await LeaveService.update_leave_status(db, hr, leave.id, LeaveStatus.approved)

        result = await LeaveBalanceService.set_balance(
            db, hr, emp.id, LeaveBalanceSet(leave_type=LeaveType.vacation, balance=Decimal("20")),
        )

        assert result.balance == Decimal("20")
        assert result.used_ytd == Decimal("3")


# ═════════════════════════════════════════════════════════════════════
# 5. API endpoints
# ═════════════════════════════════════════════════════════════════════


class TestLeaveBalanceAPI:

    async def _seed(self, db: AsyncSession):
        dept = await seed_department(db)
        emp = await seed_employee(db, department_id=dept.id)
        colleague = await seed_employee(db, department_id=dept.id)
        emp_user = await seed_user(db, employee=emp)
        colleague_user = await seed_user(db, employee=colleague)
        manager_user = await seed_user(db, role="department_manager", department_id=dept.id)
        hr_user = await seed_user(db, role="hr_manager")
        await _grant(db, emp.id, "10")
        await _grant(db, emp.id, "5", LeaveType.sick)
        await db.commit()
        return emp, emp_user, colleague_user, manager_user, hr_user

    async def test_employee_reads_own_balances(self, client, db: AsyncSession):
        emp, emp_user, _, _, _ = await self._seed(db)

        resp = await client.get(
            f"/api/v1/employees/{emp.id}/leave-balance", headers=auth_headers(emp_user),
        )

        assert resp.status_code == 200
        body = resp.json()
        assert [b["leave_type"] for b in body] == ["sick", "vacation"]
        assert Decimal(body[1]["balance"]) == Decimal("10")

    async def test_colleague_is_forbidden(self, client, db: AsyncSession):
        emp, _, colleague_user, _, _ = await self._seed(db)

        resp = await client.get(
            f"/api/v1/employees/{emp.id}/leave-balance", headers=auth_headers(colleague_user),
        )

        assert resp.status_code == 403
        assert resp.headers["content-type"].startswith("application/problem+json")

    async def test_manager_reads_department_balances(self, client, db: AsyncSession):
        emp, _, _, manager_user, _ = await self._seed(db)

        resp = await client.get(
            f"/api/v1/employees/{emp.id}/leave-balance", headers=auth_headers(manager_user),
        )
        assert resp.status_code == 200
        assert len(resp.json()) == 2

    async def test_unknown_employee_is_404(self, client, db: AsyncSession):
        _, _, _, _, hr_user = await self._seed(db)

        resp = await client.get(
            "/api/v1/employees/00000000-0000-0000-0000-000000000000/leave-balance",
            headers=auth_headers(hr_user),
        )
        assert resp.status_code == 404

    async def test_hr_sets_balance_and_employee_cannot(self, client, db: AsyncSession):
        emp, emp_user, _, _, hr_user = await self._seed(db)
        url = f"/api/v1/employees/{emp.id}/leave-balance"
        payload = {"leave_type": "personal", "balance": "3"}

        denied = await client.put(url, json=payload, headers=auth_headers(emp_user))
        assert denied.status_code == 403

        resp = await client.put(url, json=payload, headers=auth_headers(hr_user))
        assert resp.status_code == 200
        assert resp.json()["data"]["leave_type"] == "personal"

        listing = await client.get(url, headers=auth_headers(emp_user))
        assert [b["leave_type"] for b in listing.json()] == ["personal", "sick", "vacation"]

    async def test_negative_balance_is_422(self, client, db: AsyncSession):
        emp, _, _, _, hr_user = await self._seed(db)

        resp = await client.put(
            f"/api/v1/employees/{emp.id}/leave-balance",
            json={"leave_type": "vacation", "balance": "-1"},
            headers=auth_headers(hr_user),
        )
        assert resp.status_code == 422

    async def test_insufficient_balance_on_filing_is_422(self, client, db: AsyncSession):
        _, emp_user, _, _, _ = await self._seed(db)

        resp = await client.post(
            "/api/v1/leave",
            json={"leave_type": "sick", "start_date": "2024-07-01", "end_date": "2024-07-10"},
            headers=auth_headers(emp_user),
        )

        assert resp.status_code == 422
        body = resp.json()
        assert body["title"] == "Validation Error"
        assert body["detail"].startswith("Insufficient Sick balance")

    async def test_accrual_endpoint(self, client, db: AsyncSession):
        emp, emp_user, _, _, hr_user = await self._seed(db)

        denied = await client.post(
            "/api/v1/leave/balances/accrual", json={}, headers=auth_headers(emp_user),
        )
        assert denied.status_code == 403

        resp = await client.post(
            "/api/v1/leave/balances/accrual",
            json={"leave_type": "vacation", "amount": "2"},
            headers=auth_headers(hr_user),
        )
        assert resp.status_code == 200
        assert resp.json()["employees_credited"] == 2

        listing = await client.get(
            f"/api/v1/employees/{emp.id}/leave-balance", headers=auth_headers(emp_user),
        )
        vacation = [b for b in listing.json() if b["leave_type"] == "vacation"][0]
        assert Decimal(vacation["balance"]) == Decimal("12")
