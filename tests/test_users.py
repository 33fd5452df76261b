"""Users and authentication — JWT handling, role changes, deletion rules."""

from __future__ import annotations

import uuid

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.schemas import Actor, UserUpdate
from hrms.auth.service import UserService
from hrms.common.constants import UserRole
from hrms.common.exceptions import (
    ConflictError,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from tests.conftest import (
    actor_for,
    auth_headers,
    create_access_token,
    seed_department,
    seed_employee,
    seed_user,
)


# ═════════════════════════════════════════════════════════════════════
# Authentication
# ═════════════════════════════════════════════════════════════════════


class TestAuthentication:

    async def test_missing_header(self, client):
        resp = await client.get("/api/v1/users/me")
        assert resp.status_code == 401

    async def test_expired_token(self, client, db: AsyncSession):
        user = await seed_user(db)
        await db.commit()
        token = create_access_token(user.id, expired=True)

        resp = await client.get("/api/v1/users/me", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Token has expired."

    async def test_refresh_token_rejected(self, client, db: AsyncSession):
        user = await seed_user(db)
        await db.commit()
        token = create_access_token(user.id, token_type="refresh")

        resp = await client.get("/api/v1/users/me", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 401

    async def test_garbage_token(self, client):
        resp = await client.get("/api/v1/users/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert resp.status_code == 401

    async def test_inactive_user(self, client, db: AsyncSession):
        user = await seed_user(db, is_active=False)
        await db.commit()

        resp = await client.get("/api/v1/users/me", headers=auth_headers(user))
        assert resp.status_code == 401

    async def test_me_normalises_legacy_role(self, client, db: AsyncSession):
        user = await seed_user(db, role="HR Manager", name="Hana")
        await db.commit()

        resp = await client.get("/api/v1/users/me", headers=auth_headers(user))
        assert resp.status_code == 200
        body = resp.json()
        assert body["id"] == str(user.id)
        assert body["role"] == "hr_manager"

    async def test_health_needs_no_auth(self, client):
        resp = await client.get("/api/v1/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "healthy"


# ═════════════════════════════════════════════════════════════════════
# UserService
# ═════════════════════════════════════════════════════════════════════


class TestUserService:

    async def test_user_edits_own_name(self, db: AsyncSession):
        user = await seed_user(db, name="Old Name")
        result = await UserService.update_user(
            db, actor_for(user), user.id, UserUpdate(name="New Name"),
        )
        assert result.name == "New Name"

    async def test_user_cannot_change_own_role(self, db: AsyncSession):
        user = await seed_user(db)
        with pytest.raises(ForbiddenException):
            await UserService.update_user(
                db, actor_for(user), user.id, UserUpdate(role=UserRole.admin),
            )

    async def test_user_cannot_relink_employee(self, db: AsyncSession):
        emp = await seed_employee(db)
        user = await seed_user(db)
        with pytest.raises(ForbiddenException):
            await UserService.update_user(
                db, actor_for(user), user.id, UserUpdate(employee_id=emp.id),
            )

    async def test_user_cannot_read_others(self, db: AsyncSession):
        user = await seed_user(db)
        other = await seed_user(db)
        with pytest.raises(ForbiddenException):
            await UserService.get_user(db, actor_for(user), other.id)

    async def test_hr_promotes_to_manager(self, db: AsyncSession):
        hr = await seed_user(db, role="hr_manager")
        user = await seed_user(db)
        result = await UserService.update_user(
            db, actor_for(hr), user.id, UserUpdate(role=UserRole.department_manager),
        )
        assert result.role == UserRole.department_manager

    async def test_hr_cannot_grant_admin(self, db: AsyncSession):
        hr = await seed_user(db, role="hr_manager")
        user = await seed_user(db)
        with pytest.raises(ForbiddenException):
            await UserService.update_user(
                db, actor_for(hr), user.id, UserUpdate(role=UserRole.admin),
            )

    async def test_hr_links_employee_and_department(self, db: AsyncSession):
        dept = await seed_department(db)
        emp = await seed_employee(db, department_id=dept.id)
        hr = await seed_user(db, role="hr_manager")
        user = await seed_user(db)

        result = await UserService.update_user(
            db, actor_for(hr), user.id,
            UserUpdate(employee_id=emp.id, department_id=dept.id),
        )
        assert result.employee_id == emp.id
        assert result.department_id == dept.id

    async def test_employee_already_linked_conflicts(self, db: AsyncSession):
        emp = await seed_employee(db)
        await seed_user(db, employee=emp)
        admin = await seed_user(db, role="admin")
        user = await seed_user(db)
        with pytest.raises(ConflictError):
            await UserService.update_user(
                db, actor_for(admin), user.id, UserUpdate(employee_id=emp.id),
            )

    async def test_duplicate_email_conflicts(self, db: AsyncSession):
        await seed_user(db, email="taken@example.com")
        user = await seed_user(db)
        with pytest.raises(ConflictError):
            await UserService.update_user(
                db, actor_for(user), user.id, UserUpdate(email="taken@example.com"),
            )

    async def test_admin_deletes_user(self, db: AsyncSession):
        admin = await seed_user(db, role="admin")
        user = await seed_user(db)
        await UserService.delete_user(db, actor_for(admin), user.id)
        with pytest.raises(NotFoundException):
            await UserService.get_user(db, actor_for(admin), user.id)

    async def test_hr_cannot_delete(self, db: AsyncSession):
        hr = await seed_user(db, role="hr_manager")
        user = await seed_user(db)
        with pytest.raises(ForbiddenException):
            await UserService.delete_user(db, actor_for(hr), user.id)

    async def test_admin_cannot_delete_self(self, db: AsyncSession):
        admin = await seed_user(db, role="admin")
        await seed_user(db, role="Administrator")
        with pytest.raises(ValidationException):
            await UserService.delete_user(db, actor_for(admin), admin.id)

    async def test_last_admin_cannot_be_deleted(self, db: AsyncSession):
        only_admin = await seed_user(db, role="Admin")
        await seed_user(db, role="hr_manager")
        # An admin-role actor with no stored admin row of its own
        operator = Actor(id=uuid.uuid4(), role=UserRole.admin, name="Ops")

        with pytest.raises(ValidationException):
            await UserService.delete_user(db, operator, only_admin.id)
