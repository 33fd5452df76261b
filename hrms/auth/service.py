"""User service — read, update (with role-change rules) and delete users."""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.models import User
from hrms.auth.policy import Resource, can_change_role, require, scope_for
from hrms.auth.schemas import Actor, UserOut, UserUpdate
from hrms.common.constants import ALL, UserRole
from hrms.common.exceptions import (
    ConflictError,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from hrms.core_hr.models import Department, Employee

logger = logging.getLogger(__name__)


def _user_out(user: User) -> UserOut:
    return UserOut.model_validate(user)


class UserService:
    """Async user operations."""

    @staticmethod
    async def _load(db: AsyncSession, user_id: uuid.UUID) -> User:
        user = await db.get(User, user_id)
        if user is None:
            raise NotFoundException("User", str(user_id))
        return user

    @staticmethod
    def _resource(user: User) -> Resource:
        return Resource(user_id=user.id, department_id=user.department_id)

    @staticmethod
    async def get_user(db: AsyncSession, actor: Actor, user_id: uuid.UUID) -> UserOut:
        user = await UserService._load(db, user_id)
        require(
            actor, "user:read", UserService._resource(user),
            "You do not have access to this user record.",
        )
        return _user_out(user)

    @staticmethod
    async def update_user(
        db: AsyncSession,
        actor: Actor,
        user_id: uuid.UUID,
        data: UserUpdate,
    ) -> UserOut:
        """Partial update.

        Admins change anything. HR managers change links and non-admin roles
        of other users. Everyone else edits only their own name and email.
        """
        user = await UserService._load(db, user_id)
        require(
            actor, "user:update", UserService._resource(user),
            "You do not have permission to update this user.",
        )
        manages_users = scope_for(actor, "user:update") == ALL
        changes = data.model_dump(exclude_unset=True)

        # ── Role ────────────────────────────────────────────────────
        current_role = UserRole.parse(user.role)
        new_role = changes.pop("role", None)
        if new_role is not None and new_role != current_role:
            if not can_change_role(actor, user.id, current_role, new_role):
                raise ForbiddenException("You do not have permission to change this user's role.")
            user.role = new_role.value

        # ── Links ───────────────────────────────────────────────────
        if "employee_id" in changes and changes["employee_id"] != user.employee_id:
            if not manages_users:
                raise ForbiddenException("You cannot change your linked employee.")
            employee_id = changes["employee_id"]
            if employee_id is not None:
                if await db.get(Employee, employee_id) is None:
                    raise ValidationException({"employee_id": ["Employee not found."]})
                linked = (
                    await db.execute(
                        select(User.id).where(User.employee_id == employee_id, User.id != user.id)
                    )
                ).scalar()
                if linked is not None:
                    raise ConflictError("employee_id", employee_id)
        if "department_id" in changes and changes["department_id"] != user.department_id:
            if not manages_users:
                raise ForbiddenException("You cannot change your department.")
            department_id = changes["department_id"]
            if department_id is not None and await db.get(Department, department_id) is None:
                raise ValidationException({"department_id": ["Department not found."]})

        # ── Email ───────────────────────────────────────────────────
        email = changes.get("email")
        if email is not None and email != user.email:
            taken = (
                await db.execute(select(User.id).where(User.email == email, User.id != user.id))
            ).scalar()
            if taken is not None:
                raise ConflictError("email", email)

        for field, value in changes.items():
            setattr(user, field, value)
        await db.flush()

        logger.info("[AUDIT] User %s updated by %s (%s)", user.id, actor.name, actor.id)
        return _user_out(user)

    @staticmethod
    async def delete_user(db: AsyncSession, actor: Actor, user_id: uuid.UUID) -> None:
        require(actor, "user:delete", detail="Only administrators can delete users.")
        user = await UserService._load(db, user_id)

        if user.id == actor.id:
            raise ValidationException({"id": ["You cannot delete your own account."]})
        if UserRole.parse(user.role) == UserRole.admin:
            roles = (await db.execute(select(User.role))).scalars().all()
            if sum(1 for role in roles if UserRole.parse(role) == UserRole.admin) <= 1:
                raise ValidationException({"id": ["Cannot delete the last administrator account."]})

        logger.info(
            "[AUDIT] User %s (%s) deleted by %s (%s)",
            user.id, user.name, actor.name, actor.id,
        )
        await db.delete(user)
        await db.flush()

