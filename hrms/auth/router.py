"""Users router — current user, read, update, delete.

Token issuance lives with the identity provider; this API only consumes the
bearer JWT.
"""


import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.dependencies import get_current_actor
from hrms.auth.schemas import Actor, UserOut, UserUpdate
from hrms.auth.service import UserService
from hrms.database import get_db

router = APIRouter(prefix="", tags=["users"])


# ── GET /users/me ───────────────────────────────────────────────────

@router.get("/me", response_model=UserOut)
async def get_me(
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await UserService.get_user(db, actor, actor.id)


# ── GET /users/{id} ─────────────────────────────────────────────────

@router.get("/{user_id}", response_model=UserOut)
async def get_user(
    user_id: uuid.UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await UserService.get_user(db, actor, user_id)


# ── PUT /users/{id} ─────────────────────────────────────────────────

@router.put("/{user_id}", response_model=UserOut)
async def update_user(
    user_id: uuid.UUID,
    body: UserUpdate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await UserService.update_user(db, actor, user_id, body)


# ── DELETE /users/{id} ──────────────────────────────────────────────

@router.delete("/{user_id}")
async def delete_user(
    user_id: uuid.UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Admin only; an admin cannot delete themselves or the last admin."""
    await UserService.delete_user(db, actor, user_id)
    return {"message": "User deleted successfully."}
