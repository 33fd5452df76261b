"""Generic pagination utilities for SQLAlchemy async queries."""


import math
from typing import Any, Callable, Generic, Optional, Sequence, TypeVar

from fastapi import Query
from pydantic import BaseModel
from sqlalchemy import Select, func
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.common.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE

T = TypeVar("T")


# ── FastAPI dependency ──────────────────────────────────────────────

class PaginationParams:
    """Inject via ``Depends(PaginationParams)`` on any list endpoint."""

    def __init__(
        self,
        page: int = Query(default=1, ge=1, description="Page number (1-indexed)"),
        page_size: int = Query(
            default=DEFAULT_PAGE_SIZE,
            ge=1,
            le=MAX_PAGE_SIZE,
            description=f"Items per page (max {MAX_PAGE_SIZE})",
        ),
        sort: Optional[str] = Query(
            default=None,
            description='Sort field; prefix "-" for DESC (e.g. "-start_date")',
        ),
    ) -> None:
        self.page = page
        self.page_size = page_size
        self.sort = sort

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


# ── Pydantic response models ───────────────────────────────────────

class PaginationMeta(BaseModel):
    """Metadata block embedded in every paginated response."""

    page: int
    page_size: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool


class PaginatedResponse(BaseModel, Generic[T]):
    """Standard envelope: ``{"data": [...], "meta": {...}}``."""

    data: Sequence[T]
    meta: PaginationMeta


# ── SQLAlchemy helper ───────────────────────────────────────────────

async def paginate(
    session: AsyncSession,
    query: Select,
    params: PaginationParams,
    *,
    model: Any = None,
    transform: Optional[Callable[[Any], Any]] = None,
) -> PaginatedResponse:
    """
    Execute *query* with LIMIT/OFFSET derived from *params* and return
    a ``PaginatedResponse`` with data + meta.

    Sort fields are resolved as attributes of *model*; unknown names are
    ignored. *transform* maps each ORM row to its response schema.
    """
    # ── sorting ─────────────────────────────────────────────────────
    if params.sort and model is not None:
        descending = params.sort.startswith("-")
        col = getattr(model, params.sort.lstrip("-"), None)
        if col is not None:
            query = query.order_by(None).order_by(col.desc() if descending else col.asc())

    # ── total count (strip ORDER BY for efficiency) ─────────────────
    count_q = query.order_by(None).with_only_columns(func.count())
    total: int = (await session.execute(count_q)).scalar_one()

    # ── paginated rows ──────────────────────────────────────────────
    rows = (
        await session.execute(
            query.offset(params.offset).limit(params.page_size)
        )
    ).scalars().all()
    if transform is not None:
        rows = [transform(row) for row in rows]

    total_pages = math.ceil(total / params.page_size) if total else 0

    return PaginatedResponse(
        data=rows,
        meta=PaginationMeta(
            page=params.page,
            page_size=params.page_size,
            total=total,
            total_pages=total_pages,
            has_next=params.page < total_pages,
            has_prev=params.page > 1,
        ),
    )
