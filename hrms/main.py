"""HRMS — FastAPI Application Factory."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from hrms import __version__
from hrms.attendance.router import router as attendance_router
from hrms.auth.router import router as users_router
from hrms.common.exceptions import register_exception_handlers
from hrms.common.rate_limit import limiter
from hrms.compliance.router import router as compliance_router
from hrms.config import settings
from hrms.core_hr.router import departments_router, employees_router
from hrms.database import engine
from hrms.leave.router import router as leave_router
from hrms.logging_config import configure_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown events."""
    logger.info("HRMS %s starting (%s)", __version__, settings.ENVIRONMENT)
    yield
    await engine.dispose()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    configure_logging()

    app = FastAPI(
        title="HRMS",
        description="Employees, departments, attendance, leave and compliance records",
        version=__version__,
        docs_url="/api/docs" if settings.ENVIRONMENT != "production" else None,
        redoc_url="/api/redoc" if settings.ENVIRONMENT != "production" else None,
        lifespan=lifespan,
    )

    # Exception handlers (RFC 7807)
    register_exception_handlers(app)

    # Rate limiting (slowapi)
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Health check (no auth)
    @app.get("/api/v1/health", tags=["system"])
    async def health_check():
        return {
            "status": "healthy",
            "version": __version__,
            "environment": settings.ENVIRONMENT,
        }

    # Register routers
    app.include_router(employees_router, prefix="/api/v1/employees", tags=["employees"])
    app.include_router(departments_router, prefix="/api/v1/departments", tags=["departments"])
    app.include_router(attendance_router, prefix="/api/v1/attendance", tags=["attendance"])
    app.include_router(leave_router, prefix="/api/v1/leave", tags=["leave"])
    app.include_router(compliance_router, prefix="/api/v1/compliance", tags=["compliance"])
    app.include_router(users_router, prefix="/api/v1/users", tags=["users"])

    return app


app = create_app()
