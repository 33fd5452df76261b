"""Rate limiting configuration using slowapi.

Provides a module-level Limiter instance that can be imported by routers
for per-endpoint rate limiting, and wired into the FastAPI app in main.py.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from hrms.config import settings

# Default limit applies to every route; mutation-heavy routes tighten it
# with @limiter.limit("N/period").
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.RATE_LIMIT_DEFAULT],
    enabled=settings.RATE_LIMIT_ENABLED,
)
