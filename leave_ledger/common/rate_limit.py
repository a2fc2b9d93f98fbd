"""Rate limiting configuration using slowapi.

A module-level Limiter shared by routers for per-endpoint limits and wired
into the FastAPI app in main.py.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

# Default: 60 requests/minute per client IP.
# Write-heavy routes tighten this with @limiter.limit("N/period").
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["60/minute"],
)

APPLY_RATE_LIMIT = "20/minute"
