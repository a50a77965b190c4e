"""Rate limiting configuration using slowapi.

A module-level Limiter instance imported by routers for per-endpoint
limits and wired into the FastAPI app in main.py.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

# Default: 60 requests/minute per client IP.
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["60/minute"],
)

# Login and token refresh are brute-force targets.
AUTH_RATE_LIMIT = "10/minute"

# CSV uploads parse up to 50k rows per request.
IMPORT_RATE_LIMIT = "6/minute"
