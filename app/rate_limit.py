"""Per-client rate limiting shared by the application and its routers.

Limits are declared per route with ``@limiter.limit(...)``; routes without a
decorator (health, metrics, preflight) are not limited.

Environment variables: RATE_LIMIT_ENABLED, DELETE_CONTACT_RATE_LIMIT.
"""

import os

from dotenv import load_dotenv
from fastapi import Request
from slowapi import Limiter

# Limits are read at import time, before the application loads its .env.
load_dotenv()

RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"
DELETE_CONTACT_RATE_LIMIT = os.getenv("DELETE_CONTACT_RATE_LIMIT", "30/minute")


def get_client_ip(request: Request) -> str:
    """Extract a best-effort client IP for rate limiting.

    Prefer ``X-Forwarded-For`` (first hop) if present, otherwise use the
    socket peer address.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client is None:
        return "unknown"
    return request.client.host


limiter = Limiter(key_func=get_client_ip, enabled=RATE_LIMIT_ENABLED)
