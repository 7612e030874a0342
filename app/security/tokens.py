"""Issue signed access tokens for local development and tests.

Production tokens come from the identity provider; this helper signs tokens
with the same shared secret and claim layout (``sub``, ``aud``, ``exp``) so
the service can be exercised without it.
"""

from __future__ import annotations

import datetime as dt
from typing import Any

import jwt

from app.core.auth import AuthSettings, get_auth_settings

DEFAULT_TTL_SECONDS = 3600


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def issue_access_token(
    subject: str,
    *,
    settings: AuthSettings | None = None,
    ttl_seconds: int = DEFAULT_TTL_SECONDS,
    **extra_claims: Any,
) -> str:
    """Return an HMAC-signed JWT whose ``sub`` claim is ``subject``.

    Raises:
        RuntimeError: When no shared secret is configured (JWKS-only setups
            cannot mint tokens locally).
    """

    settings = settings or get_auth_settings()
    if not settings.secret:
        raise RuntimeError("AUTH_TOKEN_SECRET must be set to issue tokens.")
    algorithm = next((a for a in settings.algorithms if a.startswith("HS")), "HS256")
    now = _utcnow()
    payload: dict[str, Any] = {
        "sub": subject,
        "iat": int(now.timestamp()),
        "exp": int((now + dt.timedelta(seconds=ttl_seconds)).timestamp()),
        "role": "authenticated",
    }
    if settings.audience:
        payload["aud"] = settings.audience
    if settings.issuer:
        payload["iss"] = settings.issuer
    payload.update(extra_claims)
    return str(jwt.encode(payload, settings.secret, algorithm=algorithm))


__all__ = ["DEFAULT_TTL_SECONDS", "issue_access_token"]
