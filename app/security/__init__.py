"""Security utilities exposed for convenience."""

from .tokens import DEFAULT_TTL_SECONDS, issue_access_token

__all__ = ["DEFAULT_TTL_SECONDS", "issue_access_token"]
