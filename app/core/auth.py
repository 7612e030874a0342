"""Bearer token verification and caller identity resolution."""

from __future__ import annotations

import dataclasses
import logging
import os
from functools import lru_cache
from typing import Any, Protocol

import jwt
from fastapi import Depends, Request
from jwt import ExpiredSignatureError, InvalidTokenError, PyJWKClient
from jwt.exceptions import PyJWKClientError

from .errors import InternalError, UnauthenticatedError

__all__ = [
    "AuthSettings",
    "CallerIdentity",
    "JWTTokenVerifier",
    "TokenConfigurationError",
    "TokenValidationError",
    "TokenVerifier",
    "extract_bearer_token",
    "get_auth_settings",
    "get_caller_identity",
    "get_token_verifier",
    "reset_auth_settings_cache",
    "resolve_caller_identity",
]

logger = logging.getLogger(__name__)


class TokenConfigurationError(RuntimeError):
    """Raised when token verification settings are missing or invalid."""


class TokenValidationError(ValueError):
    """Raised when a bearer token cannot be verified."""


@dataclasses.dataclass(frozen=True)
class AuthSettings:
    """Runtime configuration of the identity provider."""

    secret: str | None = None
    jwks_url: str | None = None
    algorithms: tuple[str, ...] = ("HS256",)
    audience: str | None = "authenticated"
    issuer: str | None = None
    leeway_seconds: int = 0


def _optional_env(name: str, default: str = "") -> str | None:
    value = os.getenv(name, default).strip()
    return value or None


@lru_cache(maxsize=1)
def get_auth_settings() -> AuthSettings:
    """Load identity provider settings from the environment.

    Either ``AUTH_TOKEN_SECRET`` (shared HMAC secret) or ``AUTH_JWKS_URL``
    (asymmetric keys published by the provider) must be set.

    Raises:
        TokenConfigurationError: If neither key source is configured or the
            leeway is not an integer.
    """

    secret = _optional_env("AUTH_TOKEN_SECRET")
    jwks_url = _optional_env("AUTH_JWKS_URL")
    if not secret and not jwks_url:
        raise TokenConfigurationError(
            "AUTH_TOKEN_SECRET or AUTH_JWKS_URL must be set for token verification.",
        )
    algorithms = tuple(
        alg.strip()
        for alg in os.getenv("AUTH_TOKEN_ALGORITHM", "HS256").split(",")
        if alg.strip()
    )
    raw_leeway = os.getenv("AUTH_TOKEN_LEEWAY_SECONDS", "0").strip() or "0"
    try:
        leeway_seconds = int(raw_leeway)
    except ValueError as exc:
        raise TokenConfigurationError(
            f"AUTH_TOKEN_LEEWAY_SECONDS must be an integer, got {raw_leeway!r}.",
        ) from exc
    return AuthSettings(
        secret=secret,
        jwks_url=jwks_url,
        algorithms=algorithms or ("HS256",),
        audience=_optional_env("AUTH_TOKEN_AUDIENCE", "authenticated"),
        issuer=_optional_env("AUTH_TOKEN_ISSUER"),
        leeway_seconds=leeway_seconds,
    )


def reset_auth_settings_cache() -> None:
    """Clear cached settings and verifiers; useful in tests when env vars change."""

    get_auth_settings.cache_clear()
    _verifier_for.cache_clear()


class TokenVerifier(Protocol):
    """Identity provider contract: return verified claims or raise."""

    def verify(self, token: str) -> dict[str, Any]: ...


class JWTTokenVerifier:
    """Verify provider-issued JWTs with PyJWT.

    Uses the JWKS endpoint when configured (signing keys are cached by
    :class:`jwt.PyJWKClient`), otherwise the shared secret.
    """

    def __init__(self, settings: AuthSettings) -> None:
        self._settings = settings
        self._jwks_client = PyJWKClient(settings.jwks_url) if settings.jwks_url else None

    def _signing_key(self, token: str) -> Any:
        if self._jwks_client is None:
            return self._settings.secret
        try:
            return self._jwks_client.get_signing_key_from_jwt(token).key
        except (PyJWKClientError, InvalidTokenError) as exc:
            raise TokenValidationError("Unable to resolve token signing key.") from exc

    def verify(self, token: str) -> dict[str, Any]:
        settings = self._settings
        key = self._signing_key(token)
        try:
            return jwt.decode(
                token,
                key,
                algorithms=list(settings.algorithms),
                audience=settings.audience,
                issuer=settings.issuer,
                leeway=settings.leeway_seconds,
                options={
                    "require": ["exp", "sub"],
                    "verify_aud": settings.audience is not None,
                },
            )
        except ExpiredSignatureError as exc:
            raise TokenValidationError("Token has expired.") from exc
        except InvalidTokenError as exc:
            raise TokenValidationError("Token is invalid.") from exc


@lru_cache(maxsize=4)
def _verifier_for(settings: AuthSettings) -> JWTTokenVerifier:
    return JWTTokenVerifier(settings)


def get_token_verifier() -> TokenVerifier:
    """FastAPI dependency returning the configured verifier.

    Raises:
        InternalError: When the identity provider settings are missing.
    """

    try:
        return _verifier_for(get_auth_settings())
    except TokenConfigurationError as exc:
        logger.error("Token verification is not configured: %s", exc)
        raise InternalError("Server misconfigured") from exc


@dataclasses.dataclass(frozen=True)
class CallerIdentity:
    """Authenticated subject on whose behalf a request executes."""

    subject: str
    claims: dict[str, Any] = dataclasses.field(default_factory=dict, compare=False)


def extract_bearer_token(authorization: str | None) -> str:
    """Return the credential of an ``Authorization: Bearer <token>`` header.

    Raises:
        UnauthenticatedError: If the header is missing, uses another scheme or
            carries no token.
    """

    if not authorization:
        raise UnauthenticatedError("Not authenticated")
    scheme, _, credentials = authorization.partition(" ")
    credentials = credentials.strip()
    if scheme.lower() != "bearer" or not credentials:
        raise UnauthenticatedError("Not authenticated")
    return credentials


def resolve_caller_identity(
    authorization: str | None, verifier: TokenVerifier
) -> CallerIdentity:
    """Verify the bearer credential and extract the subject claim.

    Token failures are terminal; there is no retry.

    Raises:
        UnauthenticatedError: For a missing/malformed header, a failed
            verification or a token without a ``sub`` claim.
    """

    token = extract_bearer_token(authorization)
    try:
        claims = verifier.verify(token)
    except TokenValidationError as exc:
        logger.warning("Invalid token: %s", exc)
        raise UnauthenticatedError("Invalid token") from exc

    subject = claims.get("sub")
    if not isinstance(subject, str) or not subject:
        logger.warning("Verified token carries no subject claim")
        raise UnauthenticatedError("Invalid token")
    return CallerIdentity(subject=subject, claims=dict(claims))


def get_caller_identity(
    request: Request, verifier: TokenVerifier = Depends(get_token_verifier)
) -> CallerIdentity:
    """FastAPI dependency resolving the caller from the ``Authorization`` header."""

    return resolve_caller_identity(request.headers.get("Authorization"), verifier)
