"""Access token validation for server endpoints."""

from __future__ import annotations

from typing import Any

import jwt
import structlog

from studiodesk.config.settings import get_settings
from studiodesk.exceptions import UnauthorizedError
from studiodesk.models.domain import CallerClaims

logger = structlog.get_logger(__name__)

MISSING_HEADER_MESSAGE = "Missing Authorization header"
INVALID_SESSION_MESSAGE = "Unauthorized: invalid session"


def bearer_token(authorization: str | None) -> str:
    """Extract the token from an ``Authorization: Bearer <token>`` header."""
    if not authorization:
        raise UnauthorizedError(MISSING_HEADER_MESSAGE)
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise UnauthorizedError(INVALID_SESSION_MESSAGE)
    return token.strip()


def verify_access_token(token: str) -> CallerClaims:
    """Verify a backend-issued JWT and return the caller's claims.

    The signature, expiry and audience are checked; tenant and role are read
    from ``app_metadata`` as issued and never re-derived.
    """
    settings = get_settings()
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            settings.supabase_jwt_secret,
            algorithms=["HS256"],
            audience=settings.jwt_audience,
            options={"require": ["sub", "exp"]},
        )
    except jwt.PyJWTError as exc:
        logger.warning("access_token_invalid", error=str(exc))
        raise UnauthorizedError(INVALID_SESSION_MESSAGE) from exc

    app_metadata = payload.get("app_metadata")
    if not isinstance(app_metadata, dict):
        app_metadata = {}
    tenant_id = app_metadata.get("tenant_id")
    role = app_metadata.get("role")
    return CallerClaims(
        user_id=payload["sub"],
        email=payload.get("email"),
        tenant_id=tenant_id if isinstance(tenant_id, str) and tenant_id else None,
        role=role if isinstance(role, str) else None,
    )
