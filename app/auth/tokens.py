"""
Bearer token issue/verify.

Tokens are HS256 JWTs carrying the user's id (``sub``) plus the email, role
and name claims that the realtime gateway trusts without a database lookup.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from uuid import UUID

import jwt

from app.auth.principal import Principal
from app.config import get_settings
from app.constants.helpdesk import UserRole
from app.exceptions import UnauthorizedError
from app.infra.logging_config import get_logger

logger = get_logger("auth")

BEARER_PREFIX = "Bearer "


def issue_token(user, expires_minutes: Optional[int] = None) -> str:
    settings = get_settings()
    now = datetime.now(timezone.utc)
    minutes = expires_minutes or settings.jwt_expires_minutes
    payload = {
        "sub": str(user.id),
        "email": user.email,
        "role": str(user.role),
        "name": user.name,
        "iat": now,
        "exp": now + timedelta(minutes=minutes),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: Optional[str]) -> dict[str, Any]:
    """Verify signature and expiry; raise UnauthorizedError on any failure."""
    if not token:
        raise UnauthorizedError("No token provided")
    if token.startswith(BEARER_PREFIX):
        token = token[len(BEARER_PREFIX):]
    settings = get_settings()
    try:
        return jwt.decode(
            token, settings.jwt_secret, algorithms=[settings.jwt_algorithm]
        )
    except jwt.ExpiredSignatureError:
        logger.info("Rejected expired token")
        raise UnauthorizedError("Token expired")
    except jwt.InvalidTokenError as e:
        logger.info("Rejected invalid token: %s", e)
        raise UnauthorizedError("Invalid token")


def principal_from_claims(claims: dict[str, Any]) -> Principal:
    """Build a principal from token claims alone; missing role means client."""
    try:
        user_id = UUID(str(claims.get("sub")))
        role = UserRole(claims.get("role") or UserRole.CLIENT)
    except ValueError:
        raise UnauthorizedError("Invalid token")
    return Principal(
        id=user_id,
        email=claims.get("email") or "",
        role=role,
        name=claims.get("name") or "",
    )


def verify_token(token: Optional[str]) -> Principal:
    return principal_from_claims(decode_token(token))
