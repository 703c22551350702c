"""FastAPI dependencies resolving the bearer token to a principal."""

from __future__ import annotations

from typing import Callable, Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from app.auth.principal import Principal
from app.auth.tokens import BEARER_PREFIX, decode_token, principal_from_claims
from app.constants.helpdesk import UserRole
from app.db import get_db
from app.exceptions import ForbiddenError, UnauthorizedError
from app.services.user_service import UserService


def _bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("authorization")
    if not header or not header.startswith(BEARER_PREFIX):
        return None
    return header[len(BEARER_PREFIX):]


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
) -> Principal:
    """
    Resolve the caller for REST requests.

    Unlike the realtime gateway, the REST path re-reads the user so that role
    changes and deletions take effect before the token expires.
    """
    claims = decode_token(_bearer_token(request))
    user_id = principal_from_claims(claims).id
    user = UserService(db).get_user(user_id)
    if user is None:
        raise UnauthorizedError("User not found")
    return Principal.from_user(user)


def require_roles(*roles: UserRole) -> Callable[..., Principal]:
    """Dependency factory: the caller must hold one of ``roles``."""

    def dependency(current_user: Principal = Depends(get_current_user)) -> Principal:
        if current_user.role not in roles:
            raise ForbiddenError("Insufficient permissions")
        return current_user

    return dependency
