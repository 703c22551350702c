"""Users API (admin): create staff accounts and list users."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi_pagination import Page, Params
from fastapi_pagination.ext.sqlalchemy import paginate
from sqlalchemy.orm import Session

from app.auth.dependencies import require_roles
from app.constants.helpdesk import UserRole
from app.db import get_db
from app.schemas.user import UserCreate, UserRead
from app.services.user_service import UserService

router = APIRouter(
    prefix="/users",
    tags=["users"],
    dependencies=[Depends(require_roles(UserRole.ADMIN))],
)


@router.get("", response_model=Page[UserRead])
def list_users(
    params: Params = Depends(),
    role: Optional[UserRole] = Query(None),
    db: Session = Depends(get_db),
) -> Page[UserRead]:
    """List users, optionally filtered by role."""
    query = UserService(db).get_users_query(role=role)
    return paginate(query, params=params)


@router.post("", response_model=UserRead, status_code=201)
def create_user(
    data: UserCreate,
    db: Session = Depends(get_db),
) -> UserRead:
    """Create a user with any role (attendants and admins are created here)."""
    user = UserService(db).create_user(data)
    return UserRead.model_validate(user)
