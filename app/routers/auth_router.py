"""Auth API: register, login and the current user."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.auth.dependencies import get_current_user
from app.auth.principal import Principal
from app.auth.tokens import issue_token
from app.constants.helpdesk import DomainEvent, UserRole
from app.db import get_db
from app.events.dispatcher import EventDispatcher
from app.exceptions import NotFoundError, UnauthorizedError
from app.infra.logging_config import get_logger
from app.routers.utils.dependencies import get_dispatcher
from app.schemas.user import (
    LoginRequest,
    RegisterRequest,
    TokenResponse,
    UserCreate,
    UserRead,
)
from app.services.user_service import UserService

logger = get_logger("auth")

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=TokenResponse, status_code=201)
def register(
    data: RegisterRequest,
    db: Session = Depends(get_db),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
) -> TokenResponse:
    """Create a client account and return a bearer token for it."""
    user = UserService(db).create_user(
        UserCreate(
            name=data.name,
            email=data.email,
            password=data.password,
            role=UserRole.CLIENT,
        )
    )
    dispatcher.emit(
        DomainEvent.AUTH_REGISTER.value, {"userId": user.id, "email": user.email}
    )
    logger.info("User registered: %s", user.email)
    return TokenResponse(user=UserRead.model_validate(user), token=issue_token(user))


@router.post("/login", response_model=TokenResponse)
def login(
    data: LoginRequest,
    db: Session = Depends(get_db),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
) -> TokenResponse:
    user = UserService(db).authenticate(data.email, data.password)
    if user is None:
        raise UnauthorizedError("Invalid credentials")
    dispatcher.emit(
        DomainEvent.AUTH_LOGIN.value, {"userId": user.id, "email": user.email}
    )
    logger.info("User logged in: %s", user.email)
    return TokenResponse(user=UserRead.model_validate(user), token=issue_token(user))


@router.get("/me", response_model=UserRead)
def me(
    current_user: Principal = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> UserRead:
    user = UserService(db).get_user(current_user.id)
    if user is None:
        raise NotFoundError("User not found")
    return UserRead.model_validate(user)
