"""Pydantic schemas for users, registration and login."""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import EmailStr, Field

from app.constants.helpdesk import UserRole
from app.schemas.base import CamelModel


class UserSummary(CamelModel):
    """Denormalized user shown next to a conversation."""

    id: UUID
    name: str
    email: str


class SenderSummary(CamelModel):
    """Message sender; deliberately without email."""

    id: UUID
    name: str


class UserRead(CamelModel):
    id: UUID
    name: str
    email: str
    role: UserRole
    preferred_channel: Optional[str] = None
    created_at: datetime


class UserCreate(CamelModel):
    """Admin-side user creation; any role."""

    name: str = Field(min_length=1, max_length=256)
    email: EmailStr
    password: str = Field(min_length=8)
    role: UserRole = UserRole.CLIENT
    preferred_channel: Optional[str] = None


class RegisterRequest(CamelModel):
    """Self-registration always yields a client account."""

    name: str = Field(min_length=1, max_length=256)
    email: EmailStr
    password: str = Field(min_length=8)


class LoginRequest(CamelModel):
    email: EmailStr
    password: str


class TokenResponse(CamelModel):
    user: UserRead
    token: str
