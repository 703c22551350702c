"""User lookups, creation and password authentication."""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Query, Session

from app.auth.passwords import hash_password, verify_password
from app.constants.helpdesk import UserRole
from app.exceptions import ConflictError
from app.models.user import User
from app.schemas.user import UserCreate


class UserService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get_user(self, user_id: UUID) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def get_user_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email.lower()).first()

    def get_users_query(self, role: Optional[UserRole] = None) -> Query[User]:
        query = self.db.query(User).order_by(User.created_at.desc())
        if role is not None:
            query = query.filter(User.role == role.value)
        return query

    def create_user(self, data: UserCreate) -> User:
        """Create a user; a taken email is a ConflictError."""
        email = data.email.lower()
        if self.get_user_by_email(email) is not None:
            raise ConflictError("Email already registered")
        user = User(
            name=data.name,
            email=email,
            password_hash=hash_password(data.password),
            role=data.role.value,
            preferred_channel=data.preferred_channel,
        )
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError("Email already registered")
        self.db.refresh(user)
        return user

    def authenticate(self, email: str, password: str) -> Optional[User]:
        user = self.get_user_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            return None
        return user
