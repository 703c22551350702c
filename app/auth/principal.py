from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from app.constants.helpdesk import UserRole


@dataclass(frozen=True)
class Principal:
    """The authenticated caller as seen by services and the realtime gateway."""

    id: UUID
    email: str
    role: UserRole
    name: str

    @classmethod
    def from_user(cls, user) -> "Principal":
        return cls(
            id=user.id,
            email=user.email,
            role=UserRole(user.role),
            name=user.name,
        )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_attendant(self) -> bool:
        return self.role == UserRole.ATTENDANT

    @property
    def is_client(self) -> bool:
        return self.role == UserRole.CLIENT
