"""User model: clients, attendants and admins share one table."""

from __future__ import annotations

import uuid

from sqlalchemy import Column, String, Uuid

from app.constants.helpdesk import UserRole
from app.db import Base
from app.models.mixins import TimestampMixin


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(256), nullable=False)
    email = Column(String(320), unique=True, nullable=False, index=True)
    password_hash = Column(String(128), nullable=False)
    role = Column(String(16), nullable=False, default=UserRole.CLIENT.value)
    preferred_channel = Column(String(32), nullable=True)
    remote_jid = Column(String(256), nullable=True)
    external_id = Column(String(256), nullable=True)
