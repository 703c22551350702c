"""Command to create the first admin account (``python -m app.commands.create_admin_command``)."""

from __future__ import annotations

import argparse
import logging

from sqlalchemy.orm import Session

from app.constants.helpdesk import UserRole
from app.models.user import User
from app.schemas.user import UserCreate
from app.services.user_service import UserService


class CreateAdminCommand:
    """
    Create an admin user, or promote an existing account with the same email.
    """

    def __init__(self, db: Session) -> None:
        self.db = db
        self.user_service = UserService(db)
        self.logger = logging.getLogger(__name__)

    def execute(self, name: str, email: str, password: str) -> User:
        """
        Args:
            name: Display name
            email: Login email
            password: Plain password, hashed before storage

        Returns:
            User: The admin user
        """
        existing = self.user_service.get_user_by_email(email)
        if existing is not None:
            if existing.role != UserRole.ADMIN:
                existing.role = UserRole.ADMIN.value
                self.db.commit()
                self.db.refresh(existing)
                self.logger.info("Promoted %s to admin", existing.email)
            return existing
        user = self.user_service.create_user(
            UserCreate(name=name, email=email, password=password, role=UserRole.ADMIN)
        )
        self.logger.info("Created admin %s", user.email)
        return user


def main() -> None:
    from app.infra.logging_config import LoggingConfig
    from app.utils.db.db_session_helper import db_session

    parser = argparse.ArgumentParser(description="Create an admin account")
    parser.add_argument("--name", required=True)
    parser.add_argument("--email", required=True)
    parser.add_argument("--password", required=True)
    args = parser.parse_args()

    LoggingConfig()
    with db_session() as db:
        CreateAdminCommand(db).execute(args.name, args.email, args.password)


if __name__ == "__main__":
    main()
