"""
VidTube - User Store

Boundary to the identity records. Profile editing, avatars and
channel data live elsewhere; the auth core only needs lookups,
account creation and password-hash updates.
"""

import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session as DBSession, select

from vidtube.auth.database import store_guard
from vidtube.auth.models import User
from vidtube.errors import ConflictError


logger = logging.getLogger(__name__)


def normalize_identifier(value: str) -> str:
    """Usernames and emails are stored trimmed and lowercased."""
    return value.strip().lower()


class UserStore:
    """Read/write access to User rows for the auth core."""

    def __init__(self, db: DBSession):
        self.db = db

    def get_by_id(self, user_id: UUID) -> Optional[User]:
        with store_guard(self.db, "users.get_by_id"):
            return self.db.get(User, user_id)

    def get_by_identifier(self, identifier: str) -> Optional[User]:
        """Find a user by username or email."""
        key = normalize_identifier(identifier)
        statement = select(User).where(or_(User.username == key, User.email == key))
        with store_guard(self.db, "users.get_by_identifier"):
            return self.db.exec(statement).first()

    def exists(self, username: str, email: str) -> bool:
        statement = select(User.id).where(
            or_(
                User.username == normalize_identifier(username),
                User.email == normalize_identifier(email),
            )
        )
        with store_guard(self.db, "users.exists"):
            return self.db.exec(statement).first() is not None

    def create(
        self,
        username: str,
        email: str,
        full_name: str,
        password_hash: str,
    ) -> User:
        """
        Insert a new user. The password must already be hashed.

        Raises:
            ConflictError: Username or email already taken
        """
        now = datetime.utcnow()
        user = User(
            username=normalize_identifier(username),
            email=normalize_identifier(email),
            full_name=full_name.strip(),
            password_hash=password_hash,
            created_at=now,
            updated_at=now,
        )
        with store_guard(self.db, "users.create"):
            try:
                self.db.add(user)
                self.db.commit()
            except IntegrityError as e:
                # Lost a race with a concurrent registration
                self.db.rollback()
                raise ConflictError(
                    "User with email or username already exists",
                    reason=str(e.orig),
                ) from e
            self.db.refresh(user)
        return user

    def update_password_hash(self, user: User, password_hash: str) -> None:
        user.password_hash = password_hash
        user.updated_at = datetime.utcnow()
        with store_guard(self.db, "users.update_password_hash"):
            self.db.add(user)
            self.db.commit()
