"""
VidTube - Session Registry

Server-side record of the single live refresh token per user.
The registry, not the token signature, decides whether a session is
current: a refresh token must both verify AND match the stored value.

Security:
- At most one refresh token is live per user; storing a new one
  invalidates the previous one unconditionally
- Only a SHA-256 digest of the token is persisted
- Rotation is a single conditional UPDATE, so two concurrent refreshes
  presenting the same token cannot both succeed
"""

import hashlib
import hmac
import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import update
from sqlmodel import Session as DBSession, select

from vidtube.auth.database import store_guard
from vidtube.auth.models import User


logger = logging.getLogger(__name__)


def token_digest(token: str) -> str:
    """SHA-256 hex digest of a refresh token."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class SessionRegistry:
    """
    Persists the current refresh token per identity.

    Backed by the users table today; callers only see this interface.
    """

    def __init__(self, db: DBSession):
        self.db = db

    def _set(self, identity_id: UUID, value: Optional[str], operation: str) -> int:
        statement = (
            update(User)
            .where(User.id == identity_id)
            .values(refresh_token_hash=value, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        with store_guard(self.db, operation):
            result = self.db.exec(statement)
            self.db.commit()
        return result.rowcount

    def store(self, identity_id: UUID, refresh_token: str) -> None:
        """Overwrite the stored refresh token (idempotent)."""
        if self._set(identity_id, token_digest(refresh_token), "session.store") == 0:
            logger.warning("Session store skipped: user %s not found", identity_id)

    def clear(self, identity_id: UUID) -> None:
        """Forget the stored refresh token (logout)."""
        self._set(identity_id, None, "session.clear")

    def matches(self, identity_id: UUID, candidate: str) -> bool:
        """
        Check a presented refresh token against the stored one.

        False means the token was already rotated, cleared, or never issued.
        """
        statement = select(User.refresh_token_hash).where(User.id == identity_id)
        with store_guard(self.db, "session.matches"):
            stored = self.db.exec(statement).first()
        if not stored:
            return False
        return hmac.compare_digest(stored, token_digest(candidate))

    def rotate(self, identity_id: UUID, presented: str, replacement: str) -> bool:
        """
        Atomically replace `presented` with `replacement`.

        The UPDATE only applies while the stored value still equals the
        presented token.

        Returns:
            True if this call performed the rotation
        """
        statement = (
            update(User)
            .where(
                User.id == identity_id,
                User.refresh_token_hash == token_digest(presented),
            )
            .values(
                refresh_token_hash=token_digest(replacement),
                updated_at=datetime.utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        with store_guard(self.db, "session.rotate"):
            result = self.db.exec(statement)
            self.db.commit()
        return result.rowcount == 1
