"""
VidTube - Authentication Service

Orchestrates the session lifecycle:

    Anonymous -> Authenticated(pair v1) -> Authenticated(pair v2) -> ... -> Revoked

- login:           verify password, issue pair, store refresh token
- refresh:         verify refresh token, compare with registry, rotate
- logout:          clear stored refresh token (idempotent)
- change_password: verify old password, hash and persist the new one
- register:        hash password once, create identity

Component errors (token, hashing, store) are mapped here to the
HTTP-visible taxonomy. Messages are safe for callers; the underlying
reason stays on the exception for logs.
"""

import logging
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from sqlmodel import Session as DBSession

from vidtube.auth.models import User
from vidtube.auth.password import CredentialHasher
from vidtube.auth.schemas import IdentityView
from vidtube.auth.sessions import SessionRegistry
from vidtube.auth.tokens import (
    IdentityClaims,
    TokenIssuer,
    TokenPair,
    TokenType,
    TokenVerifier,
)
from vidtube.auth.users import UserStore
from vidtube.config import AuthConfig
from vidtube.errors import (
    ConflictError,
    InvalidCredentialsError,
    MissingTokenError,
    NotFoundError,
    SessionRevokedError,
    TokenExpiredError,
    TokenInvalidError,
    UnauthorizedError,
)


logger = logging.getLogger(__name__)

# Same message for unknown user and wrong password (no username enumeration)
INVALID_CREDENTIALS = "Invalid credentials"


@dataclass
class LoginResult:
    user: IdentityView
    tokens: TokenPair


class AuthenticationService:
    """
    Login, refresh-token rotation, logout and password management.

    One instance per request; it shares the request's database session
    with the user store and session registry.
    """

    def __init__(
        self,
        db: DBSession,
        config: AuthConfig,
        *,
        hasher: Optional[CredentialHasher] = None,
        issuer: Optional[TokenIssuer] = None,
        verifier: Optional[TokenVerifier] = None,
    ):
        self.users = UserStore(db)
        self.sessions = SessionRegistry(db)
        self.hasher = hasher or CredentialHasher(config.hash_cost)
        self.issuer = issuer or TokenIssuer(config)
        self.verifier = verifier or TokenVerifier(config)
        self.revoke_on_password_change = config.revoke_on_password_change

    def _start_session(self, user: User) -> TokenPair:
        tokens = self.issuer.issue_pair(IdentityClaims.from_user(user))
        self.sessions.store(user.id, tokens.refresh_token)
        return tokens

    def register(self, username: str, email: str, password: str, full_name: str) -> IdentityView:
        """
        Create an identity. The password is hashed here, exactly once.

        Raises:
            ConflictError: Username or email already registered
        """
        if self.users.exists(username, email):
            raise ConflictError("User with email or username already exists")

        password_hash = self.hasher.hash(password)
        user = self.users.create(username, email, full_name, password_hash)
        logger.info("auth.register user_id=%s", user.id)
        return IdentityView.model_validate(user)

    def login(self, identifier: str, password: str) -> LoginResult:
        """
        Authenticate with username-or-email and password.

        Raises:
            NotFoundError: No such identity
            InvalidCredentialsError: Wrong password
        """
        user = self.users.get_by_identifier(identifier)
        if user is None:
            logger.info("auth.login.failure reason=user_not_found")
            raise NotFoundError(
                INVALID_CREDENTIALS,
                error_code="invalid_credentials",
                reason="user_not_found",
            )

        if not self.hasher.verify(password, user.password_hash):
            logger.info("auth.login.failure user_id=%s reason=invalid_password", user.id)
            raise InvalidCredentialsError(INVALID_CREDENTIALS, reason="invalid_password")

        tokens = self._start_session(user)
        logger.info("auth.login.success user_id=%s", user.id)
        return LoginResult(user=IdentityView.model_validate(user), tokens=tokens)

    def refresh(self, presented: Optional[str]) -> TokenPair:
        """
        Redeem a refresh token for a new pair, exactly once.

        A token that verifies but is not the stored one was already rotated
        or revoked; the session is terminated and a fresh login is required.

        Raises:
            MissingTokenError: No token presented
            UnauthorizedError: Token expired, invalid, or identity gone
            SessionRevokedError: Token reused or already rotated
        """
        if not presented:
            raise MissingTokenError("Refresh token is required")

        try:
            claims = self.verifier.verify(presented, TokenType.REFRESH)
        except TokenExpiredError as e:
            raise UnauthorizedError(
                "Refresh token has expired", error_code="token_expired", reason=e.reason
            ) from e
        except TokenInvalidError as e:
            raise UnauthorizedError(
                "Invalid refresh token", error_code="invalid_token", reason=e.reason
            ) from e

        try:
            user_id = UUID(claims.id)
        except ValueError as e:
            raise UnauthorizedError("Invalid refresh token", error_code="invalid_token", reason=str(e)) from e

        user = self.users.get_by_id(user_id)
        if user is None:
            raise UnauthorizedError("Invalid refresh token", reason="identity no longer exists")

        if not self.sessions.matches(user.id, presented):
            self._terminate(user.id, "mismatch")
            raise SessionRevokedError(
                "Refresh token reused or already rotated", reason="registry mismatch"
            )

        tokens = self.issuer.issue_pair(IdentityClaims.from_user(user))
        if not self.sessions.rotate(user.id, presented, tokens.refresh_token):
            # A concurrent refresh consumed the same token first
            self._terminate(user.id, "rotation_conflict")
            raise SessionRevokedError(
                "Refresh token reused or already rotated", reason="rotation conflict"
            )

        logger.info("auth.refresh.success user_id=%s", user.id)
        return tokens

    def _terminate(self, user_id: UUID, reason: str) -> None:
        logger.warning("auth.refresh.reuse_detected user_id=%s reason=%s", user_id, reason)
        self.sessions.clear(user_id)

    def logout(self, identity_id: UUID) -> None:
        """Revoke the stored refresh token. Logging out twice is fine."""
        self.sessions.clear(identity_id)
        logger.info("auth.logout user_id=%s", identity_id)

    def change_password(self, identity_id: UUID, old_password: str, new_password: str) -> bool:
        """
        Replace the password after checking the old one.

        Returns:
            True if the live refresh token was revoked as part of the change

        Raises:
            NotFoundError: Identity gone
            InvalidCredentialsError: Old password is wrong
        """
        user = self.users.get_by_id(identity_id)
        if user is None:
            raise NotFoundError("User not found")

        if not self.hasher.verify(old_password, user.password_hash):
            logger.info("auth.password.failure user_id=%s reason=invalid_password", user.id)
            raise InvalidCredentialsError("Invalid old password")

        self.users.update_password_hash(user, self.hasher.hash(new_password))

        revoked = False
        if self.revoke_on_password_change:
            self.sessions.clear(identity_id)
            revoked = True
        logger.info("auth.password.changed user_id=%s session_revoked=%s", identity_id, revoked)
        return revoked

    def current_user(self, identity_id: UUID) -> IdentityView:
        user = self.users.get_by_id(identity_id)
        if user is None:
            raise NotFoundError("User not found")
        return IdentityView.model_validate(user)
