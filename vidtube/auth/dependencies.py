"""
VidTube - Request Authentication

The request gate for protected routes:

1. Take the access token from the `accessToken` cookie, falling back
   to `Authorization: Bearer <token>` (cookie wins when both are sent)
2. Verify signature, type and expiry
3. Load the identity named by the token
4. Attach the identity view to `request.state.user`

RequestAuthenticator.authenticate either returns the identity or raises
UnauthorizedError; the FastAPI dependency short-circuits on the error.

Usage:
    @router.get("/protected")
    async def protected_route(user: IdentityView = Depends(get_current_user)):
        ...
"""

import logging
from typing import Mapping, Optional
from uuid import UUID

from fastapi import Request
from sqlmodel import Session as DBSession

from vidtube.auth.schemas import IdentityView
from vidtube.auth.tokens import TokenType, TokenVerifier
from vidtube.auth.users import UserStore
from vidtube.errors import (
    MissingTokenError,
    TokenExpiredError,
    TokenInvalidError,
    UnauthorizedError,
)


logger = logging.getLogger(__name__)

ACCESS_TOKEN_COOKIE = "accessToken"
REFRESH_TOKEN_COOKIE = "refreshToken"


def extract_token(cookies: Mapping[str, str], authorization: Optional[str]) -> Optional[str]:
    """Pick the access token from the cookie, else from a Bearer header."""
    token = (cookies.get(ACCESS_TOKEN_COOKIE) or "").strip()
    if token:
        return token

    if authorization and authorization[:7].lower() == "bearer ":
        token = authorization[7:].strip()
        if token:
            return token
    return None


class RequestAuthenticator:
    """Resolves the identity behind an inbound request."""

    def __init__(self, db: DBSession, verifier: TokenVerifier):
        self.users = UserStore(db)
        self.verifier = verifier

    def authenticate(self, request: Request) -> IdentityView:
        """
        Raises:
            MissingTokenError: No token in cookie or header
            UnauthorizedError: Token rejected or identity gone
        """
        token = extract_token(request.cookies, request.headers.get("Authorization"))
        if token is None:
            raise MissingTokenError("Missing authentication token")

        try:
            claims = self.verifier.verify(token, TokenType.ACCESS)
        except TokenExpiredError as e:
            raise UnauthorizedError(
                "Invalid or expired token", error_code="token_expired", reason=e.reason
            ) from e
        except TokenInvalidError as e:
            raise UnauthorizedError(
                "Invalid or expired token",
                error_code="invalid_token",
                reason=f"{e.error_code}: {e.reason}",
            ) from e

        try:
            user_id = UUID(claims.id)
        except ValueError as e:
            raise UnauthorizedError("Invalid or expired token", reason=str(e)) from e

        user = self.users.get_by_id(user_id)
        if user is None:
            raise UnauthorizedError("Invalid token", reason="identity no longer exists")

        identity = IdentityView.model_validate(user)
        request.state.user = identity
        return identity


async def get_current_user(request: Request) -> IdentityView:
    """
    FastAPI dependency returning the authenticated identity.

    Raises:
        UnauthorizedError: Rendered as 401 by the gateway error handlers
    """
    db = request.app.state.db_session_factory()
    try:
        authenticator = RequestAuthenticator(db, TokenVerifier(request.app.state.auth_config))
        return authenticator.authenticate(request)
    finally:
        db.close()
