"""
VidTube - Authentication Routes

API endpoints for authentication:
- POST /auth/register         - Create an account
- POST /auth/login            - Authenticate and start a session
- POST /auth/logout           - Revoke the session
- POST /auth/refresh-token    - Rotate the token pair
- POST /auth/change-password  - Replace the password
- GET  /auth/me               - Get current user info

Login and refresh set `accessToken` / `refreshToken` cookies
(httpOnly, secure) in addition to returning the tokens in the body.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response, status
from sqlmodel import Session as DBSession

from vidtube.auth.dependencies import (
    ACCESS_TOKEN_COOKIE,
    REFRESH_TOKEN_COOKIE,
    get_current_user,
)
from vidtube.auth.schemas import (
    ChangePasswordRequest,
    CurrentUserResponse,
    ErrorResponse,
    IdentityView,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    RefreshRequest,
    RefreshResponse,
    RegisterRequest,
    RegisterResponse,
)
from vidtube.auth.service import AuthenticationService
from vidtube.auth.tokens import TokenPair
from vidtube.config import AuthConfig


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])


def get_db(request: Request) -> DBSession:
    """Get database session from app state."""
    return request.app.state.db_session_factory()


def get_auth_config(request: Request) -> AuthConfig:
    return request.app.state.auth_config


def get_client_ip(request: Request) -> str:
    """Extract client IP from request."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def get_user_agent(request: Request) -> str:
    """Extract user agent from request."""
    return request.headers.get("User-Agent", "unknown")[:512]


def _set_session_cookies(response: Response, tokens: TokenPair, config: AuthConfig) -> None:
    response.set_cookie(
        ACCESS_TOKEN_COOKIE,
        tokens.access_token,
        max_age=int(config.access_ttl.total_seconds()),
        httponly=True,
        secure=True,
    )
    response.set_cookie(
        REFRESH_TOKEN_COOKIE,
        tokens.refresh_token,
        max_age=int(config.refresh_ttl.total_seconds()),
        httponly=True,
        secure=True,
    )


def _clear_session_cookies(response: Response) -> None:
    response.delete_cookie(ACCESS_TOKEN_COOKIE, httponly=True, secure=True)
    response.delete_cookie(REFRESH_TOKEN_COOKIE, httponly=True, secure=True)


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    summary="Create a new account",
)
async def register(request: Request, body: RegisterRequest):
    """
    Register a new user.

    The password is bcrypt-hashed before the row is written.
    Avatar and cover-image upload are handled by the media service.
    """
    db = get_db(request)

    try:
        service = AuthenticationService(db, get_auth_config(request))
        user = service.register(
            username=body.username,
            email=body.email,
            password=body.password,
            full_name=body.full_name,
        )
        _log_auth_event(request, "auth.user.created", user_id=str(user.id))
        return RegisterResponse(user=user)

    finally:
        db.close()


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Authenticate user and start a session",
)
async def login(request: Request, response: Response, credentials: LoginRequest):
    """
    Authenticate with username or email and password.

    On success:
    1. Validates password against bcrypt hash
    2. Issues an access/refresh token pair
    3. Stores the refresh token as the single live session
    4. Sets both tokens as httpOnly, secure cookies
    """
    db = get_db(request)
    config = get_auth_config(request)

    try:
        service = AuthenticationService(db, config)
        result = service.login(credentials.identifier, credentials.password)

        _set_session_cookies(response, result.tokens, config)
        _log_auth_event(request, "auth.login.success", user_id=str(result.user.id))

        return LoginResponse(
            user=result.user,
            access_token=result.tokens.access_token,
            refresh_token=result.tokens.refresh_token,
        )

    finally:
        db.close()


@router.post(
    "/logout",
    response_model=MessageResponse,
    responses={401: {"model": ErrorResponse}},
    summary="Revoke the current session",
)
async def logout(
    request: Request,
    response: Response,
    user: IdentityView = Depends(get_current_user),
):
    """
    Clear the stored refresh token and both cookies.

    The access token stays valid until it expires; it cannot be refreshed.
    """
    db = get_db(request)

    try:
        AuthenticationService(db, get_auth_config(request)).logout(user.id)
        _clear_session_cookies(response)
        _log_auth_event(request, "auth.logout", user_id=str(user.id))
        return MessageResponse(message="User logged out")

    finally:
        db.close()


@router.post(
    "/refresh-token",
    response_model=RefreshResponse,
    responses={401: {"model": ErrorResponse}},
    summary="Rotate the access/refresh token pair",
)
async def refresh_token(
    request: Request,
    response: Response,
    body: Optional[RefreshRequest] = None,
):
    """
    Exchange the refresh token (cookie or body) for a new pair.

    Each refresh token can be redeemed once. Presenting a consumed token
    revokes the session and requires a fresh login.
    """
    presented = request.cookies.get(REFRESH_TOKEN_COOKIE) or (
        body.refresh_token if body else None
    )
    db = get_db(request)
    config = get_auth_config(request)

    try:
        tokens = AuthenticationService(db, config).refresh(presented)
        _set_session_cookies(response, tokens, config)
        return RefreshResponse(
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
        )

    finally:
        db.close()


@router.post(
    "/change-password",
    response_model=MessageResponse,
    responses={401: {"model": ErrorResponse}},
    summary="Change the current user's password",
)
async def change_password(
    request: Request,
    response: Response,
    body: ChangePasswordRequest,
    user: IdentityView = Depends(get_current_user),
):
    """
    Replace the password after verifying the old one.

    When session revocation on password change is enabled, the refresh
    token is cleared and the cookies are removed.
    """
    db = get_db(request)

    try:
        service = AuthenticationService(db, get_auth_config(request))
        revoked = service.change_password(user.id, body.old_password, body.new_password)
        if revoked:
            _clear_session_cookies(response)
        _log_auth_event(
            request, "auth.password.changed",
            user_id=str(user.id),
            details={"session_revoked": revoked},
        )
        return MessageResponse(message="Password changed successfully")

    finally:
        db.close()


@router.get(
    "/me",
    response_model=CurrentUserResponse,
    responses={401: {"model": ErrorResponse}},
    summary="Get current user information",
)
async def get_me(user: IdentityView = Depends(get_current_user)):
    """Return the authenticated user's public profile."""
    return CurrentUserResponse(user=user)


def _log_auth_event(
    request: Request,
    event_type: str,
    user_id: Optional[str] = None,
    details: Optional[dict] = None,
):
    """Log an authentication event with client metadata."""
    logger.info(
        "%s user_id=%s ip=%s user_agent=%r request_id=%s details=%s",
        event_type,
        user_id or "anonymous",
        get_client_ip(request),
        get_user_agent(request)[:256],
        getattr(request.state, "request_id", None),
        details or {},
    )
