"""
VidTube - Authentication Request/Response Schemas

Pydantic models for API request validation and response serialization.
Separates API contracts from database models. JSON field names are
camelCase on the wire (fullName, accessToken, ...).
"""

import re
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from vidtube.auth.password import BCRYPT_MAX_BYTES


EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9_.+-]+@[a-zA-Z0-9-]+\.[a-zA-Z0-9-.]+$")

# bcrypt reads at most 72 bytes
PASSWORD_MAX_LENGTH = 72


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


def _check_password_bytes(v: str) -> str:
    if len(v.encode("utf-8")) > BCRYPT_MAX_BYTES:
        raise ValueError(f"Password must be at most {BCRYPT_MAX_BYTES} bytes when UTF-8 encoded")
    return v


class IdentityView(_CamelModel):
    """User data safe to return: no password hash, no refresh token."""
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    id: UUID
    username: str
    email: str
    full_name: str = Field(..., alias="fullName")
    created_at: datetime = Field(..., alias="createdAt")


class RegisterRequest(_CamelModel):
    """Request body for POST /auth/register."""
    username: str = Field(..., min_length=3, max_length=64)
    email: str = Field(..., max_length=255)
    password: str = Field(..., min_length=6, max_length=PASSWORD_MAX_LENGTH)
    full_name: str = Field(..., alias="fullName", min_length=2, max_length=255)

    @field_validator("username")
    @classmethod
    def username_format(cls, v):
        v = v.strip().lower()
        if len(v) < 3:
            raise ValueError("Username must be at least 3 characters long")
        if not re.match(r"^[a-z0-9_.-]+$", v):
            raise ValueError("Username may only contain letters, digits, '_', '.' and '-'")
        return v

    @field_validator("email")
    @classmethod
    def email_format(cls, v):
        """Basic email format validation (allows .local for development)."""
        v = v.strip()
        if not EMAIL_PATTERN.match(v):
            raise ValueError("Please enter a valid email address")
        return v.lower()

    @field_validator("full_name")
    @classmethod
    def full_name_present(cls, v):
        if len(v.strip()) < 2:
            raise ValueError("Full name must be at least 2 characters long")
        return v.strip()

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, v):
        return _check_password_bytes(v)


class RegisterResponse(_CamelModel):
    """Response body for successful registration."""
    user: IdentityView
    message: str = "User registered successfully"


class LoginRequest(_CamelModel):
    """Request body for POST /auth/login. `identifier` is a username or email."""
    identifier: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LENGTH)


class LoginResponse(_CamelModel):
    """Response body for successful login."""
    user: IdentityView
    access_token: str = Field(..., alias="accessToken")
    refresh_token: str = Field(..., alias="refreshToken")


class RefreshRequest(_CamelModel):
    """Request body for POST /auth/refresh-token (optional when the cookie is sent)."""
    refresh_token: Optional[str] = Field(default=None, alias="refreshToken")


class RefreshResponse(_CamelModel):
    """Response body for token refresh."""
    access_token: str = Field(..., alias="accessToken")
    refresh_token: str = Field(..., alias="refreshToken")


class ChangePasswordRequest(_CamelModel):
    """Request body for POST /auth/change-password."""
    old_password: str = Field(..., alias="oldPassword", min_length=1, max_length=PASSWORD_MAX_LENGTH)
    new_password: str = Field(..., alias="newPassword", min_length=6, max_length=PASSWORD_MAX_LENGTH)

    @field_validator("new_password")
    @classmethod
    def new_password_fits_bcrypt(cls, v):
        return _check_password_bytes(v)


class MessageResponse(BaseModel):
    """Plain acknowledgement."""
    message: str


class CurrentUserResponse(_CamelModel):
    """Response body for GET /auth/me."""
    user: IdentityView


class ErrorResponse(BaseModel):
    """Standard error response."""
    detail: str
    error_code: Optional[str] = None
    request_id: Optional[str] = None
