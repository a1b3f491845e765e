"""
VidTube - Identity Database Model

SQLModel-based user table. Uses PostgreSQL for production, SQLite for
local development and tests.

Security:
- Passwords stored as bcrypt hashes only
- The live refresh token is stored as a SHA-256 digest, never plaintext
- All timestamps in UTC
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import SQLModel, Field
from sqlalchemy import Column, String, DateTime


class User(SQLModel, table=True):
    """
    User account.

    Attributes:
        id: Unique identifier (UUIDv4)
        username: Login identifier (unique, lowercased)
        email: Login identifier (unique, lowercased)
        full_name: Display name
        password_hash: bcrypt hash (never store plaintext)
        refresh_token_hash: Digest of the single live refresh token, or None.
            Owned by SessionRegistry; nothing else reads or writes it.
        created_at: Account creation timestamp (UTC)
        updated_at: Last modification timestamp (UTC)
    """
    __tablename__ = "users"

    id: UUID = Field(
        default_factory=uuid4,
        primary_key=True,
        description="Unique user identifier"
    )
    username: str = Field(
        sa_column=Column(String(64), unique=True, index=True, nullable=False),
        description="Lowercased username"
    )
    email: str = Field(
        sa_column=Column(String(255), unique=True, index=True, nullable=False),
        description="Lowercased email address"
    )
    full_name: str = Field(
        sa_column=Column(String(255), nullable=False),
        description="Display name"
    )
    password_hash: str = Field(
        sa_column=Column(String(255), nullable=False),
        description="bcrypt password hash"
    )
    refresh_token_hash: Optional[str] = Field(
        default=None,
        sa_column=Column(String(64), nullable=True),
        description="SHA-256 digest of the live refresh token"
    )
    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column=Column(DateTime, nullable=False, default=datetime.utcnow),
        description="Account creation timestamp"
    )
    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column=Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow),
        description="Last update timestamp"
    )
