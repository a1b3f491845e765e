"""
VidTube - Configuration Management

Centralized configuration using Pydantic Settings.
All secrets and connection strings are loaded from environment variables.

Security: No secrets are hardcoded. Use .env for local development.
"""

from datetime import timedelta
from typing import List

from pydantic import BaseModel, ConfigDict
from pydantic_settings import BaseSettings


class AuthConfig(BaseModel):
    """
    Immutable token and hashing configuration.

    Built once at startup and handed to the hasher, issuer and verifier
    at construction time. Access and refresh tokens are signed with
    different secrets so one can never be accepted as the other.
    """
    model_config = ConfigDict(frozen=True)

    access_secret: str
    access_ttl: timedelta
    refresh_secret: str
    refresh_ttl: timedelta
    hash_cost: int = 12
    algorithm: str = "HS256"
    revoke_on_password_change: bool = True


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Attributes:
        ACCESS_TOKEN_SECRET: Signing key for access tokens
        REFRESH_TOKEN_SECRET: Signing key for refresh tokens
        BCRYPT_WORK_FACTOR: bcrypt cost (log2 rounds)
        DATABASE_URL: SQLAlchemy URL for the identity store
        STORE_TIMEOUT_SECONDS: Upper bound on waiting for the store
        REVOKE_SESSION_ON_PASSWORD_CHANGE: Clear the refresh token on password change
        ALLOWED_ORIGINS: CORS allowed origins for the frontend
    """

    # Tokens
    ACCESS_TOKEN_SECRET: str = ""  # Must be set via environment
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15
    REFRESH_TOKEN_SECRET: str = ""  # Must be set via environment
    REFRESH_TOKEN_EXPIRE_DAYS: int = 10
    JWT_ALGORITHM: str = "HS256"

    # Passwords
    BCRYPT_WORK_FACTOR: int = 12
    REVOKE_SESSION_ON_PASSWORD_CHANGE: bool = True

    # Database (PostgreSQL for production, SQLite for development)
    DATABASE_URL: str = "sqlite:///./vidtube.db"
    STORE_TIMEOUT_SECONDS: float = 5.0

    # CORS
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000"]

    # Logging
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True

    def auth_config(self) -> AuthConfig:
        """Freeze the token/hashing subset of the settings."""
        return AuthConfig(
            access_secret=self.ACCESS_TOKEN_SECRET,
            access_ttl=timedelta(minutes=self.ACCESS_TOKEN_EXPIRE_MINUTES),
            refresh_secret=self.REFRESH_TOKEN_SECRET,
            refresh_ttl=timedelta(days=self.REFRESH_TOKEN_EXPIRE_DAYS),
            hash_cost=self.BCRYPT_WORK_FACTOR,
            algorithm=self.JWT_ALGORITHM,
            revoke_on_password_change=self.REVOKE_SESSION_ON_PASSWORD_CHANGE,
        )


settings = Settings()
