"""
VidTube - JWT Token Management

Creates and validates the two token types of a session:
- Access tokens: short-lived, carry display claims (id, email, username, fullName)
- Refresh tokens: long-lived, carry only the identity id

Every token also carries:
- typ: "access" or "refresh"
- iat / exp: issue and expiry timestamps
- jti: random token id, so two tokens minted in the same second differ

Security:
- Each token type has its own secret; a refresh token never verifies as access
- Claims never include the password hash or the refresh token
- Expiry is checked against an injectable clock so it can be tested exactly
"""

import secrets
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

from jose import jwt, JWTError
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from vidtube.config import AuthConfig
from vidtube.errors import (
    TokenExpiredError,
    TokenInvalidError,
    TokenSigningError,
    TokenTypeMismatchError,
)


Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenType(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"


class IdentityClaims(BaseModel):
    """
    Identity snapshot embedded at issuance time.

    Display fields may go stale after profile edits; that is accepted.
    """
    id: str
    email: str
    username: str
    full_name: str

    @classmethod
    def from_user(cls, user) -> "IdentityClaims":
        return cls(
            id=str(user.id),
            email=user.email,
            username=user.username,
            full_name=user.full_name,
        )


class TokenPayload(BaseModel):
    """
    Verified token payload.

    Attributes:
        id: Identity id (UUID string)
        typ: Token type
        exp: Expiration timestamp (seconds)
        iat: Issued-at timestamp (seconds)
        jti: Unique token id
        email/username/full_name: Present on access tokens only
    """
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., min_length=1)
    typ: TokenType
    exp: int
    iat: int
    jti: str
    email: Optional[str] = None
    username: Optional[str] = None
    full_name: Optional[str] = Field(default=None, alias="fullName")


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str


class _SecretSelector:
    """Shared secret lookup for issuer and verifier."""

    def __init__(self, config: AuthConfig, clock: Optional[Clock] = None):
        self.config = config
        self.clock = clock or utcnow

    def _secret_for(self, token_type: TokenType) -> str:
        if token_type is TokenType.ACCESS:
            return self.config.access_secret
        return self.config.refresh_secret

    def _require_secret(self, token_type: TokenType) -> str:
        secret = self._secret_for(token_type)
        if not secret:
            raise TokenSigningError(
                "Token signing is not configured",
                reason=f"{token_type.value} token secret is empty",
            )
        return secret


class TokenIssuer(_SecretSelector):
    """
    Signs access and refresh tokens.

    Example:
        >>> issuer = TokenIssuer(settings.auth_config())
        >>> pair = issuer.issue_pair(IdentityClaims.from_user(user))
    """

    def _sign(self, claims: dict, token_type: TokenType) -> str:
        secret = self._require_secret(token_type)
        ttl = (
            self.config.access_ttl
            if token_type is TokenType.ACCESS
            else self.config.refresh_ttl
        )
        now = self.clock()
        payload = {
            **claims,
            "typ": token_type.value,
            "iat": int(now.timestamp()),
            "exp": int((now + ttl).timestamp()),
            "jti": secrets.token_hex(16),
        }
        return jwt.encode(payload, secret, algorithm=self.config.algorithm)

    def issue_access_token(self, claims: IdentityClaims) -> str:
        return self._sign(
            {
                "id": claims.id,
                "email": claims.email,
                "username": claims.username,
                "fullName": claims.full_name,
            },
            TokenType.ACCESS,
        )

    def issue_refresh_token(self, claims: IdentityClaims) -> str:
        # Minimal claims: display fields would only go stale over the longer TTL
        return self._sign({"id": claims.id}, TokenType.REFRESH)

    def issue_pair(self, claims: IdentityClaims) -> TokenPair:
        return TokenPair(
            access_token=self.issue_access_token(claims),
            refresh_token=self.issue_refresh_token(claims),
        )


class TokenVerifier(_SecretSelector):
    """
    Validates a presented token for an expected type.

    Raises (from verify):
        TokenExpiredError: Signature valid, expiry passed
        TokenTypeMismatchError: Token is genuine but of the other type
        TokenInvalidError: Bad signature or malformed token
    """

    def _decode(self, token: str, secret: str) -> dict:
        # Expiry is checked separately against self.clock
        return jwt.decode(
            token,
            secret,
            algorithms=[self.config.algorithm],
            options={"verify_exp": False},
        )

    def _is_other_type(self, token: str, expected: TokenType) -> bool:
        other = TokenType.REFRESH if expected is TokenType.ACCESS else TokenType.ACCESS
        other_secret = self._secret_for(other)
        if not other_secret or other_secret == self._secret_for(expected):
            return False
        try:
            claims = self._decode(token, other_secret)
        except JWTError:
            return False
        return claims.get("typ") == other.value

    def verify(self, token: str, token_type: TokenType) -> TokenPayload:
        if not token or not isinstance(token, str):
            raise TokenInvalidError("Token is malformed", reason="empty token")

        secret = self._require_secret(token_type)

        try:
            claims = self._decode(token, secret)
        except JWTError as e:
            if self._is_other_type(token, token_type):
                raise TokenTypeMismatchError(
                    "Wrong token type",
                    reason=f"expected {token_type.value} token",
                ) from e
            raise TokenInvalidError("Token is invalid", reason=str(e)) from e

        if claims.get("typ") != token_type.value:
            raise TokenTypeMismatchError(
                "Wrong token type",
                reason=f"expected {token_type.value}, got {claims.get('typ')!r}",
            )

        try:
            payload = TokenPayload(**claims)
        except ValidationError as e:
            raise TokenInvalidError("Token is malformed", reason=str(e)) from e

        if self.clock().timestamp() > payload.exp:
            raise TokenExpiredError("Token has expired", reason=f"exp={payload.exp}")

        return payload
