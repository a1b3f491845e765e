"""
VidTube - Error Taxonomy

Typed errors raised by the auth components and mapped to HTTP responses
by the gateway exception handlers.

Each class carries an HTTP status_code and a stable error_code:
- validation_error (400)
- invalid_credentials / unauthorized / missing_token / session_revoked /
  token_expired / invalid_token / token_type_mismatch (401)
- not_found (404)
- conflict (409)
- server_error (500)

`message` is safe to return to the caller. `reason` is for logs only.
"""

from typing import Optional


class AuthServiceError(Exception):
    """Base class for errors mapped to HTTP responses."""

    status_code: int = 400
    error_code: str = "validation_error"

    def __init__(
        self,
        message: str,
        *,
        error_code: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if error_code is not None:
            self.error_code = error_code
        self.reason = reason


class ValidationError(AuthServiceError):
    """Malformed input (400)."""
    status_code = 400
    error_code = "validation_error"


class InvalidCredentialsError(AuthServiceError):
    """Wrong password (401)."""
    status_code = 401
    error_code = "invalid_credentials"


class UnauthorizedError(AuthServiceError):
    """Authentication missing or rejected (401)."""
    status_code = 401
    error_code = "unauthorized"


class MissingTokenError(UnauthorizedError):
    """No token was presented (401)."""
    error_code = "missing_token"


class SessionRevokedError(UnauthorizedError):
    """Refresh token reused or already rotated (401). Never retried."""
    error_code = "session_revoked"


class TokenExpiredError(AuthServiceError):
    """Token signature is valid but its expiry has passed (401)."""
    status_code = 401
    error_code = "token_expired"


class TokenInvalidError(AuthServiceError):
    """Bad signature or structurally malformed token (401)."""
    status_code = 401
    error_code = "invalid_token"


class TokenTypeMismatchError(TokenInvalidError):
    """An access token presented as refresh, or the reverse (401)."""
    error_code = "token_type_mismatch"


class NotFoundError(AuthServiceError):
    """Requested identity does not exist (404)."""
    status_code = 404
    error_code = "not_found"


class ConflictError(AuthServiceError):
    """Duplicate username or email (409)."""
    status_code = 409
    error_code = "conflict"


class ServerError(AuthServiceError):
    """Internal or configuration failure (500)."""
    status_code = 500
    error_code = "server_error"


class HashingError(ServerError):
    """bcrypt failed or a stored hash is malformed."""


class TokenSigningError(ServerError):
    """A signing secret is not configured."""


class UnavailableError(ServerError):
    """The identity/session store did not answer in time."""


__all__ = [
    "AuthServiceError",
    "ValidationError",
    "InvalidCredentialsError",
    "UnauthorizedError",
    "MissingTokenError",
    "SessionRevokedError",
    "TokenExpiredError",
    "TokenInvalidError",
    "TokenTypeMismatchError",
    "NotFoundError",
    "ConflictError",
    "ServerError",
    "HashingError",
    "TokenSigningError",
    "UnavailableError",
]
