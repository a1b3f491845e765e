"""
VidTube - Password Hashing

bcrypt-based credential hashing. The work factor comes from AuthConfig
(defaults to 12; tests run at 4).

Security:
- Never log or expose plaintext passwords
- bcrypt includes salt automatically
- Hashing is an explicit call made by the service layer whenever a
  password value changes; there is no persistence hook
"""

import logging

import bcrypt

from vidtube.errors import HashingError


logger = logging.getLogger(__name__)

# bcrypt only reads the first 72 bytes of input
BCRYPT_MAX_BYTES = 72


def is_valid_bcrypt_hash(hash_string: str) -> bool:
    """
    Check if a string is a valid bcrypt hash format.

    Args:
        hash_string: String to validate

    Returns:
        True if valid bcrypt format
    """
    if not hash_string or not isinstance(hash_string, str):
        return False

    # bcrypt hashes start with $2a$, $2b$, or $2y$
    valid_prefixes = ("$2a$", "$2b$", "$2y$")
    if not hash_string.startswith(valid_prefixes):
        return False

    # Standard bcrypt hash is 60 characters
    if len(hash_string) != 60:
        return False

    return True


class CredentialHasher:
    """
    One-way password hashing and constant-time verification.

    Example:
        >>> hasher = CredentialHasher(work_factor=4)
        >>> hashed = hasher.hash("secret1")
        >>> hasher.verify("secret1", hashed)
        True
    """

    def __init__(self, work_factor: int = 12):
        self.work_factor = work_factor

    def hash(self, plaintext: str) -> str:
        """
        Hash a password using bcrypt with a fresh random salt.

        Raises:
            HashingError: If bcrypt cannot produce a hash
        """
        password_bytes = plaintext.encode("utf-8")
        if len(password_bytes) > BCRYPT_MAX_BYTES:
            raise HashingError(
                "Password could not be hashed",
                reason=f"password exceeds {BCRYPT_MAX_BYTES} bytes",
            )
        try:
            salt = bcrypt.gensalt(rounds=self.work_factor)
            hashed = bcrypt.hashpw(password_bytes, salt)
        except (ValueError, TypeError) as e:
            logger.error("bcrypt hashing failed: %s", type(e).__name__)
            raise HashingError("Password could not be hashed", reason=str(e)) from e
        return hashed.decode("utf-8")

    def verify(self, plaintext: str, hashed_password: str) -> bool:
        """
        Verify a password against a bcrypt hash.

        Returns False on mismatch. Only a malformed stored hash raises.

        Raises:
            HashingError: If the stored hash is not a bcrypt hash
        """
        if not is_valid_bcrypt_hash(hashed_password):
            raise HashingError("Stored credential is unreadable", reason="malformed bcrypt hash")

        password_bytes = plaintext.encode("utf-8")
        if len(password_bytes) > BCRYPT_MAX_BYTES:
            # Nothing longer than the limit can ever have been hashed here
            return False
        try:
            return bcrypt.checkpw(password_bytes, hashed_password.encode("utf-8"))
        except ValueError as e:
            raise HashingError("Stored credential is unreadable", reason=str(e)) from e
