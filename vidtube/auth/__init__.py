"""
VidTube - Authentication Package

Dual-token session management with:
- bcrypt password hashing
- Short-lived access JWTs and long-lived refresh JWTs (separate secrets)
- Single live refresh token per user with atomic rotation
- Cookie or Bearer header request authentication
"""

from vidtube.auth.models import User
from vidtube.auth.password import CredentialHasher
from vidtube.auth.tokens import TokenIssuer, TokenVerifier, TokenType, TokenPair
from vidtube.auth.sessions import SessionRegistry
from vidtube.auth.service import AuthenticationService
from vidtube.auth.dependencies import RequestAuthenticator, get_current_user

__all__ = [
    "User",
    "CredentialHasher",
    "TokenIssuer",
    "TokenVerifier",
    "TokenType",
    "TokenPair",
    "SessionRegistry",
    "AuthenticationService",
    "RequestAuthenticator",
    "get_current_user",
]
