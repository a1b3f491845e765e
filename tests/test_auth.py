"""
VidTube - Authentication Unit Tests

Tests for:
- Password hashing
- Token issuance and verification
- Session registry and rotation
- Authentication service flows

Run with: pytest tests/test_auth.py -v
"""

import pytest
from datetime import datetime, timedelta, timezone
from uuid import uuid4

from jose import jwt

from vidtube.auth.models import User
from vidtube.auth.password import CredentialHasher, is_valid_bcrypt_hash
from vidtube.auth.service import AuthenticationService
from vidtube.auth.sessions import SessionRegistry, token_digest
from vidtube.auth.tokens import (
    IdentityClaims,
    TokenIssuer,
    TokenType,
    TokenVerifier,
)
from vidtube.config import AuthConfig
from vidtube.errors import (
    ConflictError,
    HashingError,
    InvalidCredentialsError,
    MissingTokenError,
    NotFoundError,
    SessionRevokedError,
    TokenExpiredError,
    TokenInvalidError,
    TokenSigningError,
    TokenTypeMismatchError,
    UnauthorizedError,
)
from tests.conftest import ALICE, TEST_CONFIG


T0 = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def alice_claims() -> IdentityClaims:
    return IdentityClaims(
        id=str(uuid4()),
        email="alice@x.com",
        username="alice",
        full_name="Alice Liddell",
    )


# =============================================================================
# PASSWORD HASHING TESTS
# =============================================================================

class TestCredentialHasher:
    """Unit tests for bcrypt password hashing."""

    def test_hash_creates_bcrypt_hash(self, hasher):
        """Password hashing creates valid bcrypt hash."""
        hashed = hasher.hash("secret1")

        assert hashed.startswith("$2b$")
        assert len(hashed) == 60
        assert is_valid_bcrypt_hash(hashed)

    def test_verify_correct(self, hasher):
        hashed = hasher.hash("secret1")

        assert hasher.verify("secret1", hashed) is True

    def test_verify_incorrect(self, hasher):
        hashed = hasher.hash("secret1")

        assert hasher.verify("secret2", hashed) is False
        assert hasher.verify("", hashed) is False

    def test_same_password_different_hashes(self, hasher):
        """Same password generates different hashes (salted)."""
        hash1 = hasher.hash("secret1")
        hash2 = hasher.hash("secret1")

        assert hash1 != hash2
        assert hasher.verify("secret1", hash1) is True
        assert hasher.verify("secret1", hash2) is True

    def test_work_factor_is_applied(self):
        hashed = CredentialHasher(work_factor=5).hash("secret1")

        assert hashed.split("$")[2] == "05"

    def test_malformed_hash_raises(self, hasher):
        """Only a malformed stored hash raises; mismatches never do."""
        with pytest.raises(HashingError):
            hasher.verify("secret1", "not-a-bcrypt-hash")

        with pytest.raises(HashingError):
            hasher.verify("secret1", "")

    def test_overlong_password(self, hasher):
        hashed = hasher.hash("secret1")

        with pytest.raises(HashingError):
            hasher.hash("x" * 73)
        assert hasher.verify("x" * 73, hashed) is False


# =============================================================================
# TOKEN TESTS
# =============================================================================

class TestTokenIssuer:
    """Unit tests for token creation."""

    def test_access_token_claims(self, issuer):
        claims = alice_claims()
        token = issuer.issue_access_token(claims)

        payload = jwt.get_unverified_claims(token)

        assert payload["id"] == claims.id
        assert payload["email"] == "alice@x.com"
        assert payload["username"] == "alice"
        assert payload["fullName"] == "Alice Liddell"
        assert payload["typ"] == "access"
        assert payload["exp"] - payload["iat"] == 15 * 60

    def test_refresh_token_claims_are_minimal(self, issuer):
        claims = alice_claims()
        token = issuer.issue_refresh_token(claims)

        payload = jwt.get_unverified_claims(token)

        assert payload["id"] == claims.id
        assert payload["typ"] == "refresh"
        assert payload["exp"] - payload["iat"] == 10 * 24 * 60 * 60
        for field in ("email", "username", "fullName"):
            assert field not in payload

    def test_claims_never_contain_secrets(self, issuer):
        pair = issuer.issue_pair(alice_claims())

        for token in (pair.access_token, pair.refresh_token):
            payload = jwt.get_unverified_claims(token)
            assert "password" not in payload
            assert "password_hash" not in payload
            assert "refreshToken" not in payload

    def test_tokens_minted_together_are_distinct(self):
        issuer = TokenIssuer(TEST_CONFIG, clock=lambda: T0)
        claims = alice_claims()

        first = issuer.issue_refresh_token(claims)
        second = issuer.issue_refresh_token(claims)

        assert first != second

    def test_missing_secret_is_fatal(self):
        config = TEST_CONFIG.model_copy(update={"access_secret": ""})
        issuer = TokenIssuer(config)

        with pytest.raises(TokenSigningError):
            issuer.issue_access_token(alice_claims())

        # The refresh secret is still configured
        assert issuer.issue_refresh_token(alice_claims())


class TestTokenVerifier:
    """Unit tests for token validation."""

    def test_verify_access_token(self, issuer, verifier):
        claims = alice_claims()
        token = issuer.issue_access_token(claims)

        payload = verifier.verify(token, TokenType.ACCESS)

        assert payload.id == claims.id
        assert payload.typ is TokenType.ACCESS
        assert payload.username == "alice"
        assert payload.full_name == "Alice Liddell"

    def test_verify_refresh_token(self, issuer, verifier):
        claims = alice_claims()
        token = issuer.issue_refresh_token(claims)

        payload = verifier.verify(token, TokenType.REFRESH)

        assert payload.id == claims.id
        assert payload.email is None

    def test_expiry_boundary(self):
        """One second before exp verifies; one second after fails."""
        issuer = TokenIssuer(TEST_CONFIG, clock=lambda: T0)
        token = issuer.issue_access_token(alice_claims())
        expires_at = T0 + TEST_CONFIG.access_ttl

        before = TokenVerifier(TEST_CONFIG, clock=lambda: expires_at - timedelta(seconds=1))
        after = TokenVerifier(TEST_CONFIG, clock=lambda: expires_at + timedelta(seconds=1))

        assert before.verify(token, TokenType.ACCESS).id
        with pytest.raises(TokenExpiredError):
            after.verify(token, TokenType.ACCESS)

    def test_refresh_token_as_access_is_type_mismatch(self, issuer, verifier):
        token = issuer.issue_refresh_token(alice_claims())

        with pytest.raises(TokenTypeMismatchError):
            verifier.verify(token, TokenType.ACCESS)

    def test_access_token_as_refresh_is_type_mismatch(self, issuer, verifier):
        token = issuer.issue_access_token(alice_claims())

        with pytest.raises(TokenTypeMismatchError):
            verifier.verify(token, TokenType.REFRESH)

    def test_type_mismatch_with_shared_secret(self):
        """The typ claim still separates the types if both secrets are equal."""
        config = TEST_CONFIG.model_copy(
            update={"access_secret": "shared", "refresh_secret": "shared"}
        )
        token = TokenIssuer(config).issue_refresh_token(alice_claims())

        with pytest.raises(TokenTypeMismatchError):
            TokenVerifier(config).verify(token, TokenType.ACCESS)

    def test_garbage_token_invalid(self, verifier):
        with pytest.raises(TokenInvalidError) as exc_info:
            verifier.verify("invalid.token.here", TokenType.ACCESS)

        assert not isinstance(exc_info.value, TokenTypeMismatchError)

    def test_empty_token_invalid(self, verifier):
        with pytest.raises(TokenInvalidError):
            verifier.verify("", TokenType.ACCESS)

    def test_tampered_token_invalid(self, issuer, verifier):
        token = issuer.issue_access_token(alice_claims())

        parts = token.split(".")
        parts[1] = parts[1] + "tampered"
        tampered_token = ".".join(parts)

        with pytest.raises(TokenInvalidError):
            verifier.verify(tampered_token, TokenType.ACCESS)

    def test_foreign_secret_invalid(self, verifier):
        token = jwt.encode(
            {"id": "x", "typ": "access", "iat": 0, "exp": 9999999999, "jti": "j"},
            "someone-elses-secret",
            algorithm="HS256",
        )

        with pytest.raises(TokenInvalidError) as exc_info:
            verifier.verify(token, TokenType.ACCESS)

        assert not isinstance(exc_info.value, TokenTypeMismatchError)

    def test_missing_claims_invalid(self, verifier):
        token = jwt.encode(
            {"typ": "access", "exp": 9999999999},
            TEST_CONFIG.access_secret,
            algorithm="HS256",
        )

        with pytest.raises(TokenInvalidError):
            verifier.verify(token, TokenType.ACCESS)


# =============================================================================
# SESSION REGISTRY TESTS
# =============================================================================

class TestSessionRegistry:
    """Tests for the single-live-refresh-token store."""

    def test_store_and_match(self, db_session, alice):
        registry = SessionRegistry(db_session)

        registry.store(alice.id, "token-1")

        assert registry.matches(alice.id, "token-1") is True
        assert registry.matches(alice.id, "token-2") is False

    def test_store_overwrites(self, db_session, alice):
        registry = SessionRegistry(db_session)

        registry.store(alice.id, "token-1")
        registry.store(alice.id, "token-2")

        assert registry.matches(alice.id, "token-1") is False
        assert registry.matches(alice.id, "token-2") is True

    def test_store_is_idempotent(self, db_session, alice):
        registry = SessionRegistry(db_session)

        registry.store(alice.id, "token-1")
        registry.store(alice.id, "token-1")

        assert registry.matches(alice.id, "token-1") is True

    def test_clear(self, db_session, alice):
        registry = SessionRegistry(db_session)
        registry.store(alice.id, "token-1")

        registry.clear(alice.id)
        registry.clear(alice.id)

        assert registry.matches(alice.id, "token-1") is False

    def test_only_digest_is_persisted(self, db_session, alice):
        SessionRegistry(db_session).store(alice.id, "token-1")

        db_session.refresh(alice)

        assert alice.refresh_token_hash == token_digest("token-1")
        assert alice.refresh_token_hash != "token-1"

    def test_unknown_identity_never_matches(self, db_session):
        registry = SessionRegistry(db_session)

        registry.store(uuid4(), "token-1")

        assert registry.matches(uuid4(), "token-1") is False

    def test_rotate_is_single_use(self, db_session, alice):
        registry = SessionRegistry(db_session)
        registry.store(alice.id, "token-1")

        assert registry.rotate(alice.id, "token-1", "token-2") is True
        assert registry.rotate(alice.id, "token-1", "token-3") is False

        assert registry.matches(alice.id, "token-2") is True
        assert registry.matches(alice.id, "token-3") is False

    def test_rotate_after_clear_fails(self, db_session, alice):
        registry = SessionRegistry(db_session)
        registry.store(alice.id, "token-1")
        registry.clear(alice.id)

        assert registry.rotate(alice.id, "token-1", "token-2") is False


# =============================================================================
# AUTHENTICATION SERVICE TESTS
# =============================================================================

class TestRegister:

    def test_register_hashes_password(self, auth_service, db_session, hasher):
        view = auth_service.register("Alice", "Alice@X.com", "secret1", "Alice Liddell")

        user = db_session.get(User, view.id)

        assert view.username == "alice"
        assert view.email == "alice@x.com"
        assert user.password_hash != "secret1"
        assert hasher.verify("secret1", user.password_hash) is True
        assert user.refresh_token_hash is None

    def test_register_view_has_no_secrets(self, auth_service):
        view = auth_service.register("alice", "alice@x.com", "secret1", "Alice Liddell")

        dumped = view.model_dump(by_alias=True)

        assert "password_hash" not in dumped
        assert "refresh_token_hash" not in dumped

    def test_register_duplicate_username(self, auth_service, alice):
        with pytest.raises(ConflictError):
            auth_service.register("ALICE", "other@x.com", "secret1", "Other")

    def test_register_duplicate_email(self, auth_service, alice):
        with pytest.raises(ConflictError):
            auth_service.register("other", "alice@x.com", "secret1", "Other")


class TestLogin:

    def test_login_returns_two_tokens_for_same_identity(self, auth_service, alice, verifier):
        result = auth_service.login("alice", "secret1")

        access = verifier.verify(result.tokens.access_token, TokenType.ACCESS)
        refresh = verifier.verify(result.tokens.refresh_token, TokenType.REFRESH)

        assert result.tokens.access_token != result.tokens.refresh_token
        assert access.id == refresh.id == str(alice.id)
        assert result.user.username == "alice"

    def test_login_by_email_case_insensitive(self, auth_service, alice):
        result = auth_service.login("  ALICE@x.com ", "secret1")

        assert result.user.id == alice.id

    def test_login_stores_refresh_token(self, auth_service, alice, db_session):
        result = auth_service.login("alice", "secret1")

        assert SessionRegistry(db_session).matches(alice.id, result.tokens.refresh_token)

    def test_wrong_password(self, auth_service, alice):
        with pytest.raises(InvalidCredentialsError) as exc_info:
            auth_service.login("alice", "wrong-password")

        assert exc_info.value.message == "Invalid credentials"

    def test_unknown_user_same_message(self, auth_service):
        with pytest.raises(NotFoundError) as exc_info:
            auth_service.login("nobody", "secret1")

        assert exc_info.value.message == "Invalid credentials"
        assert exc_info.value.error_code == "invalid_credentials"

    def test_second_login_replaces_session(self, auth_service, alice):
        first = auth_service.login("alice", "secret1")
        auth_service.login("alice", "secret1")

        with pytest.raises(SessionRevokedError):
            auth_service.refresh(first.tokens.refresh_token)


class TestRefresh:

    def test_refresh_rotates(self, auth_service, alice, verifier):
        login = auth_service.login("alice", "secret1")

        tokens = auth_service.refresh(login.tokens.refresh_token)

        assert tokens.refresh_token != login.tokens.refresh_token
        assert verifier.verify(tokens.access_token, TokenType.ACCESS).id == str(alice.id)

    def test_refresh_twice_with_same_token(self, auth_service, alice):
        login = auth_service.login("alice", "secret1")

        auth_service.refresh(login.tokens.refresh_token)

        with pytest.raises(SessionRevokedError):
            auth_service.refresh(login.tokens.refresh_token)

    def test_reuse_terminates_session(self, auth_service, alice):
        """Replaying a consumed token also revokes the token that replaced it."""
        login = auth_service.login("alice", "secret1")
        rotated = auth_service.refresh(login.tokens.refresh_token)

        with pytest.raises(SessionRevokedError):
            auth_service.refresh(login.tokens.refresh_token)
        with pytest.raises(SessionRevokedError):
            auth_service.refresh(rotated.refresh_token)

    def test_chain_of_rotations(self, auth_service, alice):
        tokens = auth_service.login("alice", "secret1").tokens

        for _ in range(3):
            tokens = auth_service.refresh(tokens.refresh_token)

        assert auth_service.refresh(tokens.refresh_token).refresh_token

    def test_logout_then_refresh(self, auth_service, alice):
        login = auth_service.login("alice", "secret1")

        auth_service.logout(alice.id)

        with pytest.raises(SessionRevokedError):
            auth_service.refresh(login.tokens.refresh_token)

    def test_logout_is_idempotent(self, auth_service, alice):
        auth_service.login("alice", "secret1")

        auth_service.logout(alice.id)
        auth_service.logout(alice.id)

    def test_missing_token(self, auth_service):
        with pytest.raises(MissingTokenError):
            auth_service.refresh(None)

        with pytest.raises(MissingTokenError):
            auth_service.refresh("")

    def test_access_token_rejected(self, auth_service, alice):
        login = auth_service.login("alice", "secret1")

        with pytest.raises(UnauthorizedError) as exc_info:
            auth_service.refresh(login.tokens.access_token)

        assert exc_info.value.error_code == "invalid_token"
        assert not isinstance(exc_info.value, SessionRevokedError)

    def test_expired_refresh_token(self, db_session, alice):
        past = datetime.now(timezone.utc) - timedelta(days=11)
        stale_service = AuthenticationService(
            db_session, TEST_CONFIG, issuer=TokenIssuer(TEST_CONFIG, clock=lambda: past)
        )
        login = stale_service.login("alice", "secret1")

        with pytest.raises(UnauthorizedError) as exc_info:
            AuthenticationService(db_session, TEST_CONFIG).refresh(login.tokens.refresh_token)

        assert exc_info.value.error_code == "token_expired"

    def test_deleted_identity(self, auth_service, alice, db_session):
        login = auth_service.login("alice", "secret1")

        db_session.delete(alice)
        db_session.commit()

        with pytest.raises(UnauthorizedError):
            auth_service.refresh(login.tokens.refresh_token)


class TestChangePassword:

    def test_change_password(self, auth_service, alice):
        auth_service.change_password(alice.id, "secret1", "secret2")

        assert auth_service.login("alice", "secret2").tokens.access_token
        with pytest.raises(InvalidCredentialsError):
            auth_service.login("alice", "secret1")

    def test_wrong_old_password(self, auth_service, alice):
        with pytest.raises(InvalidCredentialsError):
            auth_service.change_password(alice.id, "wrong", "secret2")

        assert auth_service.login("alice", "secret1")

    def test_unknown_identity(self, auth_service):
        with pytest.raises(NotFoundError):
            auth_service.change_password(uuid4(), "secret1", "secret2")

    def test_revokes_refresh_token_by_default(self, auth_service, alice):
        login = auth_service.login("alice", "secret1")

        revoked = auth_service.change_password(alice.id, "secret1", "secret2")

        assert revoked is True
        with pytest.raises(SessionRevokedError):
            auth_service.refresh(login.tokens.refresh_token)

    def test_revocation_can_be_disabled(self, db_session, alice):
        config = TEST_CONFIG.model_copy(update={"revoke_on_password_change": False})
        service = AuthenticationService(db_session, config)
        login = service.login("alice", "secret1")

        revoked = service.change_password(alice.id, "secret1", "secret2")

        assert revoked is False
        assert service.refresh(login.tokens.refresh_token).access_token

    def test_hashes_only_on_password_change(self, auth_service, alice, db_session):
        original_hash = alice.password_hash

        auth_service.login("alice", "secret1")
        auth_service.logout(alice.id)
        db_session.refresh(alice)

        assert alice.password_hash == original_hash


class TestConfig:

    def test_auth_config_is_frozen(self):
        with pytest.raises(Exception):
            TEST_CONFIG.access_secret = "changed"

    def test_settings_build_auth_config(self):
        from vidtube.config import Settings

        config = Settings(
            ACCESS_TOKEN_SECRET="a",
            REFRESH_TOKEN_SECRET="r",
            ACCESS_TOKEN_EXPIRE_MINUTES=5,
            REFRESH_TOKEN_EXPIRE_DAYS=2,
            BCRYPT_WORK_FACTOR=10,
            REVOKE_SESSION_ON_PASSWORD_CHANGE=False,
        ).auth_config()

        assert isinstance(config, AuthConfig)
        assert config.access_ttl == timedelta(minutes=5)
        assert config.refresh_ttl == timedelta(days=2)
        assert config.hash_cost == 10
        assert config.revoke_on_password_change is False
