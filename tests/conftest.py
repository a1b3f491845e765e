"""
VidTube - Test Configuration

Pytest fixtures for authentication testing.
Provides test database, service, client, and user fixtures.
"""

import pytest
from datetime import timedelta
from typing import Generator

from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel

from vidtube.app import app
from vidtube.auth.database import get_engine, get_session_factory, init_db
from vidtube.auth.models import User
from vidtube.auth.password import CredentialHasher
from vidtube.auth.service import AuthenticationService
from vidtube.auth.tokens import TokenIssuer, TokenVerifier
from vidtube.config import AuthConfig


# Test database URL (in-memory SQLite)
TEST_DATABASE_URL = "sqlite:///:memory:"

# Low bcrypt cost keeps the suite fast
TEST_CONFIG = AuthConfig(
    access_secret="test-access-secret",
    access_ttl=timedelta(minutes=15),
    refresh_secret="test-refresh-secret",
    refresh_ttl=timedelta(days=10),
    hash_cost=4,
)

ALICE = {
    "username": "alice",
    "email": "alice@x.com",
    "password": "secret1",
    "fullName": "Alice Liddell",
}


@pytest.fixture(scope="function")
def test_engine():
    """Create a fresh test database engine for each test."""
    engine = get_engine(TEST_DATABASE_URL)
    init_db(engine)

    yield engine

    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(test_engine) -> Generator[Session, None, None]:
    """Create a database session for testing."""
    with Session(test_engine) as session:
        yield session


@pytest.fixture
def hasher() -> CredentialHasher:
    return CredentialHasher(work_factor=TEST_CONFIG.hash_cost)


@pytest.fixture
def issuer() -> TokenIssuer:
    return TokenIssuer(TEST_CONFIG)


@pytest.fixture
def verifier() -> TokenVerifier:
    return TokenVerifier(TEST_CONFIG)


@pytest.fixture
def auth_service(db_session) -> AuthenticationService:
    return AuthenticationService(db_session, TEST_CONFIG)


@pytest.fixture
def alice(auth_service, db_session) -> User:
    """Registered test user alice / alice@x.com / secret1."""
    view = auth_service.register(
        username=ALICE["username"],
        email=ALICE["email"],
        password=ALICE["password"],
        full_name=ALICE["fullName"],
    )
    return db_session.get(User, view.id)


def _configure_app(test_engine) -> None:
    app.state.db_engine = test_engine
    app.state.db_session_factory = get_session_factory(test_engine)
    app.state.auth_config = TEST_CONFIG


@pytest.fixture(scope="function")
def client(test_engine) -> Generator[TestClient, None, None]:
    """
    Test client over plain http.

    Session cookies are Secure, so this client never sends them back;
    tests drive authentication through headers and bodies.
    """
    _configure_app(test_engine)

    with TestClient(app) as c:
        yield c


@pytest.fixture(scope="function")
def cookie_client(test_engine) -> Generator[TestClient, None, None]:
    """Test client over https; Secure cookies round-trip."""
    _configure_app(test_engine)

    with TestClient(app, base_url="https://testserver") as c:
        yield c


def register_user(client: TestClient, **overrides) -> dict:
    """Helper function to register alice (or a variant)."""
    body = {**ALICE, **overrides}
    response = client.post("/api/v1/auth/register", json=body)
    assert response.status_code == 201, response.text
    return response.json()


def login_user(client: TestClient, identifier: str, password: str) -> dict:
    """Helper function to login and return tokens."""
    response = client.post(
        "/api/v1/auth/login",
        json={"identifier": identifier, "password": password},
    )
    return response.json() if response.status_code == 200 else None


def auth_headers(access_token: str) -> dict:
    """Create authorization headers for authenticated requests."""
    return {"Authorization": f"Bearer {access_token}"}
