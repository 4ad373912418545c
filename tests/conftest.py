"""
Shared test fixtures.

Handler tests build handlers directly against an isolated in-memory
DBStorage; API tests go through create_app("testing") with fake mail and
Google collaborators.
"""
from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from models.db_storage import DBStorage
from models.role import Role, UserRole, USER_ROLE_ID
from models.refresh_token import RefreshToken
from models.user import User
from services.email_service import EmailService
from services.google_auth import GoogleTokenValidator
from services.token_service import TokenService
from utils.security import CredentialHasher, utcnow

TEST_JWT_SECRET = "test-secret-key-for-testing-only"
TEST_PASSWORD = "Password123!"


@pytest.fixture
def storage():
    """Fresh in-memory database with the default roles seeded."""
    db = DBStorage("sqlite:///:memory:")
    db.reload()
    yield db
    db.close()
    db.drop_all()


@pytest.fixture
def hasher():
    return CredentialHasher()


@pytest.fixture
def token_service():
    return TokenService(
        secret=TEST_JWT_SECRET,
        issuer="auth-api-test",
        audience="auth-api-test-clients",
        access_token_minutes=15,
        refresh_token_days=7,
    )


@pytest.fixture
def email_service():
    return MagicMock(spec=EmailService)


@pytest.fixture
def google_validator():
    return MagicMock(spec=GoogleTokenValidator)


@pytest.fixture
def make_user(storage, hasher):
    """Factory persisting a user with the User role."""

    def _make_user(
        email="user@test.com",
        username="testuser",
        password=TEST_PASSWORD,
        email_verified=True,
        **fields,
    ):
        user = User(
            email=email,
            username=username,
            password_hash=hasher.hash(password),
            email_verified=email_verified,
            **fields,
        )
        user.user_roles.append(UserRole(role=storage.get(Role, USER_ROLE_ID)))
        storage.new(user)
        storage.save()
        return user

    return _make_user


@pytest.fixture
def make_refresh_token(storage):
    """Factory persisting a refresh token row for a user."""

    def _make_refresh_token(user, token="valid-refresh-token", revoked=False, expires_in=timedelta(days=1)):
        rt = RefreshToken(
            token=token,
            user_id=user.id,
            revoked=revoked,
            expires_at=utcnow() + expires_in,
        )
        storage.new(rt)
        storage.save()
        return rt

    return _make_refresh_token
