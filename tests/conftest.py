"""
Test configuration and fixtures.

Implements the transaction rollback pattern:
- Session-scoped engine (in-memory SQLite unless TEST_DATABASE_URL is set)
- Function-scoped session joined to an outer transaction; service commits
  become savepoints and everything is rolled back after the test
- TestClient with database, email sender and auth provider overrides
- Authenticated client fixtures using bearer sessions
"""

import os

# Must be set before app.config is imported anywhere
os.environ.setdefault("DATABASE_URL", "sqlite://")

from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.config import settings
from app.database import Base, get_db
from app.main import app
from app.models import Profile, Session as UserSession, User
from app.services.email_sender import get_email_sender
from tests.factories import create_profile, create_session, create_user
from tests.fixtures.mocks import FakeEmailSender


CONFIRMATION_WEBHOOK = "https://hooks.example.test/signup-confirmation"
NOTIFICATION_WEBHOOK = "https://hooks.example.test/notification"
INVITE_WEBHOOK = "https://hooks.example.test/invite"


# =============================================================================
# Database Fixtures
# =============================================================================


def get_test_database_url() -> str:
    """TEST_DATABASE_URL if set, else a shared in-memory SQLite database."""
    return os.environ.get("TEST_DATABASE_URL", "sqlite://")


@pytest.fixture(scope="session")
def test_engine():
    """
    Create test database engine once per session.

    Tables are created at the start and dropped at the end.
    """
    database_url = get_test_database_url()

    if database_url.startswith("sqlite"):
        engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

        # Let SQLAlchemy own BEGIN so SAVEPOINTs behave
        @event.listens_for(engine, "connect")
        def do_connect(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None

        @event.listens_for(engine, "begin")
        def do_begin(conn):
            conn.exec_driver_sql("BEGIN")
    else:
        engine = create_engine(database_url)

    Base.metadata.create_all(engine)

    yield engine

    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db(test_engine) -> Generator[Session, None, None]:
    """
    Provide a transactional database session that rolls back after each test.

    Service-level commit()/rollback() operate on savepoints inside the outer
    transaction, so tests stay isolated without cleanup queries.
    """
    connection = test_engine.connect()
    transaction = connection.begin()

    TestingSessionLocal = sessionmaker(
        bind=connection, join_transaction_mode="create_savepoint"
    )
    session = TestingSessionLocal()

    yield session

    # Cleanup: rollback and close
    session.close()
    transaction.rollback()
    connection.close()


# =============================================================================
# Settings / Email Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def webhook_settings(monkeypatch):
    """Configure webhook URLs for every test; tests unset them to simulate misconfiguration."""
    monkeypatch.setattr(settings, "signup_confirmation_webhook_url", CONFIRMATION_WEBHOOK)
    monkeypatch.setattr(settings, "notification_webhook_url", NOTIFICATION_WEBHOOK)
    monkeypatch.setattr(settings, "invite_webhook_url", "")
    monkeypatch.setattr(settings, "site_url", "https://forms.example.test")


@pytest.fixture
def email_sender() -> FakeEmailSender:
    """Recording email sender; configure failures per test."""
    return FakeEmailSender()


# =============================================================================
# TestClient Fixtures
# =============================================================================


def _override_dependencies(db: Session, email_sender: FakeEmailSender) -> None:
    def override_get_db():
        try:
            yield db
        finally:
            pass  # Don't close - managed by db fixture

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_email_sender] = lambda: email_sender


@pytest.fixture
def client(db: Session, email_sender: FakeEmailSender) -> Generator[TestClient, None, None]:
    """TestClient with database and email sender overrides."""
    _override_dependencies(db, email_sender)

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# =============================================================================
# Authentication Fixtures
# =============================================================================


@pytest.fixture
def admin_user(db: Session) -> User:
    """Create a confirmed admin account."""
    return create_user(db, email="admin@example.com", password="adminpassword123")


@pytest.fixture
def admin_profile(db: Session, admin_user: User) -> Profile:
    return create_profile(db, admin_user, role="admin", first_name="Ada", last_name="Admin")


@pytest.fixture
def employee_user(db: Session) -> User:
    return create_user(db, email="employee@example.com", password="employeepassword123")


@pytest.fixture
def employee_profile(db: Session, employee_user: User, admin_user: User) -> Profile:
    return create_profile(
        db,
        employee_user,
        role="employee",
        first_name="Eve",
        last_name="Employee",
        invited_by=admin_user.id,
    )


@pytest.fixture
def admin_session(db: Session, admin_profile: Profile, admin_user: User) -> UserSession:
    return create_session(db, admin_user)


@pytest.fixture
def employee_session(db: Session, employee_profile: Profile, employee_user: User) -> UserSession:
    return create_session(db, employee_user)


@pytest.fixture
def admin_client(
    db: Session, email_sender: FakeEmailSender, admin_session: UserSession
) -> Generator[TestClient, None, None]:
    """Authenticated TestClient for the admin."""
    _override_dependencies(db, email_sender)

    with TestClient(app) as test_client:
        test_client.headers["Authorization"] = f"Bearer {admin_session.token}"
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def employee_client(
    db: Session, email_sender: FakeEmailSender, employee_session: UserSession
) -> Generator[TestClient, None, None]:
    """Authenticated TestClient for a regular employee."""
    _override_dependencies(db, email_sender)

    with TestClient(app) as test_client:
        test_client.headers["Authorization"] = f"Bearer {employee_session.token}"
        yield test_client

    app.dependency_overrides.clear()


# =============================================================================
# pytest markers
# =============================================================================


def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "integration: marks tests as integration tests")
