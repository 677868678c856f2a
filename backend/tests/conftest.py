"""Pytest configuration and fixtures."""

import os

# Keep the app's own engine off the developer database
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import models  # noqa: E402,F401  (registers tables on Base.metadata)
from database import Base, get_db  # noqa: E402
from main import app  # noqa: E402
from api.sync import get_sync_service as get_sync_service_for_sync  # noqa: E402
from services.rate_limiter import build_rate_limiters  # noqa: E402
from services.sync_service import SyncService  # noqa: E402
# Pytest fixtures - imported to make them available to tests
from tests.fixtures import (  # noqa: F401,E402
    account,
    credential,
    snapshot,
    solana_account,
    sync_log_entry,
    sync_session,
    transaction,
)
from tests.fixtures.mocks import (  # noqa: E402
    MockProviderRegistry,
    MockSimpleFINClient,
    MockSolanaClient,
)

SYNC_TOKEN = "test-sync-token"


@pytest.fixture(name="db")
def db_fixture():
    """Create an in-memory SQLite database for testing."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def sync_secrets(monkeypatch):
    """Known secrets for every test; individual tests may clear them."""
    from config import settings

    monkeypatch.setattr(settings, "SYNC_API_TOKEN", SYNC_TOKEN)
    monkeypatch.setattr(settings, "AUTH_PASSWORD", "correct horse")
    monkeypatch.setattr(settings, "SOLANA_WALLET_ADDRESSES", [])
    monkeypatch.setattr(settings, "SIMPLEFIN_ACCESS_URL", "")


def _make_client(db, registry):
    def override_get_db():
        try:
            yield db
        finally:
            pass

    def override_get_sync_service():
        return SyncService(provider_registry=registry)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_sync_service_for_sync] = override_get_sync_service
    app.state.rate_limiters = build_rate_limiters()
    return TestClient(app)


@pytest.fixture(name="mock_provider_registry")
def mock_provider_registry_fixture():
    """Create a mock provider registry with sample data for both providers."""
    return MockProviderRegistry(
        {"SimpleFIN": MockSimpleFINClient(), "Solana": MockSolanaClient()}
    )


@pytest.fixture(name="client")
def client_fixture(db, mock_provider_registry):
    """Create a test client with the test database and mock providers."""
    client = _make_client(db, mock_provider_registry)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture(name="client_with_failing_sync")
def client_with_failing_sync_fixture(db):
    """Create a test client whose providers all fail."""
    failing_registry = MockProviderRegistry(
        {
            "SimpleFIN": MockSimpleFINClient(
                should_fail=True, failure_type="auth", failure_message="SimpleFIN token revoked"
            ),
            "Solana": MockSolanaClient(
                should_fail=True, failure_type="connection", failure_message="RPC unreachable"
            ),
        }
    )
    client = _make_client(db, failing_registry)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture(name="auth_headers")
def auth_headers_fixture():
    return {"Authorization": f"Bearer {SYNC_TOKEN}"}
