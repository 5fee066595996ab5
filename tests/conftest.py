"""
Shared test fixtures for Chatbridge.
"""
import os

import httpx
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

# Force test settings before any chatbridge import
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret-not-for-prod")
os.environ.setdefault("RATE_LIMIT_PER_MINUTE", "10000")
os.environ.pop("OPENROUTER_API_KEY", None)
os.environ.pop("OPENAI_API_KEY", None)
os.environ.pop("STRIPE_WEBHOOK_SECRET", None)

from chatbridge.persistence.database import Base, get_db
import chatbridge.persistence.models  # noqa: F401 registers all models


@pytest.fixture()
def db_engine():
    """Fresh in-memory database per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def db_session(db_engine):
    session = Session(bind=db_engine)
    yield session
    session.close()


@pytest.fixture()
def app(db_session):
    """A fresh app (own registry and rate-limit counters) bound to the test database."""
    from chatbridge.main import create_app

    application = create_app()

    def _get_test_db():
        yield db_session

    application.dependency_overrides[get_db] = _get_test_db
    return application


@pytest.fixture()
def api_client(app):
    """FastAPI test client."""
    from fastapi.testclient import TestClient

    return TestClient(app)


def _mock_http(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture()
def make_http():
    """Factory for an httpx.AsyncClient whose requests are answered by ``handler(request)``."""
    return _mock_http


@pytest.fixture()
def recorded_requests():
    return []


@pytest.fixture()
def ok_http(recorded_requests):
    """Mock HTTP client that records every request and answers 200 {"id": "1", "name": "ok"}."""

    def handler(request: httpx.Request) -> httpx.Response:
        recorded_requests.append(request)
        return httpx.Response(200, json={"id": "1", "name": "ok", "display_phone_number": "+1 555"})

    return _mock_http(handler)
