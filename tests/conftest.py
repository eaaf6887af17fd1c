"""
Shared fixtures: in-memory database, signing keys and an API client.
"""
import os

# Settings are read at import time
os.environ["ENVIRONMENT"] = "development"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["APP_URL"] = "https://refashion.test"
os.environ["FAL_KEY"] = "test-fal-key"
os.environ["WEBHOOK_SECRET"] = "test-webhook-secret"
os.environ["STORAGE_BACKEND"] = "remote"
os.environ["CELERY_BROKER_URL"] = "memory://"
os.environ["CELERY_RESULT_BACKEND"] = "cache+memory://"

from unittest.mock import MagicMock

import pytest
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import refashion.models  # noqa: F401
from refashion.api.deps import get_db, get_fal_verifier, get_job_service
from refashion.main import app
from refashion.models.base import Base
from refashion.services.job_service import JobService
from refashion.tasks.dispatcher import TaskDispatcher
from tests.factories import build_verifier

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db():
    """Database session on a fresh in-memory schema."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def dispatcher():
    """Task dispatcher that records calls instead of enqueuing."""
    return MagicMock(spec=TaskDispatcher)


@pytest.fixture
def job_service(db, dispatcher):
    return JobService(db, dispatcher=dispatcher)


@pytest.fixture
def signing_key():
    """Ed25519 key standing in for the provider's signing key."""
    return Ed25519PrivateKey.generate()


@pytest.fixture
def verifier(signing_key):
    return build_verifier(signing_key)


@pytest.fixture
def client(db, job_service, verifier):
    """API client wired to the test database, dispatcher and verifier."""
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_job_service] = lambda: job_service
    app.dependency_overrides[get_fal_verifier] = lambda: verifier

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
