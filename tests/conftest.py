"""Test configuration and fixtures."""

import os

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

# Set test environment variables BEFORE importing the app
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"
for key in ("GITHUB_TOKEN", "GITHUB_REPOS", "CURSOR_API_KEY", "CLAUDE_ADMIN_KEY"):
    os.environ[key] = ""

from code_analytics.main import app  # noqa: E402
from code_analytics.database import get_session  # noqa: E402
from code_analytics.models import normalized_models  # noqa: E402,F401

test_engine = create_engine(
    "sqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
    echo=False,
)


@pytest.fixture(autouse=True)
def setup_test_database():
    """Fresh tables for every test."""
    SQLModel.metadata.create_all(test_engine)
    yield
    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture
def db_session():
    with Session(test_engine) as session:
        yield session


@pytest.fixture
def client(db_session) -> TestClient:
    """Test client sharing the test session; lifespan (scheduler, init_db) is not run."""

    def override_get_session():
        yield db_session

    app.dependency_overrides[get_session] = override_get_session
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()
