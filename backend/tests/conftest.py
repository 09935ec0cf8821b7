"""Pytest configuration and fixtures."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import models  # noqa: F401
from database import Base, get_db
from main import app
from services.read_cache import read_cache
# Pytest fixtures - imported to make them available to tests
from tests.fixtures import (  # noqa: F401
    admin_user,
    admin_principal,
    element_type,
    product,
    product_type,
    reason,
    regular_user,
    user_principal,
    stock_element,
    unit,
    waste_reason,
)


@pytest.fixture(autouse=True)
def clear_read_cache():
    """Each test starts with an empty read cache."""
    read_cache.clear()
    yield
    read_cache.clear()


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


@pytest.fixture(name="file_session_factory")
def file_session_factory_fixture(tmp_path):
    """A sessionmaker over a file-backed SQLite database.

    Used by tests that need one session per thread, which an in-memory
    StaticPool database cannot provide.
    """
    engine = create_engine(
        f"sqlite:///{tmp_path / 'ledger.db'}",
        connect_args={"check_same_thread": False, "timeout": 5},
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    finally:
        engine.dispose()


@pytest.fixture(name="client")
def client_fixture(db):
    """Create a test client with the test database."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture(name="admin_headers")
def admin_headers_fixture(admin_user):
    return {"X-User-Id": admin_user.id}


@pytest.fixture(name="user_headers")
def user_headers_fixture(regular_user):
    return {"X-User-Id": regular_user.id}
