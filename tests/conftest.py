"""Test configuration and fixtures."""

from typing import Any, Dict, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from sharelink.api import app
from sharelink.db import models  # noqa: F401
from sharelink.db.base import Base, get_db
from sharelink.db.repositories import SqlLinkRepository
from sharelink.routes import get_blob_store
from sharelink.storage import LocalBlobStore


@pytest.fixture
def engine():
    """Fresh in-memory database for each test."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def repository(db_session) -> SqlLinkRepository:
    return SqlLinkRepository(db_session)


@pytest.fixture
def blob_store(tmp_path) -> LocalBlobStore:
    return LocalBlobStore(tmp_path / "uploads", url_prefix="/uploads")


@pytest.fixture
def api_overrides(session_factory, blob_store):
    """Bind the app to the test database and a temp-dir blob store."""

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(api_overrides):
    return TestClient(api_overrides)


@pytest.fixture
def make_link(repository):
    """Insert a link record directly, bypassing the blob store."""

    def _make_link(**overrides: Any):
        defaults: Dict[str, Optional[Any]] = {
            "owner_id": "user-1",
            "owner_email": "owner@example.com",
            "title": "Quarterly report",
            "blob_ref": "/uploads/1700000000000-abcd1234.pdf",
            "visibility": "public",
            "password": None,
            "expiration": None,
        }
        defaults.update(overrides)
        return repository.add(**defaults)

    return _make_link

