"""Pytest fixtures for backend, service and API tests."""

import os
from collections.abc import Generator

os.environ.setdefault("PODSYNC_DATABASE_URL", "sqlite://")
os.environ.setdefault("PODSYNC_BACKEND", "sql")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from podsync.api.deps import get_backend, get_db
from podsync.backend import Backend
from podsync.backend.files import FileBackend
from podsync.backend.sql import SqlBackend
from podsync.core.security import legacy_password_hash
from podsync.db import models  # noqa: F401  # Imported for side effects
from podsync.db.base import Base
from podsync.main import create_app


class FakeClock:
    """Settable clock handed to reconcilers in place of wall time."""

    def __init__(self, value: int = 1_000) -> None:
        self.value = value

    def __call__(self) -> int:
        return self.value


@pytest.fixture()
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(db_engine) -> Generator[Session, None, None]:
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(params=["sql", "file"])
def backend(request, db_session: Session, tmp_path) -> Backend:
    if request.param == "sql":
        return SqlBackend(db_session)
    return FileBackend(tmp_path / "data")


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def bob(backend: Backend) -> str:
    backend.create_account("bob", legacy_password_hash("abc"))
    return "bob"


@pytest.fixture()
def client(db_session: Session) -> Generator[TestClient, None, None]:
    app = create_app()

    def override_get_db() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    SqlBackend(db_session).create_account("bob", legacy_password_hash("abc"))
    SqlBackend(db_session).create_account("alice", legacy_password_hash("xyz"))
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def file_client(tmp_path) -> Generator[TestClient, None, None]:
    app = create_app()
    file_backend = FileBackend(tmp_path / "data")
    file_backend.create_account("bob", legacy_password_hash("abc"))

    app.dependency_overrides[get_backend] = lambda: file_backend
    with TestClient(app) as test_client:
        yield test_client
