# tests/conftest.py

import os

# Settings are read at import time, so the test environment must be in place first.
os.environ.setdefault("ENV", "local")
os.environ.setdefault("DATABASE_URL_LOCAL", "sqlite://")
os.environ.setdefault("DATABASE_URL_PROD", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("SCHEDULER_ENABLED", "false")

import pytest
from starlette.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.main import app
from app.db.session import get_db
from app.db.base_class import Base
from app import models  # noqa: F401  registers every table


# --- Test Database Setup ---
@pytest.fixture(scope="function")
def engine(tmp_path):
    """
    A fresh SQLite file per test. A file (not :memory:) gives every session
    its own connection, so the task dispatcher sees only committed rows.
    """
    test_engine = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    """Session factory handed to the task dispatcher in place of SessionLocal."""
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


# --- Test Client Fixtures ---
@pytest.fixture(scope="function")
def client(db_session):
    """
    Provides a TestClient that uses the test database. Authentication goes
    through the real JWT dependency; see tests/utils/auth.py for headers.
    """

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
