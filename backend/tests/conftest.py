# backend/tests/conftest.py
"""
Pytest configuration for the discovery engine.

Settings are read once at import time, so the test environment is set up
before anything from the discovery package is imported. Every test that
touches the database gets its own file-backed SQLite database.
"""

import os

# Set testing mode BEFORE any discovery imports
os.environ["IS_TESTING"] = "true"
os.environ["ENVIRONMENT"] = "test"
os.environ["GEOCODING_PROVIDER"] = "mock"
os.environ["PLACE_CACHE_BACKEND"] = "memory"
os.environ.setdefault("DATABASE_URL", "sqlite:///./test_discovery.db")

import pytest
from sqlalchemy.orm import Session

from discovery.database import build_engine, build_session_factory, init_db
from discovery.services.search.config import SearchConfig


@pytest.fixture
def sqlite_engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'discovery_test.db'}")
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(sqlite_engine):
    return build_session_factory(sqlite_engine)


@pytest.fixture
def db(session_factory) -> Session:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def search_config() -> SearchConfig:
    return SearchConfig()


