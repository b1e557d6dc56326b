"""
Pytest will auto-discover / import this file called 'conftest.py'.
This file defines fixtures/variables required for testing multiple layers.
"""

from typing import Generator, Union

import pytest
from sqlalchemy import StaticPool, create_engine
from sqlalchemy.orm import Session, sessionmaker

from matchplay.core.config import Settings
from matchplay.db.memory_repository import InMemoryMatchRepository
from matchplay.db.schema import Base
from matchplay.db.sql_repository import SQLMatchRepository
from tests.helpers import FakeClock

# Setup an in-memory SQLite database for testing
DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autoflush=False, bind=engine, expire_on_commit=False)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    """Defaults, minus the waiting in between store retries."""
    return Settings(store_retry_backoff=0.0)


@pytest.fixture
def sql_repository() -> Generator[SQLMatchRepository, None, None]:
    """Repository on a test database. Tables are removed at teardown to make unit tests independent of each other."""
    Base.metadata.create_all(bind=engine)
    try:
        yield SQLMatchRepository(TestingSessionLocal)
    finally:
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def memory_repository() -> Generator[InMemoryMatchRepository, None, None]:
    """Ensures to clear the repository between tests"""
    repo = InMemoryMatchRepository()
    try:
        yield repo
    finally:
        repo.clear()


@pytest.fixture(params=["memory", "sql"])
def repository(
    request: pytest.FixtureRequest,
) -> Union[InMemoryMatchRepository, SQLMatchRepository]:
    """Run a test once against every store implementation."""
    return request.getfixturevalue(f"{request.param}_repository")


@pytest.fixture
def db_session(sql_repository: SQLMatchRepository) -> Generator[Session, None, None]:
    """Raw connection to the test database, to look at what the repository wrote."""
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
