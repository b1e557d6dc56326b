"""Generate database sessions"""

import logging
from math import ceil
from typing import Any

from sqlalchemy import Engine, create_engine, make_url
from sqlalchemy.orm import Session, sessionmaker

from matchplay.core.config import Settings
from matchplay.db.memory_repository import InMemoryMatchRepository
from matchplay.db.repository import MatchRepository
from matchplay.db.schema import Base
from matchplay.db.sql_repository import SQLMatchRepository

logger = logging.getLogger(__name__)


def _connect_args(database_url: str, timeout: float) -> dict[str, Any]:
    """Bound how long the driver may wait, so a store hiccup surfaces as an error instead of a hang."""
    backend = make_url(database_url).get_backend_name()
    if backend == "sqlite":
        return {"timeout": timeout, "check_same_thread": False}
    if backend == "postgresql":
        return {"connect_timeout": max(1, ceil(timeout))}
    return {}


def create_db_engine(settings: Settings) -> Engine:
    if settings.database_url is None:
        raise ValueError("No database URL configured (MATCHPLAY_DATABASE_URL).")
    options: dict[str, Any] = {
        "connect_args": _connect_args(settings.database_url, settings.store_timeout),
        "pool_pre_ping": True,
    }
    if make_url(settings.database_url).get_backend_name() != "sqlite":
        options["pool_timeout"] = settings.store_timeout
    engine = create_engine(settings.database_url, **options)

    # Ensure all tables are created
    Base.metadata.create_all(bind=engine)
    logger.info("Connected to %s", engine.url.render_as_string(hide_password=True))
    return engine


def create_session_factory(settings: Settings) -> sessionmaker[Session]:
    return sessionmaker(bind=create_db_engine(settings), expire_on_commit=False)


def create_repository(settings: Settings) -> MatchRepository:
    """SQL store when a database URL is configured; otherwise the in-process store (one server instance only)."""
    if settings.database_url:
        return SQLMatchRepository(
            create_session_factory(settings), waiting_ttl=settings.waiting_ttl_delta
        )
    logger.warning("MATCHPLAY_DATABASE_URL is not set: using the in-memory store")
    return InMemoryMatchRepository(waiting_ttl=settings.waiting_ttl_delta)
