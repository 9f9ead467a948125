"""SQLAlchemy engine and session factory.

When DATABASE_URL is configured, provides:
- an engine (PostgreSQL via psycopg2 in deployment)
- a session factory used by SqlStore, one session per unit of work
- a lifespan hook that disposes the pool on shutdown

When DATABASE_URL is unset, ``engine`` and ``session_factory`` are None and
the app runs on the in-memory store.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from course_engine.core.config import SETTINGS

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all table models."""


def make_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(engine, expire_on_commit=False)


if SETTINGS.database_url:
    engine: Engine | None = create_engine(
        SETTINGS.database_url,
        echo=SETTINGS.is_dev,  # log SQL in dev only
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
    )
    session_factory: sessionmaker[Session] | None = make_session_factory(engine)
else:
    engine = None
    session_factory = None


@contextmanager
def lifespan_db() -> Iterator[None]:
    """Startup/shutdown hook for the database engine."""
    if engine is None:
        logger.info("No DATABASE_URL configured, using the in-memory store")
        yield
        return

    logger.info("Database engine created: %s", engine.url)
    try:
        yield
    finally:
        engine.dispose()
        logger.info("Database engine disposed")
