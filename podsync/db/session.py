"""Database session and engine management."""
from __future__ import annotations

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from loguru import logger

from podsync.config import settings


def build_engine(url: str) -> Engine:
    """Create an engine; SQLite gets cross-thread access and foreign keys on."""

    if url.startswith("sqlite"):
        engine = create_engine(
            url,
            connect_args={"check_same_thread": False},
            pool_pre_ping=True,
        )

        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):  # type: ignore[no-untyped-def]
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    return create_engine(
        url,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
        pool_recycle=3600,  # Recycle connections after 1 hour
    )


engine = build_engine(settings.DATABASE_URL)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    expire_on_commit=False,  # Keep objects usable after commit
)


def init_db(bind: Engine | None = None) -> None:
    """Create any missing tables."""
    from podsync.db import models  # noqa: F401  # Imported for side effects
    from podsync.db.base import Base

    target = bind or engine
    logger.info(f"Using {target.url.render_as_string(hide_password=True)}")
    Base.metadata.create_all(bind=target)
