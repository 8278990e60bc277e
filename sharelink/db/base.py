"""Engine, session and declarative base for the ShareLink record store."""

from typing import Dict, Generator, Optional

import structlog
from sqlalchemy import Engine, create_engine
from sqlalchemy.engine.url import URL, make_url
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..config import get_settings

logger = structlog.get_logger()


class Base(DeclarativeBase):
    """Declarative base shared by the links and users tables."""


# Async drivers mapped to the sync driver the ORM and Alembic run on.
SYNC_DRIVERS: Dict[str, str] = {
    "postgresql+asyncpg": "postgresql+psycopg",
    "postgresql+aiopg": "postgresql+psycopg",
    "postgresql+psycopg_async": "postgresql+psycopg",
    "sqlite+aiosqlite": "sqlite",
}


def _sync_url(url: URL) -> URL:
    driver = SYNC_DRIVERS.get(url.drivername)
    return url.set(drivername=driver) if driver else url


def get_database_url(raw_url: Optional[str] = None) -> str:
    """Resolve the record store URL, falling back to ``settings.database_url``."""
    url = _sync_url(make_url(raw_url or get_settings().database_url))
    # str(url) would mask the password
    return url.render_as_string(hide_password=False)


def build_engine(database_url: str) -> Engine:
    """Create an engine suited to the backend behind ``database_url``.

    In-memory SQLite shares one connection so every session sees the same
    tables; file SQLite waits on locks so concurrent view counters serialize.
    """
    url = make_url(database_url)

    if url.get_backend_name() == "sqlite":
        if url.database in (None, "", ":memory:"):
            return create_engine(
                url,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        return create_engine(
            url,
            connect_args={"check_same_thread": False, "timeout": 30},
        )

    return create_engine(
        url,
        pool_size=20,
        max_overflow=30,
        pool_pre_ping=True,
        pool_recycle=3600,
    )


_engine: Optional[Engine] = None


def get_engine() -> Engine:
    """Return the process-wide engine, creating it on first use."""
    global _engine
    if _engine is None:
        _engine = build_engine(get_database_url())
        logger.info("Database engine created", backend=_engine.url.get_backend_name())
    return _engine


def dispose_engine() -> None:
    """Close pooled connections; the next ``get_engine`` call starts fresh."""
    global _engine
    if _engine is not None:
        _engine.dispose()
        _engine = None


def get_session_local() -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=get_engine())


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency yielding one session per request."""
    db = get_session_local()()
    try:
        yield db
    finally:
        db.close()


def init_database(engine: Optional[Engine] = None) -> None:
    """Create the links and users tables if they are missing."""
    from . import models  # noqa: F401

    Base.metadata.create_all(bind=engine or get_engine())
    logger.info("Database initialized")
