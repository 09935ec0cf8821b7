"""Database setup and session management."""

import logging
from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from config import settings

logger = logging.getLogger(__name__)

# Seconds SQLite waits on a locked database file before raising
# ``OperationalError: database is locked``.
SQLITE_BUSY_TIMEOUT = 5


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


def build_engine(database_url: str):
    """Create an engine for ``database_url`` with the app's connection options.

    SQLite connections are shared across request threads, so
    ``check_same_thread`` is disabled and a busy timeout is set; lock
    contention that outlasts it surfaces as an ``OperationalError`` which
    the ledger engine retries.
    """
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
        connect_args["timeout"] = SQLITE_BUSY_TIMEOUT

    engine = create_engine(
        database_url,
        connect_args=connect_args,
        echo=False,
    )
    logger.debug("Database engine created for %s", engine.url.render_as_string(hide_password=True))
    return engine


@lru_cache
def get_engine():
    """Get or create the database engine (cached)."""
    return build_engine(settings.DATABASE_URL)


def get_session_local():
    """Get a sessionmaker bound to the engine."""
    return sessionmaker(autocommit=False, autoflush=False, bind=get_engine())


def init_db() -> None:
    """Create all tables. Importing ``models`` registers every mapper."""
    import models  # noqa: F401

    Base.metadata.create_all(bind=get_engine())


def get_db():
    """Dependency that provides a database session.

    Transaction conventions:
    - Default: catalog services ``flush()``, API layer ``commit()``
    - Exceptions that commit internally:
      - ``UnitLedgerService`` and ``StockLedgerService``: every balance
        mutation holds a per-entity lock and commits before releasing it,
        so the balance and its movement record land together
    """
    SessionLocal = get_session_local()
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
