"""Storage for coverage history: engine, sessions and table creation.

The store is SQLite by default (``data/indexwatch.db``); ``DATABASE_URL``
may point anywhere SQLAlchemy can reach. The scheduler writes from its
worker thread while the CLI reads, so SQLite connections run in WAL mode.
"""

import os
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///data/indexwatch.db"


class Base(DeclarativeBase):
    """Declarative base for the history tables."""
    pass


_engine: Engine | None = None
_SessionFactory: sessionmaker | None = None


def _sqlite_pragmas(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL;")
    cursor.execute("PRAGMA busy_timeout=5000;")
    cursor.close()


def _engine_options(database_url: str) -> dict:
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return {"pool_pre_ping": True}

    in_memory = url.database in (None, "", ":memory:")
    if in_memory:
        # One shared connection so every session sees the same tables.
        return {"connect_args": {"check_same_thread": False}, "poolclass": StaticPool}

    Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    return {"connect_args": {"check_same_thread": False}, "pool_pre_ping": True}


def get_engine(database_url: str | None = None, echo: bool = False) -> Engine:
    """Return (and cache) the global engine.

    Args:
        database_url: Connection string. Falls back to ``DATABASE_URL`` and
                      then ``DEFAULT_DATABASE_URL``.
        echo: Whether to log every SQL statement.
    """
    global _engine
    if _engine is not None:
        return _engine

    database_url = database_url or os.getenv("DATABASE_URL") or DEFAULT_DATABASE_URL
    _engine = create_engine(database_url, echo=echo, **_engine_options(database_url))
    if _engine.dialect.name == "sqlite":
        event.listen(_engine, "connect", _sqlite_pragmas)
    logger.info("History store engine created: %s", _engine.url.render_as_string(hide_password=True))
    return _engine


def get_session_factory(engine: Engine | None = None) -> sessionmaker:
    global _SessionFactory
    if _SessionFactory is None:
        _SessionFactory = sessionmaker(bind=engine or get_engine(), expire_on_commit=False)
    return _SessionFactory


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """Yield a session that commits on success and rolls back on error.

    Usage::

        with get_session() as session:
            session.add(CoverageSnapshot(site_url=url, coverage=812))
    """
    session = get_session_factory()()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db(database_url: str | None = None, echo: bool = False) -> None:
    """Create the coverage_snapshots and diagnostic_runs tables if missing."""
    engine = get_engine(database_url=database_url, echo=echo)
    import indexwatch.models  # noqa: F401  (registers tables on Base.metadata)
    Base.metadata.create_all(bind=engine)
    logger.info("History tables ready.")


def reset_engine() -> None:
    """Dispose of the cached engine and session factory (used by tests)."""
    global _engine, _SessionFactory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionFactory = None
