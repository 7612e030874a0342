"""Helpers for configuring the SQLAlchemy engine shared by requests."""

from __future__ import annotations

import os
import threading
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from . import Base

_DEFAULT_ENGINE: Engine | None = None
_ENGINE_LOCK = threading.Lock()


def get_engine(database_url: str | None = None, **kwargs: object) -> Engine:
    """Create a SQLAlchemy engine.

    Args:
        database_url: Optional database URL. When ``None`` the ``DATABASE_URL``
            environment variable is used.
        **kwargs: Additional keyword arguments forwarded to
            :func:`sqlalchemy.create_engine`.

    Returns:
        Configured SQLAlchemy :class:`~sqlalchemy.engine.Engine` instance.
        SQLite engines enforce foreign keys so tests see the same delete
        ordering constraints as PostgreSQL.
    """

    url = database_url or os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError("DATABASE_URL is not configured.")

    engine = create_engine(url, **kwargs)

    if engine.dialect.name == "sqlite":

        @event.listens_for(engine, "connect")
        def _configure_sqlite(dbapi_connection, _connection_record):  # pragma: no cover - dialect hook
            dbapi_connection.execute("PRAGMA foreign_keys=ON")

    return engine


def get_default_engine() -> Engine:
    """Return the process-wide engine, creating it on first use.

    The engine pools connections and is shared by concurrent requests.
    """

    global _DEFAULT_ENGINE
    if _DEFAULT_ENGINE is None:
        with _ENGINE_LOCK:
            if _DEFAULT_ENGINE is None:
                _DEFAULT_ENGINE = get_engine(pool_pre_ping=True)
    return _DEFAULT_ENGINE


def reset_default_engine() -> None:
    """Dispose the shared engine; the next call to ``get_default_engine`` rebuilds it."""

    global _DEFAULT_ENGINE
    with _ENGINE_LOCK:
        if _DEFAULT_ENGINE is not None:
            _DEFAULT_ENGINE.dispose()
        _DEFAULT_ENGINE = None


@contextmanager
def session_scope(engine: Engine) -> Iterator[Session]:
    """Provide a transactional scope around a series of operations."""

    session = sessionmaker(bind=engine, expire_on_commit=False)()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


__all__ = [
    "Base",
    "get_default_engine",
    "get_engine",
    "reset_default_engine",
    "session_scope",
]
