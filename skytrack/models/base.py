"""
SQLAlchemy base configuration and session management.

Uses SQLAlchemy 2.0 style with type hints and declarative base.
Positions and sightings are two independent databases, so each gets
its own declarative base and its own engine.
"""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker, Session


class PositionsBase(DeclarativeBase):
    """Base class for tables in the position store."""
    pass


class SightingsBase(DeclarativeBase):
    """Base class for tables in the sighting store."""
    pass


def _set_sqlite_pragma(dbapi_connection, connection_record):
    """
    Configure SQLite for better write performance.

    WAL mode allows concurrent reads during writes - the poller is
    constantly ingesting while the API serves queries.
    """
    cursor = dbapi_connection.cursor()
    cursor.execute('PRAGMA journal_mode=WAL')
    cursor.execute('PRAGMA synchronous=NORMAL')
    cursor.execute('PRAGMA cache_size=-64000')  # 64MB
    cursor.close()


def make_engine(url: str, echo: bool = False) -> Engine:
    """Create an engine with settings appropriate for the database type."""
    engine_kwargs = {'echo': echo}

    is_sqlite = url.startswith('sqlite')
    if is_sqlite:
        # Poller threads and request threads share the engine
        engine_kwargs['connect_args'] = {'check_same_thread': False}

    engine = create_engine(url, **engine_kwargs)

    if is_sqlite:
        event.listen(engine, 'connect', _set_sqlite_pragma)

    return engine


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,  # Rows are handed out after the session closes
    )


@contextmanager
def session_scope(factory: sessionmaker) -> Generator[Session, None, None]:
    """
    Context manager for a unit of work.

    Usage:
        with session_scope(factory) as session:
            session.execute(...)

    Commits on success, rolls back and re-raises on any error.
    """
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
