"""Database session configuration."""

from __future__ import annotations

from collections.abc import Generator, Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import Table, create_engine, event
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from nakama.core.settings import settings


class Base(DeclarativeBase):
    """Declarative base shared by all ORM models."""


# Ensure model modules are imported so that metadata is populated when create_all runs.
import nakama.models  # noqa: E402,F401


def make_engine(url: str, *, echo: bool = False, **kwargs: Any) -> Engine:
    """Create an engine, enabling foreign keys and thread sharing on SQLite."""
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    else:
        kwargs.setdefault("pool_pre_ping", True)
    new_engine = create_engine(url, echo=echo, **kwargs)

    if new_engine.dialect.name == "sqlite":

        @event.listens_for(new_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record) -> None:  # pragma: no cover - driver hook
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return new_engine


engine = make_engine(settings.effective_database_url, echo=settings.sql_debug)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Yield a database session for dependency injection."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(factory: sessionmaker[Session]) -> Iterator[Session]:
    """Run a unit of work: commit on success, roll back on any exception."""
    db = factory()
    try:
        yield db
        db.commit()
    except BaseException:
        db.rollback()
        raise
    finally:
        db.close()


def is_unique_violation(exc: IntegrityError, column: str) -> bool:
    """Report whether ``exc`` is a unique violation involving ``column``."""
    message = str(exc.orig).lower()
    diag = getattr(exc.orig, "diag", None)
    constraint = (getattr(diag, "constraint_name", None) or "").lower()
    if "unique" not in message and "duplicate" not in message:
        return False
    return column in constraint or column in message


def dialect_insert(db: Session, table: Table) -> postgresql.Insert | sqlite.Insert:
    """``INSERT`` into ``table`` supporting ``ON CONFLICT`` clauses on the session's dialect."""
    if db.get_bind().dialect.name == "sqlite":
        return sqlite.insert(table)
    return postgresql.insert(table)


def is_foreign_key_violation(exc: IntegrityError) -> bool:
    """Report whether ``exc`` was raised by a foreign key constraint."""
    return "foreign key" in str(exc.orig).lower()


def create_tables(bind: Engine = engine) -> None:
    """Create all database tables."""
    Base.metadata.create_all(bind=bind)


def drop_tables(bind: Engine = engine) -> None:
    """Drop all database tables."""
    Base.metadata.drop_all(bind=bind)
