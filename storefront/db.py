"""Database engine, sessions and transaction scopes."""

from __future__ import annotations

from contextlib import contextmanager
from datetime import timedelta
from typing import Any, Iterator, Optional

from fastapi import Request
from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from . import models  # noqa: F401  registers the tables on SQLModel.metadata
from .errors import StoreError
from .logger import get_logger

logger = get_logger(__name__)


def _enable_sqlite_transactions(engine: Engine) -> None:
    # pysqlite opens transactions lazily and only before DML, so take over
    # BEGIN and make every transaction a writer up front.
    @event.listens_for(engine, "connect")
    def on_connect(dbapi_connection: Any, connection_record: Any) -> None:
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA busy_timeout=30000")
        cursor.close()

    @event.listens_for(engine, "begin")
    def on_begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_db_engine(
    url: str,
    *,
    echo: bool = False,
    statement_timeout: Optional[timedelta] = None,
) -> Engine:
    """Create an engine for ``url``.

    SQLite engines serialize writers with ``BEGIN IMMEDIATE``; in-memory
    databases share one connection so every session sees the same data.
    PostgreSQL engines get a per-statement ``statement_timeout``.
    """

    kwargs: dict[str, Any] = {"echo": echo}
    connect_args: dict[str, Any] = {}
    if url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
    elif url.startswith("postgresql"):
        kwargs["pool_pre_ping"] = True
        if statement_timeout is not None:
            milliseconds = int(statement_timeout.total_seconds() * 1000)
            connect_args["options"] = f"-c statement_timeout={milliseconds}"

    engine = create_engine(url, connect_args=connect_args, **kwargs)
    if engine.dialect.name == "sqlite":
        _enable_sqlite_transactions(engine)
    logger.debug("Created %s engine", engine.dialect.name)
    return engine


def create_db_and_tables(engine: Engine) -> None:
    """Create all database tables."""

    SQLModel.metadata.create_all(engine)


def get_session(request: Request) -> Iterator[Session]:
    """Yield a database session for request handling."""

    with Session(request.app.state.engine) as session:
        yield session


@contextmanager
def transaction(session: Session) -> Iterator[Session]:
    """Commit the work done inside the block, or roll it back on any exception.

    Integrity violations propagate unchanged so callers can map them to
    domain errors; other database failures become :class:`StoreError`.
    """

    try:
        yield session
        session.commit()
    except IntegrityError:
        session.rollback()
        raise
    except SQLAlchemyError as exc:
        session.rollback()
        logger.error("Database transaction failed: %s", exc)
        raise StoreError("Database operation failed") from exc
    except Exception:
        session.rollback()
        raise


@contextmanager
def session_scope(engine: Engine) -> Iterator[Session]:
    """Provide a transactional scope around a series of operations."""

    with Session(engine) as session:
        with transaction(session):
            yield session
