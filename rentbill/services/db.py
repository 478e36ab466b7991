"""Database engine and session factory."""

from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from rentbill.config import settings


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    # Needed for ON DELETE SET NULL on deposit_transactions.invoice_id
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_engine(url: str, echo: bool = False) -> Engine:
    """Create the engine for a database URL.

    SQLite connections enforce foreign keys and may be used from FastAPI's
    worker threads; an in-memory database keeps one shared connection so
    every session sees the same data.
    """
    if not url.startswith("sqlite"):
        return create_engine(url, pool_pre_ping=True, echo=echo)

    options = {"connect_args": {"check_same_thread": False}, "echo": echo}
    if ":memory:" in url or url in ("sqlite://", "sqlite:///"):
        options["poolclass"] = StaticPool

    sqlite_engine = create_engine(url, **options)
    event.listen(sqlite_engine, "connect", _enable_sqlite_foreign_keys)
    return sqlite_engine


engine = create_db_engine(settings.database_url, echo=settings.database_echo)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency yielding a session closed after the request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


__all__ = ["create_db_engine", "engine", "SessionLocal", "get_db"]
