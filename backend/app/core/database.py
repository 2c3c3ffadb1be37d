"""Engine, session factory and the declarative base."""

from collections.abc import Generator
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from app.core.config import settings

# Seconds a SQLite writer waits on a locked database before failing.
SQLITE_BUSY_TIMEOUT = 30


def _enable_sqlite_foreign_keys(dbapi_connection: Any, connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA foreign_keys = ON")
    finally:
        cursor.close()


def create_db_engine(dsn: str) -> Engine:
    """Build the engine for ``dsn``.

    SQLite connections enforce foreign keys and wait on locks held by other
    writers; other databases get pre-ping so a dropped connection surfaces as
    a reconnect rather than a failed payment.
    """
    if dsn.startswith("sqlite"):
        sqlite_engine = create_engine(
            dsn,
            connect_args={"check_same_thread": False, "timeout": SQLITE_BUSY_TIMEOUT},
        )
        event.listen(sqlite_engine, "connect", _enable_sqlite_foreign_keys)
        return sqlite_engine
    return create_engine(dsn, pool_pre_ping=True)


engine = create_db_engine(settings.APP_DATABASE_DSN)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base: Any = declarative_base()


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
