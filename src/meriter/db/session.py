"""Engine and session wiring for the merit store."""

from __future__ import annotations

from collections.abc import Generator
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from meriter.core.settings import settings


class Base(DeclarativeBase):
    """Declarative base shared by all ORM models."""


# Model modules register their tables on Base.metadata.
import meriter.models  # noqa: E402,F401


def is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def _enable_foreign_keys(dbapi_connection: Any, _record: Any) -> None:
    # SQLite ships with foreign keys off; membership and wallet rows cascade on delete.
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(url: str, **kwargs: Any) -> Engine:
    """Create an engine for ``url``.

    SQLite engines are usable across threads and enforce foreign keys.
    """
    if is_sqlite(url):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    else:
        kwargs.setdefault("pool_pre_ping", True)
    built = create_engine(url, **kwargs)
    if is_sqlite(url):
        event.listen(built, "connect", _enable_foreign_keys)
    return built


engine = build_engine(settings.effective_database_url, echo=settings.sql_debug)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Yield a request-scoped session and close it afterwards."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
