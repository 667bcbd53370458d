"""CommFlock engine, session factory and request-scoped session dependency.

Every service takes a ``Session`` argument; the API obtains one per request
through ``get_db`` and scripts open ``SessionLocal`` directly.
"""

from __future__ import annotations

from collections.abc import Generator
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from commflock.core.settings import settings


class Base(DeclarativeBase):
    """Declarative base for users, communities, events, polls and payments."""


# Model modules register their tables on Base.metadata when imported.
import commflock.models  # noqa: E402,F401


def build_engine(url: str, *, echo: bool = False, **connect_args: Any) -> Engine:
    """Create an engine for ``url``.

    SQLite connections may be shared across threads (the API runs sync
    sessions in a worker pool); extra ``connect_args`` such as a busy
    ``timeout`` are passed to the driver.
    """
    if url.startswith("sqlite"):
        connect_args = {"check_same_thread": False, **connect_args}
    return create_engine(url, pool_pre_ping=True, echo=echo, connect_args=connect_args)


engine = build_engine(settings.effective_database_url, echo=settings.sql_debug)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Yield one session per request and close it afterwards."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables() -> None:
    """Create every CommFlock table that does not exist yet."""
    Base.metadata.create_all(bind=engine)
