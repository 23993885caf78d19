"""
PlaceMarker Core: Local Durable Store Engine
============================================

What:  Async SQLAlchemy engine, session factory builder and declarative Base for the
       on-device SQLite store (marked places, device identity).
How:   `engine` is created at import from settings.database_url. Components
       take an engine argument and build their own session factory with
       session_factory_for(), so tests can point them at a temporary file.
When:  Engine created at module import; sessions are created per operation.
"""

from typing import Any, Dict

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from placemarker.config import settings


def create_engine_for(url: str, echo: bool = False) -> AsyncEngine:
    """
    Build an async engine for `url`.

    For SQLite a busy timeout is set so concurrent writers wait on the
    database lock instead of failing straight away.
    """
    connect_args: Dict[str, Any] = {}
    if url.startswith("sqlite"):
        connect_args["timeout"] = 30

    return create_async_engine(
        url,
        pool_pre_ping=True,
        echo=echo,
        connect_args=connect_args,
    )


def session_factory_for(bound_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # expire_on_commit=False: rows are read after the transaction closes
    return async_sessionmaker(bound_engine, class_=AsyncSession, expire_on_commit=False)


# ── Engine ────────────────────────────────────────────────────────────────
engine = create_engine_for(
    settings.database_url,
    echo=settings.log_level == "DEBUG",
)


class Base(DeclarativeBase):
    """
    Base class for all ORM models.

    Shares one metadata object, used by ensure_schema() at startup and by
    Alembic for migrations.
    """
    pass


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def dispose_engine() -> None:
    """Close every pooled connection. Called on application shutdown."""
    await engine.dispose()
