"""
Audit database configuration and session management with SQLAlchemy.

Uses async SQLAlchemy for non-blocking database operations.
Every ledger mutation the audit sink hears about is persisted here for
compliance review and export.

Design Decisions:
- AsyncSession for non-blocking operations
- Connection pooling with sensible defaults (server databases only)
- Explicit transaction management
- Audit rows are insert-only, like the ledger they describe
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncGenerator
from uuid import uuid4

from sqlalchemy import BigInteger, DateTime, String, TypeDecorator
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

logger = logging.getLogger(__name__)


class UTCDateTime(TypeDecorator):
    """
    Timestamp stored as naive UTC and returned timezone-aware.

    SQLite keeps no offset, so aware values (including filter bounds) are
    converted to UTC before binding. Naive values are taken as UTC.
    """
    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is not None:
            value = value.replace(tzinfo=timezone.utc)
        return value


class Base(DeclarativeBase):
    """Declarative base for the audit tables."""
    pass


class AuditRecord(Base):
    """
    One audit notification emitted by the ledger.

    Mirrors AuditNotification plus the time the sink received it.
    """
    __tablename__ = "audit_records"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )

    event_type: Mapped[str] = mapped_column(String(32), index=True)
    transaction_id: Mapped[str] = mapped_column(String(32), index=True)
    document_id: Mapped[str] = mapped_column(String(32), index=True)

    actor_id: Mapped[str] = mapped_column(String(254), index=True)
    actor_role: Mapped[str] = mapped_column(String(32))

    hash_prefix: Mapped[str] = mapped_column(String(64))
    block_id: Mapped[str] = mapped_column(String(130))
    event_timestamp: Mapped[int] = mapped_column(BigInteger)  # epoch millis from the ledger


def create_engine_from_url(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create the async engine; pool sizing only applies to server databases."""
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite":
        engine = create_async_engine(database_url, echo=echo)
    else:
        engine = create_async_engine(
            database_url,
            echo=echo,
            pool_size=5,
            max_overflow=10,
            pool_timeout=30,
        )
    logger.info(f"Audit database engine created for {url.get_backend_name()}://{url.host or url.database}")
    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to ``engine``; objects stay usable after commit."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@asynccontextmanager
async def get_session(
    factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """
    Get a database session.

    Usage:
        async with get_session(factory) as session:
            session.add(record)
            await session.commit()
    """
    session = factory()
    try:
        yield session
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()


async def init_db(engine: AsyncEngine) -> None:
    """
    Initialize the audit schema.

    Creates the audit tables if they are missing. Runs from the lifespan.
    Schema changes beyond that need a migration tool.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Audit database tables initialized")


async def close_db(engine: AsyncEngine) -> None:
    """Dispose of the engine's connection pool."""
    await engine.dispose()
    logger.info("Audit database connections closed")
