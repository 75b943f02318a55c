"""
Audit/compliance sinks for ledger notifications.

The ledger notifies a sink after every successful mutation. Delivery is
best-effort: a failing sink is logged and never affects ledger state.

Sinks:
- LoggingAuditSink: one JSON line per notification on the
  ``titlechain.audit`` logger (route it to a file with a handler)
- DatabaseAuditSink: persists AuditRecord rows; supports filtered queries
  and JSON/CSV export for compliance review
- CompositeAuditSink: fans out to several sinks, isolating their failures
"""

import csv
import io
import json
import logging
from datetime import datetime
from typing import Iterable, Literal, Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncEngine

from titlechain.domain.models import AuditNotification, EventType
from titlechain.infrastructure.database import (
    AuditRecord,
    close_db,
    create_engine_from_url,
    create_session_factory,
    get_session,
    init_db,
)

logger = logging.getLogger(__name__)

AUDIT_LOGGER_NAME = "titlechain.audit"

EXPORT_COLUMNS = [
    "created_at",
    "event_type",
    "transaction_id",
    "document_id",
    "actor_id",
    "actor_role",
    "hash_prefix",
    "block_id",
    "event_timestamp",
]


class AuditSink(Protocol):
    """Receives a notification after each ledger mutation."""

    async def notify(self, notification: AuditNotification) -> None:
        ...


class LoggingAuditSink:
    """Writes each notification as a JSON line on the audit logger."""

    def __init__(self, logger_name: str = AUDIT_LOGGER_NAME) -> None:
        self._logger = logging.getLogger(logger_name)

    async def notify(self, notification: AuditNotification) -> None:
        self._logger.info(json.dumps(notification.to_dict(), separators=(",", ":")))


class DatabaseAuditSink:
    """
    Persists notifications with SQLAlchemy.

    Example:
        sink = DatabaseAuditSink.from_url("sqlite+aiosqlite:///./audit.db")
        await sink.init()
        ...
        rows = await sink.query(transaction_id="TX-2024-8492")
        report = await sink.export(start, end, format="csv")
        await sink.close()
    """

    def __init__(self, engine: AsyncEngine) -> None:
        self.engine = engine
        self._session_factory = create_session_factory(engine)

    @classmethod
    def from_url(cls, database_url: str, echo: bool = False) -> "DatabaseAuditSink":
        return cls(create_engine_from_url(database_url, echo=echo))

    async def init(self) -> None:
        await init_db(self.engine)

    async def close(self) -> None:
        await close_db(self.engine)

    async def notify(self, notification: AuditNotification) -> None:
        record = AuditRecord(
            event_type=notification.event_type.value,
            transaction_id=notification.transaction_id,
            document_id=notification.document_id,
            actor_id=notification.actor_id,
            actor_role=notification.actor_role.value,
            hash_prefix=notification.hash_prefix,
            block_id=notification.block_id,
            event_timestamp=notification.timestamp,
        )
        async with get_session(self._session_factory) as session:
            session.add(record)
            await session.commit()

    async def query(
        self,
        *,
        event_type: EventType | None = None,
        actor_id: str | None = None,
        transaction_id: str | None = None,
        document_id: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int | None = None,
    ) -> list[AuditRecord]:
        """
        Filtered audit trail, newest first.

        Args:
            event_type: Only this ledger event type
            actor_id: Only this actor
            transaction_id: Only this closing
            document_id: Only this document
            start: Received at or after
            end: Received at or before
            limit: Maximum number of rows
        """
        statement = select(AuditRecord)
        if event_type is not None:
            statement = statement.where(AuditRecord.event_type == event_type.value)
        if actor_id is not None:
            statement = statement.where(AuditRecord.actor_id == actor_id)
        if transaction_id is not None:
            statement = statement.where(AuditRecord.transaction_id == transaction_id)
        if document_id is not None:
            statement = statement.where(AuditRecord.document_id == document_id)
        if start is not None:
            statement = statement.where(AuditRecord.created_at >= start)
        if end is not None:
            statement = statement.where(AuditRecord.created_at <= end)
        statement = statement.order_by(
            AuditRecord.created_at.desc(), AuditRecord.event_timestamp.desc()
        )
        if limit is not None:
            statement = statement.limit(limit)

        async with get_session(self._session_factory) as session:
            result = await session.execute(statement)
            return list(result.scalars().all())

    async def export(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
        format: Literal["json", "csv"] = "json",
    ) -> str:
        """Render the audit trail between ``start`` and ``end`` for compliance review."""
        records = await self.query(start=start, end=end)
        rows = [_record_to_row(record) for record in records]

        if format == "json":
            return json.dumps(rows, indent=2)
        if format == "csv":
            buffer = io.StringIO()
            writer = csv.DictWriter(buffer, fieldnames=EXPORT_COLUMNS)
            writer.writeheader()
            writer.writerows(rows)
            return buffer.getvalue()
        raise ValueError(f"Unsupported export format: {format}")


class CompositeAuditSink:
    """Delivers to every sink; one failing sink does not starve the others."""

    def __init__(self, sinks: Iterable[AuditSink]) -> None:
        self.sinks = list(sinks)

    async def notify(self, notification: AuditNotification) -> None:
        for sink in self.sinks:
            try:
                await sink.notify(notification)
            except Exception as e:
                logger.warning(
                    f"Audit sink {type(sink).__name__} failed for "
                    f"{notification.event_type.value} on {notification.document_id}: {e}"
                )


def _record_to_row(record: AuditRecord) -> dict[str, str | int]:
    return {
        "created_at": record.created_at.isoformat(),
        "event_type": record.event_type,
        "transaction_id": record.transaction_id,
        "document_id": record.document_id,
        "actor_id": record.actor_id,
        "actor_role": record.actor_role,
        "hash_prefix": record.hash_prefix,
        "block_id": record.block_id,
        "event_timestamp": record.event_timestamp,
    }
