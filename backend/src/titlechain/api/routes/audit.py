"""
Audit trail endpoints.

Query and export the persisted audit notifications. Only available when
an audit database is configured; otherwise every call answers 503.

Pending audit deliveries are drained first, so a read reflects every
ledger mutation acknowledged before it.
"""

from datetime import datetime
from typing import Literal

from fastapi import APIRouter, Depends, Query, Response

from titlechain.api.dependencies import get_audit_database, get_ledger
from titlechain.api.schemas import AuditRecordResponse, audit_record_to_response
from titlechain.domain.models import EventType
from titlechain.services.audit import DatabaseAuditSink
from titlechain.services.ledger import DocumentLedger

router = APIRouter(prefix="/audit", tags=["audit"])

EXPORT_MEDIA_TYPES = {
    "json": "application/json",
    "csv": "text/csv",
}


@router.get(
    "",
    response_model=list[AuditRecordResponse],
    responses={503: {"description": "Audit database not configured"}},
)
async def query_audit_trail(
    event_type: EventType | None = None,
    actor_id: str | None = None,
    transaction_id: str | None = None,
    document_id: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int = Query(default=100, ge=1, le=1000),
    audit_database: DatabaseAuditSink = Depends(get_audit_database),
    ledger: DocumentLedger = Depends(get_ledger),
) -> list[AuditRecordResponse]:
    """Filtered audit trail, newest first."""
    await ledger.flush_notifications()
    records = await audit_database.query(
        event_type=event_type,
        actor_id=actor_id,
        transaction_id=transaction_id,
        document_id=document_id,
        start=start,
        end=end,
        limit=limit,
    )
    return [audit_record_to_response(r) for r in records]


@router.get(
    "/export",
    responses={503: {"description": "Audit database not configured"}},
)
async def export_audit_trail(
    start: datetime | None = None,
    end: datetime | None = None,
    format: Literal["json", "csv"] = "json",
    audit_database: DatabaseAuditSink = Depends(get_audit_database),
    ledger: DocumentLedger = Depends(get_ledger),
) -> Response:
    """
    Export the audit trail for compliance review.

    Returns a downloadable JSON array or CSV sheet.
    """
    await ledger.flush_notifications()
    content = await audit_database.export(start, end, format=format)
    return Response(
        content=content,
        media_type=EXPORT_MEDIA_TYPES[format],
        headers={"Content-Disposition": f'attachment; filename="audit-trail.{format}"'},
    )
