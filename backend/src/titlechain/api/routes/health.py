"""
Health check endpoint.

Provides system health status for monitoring and load balancers.
"""

from fastapi import APIRouter, Depends, Request

from titlechain import __version__
from titlechain.api.dependencies import get_ledger
from titlechain.api.schemas import HealthResponse
from titlechain.services.ledger import DocumentLedger

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(
    request: Request,
    ledger: DocumentLedger = Depends(get_ledger),
) -> HealthResponse:
    """
    Check system health.

    Reports how many closings the ledger holds and whether audit records
    are being persisted.
    """
    transactions = await ledger.store.list_transactions()
    audit_database = request.app.state.audit_database

    return HealthResponse(
        status="healthy",
        version=__version__,
        transactions=len(transactions),
        audit_database="enabled" if audit_database is not None else "disabled",
    )
