"""
Pydantic schemas for API request/response validation.

These schemas define the contract between frontend and backend, and are
where malformed ids, emails, hashes and amounts are rejected before they
reach the ledger. Monetary values are returned as strings to avoid
floating point issues.
"""

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any, Callable

from pydantic import AfterValidator, BaseModel, Field

from titlechain.domain.models import (
    BlockchainEvent,
    DocumentAsset,
    DocumentStatus,
    EventType,
    MetadataValue,
    Transaction,
    TransactionStatus,
    UserRole,
    ValidationCheck,
    VerificationOutcome,
    VerificationResult,
)
from titlechain.domain.validation import (
    validate_document_id,
    validate_email,
    validate_hash,
    validate_transaction_id,
)
from titlechain.infrastructure.database import AuditRecord


def _enforce(rule: Callable[[str], ValidationCheck]) -> AfterValidator:
    """Run a domain rule as a pydantic validator; failures become 422s."""
    def check(value: str) -> str:
        result = rule(value)
        if not result.passed:
            raise ValueError(result.message)
        return value
    return AfterValidator(check)


Email = Annotated[str, _enforce(validate_email)]
Sha256Hex = Annotated[str, _enforce(validate_hash)]
TransactionId = Annotated[str, _enforce(validate_transaction_id)]
DocumentId = Annotated[str, _enforce(validate_document_id)]


# =============================================================================
# Request Schemas
# =============================================================================

class CreateTransactionRequest(BaseModel):
    """Request to open a new loan closing."""
    property_address: str = Field(..., min_length=10, max_length=500)
    loan_amount: Decimal = Field(
        ...,
        gt=0,
        le=Decimal("999999999999"),
        decimal_places=2,
        description="Loan amount in USD, at most 2 decimal places",
    )
    lender_name: str = Field(..., min_length=1, max_length=200)
    borrower_name: str = Field(..., min_length=1, max_length=200)
    transaction_id: TransactionId | None = Field(
        default=None,
        description="Explicit TX-YYYY-NNNN id (minted if omitted)",
    )
    status: TransactionStatus = TransactionStatus.OPEN


class AddEventRequest(BaseModel):
    """Request to append an event to a document."""
    event_type: EventType
    actor_id: Email
    actor_role: UserRole
    current_hash: Sha256Hex = Field(
        ...,
        description="Content hash the actor is acting on (recorded as given)",
    )
    metadata: dict[str, MetadataValue] | None = None


class SignatureCompletedRequest(BaseModel):
    """Terminal notice from the e-signature provider."""
    document_id: DocumentId
    signer_email: Email
    signed_at: datetime
    envelope_id: str = Field(..., min_length=1, max_length=128)
    current_hash: Sha256Hex
    actor_role: UserRole = UserRole.BORROWER


# =============================================================================
# Response Schemas
# =============================================================================

class EventResponse(BaseModel):
    """One ledger entry."""
    id: str
    timestamp: int
    type: EventType
    actor_id: str
    actor_role: UserRole
    doc_hash: str
    block_id: str
    metadata: dict[str, Any] = {}


class DocumentResponse(BaseModel):
    """A document with its full event log."""
    id: str
    name: str
    type: str
    current_version: int
    current_hash: str
    status: DocumentStatus
    events: list[EventResponse]


class TransactionResponse(BaseModel):
    """A loan closing with its documents."""
    id: str
    property_address: str
    loan_amount: str
    lender_name: str
    borrower_name: str
    status: TransactionStatus
    created_at: int
    documents: list[DocumentResponse]


class VerificationResponse(BaseModel):
    """Result of re-hashing an uploaded file against the ledger."""
    verified: bool
    outcome: VerificationOutcome
    computed_hash: str
    transaction_id: str | None = None
    document: DocumentResponse | None = None
    matched_event: EventResponse | None = None


class AuditRecordResponse(BaseModel):
    """One persisted audit notification."""
    created_at: datetime
    event_type: str
    transaction_id: str
    document_id: str
    actor_id: str
    actor_role: str
    hash_prefix: str
    block_id: str
    event_timestamp: int


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = "healthy"
    version: str
    transactions: int
    audit_database: str = "disabled"


class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
    detail: str | None = None


# =============================================================================
# Converters
# =============================================================================

def event_to_response(event: BlockchainEvent) -> EventResponse:
    return EventResponse(
        id=event.id,
        timestamp=event.timestamp,
        type=event.type,
        actor_id=event.actor_id,
        actor_role=event.actor_role,
        doc_hash=event.doc_hash,
        block_id=event.block_id,
        metadata=dict(event.metadata),
    )


def document_to_response(document: DocumentAsset) -> DocumentResponse:
    return DocumentResponse(
        id=document.id,
        name=document.name,
        type=document.type,
        current_version=document.current_version,
        current_hash=document.current_hash,
        status=document.status,
        events=[event_to_response(e) for e in document.events],
    )


def transaction_to_response(transaction: Transaction) -> TransactionResponse:
    return TransactionResponse(
        id=transaction.id,
        property_address=transaction.property_address,
        loan_amount=str(transaction.loan_amount),
        lender_name=transaction.lender_name,
        borrower_name=transaction.borrower_name,
        status=transaction.status,
        created_at=transaction.created_at,
        documents=[document_to_response(d) for d in transaction.documents],
    )


def verification_to_response(result: VerificationResult) -> VerificationResponse:
    return VerificationResponse(
        verified=result.verified,
        outcome=result.outcome,
        computed_hash=result.computed_hash,
        transaction_id=result.transaction.id if result.transaction else None,
        document=document_to_response(result.document) if result.document else None,
        matched_event=event_to_response(result.matched_event) if result.matched_event else None,
    )


def audit_record_to_response(record: AuditRecord) -> AuditRecordResponse:
    return AuditRecordResponse(
        created_at=record.created_at,
        event_type=record.event_type,
        transaction_id=record.transaction_id,
        document_id=record.document_id,
        actor_id=record.actor_id,
        actor_role=record.actor_role,
        hash_prefix=record.hash_prefix,
        block_id=record.block_id,
        event_timestamp=record.event_timestamp,
    )
