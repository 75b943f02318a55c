"""
Domain models for the loan-closing document ledger.

A Transaction is one loan closing. It owns the DocumentAssets produced
during the closing, and each DocumentAsset owns the append-only sequence
of BlockchainEvents recorded against it.

Design Decisions:
- Using dataclasses for typed domain objects
- BlockchainEvent is frozen: once appended it is the unit of tamper-evidence
- DocumentAsset and Transaction are mutable, but only the ledger mutates them;
  callers receive snapshots
- Decimal for loan amounts to avoid floating-point errors
- No back-pointers from events or documents to their owners
"""

import dataclasses
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

MetadataValue = str | int | float | bool | None


class UserRole(Enum):
    """Parties that act on closing documents."""
    BORROWER = "BORROWER"
    LENDER = "LENDER"
    TITLE_COMPANY = "TITLE_COMPANY"
    ATTORNEY = "ATTORNEY"
    NOTARY = "NOTARY"
    COUNTY_CLERK = "COUNTY_CLERK"


class EventType(Enum):
    """Kinds of ledger entries."""
    UPLOAD = "UPLOAD"
    VIEW = "VIEW"
    APPROVAL = "APPROVAL"
    SIGNATURE = "SIGNATURE"
    NOTARIZATION = "NOTARIZATION"
    RECORDED = "RECORDED"
    REVISION = "REVISION"


class DocumentStatus(Enum):
    """Document lifecycle status, derived from the event log."""
    DRAFT = "DRAFT"
    APPROVED = "APPROVED"
    SIGNED = "SIGNED"
    RECORDED = "RECORDED"


class TransactionStatus(Enum):
    """Loan-closing workflow status."""
    OPEN = "OPEN"
    CLOSING = "CLOSING"
    RECORDED = "RECORDED"
    COMPLETED = "COMPLETED"


class VerificationOutcome(Enum):
    """Why a verification came back the way it did."""
    VERIFIED = "VERIFIED"
    HASH_MISMATCH = "HASH_MISMATCH"
    DOCUMENT_NOT_FOUND = "DOCUMENT_NOT_FOUND"


def _empty_metadata() -> Mapping[str, MetadataValue]:
    return MappingProxyType({})


@dataclass(frozen=True)
class BlockchainEvent:
    """
    One immutable ledger entry.

    ``doc_hash`` is the content hash the actor acted on. Replaying the
    events of a document therefore tells, for every timestamp, what the
    document's content was believed to be.
    """
    id: str
    timestamp: int  # epoch millis
    type: EventType
    actor_id: str
    actor_role: UserRole
    doc_hash: str
    block_id: str
    metadata: Mapping[str, MetadataValue] = field(default_factory=_empty_metadata)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "type": self.type.value,
            "actorId": self.actor_id,
            "actorRole": self.actor_role.value,
            "docHash": self.doc_hash,
            "metadata": dict(self.metadata),
            "blockId": self.block_id,
        }


@dataclass
class DocumentAsset:
    """
    One versioned file tracked on the ledger.

    ``current_hash`` follows the latest UPLOAD/REVISION event, ``status``
    follows the state machine replay of ``events``.
    """
    id: str
    name: str
    type: str
    current_hash: str
    status: DocumentStatus = DocumentStatus.DRAFT
    current_version: int = 1
    events: list[BlockchainEvent] = field(default_factory=list)

    @property
    def latest_event(self) -> BlockchainEvent | None:
        return self.events[-1] if self.events else None

    def find_event_by_hash(self, doc_hash: str) -> BlockchainEvent | None:
        """First event, in append order, that recorded ``doc_hash``."""
        for event in self.events:
            if event.doc_hash == doc_hash:
                return event
        return None

    def snapshot(self) -> "DocumentAsset":
        """Copy that shares the (immutable) events but not the list."""
        return dataclasses.replace(self, events=list(self.events))


@dataclass
class Transaction:
    """A loan-closing workflow instance."""
    id: str
    property_address: str
    loan_amount: Decimal
    lender_name: str
    borrower_name: str
    status: TransactionStatus = TransactionStatus.OPEN
    created_at: int = 0  # epoch millis
    documents: list[DocumentAsset] = field(default_factory=list)

    def find_document(self, document_id: str) -> DocumentAsset | None:
        for document in self.documents:
            if document.id == document_id:
                return document
        return None

    def snapshot(self) -> "Transaction":
        return dataclasses.replace(
            self, documents=[document.snapshot() for document in self.documents]
        )


@dataclass(frozen=True)
class VerificationResult:
    """
    Outcome of re-hashing a file and looking it up on the ledger.

    A miss is data, not a fault. ``outcome`` keeps "no such document"
    and "hash did not match" apart.
    """
    verified: bool
    outcome: VerificationOutcome
    computed_hash: str
    document: DocumentAsset | None = None
    matched_event: BlockchainEvent | None = None
    transaction: Transaction | None = None


@dataclass(frozen=True)
class AuditNotification:
    """What the audit/compliance sink hears after each ledger mutation."""
    event_type: EventType
    transaction_id: str
    document_id: str
    actor_id: str
    actor_role: UserRole
    hash_prefix: str
    block_id: str
    timestamp: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "eventType": self.event_type.value,
            "transactionId": self.transaction_id,
            "documentId": self.document_id,
            "actorId": self.actor_id,
            "actorRole": self.actor_role.value,
            "hashPrefix": self.hash_prefix,
            "blockId": self.block_id,
            "timestamp": self.timestamp,
        }


@dataclass
class ValidationCheck:
    """
    Result of a single validation rule.

    Mutable because checks are built incrementally during validation.
    """
    rule_name: str
    passed: bool
    message: str
    details: dict[str, Any] = field(default_factory=dict)
