"""
Document status state machine.

DRAFT -> APPROVED -> SIGNED -> RECORDED, forward only.

The policy is permissive: every event type may be appended in every
state, including after RECORDED. The table below only decides what the
status becomes. Pairs that are absent leave the status unchanged, which
is how VIEW, REVISION, NOTARIZATION, a late APPROVAL after SIGNED, and
anything after RECORDED are handled. Role-gating (who may approve or
sign) is advisory and not enforced here.
"""

from typing import Iterable

from .models import BlockchainEvent, DocumentStatus, EventType

# Position of each status along the closing workflow.
STATUS_ORDER: dict[DocumentStatus, int] = {
    DocumentStatus.DRAFT: 0,
    DocumentStatus.APPROVED: 1,
    DocumentStatus.SIGNED: 2,
    DocumentStatus.RECORDED: 3,
}

TRANSITIONS: dict[tuple[DocumentStatus, EventType], DocumentStatus] = {
    (DocumentStatus.DRAFT, EventType.APPROVAL): DocumentStatus.APPROVED,
    (DocumentStatus.DRAFT, EventType.SIGNATURE): DocumentStatus.SIGNED,
    (DocumentStatus.APPROVED, EventType.SIGNATURE): DocumentStatus.SIGNED,
    (DocumentStatus.DRAFT, EventType.RECORDED): DocumentStatus.RECORDED,
    (DocumentStatus.APPROVED, EventType.RECORDED): DocumentStatus.RECORDED,
    (DocumentStatus.SIGNED, EventType.RECORDED): DocumentStatus.RECORDED,
    (DocumentStatus.RECORDED, EventType.RECORDED): DocumentStatus.RECORDED,
}

# Event types that establish the document's content (and thus current_hash).
CONTENT_EVENTS = frozenset({EventType.UPLOAD, EventType.REVISION})


def next_status(current: DocumentStatus, event_type: EventType) -> DocumentStatus:
    """Status after applying ``event_type`` to a document in ``current``."""
    return TRANSITIONS.get((current, event_type), current)


def is_forward(previous: DocumentStatus, following: DocumentStatus) -> bool:
    """True if moving from ``previous`` to ``following`` never goes backward."""
    return STATUS_ORDER[following] >= STATUS_ORDER[previous]


def replay_status(events: Iterable[BlockchainEvent]) -> DocumentStatus:
    """
    Derive a document's status from its event log.

    The first event must be the UPLOAD that created the document.

    Raises:
        ValueError: If the log is empty or does not start with UPLOAD
    """
    iterator = iter(events)
    first = next(iterator, None)
    if first is None or first.type is not EventType.UPLOAD:
        raise ValueError("Event log must start with an UPLOAD event")

    status = DocumentStatus.DRAFT
    for event in iterator:
        status = next_status(status, event.type)
    return status


def status_trace(events: Iterable[BlockchainEvent]) -> list[DocumentStatus]:
    """Status observed after each successive event, starting with the UPLOAD."""
    trace: list[DocumentStatus] = []
    status = DocumentStatus.DRAFT
    for index, event in enumerate(events):
        if index > 0:
            status = next_status(status, event.type)
        trace.append(status)
    return trace
