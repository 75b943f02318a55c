import itertools

import pytest

from titlechain.domain.models import BlockchainEvent, DocumentStatus, EventType, UserRole
from titlechain.domain.state_machine import (
    TRANSITIONS,
    is_forward,
    next_status,
    replay_status,
    status_trace,
)


def _event(event_type: EventType, index: int = 0) -> BlockchainEvent:
    return BlockchainEvent(
        id=f"evt_{index}",
        timestamp=index,
        type=event_type,
        actor_id="actor@example.com",
        actor_role=UserRole.ATTORNEY,
        doc_hash="0" * 64,
        block_id="0x" + "0" * 64,
    )


class TestTransitionTable:
    @pytest.mark.parametrize(
        "current, event_type, expected",
        [
            (DocumentStatus.DRAFT, EventType.APPROVAL, DocumentStatus.APPROVED),
            (DocumentStatus.DRAFT, EventType.SIGNATURE, DocumentStatus.SIGNED),
            (DocumentStatus.APPROVED, EventType.SIGNATURE, DocumentStatus.SIGNED),
            (DocumentStatus.DRAFT, EventType.RECORDED, DocumentStatus.RECORDED),
            (DocumentStatus.APPROVED, EventType.RECORDED, DocumentStatus.RECORDED),
            (DocumentStatus.SIGNED, EventType.RECORDED, DocumentStatus.RECORDED),
            (DocumentStatus.SIGNED, EventType.APPROVAL, DocumentStatus.SIGNED),
            (DocumentStatus.APPROVED, EventType.APPROVAL, DocumentStatus.APPROVED),
            (DocumentStatus.RECORDED, EventType.SIGNATURE, DocumentStatus.RECORDED),
        ],
    )
    def test_transitions(self, current, event_type, expected):
        assert next_status(current, event_type) is expected

    @pytest.mark.parametrize(
        "event_type",
        [EventType.VIEW, EventType.REVISION, EventType.NOTARIZATION, EventType.UPLOAD],
    )
    def test_non_transition_events_keep_status(self, event_type):
        for status in DocumentStatus:
            assert next_status(status, event_type) is status

    def test_never_moves_backward(self):
        for status, event_type in itertools.product(DocumentStatus, EventType):
            assert is_forward(status, next_status(status, event_type))

    def test_every_table_entry_is_forward(self):
        for (status, _), target in TRANSITIONS.items():
            assert is_forward(status, target)


class TestReplay:
    def test_happy_path(self):
        events = [
            _event(EventType.UPLOAD, 0),
            _event(EventType.APPROVAL, 1),
            _event(EventType.SIGNATURE, 2),
            _event(EventType.RECORDED, 3),
        ]
        assert replay_status(events) is DocumentStatus.RECORDED
        assert status_trace(events) == [
            DocumentStatus.DRAFT,
            DocumentStatus.APPROVED,
            DocumentStatus.SIGNED,
            DocumentStatus.RECORDED,
        ]

    def test_upload_only_is_draft(self):
        assert replay_status([_event(EventType.UPLOAD)]) is DocumentStatus.DRAFT

    def test_revision_does_not_reset(self):
        events = [_event(EventType.UPLOAD, 0), _event(EventType.SIGNATURE, 1), _event(EventType.REVISION, 2)]
        assert replay_status(events) is DocumentStatus.SIGNED

    def test_empty_log_rejected(self):
        with pytest.raises(ValueError):
            replay_status([])

    def test_log_must_start_with_upload(self):
        with pytest.raises(ValueError):
            replay_status([_event(EventType.APPROVAL)])
