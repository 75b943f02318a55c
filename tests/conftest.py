import pytest
from fastapi.testclient import TestClient

from titlechain.config import Settings
from titlechain.domain.models import AuditNotification
from titlechain.infrastructure.store import InMemoryLedgerStore, demo_transactions
from titlechain.main import create_app
from titlechain.services.ledger import DocumentLedger

from tests.sample_docs.closing_docs import closing_disclosure, deed_of_trust, promissory_note

START_MILLIS = 1_710_000_000_000  # 2024-03-09


class FakeClock:
    """Deterministic epoch-millis clock; each reading moves time forward."""

    def __init__(self, start: int = START_MILLIS, step: int = 1) -> None:
        self.now = start
        self.step = step

    def __call__(self) -> int:
        value = self.now
        self.now += self.step
        return value


class RecordingAuditSink:
    def __init__(self) -> None:
        self.notifications: list[AuditNotification] = []

    async def notify(self, notification: AuditNotification) -> None:
        self.notifications.append(notification)


class FailingAuditSink:
    async def notify(self, notification: AuditNotification) -> None:
        raise RuntimeError("audit backend unavailable")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def audit_sink():
    return RecordingAuditSink()


@pytest.fixture
def store(clock):
    return InMemoryLedgerStore(demo_transactions(clock))


@pytest.fixture
def ledger(store, audit_sink, clock):
    return DocumentLedger(store=store, audit_sink=audit_sink, clock=clock)


@pytest.fixture(scope="session")
def note_v1():
    return promissory_note()


@pytest.fixture(scope="session")
def note_v2():
    return promissory_note(rate="6.50%")


@pytest.fixture(scope="session")
def deed():
    return deed_of_trust()


@pytest.fixture(scope="session")
def disclosure():
    return closing_disclosure()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        seed_demo_data=True,
        audit_database_url=f"sqlite+aiosqlite:///{tmp_path / 'audit.db'}",
        esignature_webhook_secret="whsec-test",
    )


@pytest.fixture
def client(settings):
    app = create_app(settings)
    with TestClient(app) as c:
        yield c
