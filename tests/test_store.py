import asyncio
from decimal import Decimal

import pytest

from titlechain.domain.models import DocumentAsset, Transaction, TransactionStatus
from titlechain.infrastructure.files import read_all
from titlechain.infrastructure.store import InMemoryLedgerStore, demo_transactions


def _document(document_id: str) -> DocumentAsset:
    return DocumentAsset(id=document_id, name="Note", type="PROMISSORY_NOTE", current_hash="a" * 64)


class TestInMemoryLedgerStore:
    def test_demo_seed(self):
        transactions = demo_transactions(lambda: 1_710_000_000_000)
        assert [t.id for t in transactions] == ["TX-2024-8492", "TX-2024-9921"]
        assert transactions[0].loan_amount == Decimal("24500000")
        assert transactions[0].status is TransactionStatus.OPEN
        assert transactions[1].status is TransactionStatus.CLOSING
        assert transactions[0].created_at < transactions[1].created_at
        assert all(not t.documents for t in transactions)

    def test_upsert_document_indexes_it(self):
        async def scenario():
            store = InMemoryLedgerStore(demo_transactions())
            await store.upsert_document("TX-2024-9921", _document("DOC-1710000000000"))
            return await store.find_document("DOC-1710000000000")

        transaction, document = asyncio.run(scenario())
        assert transaction.id == "TX-2024-9921"
        assert document.name == "Note"

    def test_upsert_document_replaces_existing(self):
        async def scenario():
            store = InMemoryLedgerStore(demo_transactions())
            await store.upsert_document("TX-2024-8492", _document("DOC-1710000000000"))
            replacement = _document("DOC-1710000000000")
            replacement.current_version = 2
            await store.upsert_document("TX-2024-8492", replacement)
            return await store.get_transaction("TX-2024-8492")

        transaction = asyncio.run(scenario())
        assert len(transaction.documents) == 1
        assert transaction.documents[0].current_version == 2

    def test_upsert_document_unknown_transaction(self):
        store = InMemoryLedgerStore()
        with pytest.raises(KeyError):
            asyncio.run(store.upsert_document("TX-2024-0001", _document("DOC-1710000000000")))

    def test_find_unknown_document(self):
        store = InMemoryLedgerStore(demo_transactions())
        assert asyncio.run(store.find_document("DOC-0000000000000")) is None

    def test_seeded_documents_are_indexed(self):
        seeded = Transaction(
            id="TX-2024-0001",
            property_address="77 Harbor Blvd, Boston, MA",
            loan_amount=Decimal("5000000"),
            lender_name="Harbor Bank",
            borrower_name="Pier Holdings",
            documents=[_document("DOC-1710000000000")],
        )
        store = InMemoryLedgerStore([seeded])
        located = asyncio.run(store.find_document("DOC-1710000000000"))
        assert located[0] is seeded

    def test_list_keeps_insertion_order(self):
        async def scenario():
            store = InMemoryLedgerStore(demo_transactions())
            await store.upsert_transaction(Transaction(
                id="TX-2025-0001",
                property_address="77 Harbor Blvd, Boston, MA",
                loan_amount=Decimal("5000000"),
                lender_name="Harbor Bank",
                borrower_name="Pier Holdings",
            ))
            return [t.id for t in await store.list_transactions()]

        assert asyncio.run(scenario()) == ["TX-2024-8492", "TX-2024-9921", "TX-2025-0001"]


class TestReadAll:
    def test_reads_bytes(self, tmp_path, deed):
        path = tmp_path / "deed.pdf"
        path.write_bytes(deed)
        assert read_all(path) == deed
        assert read_all(str(path)) == deed

    def test_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            read_all(tmp_path / "nope.pdf")
