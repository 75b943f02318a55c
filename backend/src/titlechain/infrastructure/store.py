"""
Ledger storage port and the in-memory backend.

The ledger depends on storage only through LedgerStore, so it can be
tested without global state and swapped for a durable backend.

Design Decisions:
- Abstract storage interface for multiple backends
- Flat documentId -> transactionId index, updated in the same step as the
  document insert, so AddEvent never scans every transaction
- Insertion order of transactions and documents is the ledger order used
  by verification scans
"""

import logging
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Callable, Iterable

from titlechain.domain.identifiers import now_millis
from titlechain.domain.models import DocumentAsset, Transaction, TransactionStatus

logger = logging.getLogger(__name__)


class LedgerStore(ABC):
    """Abstract read/write contract the ledger relies on."""

    @abstractmethod
    async def get_transaction(self, transaction_id: str) -> Transaction | None:
        """Return the transaction, or None if unknown."""
        pass

    @abstractmethod
    async def list_transactions(self) -> list[Transaction]:
        """Return all transactions in ledger order."""
        pass

    @abstractmethod
    async def upsert_transaction(self, transaction: Transaction) -> None:
        """Insert a new transaction or persist changes to an existing one."""
        pass

    @abstractmethod
    async def find_document(self, document_id: str) -> tuple[Transaction, DocumentAsset] | None:
        """Locate a document and its owning transaction by document id alone."""
        pass

    @abstractmethod
    async def upsert_document(self, transaction_id: str, document: DocumentAsset) -> None:
        """Attach a new document to its transaction, or persist changes to it."""
        pass


class InMemoryLedgerStore(LedgerStore):
    """
    Process-lifetime storage.

    Hands out the live objects; the ledger is the only writer and
    serialises its writes with its own locks.
    """

    def __init__(self, transactions: Iterable[Transaction] | None = None) -> None:
        self._transactions: dict[str, Transaction] = {}
        self._document_index: dict[str, str] = {}
        for transaction in transactions or ():
            self._put(transaction)

    def _put(self, transaction: Transaction) -> None:
        self._transactions[transaction.id] = transaction
        for document in transaction.documents:
            self._document_index[document.id] = transaction.id

    async def get_transaction(self, transaction_id: str) -> Transaction | None:
        return self._transactions.get(transaction_id)

    async def list_transactions(self) -> list[Transaction]:
        return list(self._transactions.values())

    async def upsert_transaction(self, transaction: Transaction) -> None:
        self._put(transaction)

    async def find_document(self, document_id: str) -> tuple[Transaction, DocumentAsset] | None:
        transaction_id = self._document_index.get(document_id)
        if transaction_id is None:
            return None
        transaction = self._transactions[transaction_id]
        document = transaction.find_document(document_id)
        if document is None:
            # Index and transaction disagree; treat as absent rather than guess.
            logger.warning(f"Document index points {document_id} at {transaction_id} but it is missing")
            return None
        return transaction, document

    async def upsert_document(self, transaction_id: str, document: DocumentAsset) -> None:
        transaction = self._transactions.get(transaction_id)
        if transaction is None:
            raise KeyError(f"Unknown transaction: {transaction_id}")

        for index, existing in enumerate(transaction.documents):
            if existing.id == document.id:
                transaction.documents[index] = document
                break
        else:
            transaction.documents.append(document)
        self._document_index[document.id] = transaction_id


def demo_transactions(clock: Callable[[], int] = now_millis) -> list[Transaction]:
    """The two closings the demo ledger starts with."""
    now = clock()
    return [
        Transaction(
            id="TX-2024-8492",
            property_address="1200 Market St, Philadelphia, PA",
            loan_amount=Decimal("24500000"),
            lender_name="Keystone Commercial Bank",
            borrower_name="Market Street Developers LLC",
            status=TransactionStatus.OPEN,
            created_at=now - 100_000_000,
        ),
        Transaction(
            id="TX-2024-9921",
            property_address="450 Technology Dr, Austin, TX",
            loan_amount=Decimal("12000000"),
            lender_name="Austin Debt Fund",
            borrower_name="TechSpace PropCo",
            status=TransactionStatus.CLOSING,
            created_at=now - 50_000_000,
        ),
    ]
