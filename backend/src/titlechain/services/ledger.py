"""
Document ledger - the core of titlechain.

Owns the entity model, appends events, drives the status state machine
and answers verification queries:

1. create_document hashes the uploaded bytes and opens the document's log
   with an UPLOAD event
2. add_event appends an event carrying the caller's asserted hash and
   applies the transition table
3. verify_document re-hashes a file and looks for that hash anywhere in
   the recorded history

Concurrency:
- One asyncio.Lock per document serialises "read status -> append ->
  write status", so concurrent add_event calls never lose an update
- One lock per transaction serialises document creation and the
  RECORDED side effect on the transaction; lock order is always
  document -> transaction
- Audit notifications are dispatched as background tasks after the lock
  is released; a slow or failing sink never delays or breaks the ledger

Trust boundary:
    add_event records the hash the caller asserts. An APPROVAL or
    SIGNATURE event therefore proves the actor acted while citing that
    hash, not that they saw byte-identical content. revise_document and
    verify_document_against are the stricter, content-checked paths.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Mapping

from titlechain.domain.errors import (
    DocumentNotFoundError,
    InvalidInputError,
    TransactionExistsError,
    TransactionNotFoundError,
)
from titlechain.domain.hashing import (
    BlockIdGenerator,
    HashProvider,
    RandomBlockIdGenerator,
    Sha256HashProvider,
)
from titlechain.domain.identifiers import (
    DocumentIdGenerator,
    new_event_id,
    next_transaction_id,
    now_millis,
)
from titlechain.domain.models import (
    AuditNotification,
    BlockchainEvent,
    DocumentAsset,
    DocumentStatus,
    EventType,
    Transaction,
    TransactionStatus,
    UserRole,
    VerificationOutcome,
    VerificationResult,
)
from titlechain.domain.state_machine import CONTENT_EVENTS, next_status
from titlechain.domain.validation import (
    normalize_metadata,
    raise_for_failures,
    sanitize_string,
    to_decimal,
    validate_transaction_input,
)
from titlechain.infrastructure.store import InMemoryLedgerStore, LedgerStore

from .audit import AuditSink

logger = logging.getLogger(__name__)

# Statuses a transaction may be created in; RECORDED is only ever derived.
INITIAL_TRANSACTION_STATUSES = frozenset({TransactionStatus.OPEN, TransactionStatus.CLOSING})


class DocumentLedger:
    """
    Append-only, hash-carrying event log for closing documents.

    Example:
        ledger = DocumentLedger(
            store=InMemoryLedgerStore(demo_transactions()),
            audit_sink=LoggingAuditSink(),
        )

        doc = await ledger.create_document(
            "TX-2024-8492", content, "PROMISSORY_NOTE",
            "counsel@firm.com", UserRole.ATTORNEY,
        )
        await ledger.add_event(
            doc.id, EventType.APPROVAL, "officer@bank.com",
            UserRole.LENDER, doc.current_hash,
        )
        result = await ledger.verify_document(content)
    """

    def __init__(
        self,
        store: LedgerStore | None = None,
        hash_provider: HashProvider | None = None,
        block_ids: BlockIdGenerator | None = None,
        audit_sink: AuditSink | None = None,
        clock: Callable[[], int] = now_millis,
        document_ids: DocumentIdGenerator | None = None,
        hash_prefix_length: int = 16,
    ) -> None:
        """
        Initialize the ledger.

        Args:
            store: Storage backend. Creates an empty InMemoryLedgerStore if None.
            hash_provider: Content digest. SHA-256 if None.
            block_ids: Block id source. 256 random bits if None.
            audit_sink: Receives a notification after each mutation (optional)
            clock: Epoch-millis clock used for event timestamps
            document_ids: Document id source. Built on ``clock`` if None.
            hash_prefix_length: Hex characters of the hash passed to the audit sink
        """
        self.store = store or InMemoryLedgerStore()
        self.hash_provider = hash_provider or Sha256HashProvider()
        self.block_ids = block_ids or RandomBlockIdGenerator()
        self.audit_sink = audit_sink
        self.clock = clock
        self.document_ids = document_ids or DocumentIdGenerator(clock)
        self.hash_prefix_length = hash_prefix_length

        self._document_locks: dict[str, asyncio.Lock] = {}
        self._transaction_locks: dict[str, asyncio.Lock] = {}
        self._creation_lock = asyncio.Lock()
        self._pending: set[asyncio.Task] = set()

    # --- Locks ---

    def _document_lock(self, document_id: str) -> asyncio.Lock:
        lock = self._document_locks.get(document_id)
        if lock is None:
            lock = self._document_locks[document_id] = asyncio.Lock()
        return lock

    def _transaction_lock(self, transaction_id: str) -> asyncio.Lock:
        lock = self._transaction_locks.get(transaction_id)
        if lock is None:
            lock = self._transaction_locks[transaction_id] = asyncio.Lock()
        return lock

    # --- Read accessors ---

    async def list_transactions(self) -> list[Transaction]:
        return [transaction.snapshot() for transaction in await self.store.list_transactions()]

    async def get_transaction(self, transaction_id: str) -> Transaction:
        """
        Raises:
            TransactionNotFoundError: If the id is unknown
        """
        transaction = await self.store.get_transaction(transaction_id)
        if transaction is None:
            raise TransactionNotFoundError(transaction_id)
        return transaction.snapshot()

    async def get_document(self, document_id: str) -> DocumentAsset:
        """
        Raises:
            DocumentNotFoundError: If no transaction holds this document
        """
        located = await self.store.find_document(document_id)
        if located is None:
            raise DocumentNotFoundError(document_id)
        return located[1].snapshot()

    async def get_document_history(self, document_id: str) -> tuple[BlockchainEvent, ...]:
        """
        Full event log of a document in append order, unfiltered.

        Raises:
            DocumentNotFoundError: If no transaction holds this document
        """
        located = await self.store.find_document(document_id)
        if located is None:
            raise DocumentNotFoundError(document_id)
        return tuple(located[1].events)

    async def list_all_documents(self) -> list[tuple[Transaction, list[DocumentAsset]]]:
        """Every transaction paired with its documents."""
        return [
            (transaction, list(transaction.documents))
            for transaction in await self.list_transactions()
        ]

    # --- Mutations ---

    async def create_transaction(
        self,
        property_address: str,
        loan_amount: Any,
        lender_name: str,
        borrower_name: str,
        *,
        transaction_id: str | None = None,
        status: TransactionStatus = TransactionStatus.OPEN,
    ) -> Transaction:
        """
        Open a new loan closing.

        Args:
            transaction_id: Explicit TX-YYYY-NNNN id; minted for the current year if None
            status: OPEN or CLOSING

        Raises:
            InvalidInputError: If any field fails validation
            TransactionExistsError: If ``transaction_id`` is already taken
        """
        raise_for_failures(validate_transaction_input(
            property_address, loan_amount, lender_name, borrower_name, transaction_id,
        ))
        if status not in INITIAL_TRANSACTION_STATUSES:
            raise InvalidInputError([f"A transaction cannot be created as {status.value}"])

        async with self._creation_lock:
            created_at = self.clock()
            if transaction_id is None:
                existing = await self.store.list_transactions()
                year = datetime.fromtimestamp(created_at / 1000, tz=timezone.utc).year
                transaction_id = next_transaction_id((t.id for t in existing), year)
            elif await self.store.get_transaction(transaction_id) is not None:
                raise TransactionExistsError(transaction_id)

            transaction = Transaction(
                id=transaction_id,
                property_address=sanitize_string(property_address),
                loan_amount=to_decimal(loan_amount),
                lender_name=sanitize_string(lender_name),
                borrower_name=sanitize_string(borrower_name),
                status=status,
                created_at=created_at,
            )
            await self.store.upsert_transaction(transaction)

        logger.info(f"Transaction {transaction.id} opened for {transaction.property_address}")
        return transaction.snapshot()

    async def create_document(
        self,
        transaction_id: str,
        file_content: bytes,
        doc_type: str,
        actor_id: str,
        actor_role: UserRole,
        *,
        name: str | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> DocumentAsset:
        """
        Put a new document on the ledger.

        The document starts in DRAFT with a single UPLOAD event carrying the
        hash of ``file_content``.

        Args:
            transaction_id: Owning closing
            file_content: Raw bytes of the file
            doc_type: Free-text type label (e.g. "PROMISSORY_NOTE")
            actor_id: Email of the uploader
            actor_role: Role of the uploader
            name: Display name; defaults to ``doc_type``
            metadata: Extra event metadata (fileName/fileSize always come from the upload)

        Raises:
            TransactionNotFoundError: If the transaction id is unknown
        """
        if await self.store.get_transaction(transaction_id) is None:
            raise TransactionNotFoundError(transaction_id)

        doc_hash = self.hash_provider.hash(file_content)
        display_name = name or doc_type
        event_metadata = dict(metadata or {})
        event_metadata.update(fileName=display_name, fileSize=len(file_content))

        async with self._transaction_lock(transaction_id):
            event = self._new_event(
                EventType.UPLOAD, actor_id, actor_role, doc_hash, event_metadata, previous=None,
            )
            document = DocumentAsset(
                id=self.document_ids.next_id(),
                name=display_name,
                type=doc_type,
                current_hash=doc_hash,
                status=DocumentStatus.DRAFT,
                events=[event],
            )
            await self.store.upsert_document(transaction_id, document)
            snapshot = document.snapshot()

        logger.info(f"Document {document.id} uploaded to {transaction_id}: {doc_hash[:16]}...")
        self._notify(event, transaction_id, document.id)
        return snapshot

    async def add_event(
        self,
        document_id: str,
        event_type: EventType,
        actor_id: str,
        actor_role: UserRole,
        asserted_hash: str,
        metadata: Mapping[str, Any] | None = None,
    ) -> DocumentAsset:
        """
        Append an event to a document and apply the transition table.

        If the document reaches RECORDED, its transaction becomes RECORDED too.

        Args:
            asserted_hash: Content hash the actor acted on; recorded as given

        Raises:
            DocumentNotFoundError: If no transaction holds this document.
                Nothing is appended anywhere in that case.
        """
        if await self.store.find_document(document_id) is None:
            raise DocumentNotFoundError(document_id)

        async with self._document_lock(document_id):
            located = await self.store.find_document(document_id)
            if located is None:
                raise DocumentNotFoundError(document_id)
            transaction, document = located

            event = self._new_event(
                event_type, actor_id, actor_role, asserted_hash, metadata,
                previous=document.latest_event,
            )
            previous_status = self._apply(document, event)
            await self.store.upsert_document(transaction.id, document)

            if document.status is DocumentStatus.RECORDED:
                await self._mark_transaction_recorded(transaction.id)

            snapshot = document.snapshot()

        if snapshot.status is not previous_status:
            logger.info(
                f"Document {document_id}: {previous_status.value} -> {snapshot.status.value} "
                f"({event_type.value} by {actor_role.value})"
            )
        else:
            logger.info(f"Document {document_id}: {event_type.value} by {actor_role.value}")
        self._notify(event, transaction.id, document_id)
        return snapshot

    async def revise_document(
        self,
        document_id: str,
        file_content: bytes,
        actor_id: str,
        actor_role: UserRole,
        metadata: Mapping[str, Any] | None = None,
    ) -> DocumentAsset:
        """
        Record a new version of a document from its actual content.

        Unlike add_event, the ledger computes the hash itself.

        Raises:
            DocumentNotFoundError: If no transaction holds this document
        """
        revision_metadata = {"fileSize": len(file_content)}
        revision_metadata.update(metadata or {})
        return await self.add_event(
            document_id,
            EventType.REVISION,
            actor_id,
            actor_role,
            self.hash_provider.hash(file_content),
            revision_metadata,
        )

    # --- Verification ---

    async def verify_document(self, file_content: bytes) -> VerificationResult:
        """
        Check whether these bytes were ever recorded on the ledger.

        Scans transactions, documents and events in ledger order and returns
        the first event whose hash matches. Older versions still verify.
        """
        computed_hash = self.hash_provider.hash(file_content)

        for transaction in await self.store.list_transactions():
            for document in transaction.documents:
                matched = document.find_event_by_hash(computed_hash)
                if matched is not None:
                    logger.info(
                        f"Verified {computed_hash[:16]}... against {document.id} "
                        f"({matched.type.value} at {matched.timestamp})"
                    )
                    return VerificationResult(
                        verified=True,
                        outcome=VerificationOutcome.VERIFIED,
                        computed_hash=computed_hash,
                        document=document.snapshot(),
                        matched_event=matched,
                        transaction=transaction.snapshot(),
                    )

        logger.info(f"No ledger entry matches {computed_hash[:16]}...")
        return VerificationResult(
            verified=False,
            outcome=VerificationOutcome.HASH_MISMATCH,
            computed_hash=computed_hash,
        )

    async def verify_document_against(self, document_id: str, file_content: bytes) -> VerificationResult:
        """
        Check these bytes against one document's history only.

        Distinguishes DOCUMENT_NOT_FOUND from HASH_MISMATCH.
        """
        computed_hash = self.hash_provider.hash(file_content)
        located = await self.store.find_document(document_id)
        if located is None:
            logger.info(f"Verification requested for unknown document {document_id}")
            return VerificationResult(
                verified=False,
                outcome=VerificationOutcome.DOCUMENT_NOT_FOUND,
                computed_hash=computed_hash,
            )

        transaction, document = located
        matched = document.find_event_by_hash(computed_hash)
        if matched is None:
            logger.info(f"{computed_hash[:16]}... does not match any entry of {document_id}")
            return VerificationResult(
                verified=False,
                outcome=VerificationOutcome.HASH_MISMATCH,
                computed_hash=computed_hash,
                document=document.snapshot(),
                transaction=transaction.snapshot(),
            )

        return VerificationResult(
            verified=True,
            outcome=VerificationOutcome.VERIFIED,
            computed_hash=computed_hash,
            document=document.snapshot(),
            matched_event=matched,
            transaction=transaction.snapshot(),
        )

    # --- Audit notifications ---

    async def flush_notifications(self) -> None:
        """Wait for every outstanding audit delivery (shutdown, tests)."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    def _notify(self, event: BlockchainEvent, transaction_id: str, document_id: str) -> None:
        if self.audit_sink is None:
            return
        notification = AuditNotification(
            event_type=event.type,
            transaction_id=transaction_id,
            document_id=document_id,
            actor_id=event.actor_id,
            actor_role=event.actor_role,
            hash_prefix=event.doc_hash[:self.hash_prefix_length],
            block_id=event.block_id,
            timestamp=event.timestamp,
        )
        task = asyncio.get_running_loop().create_task(self._deliver(notification))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _deliver(self, notification: AuditNotification) -> None:
        try:
            await self.audit_sink.notify(notification)
        except Exception as e:
            logger.warning(
                f"Audit delivery failed for {notification.event_type.value} "
                f"on {notification.document_id}: {e}"
            )

    # --- Internals ---

    def _new_event(
        self,
        event_type: EventType,
        actor_id: str,
        actor_role: UserRole,
        doc_hash: str,
        metadata: Mapping[str, Any] | None,
        previous: BlockchainEvent | None,
    ) -> BlockchainEvent:
        timestamp = self.clock()
        if previous is not None and timestamp < previous.timestamp:
            # Clock stepped back; keep the log's timestamps non-decreasing.
            timestamp = previous.timestamp
        return BlockchainEvent(
            id=new_event_id(),
            timestamp=timestamp,
            type=event_type,
            actor_id=actor_id,
            actor_role=actor_role,
            doc_hash=doc_hash,
            block_id=self.block_ids.next_id(),
            metadata=normalize_metadata(metadata),
        )

    @staticmethod
    def _apply(document: DocumentAsset, event: BlockchainEvent) -> DocumentStatus:
        """Append ``event`` and update status/content. Returns the prior status."""
        previous_status = document.status
        document.events.append(event)
        document.status = next_status(previous_status, event.type)
        if event.type in CONTENT_EVENTS and event.doc_hash != document.current_hash:
            document.current_hash = event.doc_hash
            document.current_version += 1
        return previous_status

    async def _mark_transaction_recorded(self, transaction_id: str) -> None:
        async with self._transaction_lock(transaction_id):
            transaction = await self.store.get_transaction(transaction_id)
            if transaction.status in (TransactionStatus.RECORDED, TransactionStatus.COMPLETED):
                return
            previous = transaction.status
            transaction.status = TransactionStatus.RECORDED
            await self.store.upsert_transaction(transaction)
        logger.info(f"Transaction {transaction_id}: {previous.value} -> RECORDED")
