"""
Ledger error taxonomy.

Not-found conditions are always raised before any mutation. A failed
verification is NOT an error: it is reported through VerificationResult.
"""


class LedgerError(Exception):
    """Base class for all ledger errors."""


class TransactionNotFoundError(LedgerError, LookupError):
    def __init__(self, transaction_id: str) -> None:
        super().__init__(f"Transaction not found: {transaction_id}")
        self.transaction_id = transaction_id


class DocumentNotFoundError(LedgerError, LookupError):
    def __init__(self, document_id: str) -> None:
        super().__init__(f"Document not found: {document_id}")
        self.document_id = document_id


class TransactionExistsError(LedgerError):
    def __init__(self, transaction_id: str) -> None:
        super().__init__(f"Transaction already exists: {transaction_id}")
        self.transaction_id = transaction_id


class InvalidInputError(LedgerError, ValueError):
    """
    Malformed input rejected at the boundary.

    Carries every failed rule so callers can show them all at once.
    """

    def __init__(self, errors: list[str]) -> None:
        super().__init__("; ".join(errors))
        self.errors = errors
