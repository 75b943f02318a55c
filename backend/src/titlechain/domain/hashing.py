"""
Cryptographic hashing utilities for tamper detection.

The ledger never stores document content, only the SHA-256 digest of the
bytes each actor acted on. Re-hashing a file later and finding that digest
in a document's event log is what "verified" means.

Design Decisions:
- SHA-256 chosen for wide support and collision resistance
- Hash computed on raw bytes to avoid encoding issues
- Bare lowercase hex (64 chars) to match the audit/reporting id formats
- Block ids are random, not derived from content: they identify a ledger
  entry, they do not authenticate it
"""

import hashlib
import hmac
import secrets
from pathlib import Path
from typing import Protocol

from titlechain.infrastructure.files import read_all

HASH_HEX_LENGTH = 64
BLOCK_ID_PREFIX = "0x"


def compute_document_hash(content: bytes) -> str:
    """
    Compute SHA-256 hash of document content.

    Args:
        content: Raw bytes of the document file (PDF, image, etc.)

    Returns:
        Lowercase hex-encoded SHA-256 digest (64 characters)

    Example:
        >>> compute_document_hash(b"")
        'e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855'
    """
    return hashlib.sha256(content).hexdigest()


def compute_file_hash(file_path: Path) -> str:
    """
    Compute SHA-256 hash of a file on disk.

    Same digest as compute_document_hash over the file's bytes.

    Raises:
        FileNotFoundError: If file does not exist
        PermissionError: If file cannot be read
    """
    return compute_document_hash(read_all(file_path))


def verify_hash(content: bytes, expected_hash: str) -> bool:
    """
    Verify that content matches an expected hash.

    Comparison is constant-time and case-insensitive on the expected value.
    """
    actual_hash = compute_document_hash(content)
    return hmac.compare_digest(actual_hash, expected_hash.lower())


def generate_block_id() -> str:
    """Return ``0x`` followed by 256 random bits as lowercase hex."""
    return BLOCK_ID_PREFIX + secrets.token_hex(32)


class HashProvider(Protocol):
    """Computes the content-integrity digest the ledger records."""

    def hash(self, content: bytes) -> str:
        ...


class BlockIdGenerator(Protocol):
    """Mints the opaque identifier attached to each ledger entry."""

    def next_id(self) -> str:
        ...


class Sha256HashProvider:
    """Default HashProvider backed by :func:`compute_document_hash`."""

    def hash(self, content: bytes) -> str:
        return compute_document_hash(content)


class RandomBlockIdGenerator:
    """Default BlockIdGenerator backed by :func:`generate_block_id`."""

    def next_id(self) -> str:
        return generate_block_id()
