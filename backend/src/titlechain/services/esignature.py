"""
E-signature boundary.

Envelope lifecycle lives entirely with the e-signature provider. Once a
signing ceremony completes, the provider calls back with the signer, the
time of signing and the envelope id; that notice becomes a SIGNATURE
event on the ledger. Nothing else about the envelope is tracked here.
"""

import base64
import hashlib
import hmac
import logging
from dataclasses import dataclass
from datetime import datetime

from titlechain.domain.models import DocumentAsset, EventType, UserRole

from .ledger import DocumentLedger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SignatureCompletion:
    """Terminal notice from the e-signature provider."""
    signer_email: str
    signed_at: datetime
    envelope_id: str


async def record_signature(
    ledger: DocumentLedger,
    document_id: str,
    completion: SignatureCompletion,
    actor_role: UserRole,
    asserted_hash: str,
) -> DocumentAsset:
    """
    Append a SIGNATURE event for a completed envelope.

    The signer becomes the event's actor; envelope id and signing time go
    into the event metadata.

    Raises:
        DocumentNotFoundError: If no transaction holds this document
    """
    logger.info(f"Recording signature from envelope {completion.envelope_id} on {document_id}")
    return await ledger.add_event(
        document_id,
        EventType.SIGNATURE,
        completion.signer_email,
        actor_role,
        asserted_hash,
        {
            "envelopeId": completion.envelope_id,
            "signedAt": completion.signed_at.isoformat(),
            "source": "esignature",
        },
    )


def compute_webhook_signature(raw_body: bytes, secret: str) -> str:
    """Base64 HMAC-SHA256 of the raw request body."""
    digest = hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def verify_webhook_signature(raw_body: bytes, signature: str, secret: str) -> bool:
    """
    Verify an e-signature webhook callback.

    Args:
        raw_body: Request body exactly as received (not re-encoded)
        signature: Value of the provider's signature header
        secret: Shared HMAC key

    Returns:
        True if the signature matches, False otherwise
    """
    if not signature:
        return False
    expected = compute_webhook_signature(raw_body, secret)
    # Constant-time comparison
    return hmac.compare_digest(expected, signature.strip())
