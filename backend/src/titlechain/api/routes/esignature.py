"""
E-signature webhook endpoint.

Receives the provider's completion callback and turns it into a SIGNATURE
event. When a webhook secret is configured, unsigned or mis-signed calls
are rejected before the body is parsed.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import ValidationError

from titlechain.api.dependencies import get_app_settings, get_ledger
from titlechain.api.schemas import DocumentResponse, SignatureCompletedRequest, document_to_response
from titlechain.config import Settings
from titlechain.domain.errors import DocumentNotFoundError
from titlechain.services.esignature import SignatureCompletion, record_signature, verify_webhook_signature
from titlechain.services.ledger import DocumentLedger

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/esignature", tags=["esignature"])

SIGNATURE_HEADER = "X-Signature"


@router.post(
    "/webhook",
    response_model=DocumentResponse,
    responses={
        401: {"description": "Invalid webhook signature"},
        404: {"description": "Document not found"},
    },
)
async def signature_completed(
    request: Request,
    ledger: DocumentLedger = Depends(get_ledger),
    settings: Settings = Depends(get_app_settings),
) -> DocumentResponse:
    """Record a completed signing ceremony on the ledger."""
    raw_body = await request.body()

    if settings.esignature_webhook_secret:
        signature = request.headers.get(SIGNATURE_HEADER, "")
        if not verify_webhook_signature(raw_body, signature, settings.esignature_webhook_secret):
            logger.warning("Rejected e-signature webhook with invalid signature")
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid signature")

    try:
        payload = SignatureCompletedRequest.model_validate_json(raw_body)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=e.errors(include_url=False, include_context=False))

    completion = SignatureCompletion(
        signer_email=payload.signer_email,
        signed_at=payload.signed_at,
        envelope_id=payload.envelope_id,
    )
    try:
        document = await record_signature(
            ledger,
            payload.document_id,
            completion,
            payload.actor_role,
            payload.current_hash,
        )
    except DocumentNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return document_to_response(document)
