"""
Document endpoints.

Appends events to a document, returns its audit history and verifies a
file against that one document.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status

from titlechain.api.dependencies import get_app_settings, get_ledger, read_upload
from titlechain.api.schemas import (
    AddEventRequest,
    DocumentResponse,
    EventResponse,
    VerificationResponse,
    document_to_response,
    event_to_response,
    verification_to_response,
)
from titlechain.config import Settings
from titlechain.domain.errors import DocumentNotFoundError
from titlechain.services.ledger import DocumentLedger

router = APIRouter(prefix="/documents", tags=["documents"])


@router.get(
    "/{document_id}",
    response_model=DocumentResponse,
    responses={404: {"description": "Document not found"}},
)
async def get_document(
    document_id: str,
    ledger: DocumentLedger = Depends(get_ledger),
) -> DocumentResponse:
    try:
        document = await ledger.get_document(document_id)
    except DocumentNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return document_to_response(document)


@router.post(
    "/{document_id}/events",
    response_model=DocumentResponse,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"description": "Document not found"}},
)
async def add_event(
    document_id: str,
    request: AddEventRequest,
    ledger: DocumentLedger = Depends(get_ledger),
) -> DocumentResponse:
    """
    Append an event (approval, signature, recording, ...) to a document.

    ``current_hash`` is recorded exactly as submitted.
    """
    try:
        document = await ledger.add_event(
            document_id,
            request.event_type,
            request.actor_id,
            request.actor_role,
            request.current_hash,
            request.metadata,
        )
    except DocumentNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return document_to_response(document)


@router.get(
    "/{document_id}/history",
    response_model=list[EventResponse],
    responses={404: {"description": "Document not found"}},
)
async def get_document_history(
    document_id: str,
    ledger: DocumentLedger = Depends(get_ledger),
) -> list[EventResponse]:
    """Full event log in append order."""
    try:
        events = await ledger.get_document_history(document_id)
    except DocumentNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return [event_to_response(e) for e in events]


@router.post("/{document_id}/verify", response_model=VerificationResponse)
async def verify_against_document(
    document_id: str,
    file: Annotated[UploadFile, File(description="File to check")],
    ledger: DocumentLedger = Depends(get_ledger),
    settings: Settings = Depends(get_app_settings),
) -> VerificationResponse:
    """
    Check a file against one document's history.

    An unknown document is reported as outcome DOCUMENT_NOT_FOUND, a known
    document with no matching entry as HASH_MISMATCH.
    """
    content = await read_upload(file, settings.max_upload_bytes)
    result = await ledger.verify_document_against(document_id, content)
    return verification_to_response(result)
