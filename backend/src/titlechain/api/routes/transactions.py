"""
Loan-closing endpoints.

Lists and opens transactions, and uploads new documents into them.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status

from titlechain.api.dependencies import get_app_settings, get_ledger, read_upload
from titlechain.api.schemas import (
    CreateTransactionRequest,
    DocumentResponse,
    Email,
    TransactionResponse,
    document_to_response,
    transaction_to_response,
)
from titlechain.config import Settings
from titlechain.domain.errors import InvalidInputError, TransactionExistsError, TransactionNotFoundError
from titlechain.domain.models import UserRole
from titlechain.services.ledger import DocumentLedger

router = APIRouter(prefix="/transactions", tags=["transactions"])


@router.get("", response_model=list[TransactionResponse])
async def list_transactions(
    ledger: DocumentLedger = Depends(get_ledger),
) -> list[TransactionResponse]:
    """List every closing on the ledger with its documents."""
    return [transaction_to_response(t) for t in await ledger.list_transactions()]


@router.post(
    "",
    response_model=TransactionResponse,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"description": "Transaction id already taken"}},
)
async def create_transaction(
    request: CreateTransactionRequest,
    ledger: DocumentLedger = Depends(get_ledger),
) -> TransactionResponse:
    """Open a new loan closing."""
    try:
        transaction = await ledger.create_transaction(
            request.property_address,
            request.loan_amount,
            request.lender_name,
            request.borrower_name,
            transaction_id=request.transaction_id,
            status=request.status,
        )
    except TransactionExistsError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except InvalidInputError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return transaction_to_response(transaction)


@router.get(
    "/{transaction_id}",
    response_model=TransactionResponse,
    responses={404: {"description": "Transaction not found"}},
)
async def get_transaction(
    transaction_id: str,
    ledger: DocumentLedger = Depends(get_ledger),
) -> TransactionResponse:
    try:
        transaction = await ledger.get_transaction(transaction_id)
    except TransactionNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return transaction_to_response(transaction)


@router.post(
    "/{transaction_id}/documents",
    response_model=DocumentResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        404: {"description": "Transaction not found"},
        413: {"description": "File too large"},
    },
)
async def upload_document(
    transaction_id: str,
    file: Annotated[UploadFile, File(description="Closing document (PDF/image)")],
    doc_type: Annotated[str, Form(min_length=1, max_length=100)],
    actor_id: Annotated[Email, Form()],
    actor_role: Annotated[UserRole, Form()],
    name: Annotated[str | None, Form(max_length=255)] = None,
    ledger: DocumentLedger = Depends(get_ledger),
    settings: Settings = Depends(get_app_settings),
) -> DocumentResponse:
    """
    Upload a document into a closing.

    The file is hashed and the document starts in DRAFT with one UPLOAD
    event. The file itself is not stored.
    """
    content = await read_upload(file, settings.max_upload_bytes)

    try:
        document = await ledger.create_document(
            transaction_id,
            content,
            doc_type,
            actor_id,
            actor_role,
            name=name or file.filename or doc_type,
            metadata={"contentType": file.content_type},
        )
    except TransactionNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return document_to_response(document)
