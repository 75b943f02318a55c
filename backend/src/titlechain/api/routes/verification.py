"""
Ledger-wide verification endpoint.

Answers "was this exact file ever recorded on the ledger?".
"""

from typing import Annotated

from fastapi import APIRouter, Depends, File, UploadFile

from titlechain.api.dependencies import get_app_settings, get_ledger, read_upload
from titlechain.api.schemas import VerificationResponse, verification_to_response
from titlechain.config import Settings
from titlechain.services.ledger import DocumentLedger

router = APIRouter(prefix="/verification", tags=["verification"])


@router.post(
    "/verify",
    response_model=VerificationResponse,
    responses={413: {"description": "File too large"}},
)
async def verify_document(
    file: Annotated[UploadFile, File(description="File to verify")],
    ledger: DocumentLedger = Depends(get_ledger),
    settings: Settings = Depends(get_app_settings),
) -> VerificationResponse:
    """
    Re-hash an uploaded file and search every recorded hash for it.

    Any version that was ever recorded verifies, not only the current one.
    A miss is returned as ``verified: false``, not as an error.
    """
    content = await read_upload(file, settings.max_upload_bytes)
    result = await ledger.verify_document(content)
    return verification_to_response(result)
