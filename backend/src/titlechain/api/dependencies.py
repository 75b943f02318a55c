"""
Request-scoped dependencies shared by the routers.

The ledger and the optional audit database are built once in the
application lifespan and kept on ``app.state``.
"""

from fastapi import HTTPException, Request, UploadFile, status

from titlechain.config import Settings
from titlechain.services.audit import DatabaseAuditSink
from titlechain.services.ledger import DocumentLedger

UPLOAD_CHUNK_SIZE = 1024 * 1024


def get_ledger(request: Request) -> DocumentLedger:
    return request.app.state.ledger


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_audit_database(request: Request) -> DatabaseAuditSink:
    audit_database = request.app.state.audit_database
    if audit_database is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Audit database is not configured",
        )
    return audit_database


async def read_upload(file: UploadFile, max_bytes: int) -> bytes:
    """
    Read an uploaded file, enforcing the size limit while streaming.

    Empty files are accepted: an empty byte string still has a hash.
    """
    size = 0
    chunks: list[bytes] = []
    while chunk := await file.read(UPLOAD_CHUNK_SIZE):
        size += len(chunk)
        if size > max_bytes:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail=f"File too large (max {max_bytes} bytes)",
            )
        chunks.append(chunk)
    return b"".join(chunks)
