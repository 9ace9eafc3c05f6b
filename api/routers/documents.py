"""Document upload and status endpoints.

Uploads are checked against the deployment MIME type list and the operator's
file extension list. The stricter of the two size limits applies. Accepted
files are written under ``upload_dir`` and handed to the integration
coordinator for background analysis.
"""

from __future__ import annotations

import asyncio
import mimetypes
import uuid
from pathlib import Path

import structlog
from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile, status

from api.auth import User, get_current_user
from api.dependencies import Services, get_services
from api.errors import InvalidInputError, NotFoundError
from api.models import DocumentStatusResponse, DocumentUploadResponse
from api.orchestrators.coordinator import DocumentSubmission
from api.routers.query import ensure_not_in_maintenance
from libs.caching.store import safe_key
from libs.models.firestore import DocumentType, FileMetadata, Source

logger = structlog.get_logger(__name__)
router = APIRouter()

EXTENSION_ALIASES = {"jpeg": "jpg"}


def _parse_document_type(value: str | None) -> DocumentType | None:
    if not value:
        return None
    try:
        return DocumentType(value)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown document type: {value}",
        )


def _file_extension(file_name: str | None, content_type: str) -> str:
    suffix = Path(file_name or "").suffix.lstrip(".").lower()
    if not suffix:
        suffix = (mimetypes.guess_extension(content_type) or "").lstrip(".")
    return EXTENSION_ALIASES.get(suffix, suffix)


async def _store_upload(upload_dir: Path, document_name: str, content: bytes) -> Path:
    upload_dir.mkdir(parents=True, exist_ok=True)
    path = upload_dir / f"{uuid.uuid4().hex}_{safe_key(document_name)}"
    await asyncio.to_thread(path.write_bytes, content)
    return path


@router.post(
    "/document/upload",
    response_model=DocumentUploadResponse,
    status_code=status.HTTP_202_ACCEPTED,
    tags=["Documents"],
)
async def upload_document(
    request: Request,
    title: str = Form(...),
    description: str | None = Form(None),
    document_type: str | None = Form(None, alias="documentType"),
    file: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
) -> DocumentUploadResponse:
    """Upload a legal document for analysis.

    The file is stored and analysis runs in the background; poll
    ``GET /api/document/{id}`` with the returned ``documentId``.

    Raises:
        HTTPException: 400 for invalid input, 413 for oversized files,
            415 for unsupported file types, 503 during maintenance

    Example:
        ```bash
        curl -X POST http://localhost:8000/api/document/upload \\
          -H "Authorization: Bearer $TOKEN" \\
          -F title="Charge sheet" -F file=@charge_sheet.pdf
        ```
    """
    request_id = getattr(request.state, "request_id", "unknown")
    settings = services.settings
    system_settings = await ensure_not_in_maintenance(services)

    content_type = file.content_type or "application/octet-stream"
    if content_type not in settings.allowed_document_types:
        raise HTTPException(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            detail=f"Unsupported file type: {content_type}",
        )
    extension = _file_extension(file.filename, content_type)
    if extension not in system_settings.allowed_document_types:
        raise HTTPException(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            detail=f"File extension not allowed: {extension or 'none'}",
        )

    content = await file.read()
    if not content:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Uploaded file is empty")
    max_size = min(settings.max_document_size, system_settings.max_document_size)
    if len(content) > max_size:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File too large. Maximum size: {max_size} bytes",
        )

    parsed_type = _parse_document_type(document_type)
    file_name = file.filename or "document"
    path = await _store_upload(settings.upload_dir, file_name, content)

    try:
        receipt = await services.coordinator.submit_document(
            DocumentSubmission(
                title=title,
                description=description or None,
                document_type=parsed_type,
                file=FileMetadata(
                    url=str(path),
                    name=file_name,
                    content_type=content_type,
                    size=len(content),
                ),
            ),
            user_id=current_user.uid,
            source=Source.WEB,
        )
    except InvalidInputError as e:
        path.unlink(missing_ok=True)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        path.unlink(missing_ok=True)
        logger.error("Document submission failed", request_id=request_id, error=str(e), exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to submit document",
        )

    logger.info(
        "Document uploaded",
        request_id=request_id,
        document_id=receipt.entity_id,
        file_type=content_type,
        file_size=len(content),
    )
    return DocumentUploadResponse(
        document_id=receipt.entity_id,
        status=receipt.status.value,
        estimated_time=receipt.estimated_time,
        message=receipt.message,
    )


@router.get("/document/{document_id}", response_model=DocumentStatusResponse, tags=["Documents"])
async def get_document(
    document_id: str,
    current_user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
) -> DocumentStatusResponse:
    """Return the current state of an uploaded document."""
    try:
        document = await services.coordinator.get_document_status(document_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    if document.user_id != current_user.uid and not current_user.is_admin:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Document not found: {document_id}")

    return DocumentStatusResponse.from_record(document)
