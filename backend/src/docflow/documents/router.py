"""Document API endpoints: upload, detail, replacement and deletion.

Uploads are multipart/form-data. The file is only written to object storage
after permission and classification checks pass; if persisting the document
fails afterwards, a newly written object is deleted again.
"""

import json
import logging
from io import BytesIO
from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy.orm import Session

from ..auth.dependencies import get_current_user
from ..config import settings
from ..database import get_db
from ..dependencies import get_event_bus
from ..domain.documents.ports.object_storage_port import ObjectStoragePort
from ..domain.documents.validation import (
    is_supported_mime_type,
    sanitize_filename,
    validate_file_size,
    validate_filename,
)
from ..errors import ValidationError
from ..events.bus import EventBus
from ..infrastructure.storage.storage_config import get_object_storage
from ..models.user import User
from . import service
from .schemas import DocumentDeleteResponse, DocumentUploadResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["Documents"])


def _parse_ocr_data(raw: Optional[str]) -> dict:
    if not raw:
        return {}
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValidationError(f"ocr_data is not valid JSON: {e.msg}", field="ocr_data")
    if not isinstance(value, dict):
        raise ValidationError("ocr_data must be a JSON object", field="ocr_data")
    return value


async def _store_upload(
    file: UploadFile,
    org_id: UUID,
    storage: ObjectStoragePort,
) -> service.UploadedFile:
    """Validate and store the uploaded bytes.

    Raises:
        ValidationError: Bad filename, type or size
    """
    is_valid, error_msg = validate_filename(file.filename)
    if not is_valid:
        raise ValidationError(error_msg or "Invalid filename", field="file")

    mime_type = file.content_type or "application/octet-stream"
    if not is_supported_mime_type(mime_type):
        raise ValidationError(f"Unsupported MIME type: {mime_type}", field="file")

    content = await file.read()
    is_valid, error_msg = validate_file_size(len(content), settings.MAX_UPLOAD_SIZE_BYTES)
    if not is_valid:
        raise ValidationError(error_msg or "Invalid file size", field="file")

    safe_filename = sanitize_filename(file.filename)
    stored = await storage.store_file(
        file=BytesIO(content),
        org_id=org_id,
        filename=safe_filename,
        mime_type=mime_type,
    )
    return service.UploadedFile(
        stored=stored,
        file_name=stored.storage_key.rsplit("/", 1)[-1],
        original_file_name=file.filename,
        file_url=storage.file_url(stored.storage_key),
    )


async def _discard(storage: ObjectStoragePort, upload: service.UploadedFile) -> None:
    """Best-effort removal of an object written for a request that failed.

    Cleanup errors are logged so the original failure is what propagates.
    """
    if not upload.stored.created:
        return
    try:
        await storage.delete_file(upload.stored.storage_key)
    except Exception as e:
        logger.error(
            f"Orphaned object cleanup failed for {upload.stored.storage_key}: {e}",
            exc_info=True,
        )


@router.post(
    "",
    response_model=DocumentUploadResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Upload a document",
)
async def upload_document(
    file: Annotated[UploadFile, File(...)],
    title: Annotated[str, Form()],
    category: Annotated[str, Form()],
    document_type: Annotated[str, Form()],
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
    storage: Annotated[ObjectStoragePort, Depends(get_object_storage)],
    events: Annotated[EventBus, Depends(get_event_bus)],
    description: Annotated[Optional[str], Form()] = None,
    priority: Annotated[Optional[str], Form()] = None,
    tags: Annotated[Optional[str], Form()] = None,
    department_id: Annotated[Optional[UUID], Form()] = None,
    project_id: Annotated[Optional[UUID], Form()] = None,
    is_confidential: Annotated[bool, Form()] = False,
    save_as_draft: Annotated[bool, Form()] = False,
    ocr_data: Annotated[Optional[str], Form()] = None,
):
    """Upload a document.

    Processing:
    1. Check upload permission and the category/document type pairing
    2. Store the file (deduplicated per org)
    3. Decide the initial status from the approval workflows (draft when save_as_draft)
    4. Create the approval chain and link the project checklist
    5. Notify reviewers and the uploader

    Example:
        curl -X POST https://api.docflow.test/api/v1/documents \\
             -H "Authorization: Bearer $TOKEN" \\
             -F "file=@hr-policy.pdf" -F "title=HR Policy 2026" \\
             -F "category=Policy" -F "document_type=HR Policy"
    """
    data = service.DocumentInput(
        title=title,
        description=description,
        category=category,
        document_type=document_type,
        priority=priority,
        tags=service.parse_tags(tags),
        department_id=department_id,
        project_id=project_id,
        is_confidential=is_confidential,
        ocr_data=_parse_ocr_data(ocr_data),
        save_as_draft=save_as_draft,
    )
    service.validate_upload(db, current_user, data)

    upload = await _store_upload(file, current_user.org_id, storage)
    try:
        document = service.create_document(db, current_user, data, upload, events)
        db.commit()
    except Exception:
        db.rollback()
        await _discard(storage, upload)
        raise

    db.refresh(document)
    return service.upload_summary(document, current_user)


@router.get("/{document_id}", summary="Get document with approval chain")
def get_document(
    document_id: UUID,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    """Document detail including the current approval chain and earlier versions' steps."""
    return service.get_document_detail(db, current_user, document_id)


@router.post(
    "/{document_id}/replace",
    response_model=DocumentUploadResponse,
    summary="Replace a document's file",
)
async def replace_document(
    document_id: UUID,
    file: Annotated[UploadFile, File(...)],
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
    storage: Annotated[ObjectStoragePort, Depends(get_object_storage)],
    events: Annotated[EventBus, Depends(get_event_bus)],
):
    """Replace the file of a document, keeping its ID.

    Refused with 409 while the document's project is approved or completed;
    in that case nothing is stored and the document is untouched.
    """
    service.prepare_replacement(db, current_user, document_id)

    upload = await _store_upload(file, current_user.org_id, storage)
    try:
        document = service.replace_document(db, current_user, document_id, upload, events)
        db.commit()
    except Exception:
        db.rollback()
        await _discard(storage, upload)
        raise

    db.refresh(document)
    return service.upload_summary(document, document.created_by)


@router.delete("/{document_id}", response_model=DocumentDeleteResponse, summary="Delete a document")
def delete_document(
    document_id: UUID,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
    events: Annotated[EventBus, Depends(get_event_bus)],
):
    """Soft delete. The stored file and the audit history are kept.

    Errors:
        403: caller is neither the uploader nor allowed to delete others' documents
        404: document not found (or already deleted)
    """
    document = service.delete_document(db, current_user, document_id, events)
    db.commit()
    return DocumentDeleteResponse(id=document.id, reference=document.reference, is_active=document.is_active)
