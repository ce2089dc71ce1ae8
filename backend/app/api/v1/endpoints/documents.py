"""
Document management endpoints
"""
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Form, HTTPException, Response, UploadFile, status
from sqlalchemy.orm import Session
from typing import List
from uuid import UUID

from app.db.database import get_db
from app.db.models import PromptType, User
from app.db.schemas import DocumentAnalysisResponse, DocumentResponse, DocumentViewUrlResponse
from app.api.v1.deps import get_blob_storage, get_current_user
from app.core.config import settings
from app.core.logger import logger
from app.services.ai_prompt_service import AiPromptService
from app.services.ai_service import create_ai_service, extract_document_text
from app.services.blob_storage_service import BlobStorageService, Containers
from app.services.case_service import CaseService
from app.services.document_service import DocumentService
from app.utils.exceptions import AIServiceError, UploadFailedError

router = APIRouter()

UPLOAD_CONTAINERS = (Containers.DOCUMENTS, Containers.MEDICAL_BILLS)


def content_disposition(file_name: str) -> str:
    return f"attachment; filename*=UTF-8''{quote(file_name, safe='')}"


def fallback_content(document, reason: str) -> str:
    uploaded = document.created_at.strftime("%Y-%m-%d") if document.created_at else "Unknown"
    return (
        f"Document: {document.file_name}\nUploaded: {uploaded}\nFile Type: {document.mime_type}\n\n"
        f"Note: {reason}"
    )

# ============================================================================
# Endpoints
# ============================================================================

@router.get("/", response_model=List[DocumentResponse])
def get_documents(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get all documents uploaded by the authenticated user"""
    return DocumentService.get_documents_by_user(db, current_user.id)


@router.post("/", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
def upload_document(
    case_id: UUID = Form(...),
    container: str = Form(Containers.DOCUMENTS),
    file: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    blob_storage: BlobStorageService = Depends(get_blob_storage),
):
    """
    Store the file in blob storage and create its document record.
    """
    if container not in UPLOAD_CONTAINERS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Container must be one of: {', '.join(UPLOAD_CONTAINERS)}",
        )

    case = CaseService.get_owned_case(db, case_id, current_user)

    # Read at most one byte past the limit
    data = file.file.read(settings.MAX_UPLOAD_SIZE + 1)
    if not data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Uploaded file is empty")
    if len(data) > settings.MAX_UPLOAD_SIZE:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File exceeds maximum size of {settings.MAX_UPLOAD_SIZE} bytes",
        )

    file_name = file.filename or "upload"
    mime_type = file.content_type or "application/octet-stream"
    blob_name = blob_storage.generate_blob_name(file_name, current_user.id)

    try:
        blob_storage.upload_file(container, blob_name, data, mime_type)
    except Exception as e:
        logger.error(f"Upload of {file_name} failed: {str(e)}")
        raise UploadFailedError(str(e))

    try:
        return DocumentService.create_document(db, {
            "case_id": case.id,
            "uploaded_by": current_user.id,
            "file_name": file_name,
            "file_size": len(data),
            "mime_type": mime_type,
            "container": container,
            "object_path": blob_name,
        })
    except Exception:
        # No record points at the blob; remove it
        blob_storage.delete_file(container, blob_name)
        raise


@router.get("/{document_id}", response_model=DocumentResponse)
def get_document(
    document_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get document details by ID"""
    return DocumentService.get_owned_document(db, document_id, current_user)


@router.get("/{document_id}/download")
def download_document(
    document_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    blob_storage: BlobStorageService = Depends(get_blob_storage),
):
    """Stream the stored file as an attachment"""
    document = DocumentService.get_owned_document(db, document_id, current_user)
    return blob_storage.download_file(
        document.container,
        document.object_path,
        headers={"Content-Disposition": content_disposition(document.file_name)},
    )


@router.get("/{document_id}/view-url", response_model=DocumentViewUrlResponse)
def get_document_view_url(
    document_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    blob_storage: BlobStorageService = Depends(get_blob_storage),
):
    """Short-lived read URL for third-party viewers. Do not store this URL."""
    document = DocumentService.get_owned_document(db, document_id, current_user)
    signed = blob_storage.generate_blob_sas_url(
        document.container,
        document.object_path,
        expiry_hours=settings.SAS_URL_EXPIRY_HOURS,
    )
    return {"url": signed.url, "signed": signed.signed, "expires_at": signed.expires_at}


@router.post("/{document_id}/analyze", response_model=DocumentAnalysisResponse)
def analyze_document(
    document_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    blob_storage: BlobStorageService = Depends(get_blob_storage),
):
    """
    Run AI extraction over the stored file and save summary + extracted data.
    """
    document = DocumentService.get_owned_document(db, document_id, current_user)
    ai = create_ai_service(current_user)

    DocumentService.mark_analyzing(db, document)

    read = blob_storage.read_file(document.container, document.object_path)
    if read.ok:
        content = extract_document_text(read.value, document.mime_type, document.file_name)
        if not content.strip():
            content = fallback_content(
                document,
                "Unable to extract text content from this document. Please ensure the document is a readable PDF or text file.",
            )
    else:
        content = fallback_content(document, "Document file not yet available for analysis.")

    custom_prompt = AiPromptService.get_prompt_by_type(db, current_user.id, PromptType.document_analysis)

    try:
        analysis = ai.analyze_document(
            content,
            document.file_name,
            instructions=custom_prompt.prompt if custom_prompt else None,
        )
    except AIServiceError as e:
        DocumentService.mark_failed(db, document, str(e.detail))
        raise

    document = DocumentService.mark_processed(
        db,
        document,
        summary=analysis["summary"],
        extracted_data=analysis["extracted_data"],
    )
    logger.info(f"Document {document.id} analyzed with {ai.name}")
    return {"document": document, "key_findings": analysis["key_findings"]}


@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_document(
    document_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    blob_storage: BlobStorageService = Depends(get_blob_storage),
):
    """Delete a document record and its stored file"""
    document = DocumentService.get_owned_document(db, document_id, current_user)
    container, object_path = document.container, document.object_path

    DocumentService.delete_document(db, document)

    result = blob_storage.delete_file(container, object_path)
    if not result.ok:
        logger.warning(f"Orphaned blob after document delete: {container}/{object_path}")

    return Response(status_code=status.HTTP_204_NO_CONTENT)
