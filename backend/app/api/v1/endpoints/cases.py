"""
Case management endpoints
"""
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID

from app.db.database import get_db
from app.db.models import CaseStatus, User
from app.db.schemas import (
    CaseCreate,
    CaseListResponse,
    CaseResponse,
    CaseUpdate,
    DemandLetterResponse,
    DocumentResponse,
    MedicalBillResponse,
)
from app.api.v1.deps import get_blob_storage, get_current_user
from app.core.logger import logger
from app.services.blob_storage_service import BlobStorageService
from app.services.case_service import CaseService
from app.services.demand_letter_service import DemandLetterService
from app.services.document_service import DocumentService
from app.services.medical_bill_service import MedicalBillService

router = APIRouter()

# ============================================================================
# List & CRUD
# ============================================================================

@router.get("/", response_model=CaseListResponse)
def get_cases(
    status: Optional[CaseStatus] = Query(None, description="Filter by status"),
    q: Optional[str] = Query(None, description="Search client name or case number"),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Get all cases for the authenticated user
    """
    total, cases = CaseService.get_cases(
        db,
        current_user,
        status=status,
        search=q,
        skip=(page - 1) * per_page,
        limit=per_page,
    )
    return {"total": total, "page": page, "per_page": per_page, "items": cases}


@router.post("/", response_model=CaseResponse, status_code=status.HTTP_201_CREATED)
def create_case(
    payload: CaseCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return CaseService.create_case(db, payload.model_dump(), current_user)


@router.get("/{case_id}", response_model=CaseResponse)
def get_case(
    case_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return CaseService.get_owned_case(db, case_id, current_user)


@router.put("/{case_id}", response_model=CaseResponse)
def update_case(
    case_id: UUID,
    payload: CaseUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    case = CaseService.get_owned_case(db, case_id, current_user)
    return CaseService.update_case(db, case, payload.model_dump(exclude_unset=True))


@router.delete("/{case_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_case(
    case_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    blob_storage: BlobStorageService = Depends(get_blob_storage),
):
    """
    Delete the case with everything attached to it, then its stored files.
    """
    case = CaseService.get_owned_case(db, case_id, current_user)
    blobs = CaseService.delete_case(db, case)

    for container, object_path in blobs:
        result = blob_storage.delete_file(container, object_path)
        if not result.ok:
            logger.warning(f"Orphaned blob after case delete: {container}/{object_path}")

    return Response(status_code=status.HTTP_204_NO_CONTENT)

# ============================================================================
# Case children
# ============================================================================

@router.get("/{case_id}/documents", response_model=List[DocumentResponse])
def get_case_documents(
    case_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    case = CaseService.get_owned_case(db, case_id, current_user)
    return DocumentService.get_documents_by_case(db, case.id)


@router.get("/{case_id}/bills", response_model=List[MedicalBillResponse])
def get_case_bills(
    case_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    case = CaseService.get_owned_case(db, case_id, current_user)
    return MedicalBillService.get_bills_by_case(db, case.id)


@router.get("/{case_id}/demand-letters", response_model=List[DemandLetterResponse])
def get_case_demand_letters(
    case_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    case = CaseService.get_owned_case(db, case_id, current_user)
    return DemandLetterService.get_letters_by_case(db, case.id)
