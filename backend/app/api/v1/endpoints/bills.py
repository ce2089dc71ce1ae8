"""
Medical bill endpoints
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from uuid import UUID

from app.db.database import get_db
from app.db.models import User
from app.db.schemas import MedicalBillCreate, MedicalBillResponse, MedicalBillUpdate
from app.api.v1.deps import get_current_user
from app.services.case_service import CaseService
from app.services.document_service import DocumentService
from app.services.medical_bill_service import MedicalBillService
from app.utils.exceptions import ResourceNotFoundError

router = APIRouter()


@router.post("/", response_model=MedicalBillResponse, status_code=status.HTTP_201_CREATED)
def create_bill(
    payload: MedicalBillCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    CaseService.get_owned_case(db, payload.case_id, current_user)
    if payload.document_id:
        DocumentService.get_owned_document(db, payload.document_id, current_user)
    return MedicalBillService.create_bill(db, payload.model_dump(), current_user)


@router.put("/{bill_id}", response_model=MedicalBillResponse)
def update_bill(
    bill_id: UUID,
    payload: MedicalBillUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    bill = MedicalBillService.get_bill_by_id(db, bill_id)
    if not bill:
        raise ResourceNotFoundError("Medical bill", str(bill_id))
    CaseService.get_owned_case(db, bill.case_id, current_user)

    update_data = payload.model_dump(exclude_unset=True)
    if update_data.get("document_id"):
        DocumentService.get_owned_document(db, update_data["document_id"], current_user)
    return MedicalBillService.update_bill(db, bill, update_data)
