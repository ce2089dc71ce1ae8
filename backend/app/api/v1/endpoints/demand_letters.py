"""
Demand letter endpoints
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.db.database import get_db
from app.db.models import PromptType, User
from app.db.schemas import DemandLetterGenerate, DemandLetterResponse
from app.api.v1.deps import get_current_user
from app.services.ai_prompt_service import AiPromptService
from app.services.ai_service import create_ai_service
from app.services.case_service import CaseService
from app.services.demand_letter_service import DemandLetterService
from app.services.document_service import DocumentService
from app.services.medical_bill_service import MedicalBillService

router = APIRouter()


@router.post("/generate", response_model=DemandLetterResponse, status_code=status.HTTP_201_CREATED)
def generate_demand_letter(
    payload: DemandLetterGenerate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Draft a demand letter from the case details, its processed documents
    and its medical bills.
    """
    case = CaseService.get_owned_case(db, payload.case_id, current_user)
    ai = create_ai_service(current_user)

    case_data = {
        "caseNumber": case.case_number,
        "caseType": case.case_type,
        "clientName": payload.client_name,
        "incidentDate": payload.incident_date,
        "medicalSummary": payload.medical_summary,
        "damages": payload.damages,
        "liability": payload.liability,
    }
    documents = [
        {"fileName": d.file_name, "summary": d.ai_summary}
        for d in DocumentService.get_documents_by_case(db, case.id)
        if d.ai_processed
    ]
    bills = [
        {
            "provider": b.provider,
            "amount": str(b.amount),
            "serviceDate": b.service_date.date().isoformat(),
            "treatment": b.treatment,
            "status": b.status.value,
        }
        for b in MedicalBillService.get_bills_by_case(db, case.id)
    ]

    custom_prompt = AiPromptService.get_prompt_by_type(db, current_user.id, PromptType.demand_letter)
    content = ai.generate_demand_letter(
        case_data,
        documents,
        bills,
        instructions=custom_prompt.prompt if custom_prompt else None,
    )

    return DemandLetterService.create_letter(
        db,
        case_id=case.id,
        title=f"Demand Letter - {payload.client_name}",
        content=content,
        user=current_user,
    )
