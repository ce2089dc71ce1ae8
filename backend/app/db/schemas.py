"""
Pydantic validation schemas
"""
from pydantic import BaseModel, EmailStr, Field, validator
from typing import Optional, List, Dict, Any
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from app.db.models import (
    BillStatus,
    CaseStatus,
    ChatRole,
    DemandLetterStatus,
    ProcessingStatus,
    PromptType,
)

# ============================================================================
# User Schemas
# ============================================================================

class UserLogin(BaseModel):
    """Login schema"""
    username: str
    password: str


class UserRegister(BaseModel):
    """Registration schema"""
    username: str = Field(..., min_length=3, max_length=100)
    password: str = Field(..., min_length=8, max_length=100)
    email: Optional[EmailStr] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    @validator('password')
    def validate_password(cls, v):
        if not any(char.isdigit() for char in v):
            raise ValueError('Password must contain at least one digit')
        return v


class UserProfileUpdate(BaseModel):
    email: Optional[EmailStr] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_image_url: Optional[str] = None


class PasswordChange(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=8, max_length=100)


class ApiKeyUpdate(BaseModel):
    """OpenAI API key; empty string clears it"""
    api_key: str = ""


class AIConfigUpdate(BaseModel):
    use_azure_openai: bool = False
    azure_openai_endpoint: Optional[str] = None
    azure_openai_api_key: Optional[str] = None
    azure_openai_version: Optional[str] = None
    azure_model_deployment: Optional[str] = None


class UserResponse(BaseModel):
    id: UUID
    username: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_image_url: Optional[str] = None
    is_active: bool
    use_azure_openai: bool
    azure_openai_endpoint: Optional[str] = None
    azure_openai_version: Optional[str] = None
    azure_model_deployment: Optional[str] = None
    has_openai_api_key: bool = False
    created_at: datetime

    class Config:
        from_attributes = True


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse


# ============================================================================
# Case Schemas
# ============================================================================

class CaseBase(BaseModel):
    client_name: str = Field(..., min_length=1)
    case_number: str = Field(..., min_length=1, max_length=100)
    case_type: str = Field(..., min_length=1, max_length=100)
    status: CaseStatus = CaseStatus.active
    description: Optional[str] = None


class CaseCreate(CaseBase):
    pass


class CaseUpdate(BaseModel):
    client_name: Optional[str] = None
    case_number: Optional[str] = None
    case_type: Optional[str] = None
    status: Optional[CaseStatus] = None
    description: Optional[str] = None


class CaseResponse(CaseBase):
    id: UUID
    created_by: UUID
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class CaseListResponse(BaseModel):
    total: int
    page: int
    per_page: int
    items: List[CaseResponse]


# ============================================================================
# Document Schemas
# ============================================================================

class DocumentResponse(BaseModel):
    id: UUID
    case_id: UUID
    uploaded_by: UUID
    file_name: str
    file_size: int
    mime_type: str
    container: str
    object_path: str
    ai_processed: bool
    ai_summary: Optional[str] = None
    extracted_data: Optional[Dict[str, Any]] = None
    processing_status: ProcessingStatus
    processing_errors: Optional[List[Any]] = None
    last_processed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class DocumentViewUrlResponse(BaseModel):
    url: str
    signed: bool
    expires_at: Optional[datetime] = None


class DocumentAnalysisResponse(BaseModel):
    document: DocumentResponse
    key_findings: List[str] = []


# ============================================================================
# Medical Bill Schemas
# ============================================================================

class MedicalBillCreate(BaseModel):
    case_id: UUID
    provider: str = Field(..., min_length=1)
    amount: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    service_date: datetime
    bill_date: datetime
    treatment: Optional[str] = None
    insurance: Optional[str] = None
    status: BillStatus = BillStatus.pending
    document_id: Optional[UUID] = None


class MedicalBillUpdate(BaseModel):
    provider: Optional[str] = None
    amount: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    service_date: Optional[datetime] = None
    bill_date: Optional[datetime] = None
    treatment: Optional[str] = None
    insurance: Optional[str] = None
    status: Optional[BillStatus] = None
    document_id: Optional[UUID] = None


class MedicalBillResponse(BaseModel):
    id: UUID
    case_id: UUID
    provider: str
    amount: Decimal
    service_date: datetime
    bill_date: datetime
    treatment: Optional[str] = None
    insurance: Optional[str] = None
    status: BillStatus
    document_id: Optional[UUID] = None
    created_by: UUID
    created_at: datetime

    class Config:
        from_attributes = True


# ============================================================================
# Chat Schemas
# ============================================================================

class ChatSessionCreate(BaseModel):
    case_id: Optional[UUID] = None
    title: Optional[str] = None


class ChatSessionResponse(BaseModel):
    id: UUID
    case_id: Optional[UUID] = None
    user_id: UUID
    title: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ChatMessageCreate(BaseModel):
    content: str = Field(..., min_length=1)


class ChatMessageResponse(BaseModel):
    id: UUID
    session_id: UUID
    role: ChatRole
    content: str
    created_at: datetime

    class Config:
        from_attributes = True


class ChatExchangeResponse(BaseModel):
    user_message: ChatMessageResponse
    ai_message: ChatMessageResponse


# ============================================================================
# Demand Letter Schemas
# ============================================================================

class DemandLetterGenerate(BaseModel):
    case_id: UUID
    client_name: str = Field(..., min_length=1)
    incident_date: str = Field(..., min_length=1)
    medical_summary: str = ""
    damages: str = ""
    liability: str = ""


class DemandLetterResponse(BaseModel):
    id: UUID
    case_id: UUID
    title: str
    content: str
    generated_by: UUID
    status: DemandLetterStatus
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


# ============================================================================
# AI Prompt Schemas
# ============================================================================

class AiPromptCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    type: PromptType
    prompt: str = Field(..., min_length=1)
    is_default: bool = False
    is_active: bool = True
    description: Optional[str] = None


class AiPromptUpdate(BaseModel):
    name: Optional[str] = None
    type: Optional[PromptType] = None
    prompt: Optional[str] = None
    is_default: Optional[bool] = None
    is_active: Optional[bool] = None
    description: Optional[str] = None


class AiPromptResponse(AiPromptCreate):
    id: UUID
    user_id: UUID
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


# ============================================================================
# Dashboard Schemas
# ============================================================================

class DashboardStats(BaseModel):
    active_cases: int
    pending_bills: str
    documents_processed: int
    ai_extractions: int
