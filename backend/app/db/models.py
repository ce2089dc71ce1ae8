"""
SQLAlchemy ORM Models
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    TIMESTAMP,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship

from app.db.database import Base

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB, "postgresql")

# ============================================================================
# Enums
# ============================================================================

class CaseStatus(str, enum.Enum):
    """Case status enum"""
    active = "active"
    closed = "closed"
    pending = "pending"

class ProcessingStatus(str, enum.Enum):
    """Document processing lifecycle"""
    uploaded = "uploaded"
    analyzing = "analyzing"
    processed = "processed"
    error = "error"

class BillStatus(str, enum.Enum):
    pending = "pending"
    submitted = "submitted"
    paid = "paid"
    denied = "denied"

class ChatRole(str, enum.Enum):
    user = "user"
    assistant = "assistant"

class DemandLetterStatus(str, enum.Enum):
    draft = "draft"
    final = "final"
    sent = "sent"

class PromptType(str, enum.Enum):
    """Which AI feature a stored prompt customizes"""
    document_analysis = "document_analysis"
    demand_letter = "demand_letter"
    chat_system = "chat_system"
    document_editing = "document_editing"


# ============================================================================
# Models
# ============================================================================

class User(Base):
    """User with optional per-user AI provider configuration"""
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # Authentication
    username = Column(String(100), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=True)

    # Profile
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    profile_image_url = Column(String(500), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    # AI provider configuration
    openai_api_key = Column(Text, nullable=True)
    use_azure_openai = Column(Boolean, nullable=False, default=False)
    azure_openai_endpoint = Column(Text, nullable=True)
    azure_openai_api_key = Column(Text, nullable=True)
    azure_openai_version = Column(String(50), nullable=True, default="2024-02-15-preview")
    azure_model_deployment = Column(String(255), nullable=True)

    # Timestamps
    created_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow)
    updated_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships (cases/documents/bills only reference users, no cascade)
    cases = relationship("Case", back_populates="creator")
    ai_prompts = relationship("AiPrompt", back_populates="user", cascade="all, delete-orphan")
    chat_sessions = relationship("AiChatSession", back_populates="user")


class Case(Base):
    """Legal case model"""
    __tablename__ = "cases"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    client_name = Column(Text, nullable=False)
    case_number = Column(String(100), unique=True, nullable=False, index=True)
    case_type = Column(String(100), nullable=False)
    status = Column(SQLEnum(CaseStatus), nullable=False, default=CaseStatus.active)
    description = Column(Text, nullable=True)

    created_by = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)

    created_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow)
    updated_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships: children go away with the case
    creator = relationship("User", back_populates="cases")
    documents = relationship("Document", back_populates="case", cascade="all, delete-orphan")
    medical_bills = relationship("MedicalBill", back_populates="case", cascade="all, delete-orphan")
    chat_sessions = relationship("AiChatSession", back_populates="case", cascade="all, delete-orphan")
    demand_letters = relationship("DemandLetter", back_populates="case", cascade="all, delete-orphan")


class Document(Base):
    """Uploaded file and its AI processing state"""
    __tablename__ = "documents"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # Foreign Keys
    case_id = Column(Uuid(as_uuid=True), ForeignKey("cases.id", ondelete="CASCADE"), nullable=False)
    uploaded_by = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False)

    # File Metadata
    file_name = Column(Text, nullable=False)
    file_size = Column(Integer, nullable=False)
    mime_type = Column(String(255), nullable=False)

    # Object storage location
    container = Column(String(100), nullable=False, default="documents")
    object_path = Column(Text, nullable=False)

    # AI results
    ai_processed = Column(Boolean, nullable=False, default=False)
    ai_summary = Column(Text, nullable=True)
    extracted_data = Column(JSONType, nullable=True)

    # Processing workflow
    processing_status = Column(SQLEnum(ProcessingStatus), nullable=False, default=ProcessingStatus.uploaded)
    document_intelligence = Column(JSONType, nullable=True)
    vector_embedding = Column(JSONType, nullable=True)
    search_indexed = Column(Boolean, nullable=False, default=False)
    search_indexed_at = Column(TIMESTAMP, nullable=True)
    processing_errors = Column(JSONType, nullable=True)
    last_processed_at = Column(TIMESTAMP, nullable=True)

    # Timestamps
    created_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow)
    updated_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (Index("ix_documents_case_created", "case_id", "created_at"),)

    # Relationships
    case = relationship("Case", back_populates="documents")
    medical_bills = relationship("MedicalBill", back_populates="document")


class MedicalBill(Base):
    """Medical bill tracked against a case"""
    __tablename__ = "medical_bills"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    case_id = Column(Uuid(as_uuid=True), ForeignKey("cases.id", ondelete="CASCADE"), nullable=False, index=True)

    provider = Column(Text, nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    service_date = Column(TIMESTAMP, nullable=False)
    bill_date = Column(TIMESTAMP, nullable=False)
    treatment = Column(Text, nullable=True)
    insurance = Column(Text, nullable=True)
    status = Column(SQLEnum(BillStatus), nullable=False, default=BillStatus.pending)

    # Source document (optional)
    document_id = Column(Uuid(as_uuid=True), ForeignKey("documents.id", ondelete="SET NULL"), nullable=True)
    created_by = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False)

    created_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow)
    updated_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    case = relationship("Case", back_populates="medical_bills")
    document = relationship("Document", back_populates="medical_bills")


class AiChatSession(Base):
    """AI chat conversation, optionally scoped to a case"""
    __tablename__ = "ai_chat_sessions"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    case_id = Column(Uuid(as_uuid=True), ForeignKey("cases.id", ondelete="CASCADE"), nullable=True)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    title = Column(Text, nullable=True)

    created_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow)
    updated_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    case = relationship("Case", back_populates="chat_sessions")
    user = relationship("User", back_populates="chat_sessions")
    messages = relationship(
        "AiChatMessage",
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="AiChatMessage.created_at",
    )


class AiChatMessage(Base):
    """Single chat turn"""
    __tablename__ = "ai_chat_messages"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    session_id = Column(Uuid(as_uuid=True), ForeignKey("ai_chat_sessions.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(SQLEnum(ChatRole), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow)

    session = relationship("AiChatSession", back_populates="messages")


class DemandLetter(Base):
    """Generated demand letter"""
    __tablename__ = "demand_letters"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    case_id = Column(Uuid(as_uuid=True), ForeignKey("cases.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(Text, nullable=False)
    content = Column(Text, nullable=False)
    generated_by = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False)
    status = Column(SQLEnum(DemandLetterStatus), nullable=False, default=DemandLetterStatus.draft)

    created_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow)
    updated_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    case = relationship("Case", back_populates="demand_letters")


class AiPrompt(Base):
    """User-customized AI prompt"""
    __tablename__ = "ai_prompts"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    type = Column(SQLEnum(PromptType), nullable=False)
    prompt = Column(Text, nullable=False)
    is_default = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    description = Column(Text, nullable=True)

    created_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow)
    updated_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="ai_prompts")
