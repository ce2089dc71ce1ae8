# app/services/document_service.py

from sqlalchemy.orm import Session
from typing import List, Optional, Dict, Any
from datetime import datetime
from uuid import UUID

from app.db.models import Document, ProcessingStatus, User
from app.core.logger import logger
from app.utils.exceptions import DocumentNotFoundError, UnauthorizedError


class DocumentService:
    """
    Service layer for document management.
    """

    @staticmethod
    def create_document(db: Session, doc_data: Dict[str, Any]) -> Document:
        """
        Create a new document record.
        """
        try:
            document = Document(**doc_data)
            db.add(document)
            db.commit()
            db.refresh(document)

            logger.info(f"Document created: {document.container}/{document.object_path}")
            return document

        except Exception as e:
            db.rollback()
            logger.error(f"Failed to create document: {str(e)}")
            raise

    @staticmethod
    def update_document(db: Session, document: Document, update_data: Dict[str, Any]) -> Document:
        """
        Update document fields. ``None`` values are skipped.
        """
        try:
            for key, value in update_data.items():
                if value is not None and hasattr(document, key):
                    setattr(document, key, value)

            document.updated_at = datetime.utcnow()
            db.commit()
            db.refresh(document)
            return document

        except Exception as e:
            db.rollback()
            logger.error(f"Failed to update document: {str(e)}")
            raise

    @staticmethod
    def get_document_by_id(db: Session, document_id: UUID) -> Optional[Document]:
        return db.query(Document).filter(Document.id == document_id).first()

    @staticmethod
    def get_owned_document(db: Session, document_id: UUID, user: User) -> Document:
        """
        Fetch a document and verify the user uploaded it.
        """
        document = DocumentService.get_document_by_id(db, document_id)
        if not document:
            raise DocumentNotFoundError(str(document_id))
        if document.uploaded_by != user.id:
            raise UnauthorizedError()
        return document

    @staticmethod
    def get_documents_by_case(db: Session, case_id: UUID) -> List[Document]:
        return db.query(Document).filter(
            Document.case_id == case_id
        ).order_by(Document.created_at.desc()).all()

    @staticmethod
    def get_documents_by_user(db: Session, user_id: UUID) -> List[Document]:
        return db.query(Document).filter(
            Document.uploaded_by == user_id
        ).order_by(Document.created_at.desc()).all()

    @staticmethod
    def mark_analyzing(db: Session, document: Document) -> Document:
        return DocumentService.update_document(
            db, document, {"processing_status": ProcessingStatus.analyzing}
        )

    @staticmethod
    def mark_processed(
        db: Session,
        document: Document,
        summary: str,
        extracted_data: Dict[str, Any],
    ) -> Document:
        return DocumentService.update_document(db, document, {
            "ai_processed": True,
            "ai_summary": summary,
            "extracted_data": extracted_data,
            "processing_status": ProcessingStatus.processed,
            "last_processed_at": datetime.utcnow(),
        })

    @staticmethod
    def mark_failed(db: Session, document: Document, error: str) -> Document:
        """
        Record a processing failure. Earlier errors are kept.
        """
        errors = list(document.processing_errors or [])
        errors.append({"error": error, "at": datetime.utcnow().isoformat()})
        return DocumentService.update_document(db, document, {
            "processing_status": ProcessingStatus.error,
            "processing_errors": errors,
            "last_processed_at": datetime.utcnow(),
        })

    @staticmethod
    def delete_document(db: Session, document: Document) -> None:
        try:
            db.delete(document)
            db.commit()
            logger.info(f"Document deleted: {document.id}")
        except Exception as e:
            db.rollback()
            logger.error(f"Failed to delete document: {str(e)}")
            raise
