# app/services/demand_letter_service.py

from sqlalchemy.orm import Session
from typing import List, Optional, Dict, Any
from datetime import datetime
from uuid import UUID

from app.db.models import DemandLetter, User
from app.core.logger import logger


class DemandLetterService:

    @staticmethod
    def create_letter(db: Session, case_id: UUID, title: str, content: str, user: User) -> DemandLetter:
        try:
            letter = DemandLetter(
                case_id=case_id,
                title=title,
                content=content,
                generated_by=user.id,
            )
            db.add(letter)
            db.commit()
            db.refresh(letter)
        except Exception as e:
            db.rollback()
            logger.error(f"Failed to store demand letter: {str(e)}")
            raise

        logger.info(f"Demand letter created for case {case_id}")
        return letter

    @staticmethod
    def get_letters_by_case(db: Session, case_id: UUID) -> List[DemandLetter]:
        return db.query(DemandLetter).filter(
            DemandLetter.case_id == case_id
        ).order_by(DemandLetter.created_at.desc()).all()

    @staticmethod
    def get_letter_by_id(db: Session, letter_id: UUID) -> Optional[DemandLetter]:
        return db.query(DemandLetter).filter(DemandLetter.id == letter_id).first()

    @staticmethod
    def update_letter(db: Session, letter: DemandLetter, update_data: Dict[str, Any]) -> DemandLetter:
        try:
            for key, value in update_data.items():
                if value is not None and hasattr(letter, key):
                    setattr(letter, key, value)
            letter.updated_at = datetime.utcnow()
            db.commit()
            db.refresh(letter)
            return letter
        except Exception as e:
            db.rollback()
            logger.error(f"Failed to update demand letter: {str(e)}")
            raise
