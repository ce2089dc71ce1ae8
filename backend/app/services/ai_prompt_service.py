# app/services/ai_prompt_service.py

from sqlalchemy.orm import Session
from typing import List, Optional, Dict, Any
from datetime import datetime
from uuid import UUID

from app.db.models import AiPrompt, PromptType, User
from app.core.logger import logger
from app.utils.exceptions import ResourceNotFoundError


class AiPromptService:
    """
    Per-user prompt overrides for the AI features.
    """

    @staticmethod
    def create_prompt(db: Session, prompt_data: Dict[str, Any], user: User) -> AiPrompt:
        try:
            prompt = AiPrompt(**prompt_data, user_id=user.id)
            db.add(prompt)
            db.commit()
            db.refresh(prompt)
            return prompt
        except Exception as e:
            db.rollback()
            logger.error(f"Failed to create AI prompt: {str(e)}")
            raise

    @staticmethod
    def get_prompts(db: Session, user_id: UUID) -> List[AiPrompt]:
        return db.query(AiPrompt).filter(
            AiPrompt.user_id == user_id
        ).order_by(AiPrompt.created_at.desc()).all()

    @staticmethod
    def get_owned_prompt(db: Session, prompt_id: UUID, user: User) -> AiPrompt:
        """
        Prompts of other users are reported as missing.
        """
        prompt = db.query(AiPrompt).filter(
            AiPrompt.id == prompt_id,
            AiPrompt.user_id == user.id,
        ).first()
        if not prompt:
            raise ResourceNotFoundError("AI prompt", str(prompt_id))
        return prompt

    @staticmethod
    def get_prompt_by_type(db: Session, user_id: UUID, prompt_type: PromptType) -> Optional[AiPrompt]:
        """
        Active prompt of the given type; defaults win, then the newest.
        """
        return db.query(AiPrompt).filter(
            AiPrompt.user_id == user_id,
            AiPrompt.type == prompt_type,
            AiPrompt.is_active.is_(True),
        ).order_by(AiPrompt.is_default.desc(), AiPrompt.created_at.desc()).first()

    @staticmethod
    def update_prompt(db: Session, prompt: AiPrompt, update_data: Dict[str, Any]) -> AiPrompt:
        try:
            for key, value in update_data.items():
                if value is not None and hasattr(prompt, key):
                    setattr(prompt, key, value)
            prompt.updated_at = datetime.utcnow()
            db.commit()
            db.refresh(prompt)
            return prompt
        except Exception as e:
            db.rollback()
            logger.error(f"Failed to update AI prompt: {str(e)}")
            raise

    @staticmethod
    def delete_prompt(db: Session, prompt: AiPrompt) -> None:
        try:
            db.delete(prompt)
            db.commit()
        except Exception as e:
            db.rollback()
            logger.error(f"Failed to delete AI prompt: {str(e)}")
            raise
