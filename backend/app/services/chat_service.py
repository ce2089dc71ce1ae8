# app/services/chat_service.py

from sqlalchemy.orm import Session
from typing import List, Optional, Dict
from datetime import datetime
from uuid import UUID

from app.db.models import AiChatMessage, AiChatSession, ChatRole, User
from app.core.logger import logger


class ChatService:
    """
    AI chat sessions and their messages.
    """

    @staticmethod
    def create_session(
        db: Session,
        user: User,
        case_id: Optional[UUID] = None,
        title: Optional[str] = None,
    ) -> AiChatSession:
        try:
            session = AiChatSession(user_id=user.id, case_id=case_id, title=title)
            db.add(session)
            db.commit()
            db.refresh(session)
            return session
        except Exception as e:
            db.rollback()
            logger.error(f"Failed to create chat session: {str(e)}")
            raise

    @staticmethod
    def get_sessions(db: Session, user_id: UUID) -> List[AiChatSession]:
        return db.query(AiChatSession).filter(
            AiChatSession.user_id == user_id
        ).order_by(AiChatSession.updated_at.desc()).all()

    @staticmethod
    def get_session_by_id(db: Session, session_id: UUID) -> Optional[AiChatSession]:
        return db.query(AiChatSession).filter(AiChatSession.id == session_id).first()

    @staticmethod
    def add_message(db: Session, session: AiChatSession, role: ChatRole, content: str) -> AiChatMessage:
        try:
            message = AiChatMessage(session_id=session.id, role=role, content=content)
            db.add(message)
            session.updated_at = datetime.utcnow()
            db.commit()
            db.refresh(message)
            return message
        except Exception as e:
            db.rollback()
            logger.error(f"Failed to store chat message: {str(e)}")
            raise

    @staticmethod
    def get_messages(db: Session, session_id: UUID) -> List[AiChatMessage]:
        """Oldest first."""
        return db.query(AiChatMessage).filter(
            AiChatMessage.session_id == session_id
        ).order_by(AiChatMessage.created_at.asc()).all()

    @staticmethod
    def recent_history(db: Session, session_id: UUID, limit: int = 10) -> List[Dict[str, str]]:
        """
        Last ``limit`` messages as ``{"role", "content"}`` dicts, oldest first.
        """
        messages = ChatService.get_messages(db, session_id)[-limit:]
        return [
            {"role": getattr(m.role, "value", m.role), "content": m.content}
            for m in messages
        ]
