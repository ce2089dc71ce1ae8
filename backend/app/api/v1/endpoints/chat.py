"""
AI chat endpoints
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List
from uuid import UUID

from app.db.database import get_db
from app.db.models import AiChatSession, ChatRole, PromptType, User
from app.db.schemas import (
    ChatExchangeResponse,
    ChatMessageCreate,
    ChatMessageResponse,
    ChatSessionCreate,
    ChatSessionResponse,
)
from app.api.v1.deps import get_current_user
from app.core.config import settings
from app.services.ai_prompt_service import AiPromptService
from app.services.ai_service import CHAT_SYSTEM_PROMPT, create_ai_service
from app.services.case_service import CaseService
from app.services.chat_service import ChatService
from app.utils.exceptions import ResourceNotFoundError

router = APIRouter()


def _owned_session(db: Session, session_id: UUID, user: User) -> AiChatSession:
    session = ChatService.get_session_by_id(db, session_id)
    if not session or session.user_id != user.id:
        raise ResourceNotFoundError("Chat session", str(session_id))
    return session


@router.get("/sessions", response_model=List[ChatSessionResponse])
def get_sessions(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return ChatService.get_sessions(db, current_user.id)


@router.post("/sessions", response_model=ChatSessionResponse, status_code=status.HTTP_201_CREATED)
def create_session(
    payload: ChatSessionCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    if payload.case_id:
        CaseService.get_owned_case(db, payload.case_id, current_user)
    return ChatService.create_session(db, current_user, case_id=payload.case_id, title=payload.title)


@router.get("/sessions/{session_id}/messages", response_model=List[ChatMessageResponse])
def get_messages(
    session_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    session = _owned_session(db, session_id, current_user)
    return ChatService.get_messages(db, session.id)


@router.post("/sessions/{session_id}/messages", response_model=ChatExchangeResponse)
def send_message(
    session_id: UUID,
    payload: ChatMessageCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Store the user's message, answer it with the recent history as
    context and store the reply.
    """
    session = _owned_session(db, session_id, current_user)
    ai = create_ai_service(current_user)

    user_message = ChatService.add_message(db, session, ChatRole.user, payload.content)
    history = ChatService.recent_history(db, session.id, limit=settings.AI_CHAT_HISTORY_LIMIT)

    custom_prompt = AiPromptService.get_prompt_by_type(db, current_user.id, PromptType.chat_system)
    system_prompt = custom_prompt.prompt if custom_prompt else CHAT_SYSTEM_PROMPT

    reply = ai.chat_completion(history, system_prompt)
    ai_message = ChatService.add_message(db, session, ChatRole.assistant, reply)

    return {"user_message": user_message, "ai_message": ai_message}
