"""
Custom AI prompt endpoints
"""
from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session
from typing import List
from uuid import UUID

from app.db.database import get_db
from app.db.models import User
from app.db.schemas import AiPromptCreate, AiPromptResponse, AiPromptUpdate
from app.api.v1.deps import get_current_user
from app.services.ai_prompt_service import AiPromptService

router = APIRouter()


@router.get("/", response_model=List[AiPromptResponse])
def get_prompts(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return AiPromptService.get_prompts(db, current_user.id)


@router.post("/", response_model=AiPromptResponse, status_code=status.HTTP_201_CREATED)
def create_prompt(
    payload: AiPromptCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return AiPromptService.create_prompt(db, payload.model_dump(), current_user)


@router.get("/{prompt_id}", response_model=AiPromptResponse)
def get_prompt(
    prompt_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return AiPromptService.get_owned_prompt(db, prompt_id, current_user)


@router.put("/{prompt_id}", response_model=AiPromptResponse)
def update_prompt(
    prompt_id: UUID,
    payload: AiPromptUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    prompt = AiPromptService.get_owned_prompt(db, prompt_id, current_user)
    return AiPromptService.update_prompt(db, prompt, payload.model_dump(exclude_unset=True))


@router.delete("/{prompt_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_prompt(
    prompt_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    prompt = AiPromptService.get_owned_prompt(db, prompt_id, current_user)
    AiPromptService.delete_prompt(db, prompt)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
