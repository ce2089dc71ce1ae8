"""
Main API router aggregator
"""
from fastapi import APIRouter

from app.api.v1.endpoints import (
    auth,
    user,
    cases,
    documents,
    bills,
    chat,
    demand_letters,
    ai_prompts,
    dashboard,
    health,
)

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(user.router, prefix="/user", tags=["User"])
api_router.include_router(cases.router, prefix="/cases", tags=["Cases"])
api_router.include_router(documents.router, prefix="/documents", tags=["Documents"])
api_router.include_router(bills.router, prefix="/bills", tags=["Medical Bills"])
api_router.include_router(chat.router, prefix="/chat", tags=["AI Chat"])
api_router.include_router(demand_letters.router, prefix="/demand-letters", tags=["Demand Letters"])
api_router.include_router(ai_prompts.router, prefix="/ai-prompts", tags=["AI Prompts"])
api_router.include_router(dashboard.router, prefix="/dashboard", tags=["Dashboard"])
api_router.include_router(health.router, prefix="/health", tags=["Health"])
