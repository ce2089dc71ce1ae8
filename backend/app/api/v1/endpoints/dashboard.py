"""
Dashboard statistics endpoints for webapp
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.db.database import get_db
from app.db.models import User
from app.db import schemas
from app.api.v1.deps import get_current_user
from app.services.dashboard_service import DashboardService

router = APIRouter()


@router.get("/stats", response_model=schemas.DashboardStats)
def get_dashboard_stats(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Active cases, pending bill total and AI processing counters
    """
    return DashboardService.get_stats(db, current_user)
