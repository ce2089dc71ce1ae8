# app/services/dashboard_service.py

from decimal import Decimal
from typing import Dict, Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.db.models import BillStatus, Case, CaseStatus, Document, MedicalBill, User


def format_currency(amount) -> str:
    """``1234.5`` -> ``$1,234.50``"""
    return f"${Decimal(str(amount or 0)):,.2f}"


class DashboardService:

    @staticmethod
    def get_stats(db: Session, user: User) -> Dict[str, Any]:
        """
        Counters for the user's active cases: pending bill total and the
        number of AI-processed documents.
        """
        active_case_ids = select(Case.id).where(
            Case.created_by == user.id,
            Case.status == CaseStatus.active,
        )
        active_cases = db.query(func.count()).select_from(active_case_ids.subquery()).scalar()

        pending_total = db.query(func.coalesce(func.sum(MedicalBill.amount), 0)).filter(
            MedicalBill.case_id.in_(active_case_ids),
            MedicalBill.status == BillStatus.pending,
        ).scalar()

        documents_processed = db.query(Document).filter(
            Document.case_id.in_(active_case_ids),
            Document.ai_processed.is_(True),
        ).count()

        return {
            "active_cases": active_cases,
            "pending_bills": format_currency(pending_total),
            "documents_processed": documents_processed,
            # Every processed document carries one extraction
            "ai_extractions": documents_processed,
        }
