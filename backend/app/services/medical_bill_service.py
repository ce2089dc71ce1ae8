# app/services/medical_bill_service.py

from sqlalchemy.orm import Session
from typing import List, Optional, Dict, Any
from datetime import datetime
from uuid import UUID

from app.db.models import MedicalBill, User
from app.core.logger import logger


class MedicalBillService:

    @staticmethod
    def create_bill(db: Session, bill_data: Dict[str, Any], user: User) -> MedicalBill:
        try:
            bill = MedicalBill(**bill_data, created_by=user.id)
            db.add(bill)
            db.commit()
            db.refresh(bill)
        except Exception as e:
            db.rollback()
            logger.error(f"Failed to create medical bill: {str(e)}")
            raise

        logger.info(f"Medical bill created for case {bill.case_id}: {bill.amount}")
        return bill

    @staticmethod
    def get_bill_by_id(db: Session, bill_id: UUID) -> Optional[MedicalBill]:
        return db.query(MedicalBill).filter(MedicalBill.id == bill_id).first()

    @staticmethod
    def get_bills_by_case(db: Session, case_id: UUID) -> List[MedicalBill]:
        """Bills for a case, most recent service date first."""
        return db.query(MedicalBill).filter(
            MedicalBill.case_id == case_id
        ).order_by(MedicalBill.service_date.desc()).all()

    @staticmethod
    def update_bill(db: Session, bill: MedicalBill, update_data: Dict[str, Any]) -> MedicalBill:
        try:
            for key, value in update_data.items():
                if value is not None and hasattr(bill, key):
                    setattr(bill, key, value)

            bill.updated_at = datetime.utcnow()
            db.commit()
            db.refresh(bill)
            return bill
        except Exception as e:
            db.rollback()
            logger.error(f"Failed to update medical bill: {str(e)}")
            raise

    @staticmethod
    def delete_bill(db: Session, bill: MedicalBill) -> None:
        try:
            db.delete(bill)
            db.commit()
        except Exception as e:
            db.rollback()
            logger.error(f"Failed to delete medical bill: {str(e)}")
            raise
