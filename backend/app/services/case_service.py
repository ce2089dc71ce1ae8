# app/services/case_service.py

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from typing import List, Optional, Dict, Any, Tuple
from datetime import datetime
from uuid import UUID

from app.db.models import Case, CaseStatus, User
from app.core.logger import logger
from app.utils.exceptions import CaseNotFoundError, DuplicateCaseNumberError, UnauthorizedError


class CaseService:
    """
    Service layer for case-related business logic.
    """

    @staticmethod
    def create_case(db: Session, case_data: Dict[str, Any], user: User) -> Case:
        """
        Create a new case owned by ``user``. Case numbers are unique.
        """
        case_number = case_data["case_number"]
        if CaseService.get_case_by_number(db, case_number):
            raise DuplicateCaseNumberError(case_number)

        try:
            case = Case(**case_data, created_by=user.id)
            db.add(case)
            db.commit()
            db.refresh(case)
        except IntegrityError:
            # Lost a race against a concurrent insert of the same number
            db.rollback()
            raise DuplicateCaseNumberError(case_number)
        except Exception as e:
            db.rollback()
            logger.error(f"Failed to create case: {str(e)}")
            raise

        logger.info(f"Case created: {case.case_number}")
        return case

    @staticmethod
    def get_case_by_id(db: Session, case_id: UUID) -> Optional[Case]:
        return db.query(Case).filter(Case.id == case_id).first()

    @staticmethod
    def get_case_by_number(db: Session, case_number: str) -> Optional[Case]:
        return db.query(Case).filter(Case.case_number == case_number).first()

    @staticmethod
    def get_owned_case(db: Session, case_id: UUID, user: User) -> Case:
        """
        Fetch a case and verify the user created it.
        """
        case = CaseService.get_case_by_id(db, case_id)
        if not case:
            raise CaseNotFoundError(str(case_id))
        if case.created_by != user.id:
            raise UnauthorizedError()
        return case

    @staticmethod
    def get_cases(
        db: Session,
        user: User,
        status: Optional[CaseStatus] = None,
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 50
    ) -> Tuple[int, List[Case]]:
        """
        Cases created by the user, most recently updated first.
        Returns ``(total, page)``.
        """
        query = db.query(Case).filter(Case.created_by == user.id)

        if status:
            query = query.filter(Case.status == status)

        if search:
            pattern = f"%{search}%"
            query = query.filter(
                (Case.client_name.ilike(pattern)) | (Case.case_number.ilike(pattern))
            )

        total = query.count()
        cases = query.order_by(Case.updated_at.desc()).offset(skip).limit(limit).all()
        return total, cases

    @staticmethod
    def update_case(db: Session, case: Case, update_data: Dict[str, Any]) -> Case:
        new_number = update_data.get("case_number")
        if new_number and new_number != case.case_number:
            existing = CaseService.get_case_by_number(db, new_number)
            if existing and existing.id != case.id:
                raise DuplicateCaseNumberError(new_number)

        try:
            for key, value in update_data.items():
                if value is not None and hasattr(case, key):
                    setattr(case, key, value)

            case.updated_at = datetime.utcnow()
            db.commit()
            db.refresh(case)
        except IntegrityError:
            db.rollback()
            raise DuplicateCaseNumberError(new_number or case.case_number)
        except Exception as e:
            db.rollback()
            logger.error(f"Failed to update case: {str(e)}")
            raise

        logger.info(f"Case updated: {case.case_number}")
        return case

    @staticmethod
    def delete_case(db: Session, case: Case) -> List[Tuple[str, str]]:
        """
        Delete a case with its documents, bills, chat sessions and letters.

        Returns the ``(container, object_path)`` of every document so the
        caller can remove the blobs; blob cleanup is not transactional.
        """
        blobs = [(doc.container, doc.object_path) for doc in case.documents]
        case_number = case.case_number
        try:
            db.delete(case)
            db.commit()
        except Exception as e:
            db.rollback()
            logger.error(f"Failed to delete case {case_number}: {str(e)}")
            raise

        logger.info(f"Case deleted: {case_number} ({len(blobs)} documents)")
        return blobs
