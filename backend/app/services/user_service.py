# app/services/user_service.py

from sqlalchemy.orm import Session
from typing import Optional, Dict, Any
from datetime import datetime
from uuid import UUID

from app.core.logger import logger
from app.core.security import get_password_hash, verify_password
from app.db.models import User


class UserService:
    """
    Users, credentials and per-user AI provider settings.
    """

    @staticmethod
    def get_user(db: Session, user_id: UUID) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def get_user_by_username(db: Session, username: str) -> Optional[User]:
        return db.query(User).filter(User.username == username).first()

    @staticmethod
    def get_user_by_email(db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(User.email == email).first()

    @staticmethod
    def create_user(db: Session, username: str, password: str, **profile) -> User:
        try:
            user = User(
                username=username,
                password_hash=get_password_hash(password),
                is_active=True,
                **profile,
            )
            db.add(user)
            db.commit()
            db.refresh(user)
        except Exception as e:
            db.rollback()
            logger.error(f"Failed to create user: {str(e)}")
            raise

        logger.info(f"User registered: {user.username}")
        return user

    @staticmethod
    def authenticate(db: Session, username: str, password: str) -> Optional[User]:
        user = UserService.get_user_by_username(db, username)
        if not user or not verify_password(password, user.password_hash):
            return None
        return user

    @staticmethod
    def update_user(db: Session, user: User, update_data: Dict[str, Any]) -> User:
        try:
            for key, value in update_data.items():
                if hasattr(user, key):
                    setattr(user, key, value)
            user.updated_at = datetime.utcnow()
            db.commit()
            db.refresh(user)
            return user
        except Exception as e:
            db.rollback()
            logger.error(f"Failed to update user {user.id}: {str(e)}")
            raise

    @staticmethod
    def change_password(db: Session, user: User, current_password: str, new_password: str) -> bool:
        """
        False when ``current_password`` does not match; nothing is changed.
        """
        if not verify_password(current_password, user.password_hash):
            return False
        UserService.update_user(db, user, {"password_hash": get_password_hash(new_password)})
        logger.info(f"Password changed for user {user.username}")
        return True

    @staticmethod
    def set_api_key(db: Session, user: User, api_key: str) -> User:
        return UserService.update_user(db, user, {"openai_api_key": api_key.strip() or None})

    @staticmethod
    def set_ai_config(db: Session, user: User, config: Dict[str, Any]) -> User:
        return UserService.update_user(db, user, config)
