from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from datetime import timedelta

from app.db.database import get_db
from app.db import models, schemas
from app.core.security import create_access_token
from app.core.config import settings
from app.core.logger import logger
from app.api.v1.deps import get_current_user
from app.services.user_service import UserService

router = APIRouter()


def user_response(user: models.User) -> schemas.UserResponse:
    """Never echo stored API keys; only whether one is set."""
    response = schemas.UserResponse.model_validate(user)
    response.has_openai_api_key = bool(user.openai_api_key)
    return response


@router.post("/register", response_model=schemas.UserResponse, status_code=status.HTTP_201_CREATED)
def register(user: schemas.UserRegister, db: Session = Depends(get_db)):
    """Register new user"""
    username = user.username.strip()
    email = (user.email or "").strip().lower() or None

    if UserService.get_user_by_username(db, username):
        raise HTTPException(status_code=409, detail="Username already exists")

    if email and UserService.get_user_by_email(db, email):
        raise HTTPException(status_code=409, detail="An account with this email already exists")

    db_user = UserService.create_user(
        db,
        username=username,
        password=user.password,
        email=email,
        first_name=user.first_name,
        last_name=user.last_name,
    )
    return user_response(db_user)


@router.post("/login", response_model=schemas.TokenResponse)
def login(form_data: schemas.UserLogin, db: Session = Depends(get_db)):
    """Login endpoint"""
    user = UserService.authenticate(db, form_data.username.strip(), form_data.password)

    if not user:
        logger.warning(f"Failed login for username '{form_data.username}'")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password"
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is inactive"
        )

    access_token = create_access_token(
        data={"sub": str(user.id)},
        expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )

    return {
        "access_token": access_token,
        "token_type": "bearer",
        "user": user_response(user),
    }


@router.get("/me", response_model=schemas.UserResponse)
def get_current_user_info(
    current_user: models.User = Depends(get_current_user)
):
    """Get current user profile"""
    return user_response(current_user)


@router.post("/logout")
def logout():
    """Logout endpoint (stateless JWT - client deletes token)"""
    return {"message": "Logged out successfully"}
