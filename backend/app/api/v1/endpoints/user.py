from __future__ import annotations

from typing import Any, Dict, Tuple

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.api.v1.deps import get_current_user
from app.api.v1.endpoints.auth import user_response
from app.core.config import settings
from app.core.logger import logger
from app.db.database import get_db
from app.db.models import User
from app.db import schemas
from app.services.ai_service import create_ai_service
from app.services.user_service import UserService
from app.utils.exceptions import AIServiceError

router = APIRouter()


@router.get("/profile", response_model=schemas.UserResponse)
def get_profile(current_user: User = Depends(get_current_user)):
    return user_response(current_user)


@router.put("/profile", response_model=schemas.UserResponse)
def update_profile(
    payload: schemas.UserProfileUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    body = payload.model_dump(exclude_unset=True)

    if body.get("email"):
        body["email"] = body["email"].strip().lower()
        existing = UserService.get_user_by_email(db, body["email"])
        if existing and existing.id != current_user.id:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already in use")

    user = UserService.update_user(db, current_user, body)
    return user_response(user)


@router.put("/password")
def change_password(
    payload: schemas.PasswordChange,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Dict[str, Any]:
    if not UserService.change_password(db, current_user, payload.current_password, payload.new_password):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Current password is incorrect")
    return {"message": "Password updated successfully"}


@router.put("/api-key")
def update_api_key(
    payload: schemas.ApiKeyUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Dict[str, Any]:
    user = UserService.set_api_key(db, current_user, payload.api_key)
    return {"message": "API key updated successfully", "has_openai_api_key": bool(user.openai_api_key)}


@router.put("/ai-config", response_model=schemas.UserResponse)
def update_ai_config(
    payload: schemas.AIConfigUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    config = payload.model_dump(exclude_unset=True)

    if config.get("use_azure_openai"):
        missing = [
            field for field in ("azure_openai_endpoint", "azure_openai_api_key", "azure_model_deployment")
            if not (config.get(field) or getattr(current_user, field))
        ]
        if missing:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Azure OpenAI requires: {', '.join(missing)}",
            )
        if not config.get("azure_openai_version"):
            config["azure_openai_version"] = (
                current_user.azure_openai_version or settings.AZURE_OPENAI_DEFAULT_API_VERSION
            )

    user = UserService.set_ai_config(db, current_user, config)
    return user_response(user)


# ============================================================================
# Azure OpenAI connectivity check
# ============================================================================

AZURE_TEST_MESSAGE = "Say 'Azure API test successful' if you can read this message."

AZURE_REQUIRED_FIELDS = {
    "azure_openai_endpoint": "Azure Endpoint",
    "azure_openai_api_key": "Azure API Key",
    "azure_model_deployment": "Model Deployment Name",
}

# Provider HTTP status -> (error code, message shown to the user)
AZURE_FAILURES = {
    401: ("AUTH_ERROR", "Invalid Azure OpenAI API key or authentication failed"),
    403: ("PERMISSION_ERROR", "Access forbidden. Check API key permissions and deployment access."),
    404: ("ENDPOINT_ERROR", "Azure OpenAI endpoint or model deployment not found. Please check your configuration."),
    429: ("QUOTA_ERROR", "Azure OpenAI API quota exceeded or rate limited"),
}


def classify_azure_failure(error: AIServiceError) -> Tuple[str, str]:
    if error.upstream_status in AZURE_FAILURES:
        return AZURE_FAILURES[error.upstream_status]
    detail = str(error.detail).lower()
    if "quota" in detail or "rate" in detail:
        return AZURE_FAILURES[429]
    return "UNKNOWN_ERROR", "Azure OpenAI API test failed"


@router.post("/ai-config/test")
def test_azure_config(current_user: User = Depends(get_current_user)):
    """
    Send one chat message through the user's Azure OpenAI deployment.

    400 when Azure is disabled or incomplete; 502 with an error code
    (AUTH/PERMISSION/ENDPOINT/QUOTA/UNKNOWN) when the call fails.
    """
    if not current_user.use_azure_openai:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "message": "Azure OpenAI is not enabled. Please enable it in settings first.",
                "configured": False,
            },
        )

    missing = [label for field, label in AZURE_REQUIRED_FIELDS.items() if not getattr(current_user, field)]
    if missing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "message": f"Missing required Azure configuration: {', '.join(missing)}",
                "configured": False,
                "missing_fields": missing,
            },
        )

    configuration = {
        "endpoint": current_user.azure_openai_endpoint,
        "model_deployment": current_user.azure_model_deployment,
        "api_version": current_user.azure_openai_version or settings.AZURE_OPENAI_DEFAULT_API_VERSION,
    }

    ai = create_ai_service(current_user)
    try:
        reply = ai.chat_completion([{"role": "user", "content": AZURE_TEST_MESSAGE}])
    except AIServiceError as e:
        error_code, message = classify_azure_failure(e)
        logger.warning(f"Azure OpenAI test failed for user {current_user.id}: {error_code} {e.detail}")
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={
                "message": message,
                "configured": True,
                "working": False,
                "error_code": error_code,
                "error_details": str(e.detail),
                "configuration": configuration,
            },
        )

    return {
        "message": "Azure OpenAI API is working correctly",
        "configured": True,
        "working": True,
        "test_response": reply,
        "configuration": configuration,
    }
