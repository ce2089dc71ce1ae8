"""
Custom exception classes
"""
from typing import Optional

from fastapi import HTTPException


class CaseNotFoundError(HTTPException):
    """Raised when case doesn't exist"""
    def __init__(self, case_id: str):
        super().__init__(
            status_code=404,
            detail=f"Case {case_id} not found"
        )


class DocumentNotFoundError(HTTPException):
    """Raised when document doesn't exist"""
    def __init__(self, document_id: str):
        super().__init__(
            status_code=404,
            detail=f"Document {document_id} not found"
        )


class ResourceNotFoundError(HTTPException):
    """Raised for bills, chat sessions and prompts that don't exist"""
    def __init__(self, resource: str, resource_id: str):
        super().__init__(
            status_code=404,
            detail=f"{resource} {resource_id} not found"
        )


class UnauthorizedError(HTTPException):
    """Raised when user doesn't own resource"""
    def __init__(self):
        super().__init__(
            status_code=403,
            detail="You don't have permission to access this resource"
        )


class DuplicateCaseNumberError(HTTPException):
    """Raised when a case number is already taken"""
    def __init__(self, case_number: str):
        super().__init__(
            status_code=409,
            detail=f"Case number {case_number} already exists"
        )


class UploadFailedError(HTTPException):
    """Raised when blob upload fails"""
    def __init__(self, reason: str = "Unknown error"):
        super().__init__(
            status_code=500,
            detail=f"Upload failed: {reason}"
        )


class StorageUnavailableError(HTTPException):
    """Raised when the blob storage service was never initialized"""
    def __init__(self, reason: str = "Blob storage is not configured"):
        super().__init__(
            status_code=503,
            detail=reason
        )


class AIServiceError(HTTPException):
    """Raised when AI service fails"""
    def __init__(self, reason: str = "AI service unavailable", upstream_status: Optional[int] = None):
        super().__init__(
            status_code=503,
            detail=f"AI service error: {reason}"
        )
        # HTTP status returned by the model provider, when there was one
        self.upstream_status = upstream_status


class AIConfigurationError(HTTPException):
    """Raised when the user has no usable AI provider"""
    def __init__(self):
        super().__init__(
            status_code=400,
            detail="No AI service configuration found. Please configure OpenAI or Azure OpenAI in settings."
        )
