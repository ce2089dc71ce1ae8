"""
Health and readiness checks: blob storage status and service availability.

These routes read the storage service straight from ``app.state`` so a
disabled store shows up in the report instead of failing the request.
"""
from typing import Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.services.blob_storage_service import BlobStorageService
from app.services.storage_health import check_services_health, get_service_status

router = APIRouter()


def _blob_storage(request: Request) -> Optional[BlobStorageService]:
    return getattr(request.app.state, "blob_storage", None)


@router.get("/")
def service_status(request: Request):
    """
    Status of every backing service. Unintegrated services report
    ``not_implemented``.
    """
    return get_service_status(_blob_storage(request))


@router.get("/storage")
def storage_health(request: Request):
    """
    Boolean availability map; 503 when blob storage is unreachable or disabled.
    """
    health = check_services_health(_blob_storage(request), settings)
    status_code = 200 if health["blobStorage"] else 503
    return JSONResponse(
        status_code=status_code,
        content={"status": "healthy" if health["blobStorage"] else "degraded", "services": health},
    )
