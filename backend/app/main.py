"""
FastAPI application entry point
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.api.v1.api import api_router
from app.core.logger import logger
from app.db.database import init_db
from app.middleware.correlation import CorrelationMiddleware
from app.services.blob_storage_service import BlobStorageService
from app.services.blob_store import StorageConfigurationError
from app.services.storage_health import run_blob_storage_self_test

app = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    openapi_url="/openapi.json" if settings.DEBUG else None,
)

# ── Routers ───────────────────────────────────────────────────────────────────
app.include_router(api_router, prefix="/api/v1")

# ── Correlation ID middleware (must be added before CORS) ─────────────────────
app.add_middleware(CorrelationMiddleware)

# ── CORS ──────────────────────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Correlation-ID", "X-Tab-ID", "Content-Disposition"],
)


@app.get("/")
def read_root():
    logger.info("Root endpoint accessed")
    return {"message": f"{settings.APP_NAME} API is running", "version": "1.0.0", "docs": "/docs"}


@app.get("/health")
def health_check():
    return {"status": "healthy"}


# ── Startup / Shutdown ────────────────────────────────────────────────────────

def start_blob_storage(application: FastAPI) -> None:
    """
    Build the shared BlobStorageService and put it on ``app.state``.

    Missing credentials leave storage disabled (routes answer 503);
    container creation and self-test failures abort startup.
    """
    try:
        blob_storage = BlobStorageService.from_settings(settings)
    except StorageConfigurationError as e:
        logger.error(f"Blob storage disabled: {str(e)}")
        application.state.blob_storage = None
        return

    application.state.blob_storage = blob_storage

    if settings.STORAGE_INIT_ON_STARTUP:
        logger.info("Initializing blob storage containers...")
        blob_storage.initialize_containers()

    if settings.STORAGE_SELF_TEST_ON_STARTUP:
        run_blob_storage_self_test(blob_storage)


@app.on_event("startup")
def startup_event():
    logger.info(f"{settings.APP_NAME} API starting")
    if settings.DEBUG:
        init_db()
    start_blob_storage(app)
    logger.info(f"{settings.APP_NAME} API started")


@app.on_event("shutdown")
def shutdown_event():
    logger.info(f"{settings.APP_NAME} API shutdown")
    app.state.blob_storage = None
