# app/services/blob_storage_service.py

import re
import secrets
import time
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterator, List, Optional

from fastapi.responses import JSONResponse, StreamingResponse
from starlette.responses import Response

from app.core.logger import logger
from app.services.blob_store import (
    BlobDownload,
    BlobInfo,
    BlobNotFoundError,
    BlobStorageConfig,
    BlobStore,
    SignedUrl,
    StorageResult,
)

DEFAULT_CONTENT_TYPE = "application/octet-stream"
METADATA_KEY_MAX_LENGTH = 64

_UNSAFE_NAME_CHARS = re.compile(r"[^a-zA-Z0-9.-]")
_UNSAFE_METADATA_KEY_CHARS = re.compile(r"[^a-z0-9]")
_NON_PRINTABLE_ASCII = re.compile(r"[^\x20-\x7E]")
_BASE36_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"


class Containers:
    """Fixed container names for the different document types."""
    DOCUMENTS = "documents"
    MEDICAL_BILLS = "medical-bills"
    PROCESSED = "processed-documents"
    TEMP = "temp-uploads"

    ALL = (DOCUMENTS, MEDICAL_BILLS, PROCESSED, TEMP)


def _base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_BASE36_ALPHABET[rem])
    return "".join(reversed(digits))


def sanitize_file_name(file_name: str) -> str:
    return _UNSAFE_NAME_CHARS.sub("_", file_name)


def sanitize_metadata(metadata: Dict[str, object]) -> Dict[str, str]:
    """
    Reduce metadata to what object stores accept as header values:
    keys lowercase ``[a-z0-9]{1,64}``, values printable ASCII. Pairs that end
    up empty are dropped.
    """
    clean: Dict[str, str] = {}
    for key, value in metadata.items():
        clean_key = _UNSAFE_METADATA_KEY_CHARS.sub("", str(key).lower())[:METADATA_KEY_MAX_LENGTH]
        clean_value = _NON_PRINTABLE_ASCII.sub("", "" if value is None else str(value))
        if clean_key and clean_value:
            clean[clean_key] = clean_value
    return clean


class BlobStorageService:
    """
    Service layer for all object-store access.

    Built once at startup from a BlobStorageConfig and shared through
    ``app.state``; the actual store is any BlobStore implementation.
    """

    containers = Containers

    def __init__(self, config: BlobStorageConfig, store: Optional[BlobStore] = None):
        self.config = config
        if store is None:
            from app.services.s3_blob_store import S3BlobStore
            store = S3BlobStore(config)
        self.store = store

    @classmethod
    def from_settings(cls, settings) -> "BlobStorageService":
        return cls(settings.blob_storage_config())

    # ------------------------------------------------------------------
    # Containers
    # ------------------------------------------------------------------

    def initialize_containers(self) -> None:
        """
        Create every container in Containers.ALL when missing.
        Errors propagate: later operations assume the containers exist.
        """
        for container in Containers.ALL:
            try:
                self.store.ensure_container(container)
                logger.info(f"Container '{container}' is ready")
            except Exception as e:
                logger.error(f"Error creating container '{container}': {str(e)}")
                raise

    # ------------------------------------------------------------------
    # Naming
    # ------------------------------------------------------------------

    def generate_blob_name(self, original_file_name: str, user_id) -> str:
        """
        ``{user_id}/{unix_millis}_{base36_suffix}_{sanitized_name}``.
        Unique with overwhelming probability, not guaranteed.
        """
        timestamp = int(time.time() * 1000)
        random_suffix = _base36(secrets.randbits(52))
        return f"{user_id}/{timestamp}_{random_suffix}_{sanitize_file_name(original_file_name)}"

    def get_upload_url(self, container: str, blob_name: str) -> str:
        """Plain blob URL; uploads are handled server-side."""
        return self.store.blob_url(container, blob_name)

    # ------------------------------------------------------------------
    # Upload / download
    # ------------------------------------------------------------------

    def upload_file(
        self,
        container: str,
        blob_name: str,
        data: bytes,
        content_type: Optional[str] = None,
    ) -> None:
        """
        Store raw bytes under ``blob_name``, overwriting any existing blob.
        Errors propagate to the caller.
        """
        metadata = {"uploadedat": datetime.now(timezone.utc).isoformat()}
        self.store.put(
            container,
            blob_name,
            data,
            content_type=content_type or DEFAULT_CONTENT_TYPE,
            metadata=metadata,
        )
        logger.info(f"Blob uploaded: {container}/{blob_name} ({len(data)} bytes)")

    def download_file(
        self,
        container: str,
        blob_name: str,
        headers: Optional[Dict[str, str]] = None,
    ) -> Response:
        """
        Stream a blob to the HTTP client.

        Never raises: a missing blob becomes a 404 JSON body, any other
        failure before streaming starts becomes a 500 JSON body.
        """
        try:
            if not self.store.exists(container, blob_name):
                return JSONResponse(status_code=404, content={"error": "File not found"})

            download = self.store.open_stream(container, blob_name)
            props = download.properties
            response_headers = {
                "Content-Length": str(props.content_length or 0),
                "Cache-Control": "private, max-age=3600",
            }
            if headers:
                response_headers.update(headers)

            return StreamingResponse(
                self._iter_download(container, blob_name, download),
                media_type=props.content_type or DEFAULT_CONTENT_TYPE,
                headers=response_headers,
            )
        except BlobNotFoundError:
            return JSONResponse(status_code=404, content={"error": "File not found"})
        except Exception as e:
            logger.error(f"Error downloading file {container}/{blob_name}: {str(e)}")
            return JSONResponse(status_code=500, content={"error": "Failed to download file"})

    @staticmethod
    def _iter_download(container: str, blob_name: str, download: BlobDownload) -> Iterator[bytes]:
        try:
            for chunk in download.chunks:
                yield chunk
        except Exception as e:
            # Headers are already sent; the client sees a truncated body
            logger.error(f"Stream interrupted for {container}/{blob_name}: {str(e)}")
            raise
        finally:
            download.close()

    def read_file(self, container: str, blob_name: str) -> StorageResult[bytes]:
        """Whole blob as bytes (used for text extraction)."""
        try:
            download = self.store.open_stream(container, blob_name)
            try:
                data = b"".join(download.chunks)
            finally:
                download.close()
            return StorageResult.success(data)
        except Exception as e:
            logger.error(f"Error reading file {container}/{blob_name}: {str(e)}")
            return StorageResult.failure(e)

    # ------------------------------------------------------------------
    # Delete / copy / list
    # ------------------------------------------------------------------

    def delete_file(self, container: str, blob_name: str) -> StorageResult[bool]:
        """Idempotent: deleting a missing blob succeeds."""
        try:
            self.store.delete(container, blob_name)
            logger.info(f"Blob deleted: {container}/{blob_name}")
            return StorageResult.success(True)
        except Exception as e:
            logger.error(f"Error deleting file {container}/{blob_name}: {str(e)}")
            return StorageResult.failure(e)

    def copy_blob(
        self,
        source_container: str,
        source_blob_name: str,
        target_container: str,
        target_blob_name: str,
        delete_source: bool = False,
    ) -> StorageResult[bool]:
        """
        Server-side copy. With ``delete_source`` the source is removed only
        after the copy reports success. ``value`` is whether the copy succeeded.
        """
        try:
            copy_status = self.store.copy(
                source_container,
                source_blob_name,
                target_container,
                target_blob_name,
            )
        except Exception as e:
            logger.error(
                f"Error copying blob {source_container}/{source_blob_name} -> "
                f"{target_container}/{target_blob_name}: {str(e)}"
            )
            return StorageResult.failure(e)

        copied = copy_status == "success"
        if not copied:
            logger.warning(
                f"Copy of {source_container}/{source_blob_name} reported status '{copy_status}'; source kept"
            )
            return StorageResult.success(False)

        if delete_source:
            try:
                self.store.delete(source_container, source_blob_name)
            except Exception as e:
                logger.error(
                    f"Copied to {target_container}/{target_blob_name} but failed to delete "
                    f"source {source_container}/{source_blob_name}: {str(e)}"
                )
                return StorageResult.failure(e)

        return StorageResult.success(True)

    def list_files(self, container: str, prefix: Optional[str] = None) -> StorageResult[List[BlobInfo]]:
        """``ok=True, value=[]`` means empty; ``ok=False`` means the listing failed."""
        try:
            return StorageResult.success(self.store.list(container, prefix=prefix))
        except Exception as e:
            logger.error(f"Error listing files in '{container}': {str(e)}")
            return StorageResult.failure(e)

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    def get_blob_metadata(self, container: str, blob_name: str) -> StorageResult[Dict[str, str]]:
        try:
            return StorageResult.success(self.store.get_metadata(container, blob_name))
        except Exception as e:
            logger.error(f"Error getting blob metadata for {container}/{blob_name}: {str(e)}")
            return StorageResult.failure(e)

    def set_blob_metadata(
        self,
        container: str,
        blob_name: str,
        metadata: Dict[str, object],
    ) -> StorageResult[bool]:
        clean = sanitize_metadata(metadata)
        if not clean:
            logger.info("No valid metadata to set")
            return StorageResult.success(True)

        try:
            self.store.set_metadata(container, blob_name, clean)
            return StorageResult.success(True)
        except Exception as e:
            logger.error(f"Error setting blob metadata for {container}/{blob_name}: {str(e)}")
            return StorageResult.failure(e)

    # ------------------------------------------------------------------
    # Signed URLs
    # ------------------------------------------------------------------

    def generate_blob_sas_url(
        self,
        container: str,
        blob_name: str,
        expiry_hours: float = 2,
    ) -> SignedUrl:
        """
        Read-only URL valid for ``expiry_hours`` for third-party access.

        Without signing credentials, or when signing fails, the plain blob
        URL comes back with ``signed=False``; treat it as degraded.
        """
        if not self.store.can_sign:
            logger.warning(
                f"Cannot sign URL for {container}/{blob_name}: missing storage account credentials"
            )
            return SignedUrl(url=self.store.blob_url(container, blob_name), expires_at=None, signed=False)

        try:
            expires_at = datetime.now(timezone.utc) + timedelta(hours=expiry_hours)
            url = self.store.sign_read_url(
                container,
                blob_name,
                expires_in_seconds=int(expiry_hours * 3600),
            )
            logger.info(f"Generated signed URL for {container}/{blob_name} (expires in {expiry_hours}h)")
            return SignedUrl(url=url, expires_at=expires_at, signed=True)
        except Exception as e:
            logger.error(f"Error generating signed URL for {container}/{blob_name}: {str(e)}")
            return SignedUrl(url=self.store.blob_url(container, blob_name), expires_at=None, signed=False)
