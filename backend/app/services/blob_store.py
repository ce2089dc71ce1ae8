# app/services/blob_store.py
"""
Storage port used by BlobStorageService.

The service only talks to a BlobStore, so the backing object store can be
swapped (S3, MinIO, an in-memory fake in tests) without touching callers.
"""
from __future__ import annotations

import abc
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Generic, Iterator, List, Optional, TypeVar

T = TypeVar("T")


# ============================================================================
# Errors
# ============================================================================

class StorageError(Exception):
    """Base class for object-store failures."""


class StorageConfigurationError(StorageError):
    """Credentials or connection settings are missing or malformed."""


class BlobNotFoundError(StorageError):
    """The requested container/blob does not exist."""

    def __init__(self, container: str, blob_name: str):
        super().__init__(f"Blob '{container}/{blob_name}' not found")
        self.container = container
        self.blob_name = blob_name


# ============================================================================
# Result type
# ============================================================================

@dataclass(frozen=True)
class StorageResult(Generic[T]):
    """
    Tagged success/failure of a storage call.

    ``ok`` separates "the call failed" from "the call returned nothing":
    an empty listing is ``ok=True, value=[]`` while a backend error is
    ``ok=False, error=<exception>``.
    """
    ok: bool
    value: Optional[T] = None
    error: Optional[BaseException] = None

    @classmethod
    def success(cls, value: T) -> "StorageResult[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: BaseException) -> "StorageResult[T]":
        return cls(ok=False, error=error)

    def unwrap(self) -> T:
        if not self.ok:
            raise self.error if self.error is not None else StorageError("storage call failed")
        return self.value

    def unwrap_or(self, default: T) -> T:
        return self.value if self.ok else default

    @property
    def error_message(self) -> Optional[str]:
        return str(self.error) if self.error is not None else None

    def __bool__(self) -> bool:
        return self.ok


# ============================================================================
# Value types
# ============================================================================

@dataclass(frozen=True)
class BlobInfo:
    name: str
    size: int
    last_modified: datetime
    content_type: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "size": self.size,
            "last_modified": self.last_modified.isoformat(),
            "content_type": self.content_type,
        }


@dataclass(frozen=True)
class BlobProperties:
    content_type: str
    content_length: int
    metadata: Dict[str, str] = field(default_factory=dict)
    last_modified: Optional[datetime] = None


@dataclass(frozen=True)
class SignedUrl:
    """
    A read URL for one blob. ``signed=False`` means the plain object URL was
    returned because no signing credentials were available; third parties
    will most likely not be able to fetch it.
    """
    url: str
    expires_at: Optional[datetime]
    signed: bool


@dataclass(frozen=True)
class BlobDownload:
    properties: BlobProperties
    chunks: Iterator[bytes]
    close: Callable[[], None] = lambda: None


# ============================================================================
# Configuration
# ============================================================================

_CONNECTION_STRING_KEYS = {
    "accountname": "account_name",
    "accountkey": "account_key",
    "endpointurl": "endpoint_url",
    "endpoint": "endpoint_url",
    "region": "region",
}


@dataclass(frozen=True)
class BlobStorageConfig:
    """
    Explicit storage configuration, built once at startup from Settings.

    ``account_name``/``account_key`` double as the signing credentials; with a
    connection string that carries no key the store is used anonymously and
    signed URLs degrade to plain ones.
    """
    account_name: Optional[str]
    account_key: Optional[str]
    region: str = "us-east-1"
    endpoint_url: Optional[str] = None
    container_prefix: str = ""
    from_connection_string_mode: bool = False

    @property
    def has_signing_credentials(self) -> bool:
        return bool(self.account_name and self.account_key)

    @classmethod
    def from_account_key(
        cls,
        account_name: str,
        account_key: str,
        region: str = "us-east-1",
        endpoint_url: Optional[str] = None,
        container_prefix: str = "",
    ) -> "BlobStorageConfig":
        if not account_name or not account_key:
            raise StorageConfigurationError(
                "Storage configuration missing. Set either STORAGE_CONNECTION_STRING "
                "or both STORAGE_ACCOUNT_NAME and STORAGE_ACCOUNT_KEY environment variables."
            )
        return cls(
            account_name=account_name,
            account_key=account_key,
            region=region,
            endpoint_url=endpoint_url,
            container_prefix=container_prefix,
        )

    @classmethod
    def from_connection_string(
        cls,
        connection_string: str,
        default_region: str = "us-east-1",
        container_prefix: str = "",
    ) -> "BlobStorageConfig":
        """
        Parse ``AccountName=..;AccountKey=..;EndpointUrl=..;Region=..``.
        Keys are case-insensitive, unknown keys are ignored.
        """
        values: Dict[str, str] = {}
        for part in connection_string.split(";"):
            part = part.strip()
            if not part:
                continue
            if "=" not in part:
                raise StorageConfigurationError(
                    f"Malformed storage connection string segment: '{part[:20]}'"
                )
            key, value = part.split("=", 1)
            target = _CONNECTION_STRING_KEYS.get(key.strip().lower())
            if target:
                values[target] = value.strip()

        if not values.get("account_name") and not values.get("endpoint_url"):
            raise StorageConfigurationError(
                "Storage connection string must contain AccountName or EndpointUrl"
            )

        return cls(
            account_name=values.get("account_name") or None,
            account_key=values.get("account_key") or None,
            region=values.get("region") or default_region,
            endpoint_url=values.get("endpoint_url") or None,
            container_prefix=container_prefix,
            from_connection_string_mode=True,
        )


# ============================================================================
# Port
# ============================================================================

class BlobStore(abc.ABC):
    """Minimal object-store interface: put/get/delete/list/sign/copy."""

    @abc.abstractmethod
    def ensure_container(self, container: str) -> None:
        """Create the container when missing. Idempotent."""

    @abc.abstractmethod
    def list_containers(self) -> List[str]:
        ...

    @abc.abstractmethod
    def put(
        self,
        container: str,
        blob_name: str,
        data: bytes,
        content_type: str,
        metadata: Dict[str, str],
    ) -> None:
        """Store ``data``; an existing blob under the same key is overwritten."""

    @abc.abstractmethod
    def exists(self, container: str, blob_name: str) -> bool:
        ...

    @abc.abstractmethod
    def get_properties(self, container: str, blob_name: str) -> BlobProperties:
        """Raises BlobNotFoundError when absent."""

    @abc.abstractmethod
    def open_stream(self, container: str, blob_name: str, chunk_size: int = 64 * 1024) -> BlobDownload:
        """Raises BlobNotFoundError when absent."""

    @abc.abstractmethod
    def delete(self, container: str, blob_name: str) -> None:
        """Delete if present; absent blobs are not an error."""

    @abc.abstractmethod
    def list(self, container: str, prefix: Optional[str] = None) -> List[BlobInfo]:
        ...

    @abc.abstractmethod
    def set_metadata(self, container: str, blob_name: str, metadata: Dict[str, str]) -> None:
        """Replace user metadata on an existing blob."""

    @abc.abstractmethod
    def copy(
        self,
        source_container: str,
        source_blob: str,
        target_container: str,
        target_blob: str,
    ) -> str:
        """Server-side copy. Returns the copy status, ``"success"`` when complete."""

    @abc.abstractmethod
    def blob_url(self, container: str, blob_name: str) -> str:
        """Plain, unsigned URL of a blob."""

    @abc.abstractmethod
    def sign_read_url(self, container: str, blob_name: str, expires_in_seconds: int) -> str:
        """Read-only time-limited URL. Only valid when ``can_sign`` is true."""

    @property
    @abc.abstractmethod
    def can_sign(self) -> bool:
        ...

    def get_metadata(self, container: str, blob_name: str) -> Dict[str, str]:
        return dict(self.get_properties(container, blob_name).metadata)
