# app/services/s3_blob_store.py

import boto3
from botocore import UNSIGNED
from botocore.config import Config
from botocore.exceptions import ClientError
from typing import Dict, List, Optional
from urllib.parse import quote

from app.core.logger import logger
from app.services.blob_store import (
    BlobDownload,
    BlobInfo,
    BlobNotFoundError,
    BlobProperties,
    BlobStorageConfig,
    BlobStore,
)

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NoSuchBucket", "NotFound"}


def _error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", ""))


class S3BlobStore(BlobStore):
    """
    BlobStore backed by S3 (or any S3-compatible endpoint such as MinIO).

    Containers are buckets named ``{container_prefix}{container}``.
    """

    def __init__(self, config: BlobStorageConfig, client=None):
        self.config = config
        if client is not None:
            self.s3_client = client
        else:
            kwargs = {"region_name": config.region}
            if config.endpoint_url:
                kwargs["endpoint_url"] = config.endpoint_url
            if config.has_signing_credentials:
                kwargs["aws_access_key_id"] = config.account_name
                kwargs["aws_secret_access_key"] = config.account_key
                # Presign with SigV4
                kwargs["config"] = Config(signature_version="s3v4")
            else:
                kwargs["config"] = Config(signature_version=UNSIGNED)
            self.s3_client = boto3.client("s3", **kwargs)

    def _bucket(self, container: str) -> str:
        return f"{self.config.container_prefix}{container}"

    # ------------------------------------------------------------------
    # Containers
    # ------------------------------------------------------------------

    def ensure_container(self, container: str) -> None:
        bucket = self._bucket(container)
        try:
            self.s3_client.head_bucket(Bucket=bucket)
            return
        except ClientError as e:
            if _error_code(e) not in _NOT_FOUND_CODES:
                raise

        params = {"Bucket": bucket}
        if self.config.region and self.config.region != "us-east-1":
            params["CreateBucketConfiguration"] = {"LocationConstraint": self.config.region}
        try:
            self.s3_client.create_bucket(**params)
            logger.info(f"Bucket created: {bucket}")
        except ClientError as e:
            # Lost a creation race with another process
            if _error_code(e) != "BucketAlreadyOwnedByYou":
                raise

    def list_containers(self) -> List[str]:
        response = self.s3_client.list_buckets()
        prefix = self.config.container_prefix
        names = [b["Name"] for b in response.get("Buckets", [])]
        return [n[len(prefix):] for n in names if n.startswith(prefix)]

    # ------------------------------------------------------------------
    # Objects
    # ------------------------------------------------------------------

    def put(
        self,
        container: str,
        blob_name: str,
        data: bytes,
        content_type: str,
        metadata: Dict[str, str],
    ) -> None:
        self.s3_client.put_object(
            Bucket=self._bucket(container),
            Key=blob_name,
            Body=data,
            ContentType=content_type,
            Metadata=metadata,
        )

    def exists(self, container: str, blob_name: str) -> bool:
        try:
            self.s3_client.head_object(Bucket=self._bucket(container), Key=blob_name)
            return True
        except ClientError as e:
            if _error_code(e) in _NOT_FOUND_CODES:
                return False
            raise

    def get_properties(self, container: str, blob_name: str) -> BlobProperties:
        try:
            response = self.s3_client.head_object(Bucket=self._bucket(container), Key=blob_name)
        except ClientError as e:
            if _error_code(e) in _NOT_FOUND_CODES:
                raise BlobNotFoundError(container, blob_name) from e
            raise

        return BlobProperties(
            content_type=response.get("ContentType") or "application/octet-stream",
            content_length=int(response.get("ContentLength") or 0),
            metadata=dict(response.get("Metadata") or {}),
            last_modified=response.get("LastModified"),
        )

    def open_stream(self, container: str, blob_name: str, chunk_size: int = 64 * 1024) -> BlobDownload:
        try:
            response = self.s3_client.get_object(Bucket=self._bucket(container), Key=blob_name)
        except ClientError as e:
            if _error_code(e) in _NOT_FOUND_CODES:
                raise BlobNotFoundError(container, blob_name) from e
            raise

        body = response["Body"]
        properties = BlobProperties(
            content_type=response.get("ContentType") or "application/octet-stream",
            content_length=int(response.get("ContentLength") or 0),
            metadata=dict(response.get("Metadata") or {}),
            last_modified=response.get("LastModified"),
        )
        return BlobDownload(
            properties=properties,
            chunks=body.iter_chunks(chunk_size=chunk_size),
            close=body.close,
        )

    def delete(self, container: str, blob_name: str) -> None:
        # DeleteObject succeeds for missing keys
        self.s3_client.delete_object(Bucket=self._bucket(container), Key=blob_name)

    def list(self, container: str, prefix: Optional[str] = None) -> List[BlobInfo]:
        params = {"Bucket": self._bucket(container)}
        if prefix:
            params["Prefix"] = prefix

        files: List[BlobInfo] = []
        paginator = self.s3_client.get_paginator("list_objects_v2")
        for page in paginator.paginate(**params):
            for obj in page.get("Contents", []):
                files.append(
                    BlobInfo(
                        name=obj["Key"],
                        size=int(obj.get("Size") or 0),
                        last_modified=obj["LastModified"],
                        content_type=self._content_type_or_none(container, obj["Key"]),
                    )
                )
        return files

    def _content_type_or_none(self, container: str, blob_name: str) -> Optional[str]:
        # ListObjectsV2 does not return content types
        try:
            response = self.s3_client.head_object(Bucket=self._bucket(container), Key=blob_name)
            return response.get("ContentType")
        except ClientError:
            return None

    def set_metadata(self, container: str, blob_name: str, metadata: Dict[str, str]) -> None:
        bucket = self._bucket(container)
        current = self.get_properties(container, blob_name)
        # S3 metadata is immutable; replace it with an in-place copy
        self.s3_client.copy_object(
            Bucket=bucket,
            Key=blob_name,
            CopySource={"Bucket": bucket, "Key": blob_name},
            Metadata=metadata,
            ContentType=current.content_type,
            MetadataDirective="REPLACE",
        )

    def copy(
        self,
        source_container: str,
        source_blob: str,
        target_container: str,
        target_blob: str,
    ) -> str:
        response = self.s3_client.copy_object(
            Bucket=self._bucket(target_container),
            Key=target_blob,
            CopySource={"Bucket": self._bucket(source_container), "Key": source_blob},
        )
        return "success" if response.get("CopyObjectResult") else "failed"

    # ------------------------------------------------------------------
    # URLs
    # ------------------------------------------------------------------

    def blob_url(self, container: str, blob_name: str) -> str:
        bucket = self._bucket(container)
        key = quote(blob_name, safe="/")
        if self.config.endpoint_url:
            return f"{self.config.endpoint_url.rstrip('/')}/{bucket}/{key}"
        return f"https://{bucket}.s3.{self.config.region}.amazonaws.com/{key}"

    def sign_read_url(self, container: str, blob_name: str, expires_in_seconds: int) -> str:
        return self.s3_client.generate_presigned_url(
            "get_object",
            Params={"Bucket": self._bucket(container), "Key": blob_name},
            ExpiresIn=expires_in_seconds,
        )

    @property
    def can_sign(self) -> bool:
        return self.config.has_signing_credentials
