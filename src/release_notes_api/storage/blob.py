"""Blob storage for the latest-tag marker.

The cache-backed store only needs to read and write one small text
object, so the interface is get/put of text by key. A missing object is
reported as None; every other failure raises PersistenceError.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from release_notes_api.config import BlobConfig, BlobStorageProvider
from release_notes_api.errors import ConfigError, PersistenceError
from release_notes_api.logging_config import get_logger

logger = get_logger(__name__)


class BlobStorage(Protocol):
    def get_text(self, key: str) -> str | None:
        """Return the object's text, or None if it does not exist."""
        ...

    def put_text(self, key: str, text: str) -> None:
        """Create or overwrite the object."""
        ...


class LocalBlobStorage:
    """Blob storage on the local filesystem (single-node deployments)."""

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)

    def _path(self, key: str) -> Path:
        return self._root / key.lstrip("/")

    def get_text(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return path.read_text()
        except OSError as exc:
            logger.error("blob_read_failed", key=key, err=str(exc))
            raise PersistenceError(f"failed to read blob {key}: {exc}") from exc

    def put_text(self, key: str, text: str) -> None:
        path = self._path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text)
        except OSError as exc:
            logger.error("blob_write_failed", key=key, err=str(exc))
            raise PersistenceError(f"failed to write blob {key}: {exc}") from exc


class S3BlobStorage:
    """Blob storage in an S3 (or S3-compatible) bucket."""

    def __init__(self, bucket: str, client: Any) -> None:
        self._bucket = bucket
        self._client = client

    @classmethod
    def from_config(cls, config: BlobConfig) -> S3BlobStorage:
        client = boto3.client(
            "s3",
            region_name=config.s3_region,
            endpoint_url=config.s3_endpoint_url,
            aws_access_key_id=config.s3_access_key,
            aws_secret_access_key=config.s3_secret_key,
        )
        return cls(config.s3_bucket_name, client)

    def get_text(self, key: str) -> str | None:
        try:
            obj = self._client.get_object(Bucket=self._bucket, Key=key)
            return obj["Body"].read().decode("utf-8")
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") in ("NoSuchKey", "404"):
                return None
            logger.error("blob_read_failed", bucket=self._bucket, key=key, err=str(exc))
            raise PersistenceError(f"failed to read blob {key}: {exc}") from exc
        except BotoCoreError as exc:
            logger.error("blob_read_failed", bucket=self._bucket, key=key, err=str(exc))
            raise PersistenceError(f"failed to read blob {key}: {exc}") from exc

    def put_text(self, key: str, text: str) -> None:
        try:
            self._client.put_object(
                Bucket=self._bucket,
                Key=key,
                Body=text.encode("utf-8"),
                ContentType="text/plain",
            )
        except (ClientError, BotoCoreError) as exc:
            logger.error("blob_write_failed", bucket=self._bucket, key=key, err=str(exc))
            raise PersistenceError(f"failed to write blob {key}: {exc}") from exc


def build_blob_storage(config: BlobConfig) -> BlobStorage:
    if config.provider == BlobStorageProvider.S3:
        if not config.s3_bucket_name:
            raise ConfigError("blob.s3_bucket_name is required for the s3 provider")
        return S3BlobStorage.from_config(config)
    return LocalBlobStorage(config.local_dir)
