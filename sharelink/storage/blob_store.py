"""
Blob storage abstraction for uploaded files.

file:// stores uploads on local disk and serves them through the API's
static mount; s3:// stores them in an S3-compatible bucket.

Design principle: treat storage as a URI, not a boolean.
"""

from __future__ import annotations

import asyncio
import os
import secrets
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional
from urllib.parse import quote, unquote, urlparse

import structlog

logger = structlog.get_logger()


class BlobStorageError(Exception):
    """Raised when the blob store fails to read or delete content."""


class BlobNotFoundError(BlobStorageError):
    """Raised when no blob exists for a reference."""


@dataclass(frozen=True)
class StoreResult:
    """Outcome of a store call: a reference on success, the cause otherwise."""

    ok: bool
    ref: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def success(cls, ref: str) -> "StoreResult":
        return cls(ok=True, ref=ref)

    @classmethod
    def failure(cls, error: str) -> "StoreResult":
        return cls(ok=False, error=error)


def make_blob_name(filename: Optional[str]) -> str:
    """Unique stored name that keeps the upload's extension."""
    suffix = Path(filename or "").suffix.lower()
    return f"{int(time.time() * 1000)}-{secrets.token_hex(4)}{suffix}"


class BlobStore(ABC):
    """Abstract base class for blob storage."""

    async def store(
        self, filename: Optional[str], data: bytes, content_type: Optional[str] = None
    ) -> StoreResult:
        """Store bytes and return a retrievable reference.

        Storage errors are reported in the result, never raised.
        """
        name = make_blob_name(filename)
        try:
            ref = await asyncio.to_thread(self._write, name, data, content_type)
        except Exception as e:
            logger.error("Blob store write failed", blob_name=name, error=str(e))
            return StoreResult.failure(str(e))
        logger.info("Blob stored", blob_ref=ref, size=len(data))
        return StoreResult.success(ref)

    async def read_text(self, ref: str) -> str:
        """Return the blob's content decoded as UTF-8.

        Raises:
            BlobNotFoundError: If no blob exists for ``ref``
            BlobStorageError: If the blob store fails
        """
        data = await asyncio.to_thread(self._read, ref)
        return data.decode("utf-8", errors="replace")

    async def delete(self, ref: str) -> bool:
        """Delete a blob.

        Returns:
            True when the blob was removed, False when it was already absent

        Raises:
            BlobStorageError: If the blob store fails for another reason, or
                ``ref`` does not belong to this store
        """
        removed = await asyncio.to_thread(self._delete, ref)
        logger.info("Blob deleted", blob_ref=ref, removed=removed)
        return removed

    @abstractmethod
    def owns(self, ref: str) -> bool:
        """Whether ``ref`` points into this store."""
        pass

    @abstractmethod
    def _write(self, name: str, data: bytes, content_type: Optional[str]) -> str:
        pass

    @abstractmethod
    def _read(self, ref: str) -> bytes:
        pass

    @abstractmethod
    def _delete(self, ref: str) -> bool:
        pass


class LocalBlobStore(BlobStore):
    """Local filesystem blob store (file:// URIs).

    Blobs live directly under ``root``; references are URL paths
    (``/uploads/<name>``) resolved by the static files mount.
    """

    def __init__(self, root: Path, url_prefix: str = "/uploads"):
        self.root = Path(root)
        self.url_prefix = "/" + url_prefix.strip("/")

    def owns(self, ref: str) -> bool:
        return isinstance(ref, str) and ref.startswith(self.url_prefix + "/")

    def path_for(self, ref: str) -> Path:
        """Map a reference back to its file, refusing paths outside the root."""
        if not self.owns(ref):
            raise BlobNotFoundError(f"Reference not managed by this store: {ref}")
        name = unquote(ref[len(self.url_prefix) + 1 :])
        if not name or "/" in name or "\\" in name or name in (".", ".."):
            raise BlobNotFoundError(f"Invalid blob reference: {ref}")
        return self.root / name

    def _write(self, name: str, data: bytes, content_type: Optional[str]) -> str:
        self.root.mkdir(parents=True, exist_ok=True)
        (self.root / name).write_bytes(data)
        return f"{self.url_prefix}/{quote(name)}"

    def _read(self, ref: str) -> bytes:
        path = self.path_for(ref)
        try:
            return path.read_bytes()
        except FileNotFoundError as e:
            raise BlobNotFoundError(f"Blob not found: {ref}") from e
        except OSError as e:
            raise BlobStorageError(f"Failed to read blob {ref}: {e}") from e

    def _delete(self, ref: str) -> bool:
        # A ref this store cannot map is a failure, not an absent blob.
        try:
            path = self.path_for(ref)
        except BlobNotFoundError as e:
            raise BlobStorageError(f"Cannot delete blob {ref}: {e}") from e
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise BlobStorageError(f"Failed to delete blob {ref}: {e}") from e
        return True


class S3BlobStore(BlobStore):
    """S3-compatible object storage blob store (s3:// URIs).

    References are public object URLs; ``public_base_url`` overrides the
    default virtual-hosted AWS endpoint (for MinIO, CDNs).
    """

    def __init__(
        self,
        bucket: str,
        prefix: str = "",
        client: Any = None,
        public_base_url: Optional[str] = None,
    ):
        if client is None:
            import boto3

            client = boto3.client("s3")
        self.bucket = bucket
        self.prefix = prefix.strip("/")
        self.client = client
        self.public_base_url = (
            public_base_url or f"https://{bucket}.s3.amazonaws.com"
        ).rstrip("/")

    def _key(self, name: str) -> str:
        return f"{self.prefix}/{name}" if self.prefix else name

    def owns(self, ref: str) -> bool:
        return isinstance(ref, str) and ref.startswith(self.public_base_url + "/")

    def key_for(self, ref: str) -> str:
        if not self.owns(ref):
            raise BlobNotFoundError(f"Reference not managed by this store: {ref}")
        return unquote(ref[len(self.public_base_url) + 1 :])

    def _write(self, name: str, data: bytes, content_type: Optional[str]) -> str:
        key = self._key(name)
        extra = {"ContentType": content_type} if content_type else {}
        self.client.put_object(Bucket=self.bucket, Key=key, Body=data, **extra)
        return f"{self.public_base_url}/{quote(key)}"

    def _read(self, ref: str) -> bytes:
        from botocore.exceptions import BotoCoreError, ClientError

        key = self.key_for(ref)
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=key)
            return response["Body"].read()
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in ("NoSuchKey", "404"):
                raise BlobNotFoundError(f"Blob not found: {ref}") from e
            raise BlobStorageError(f"Failed to read blob {ref}: {e}") from e
        except BotoCoreError as e:
            raise BlobStorageError(f"Failed to read blob {ref}: {e}") from e

    def _delete(self, ref: str) -> bool:
        from botocore.exceptions import BotoCoreError, ClientError

        try:
            key = self.key_for(ref)
        except BlobNotFoundError as e:
            raise BlobStorageError(f"Cannot delete blob {ref}: {e}") from e
        try:
            self.client.head_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in ("NoSuchKey", "404"):
                return False
            raise BlobStorageError(f"Failed to delete blob {ref}: {e}") from e
        except BotoCoreError as e:
            raise BlobStorageError(f"Failed to delete blob {ref}: {e}") from e

        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as e:
            raise BlobStorageError(f"Failed to delete blob {ref}: {e}") from e
        return True


def create_blob_store(
    uri: str,
    *,
    url_prefix: str = "/uploads",
    s3_client: Any = None,
    s3_endpoint_url: Optional[str] = None,
    s3_region: Optional[str] = None,
    s3_public_base_url: Optional[str] = None,
) -> BlobStore:
    """Factory function to create the appropriate BlobStore from a URI.

    Args:
        uri: Storage URI (e.g., "file://./uploads", "file:///srv/uploads" or
            "s3://bucket/prefix")
        url_prefix: URL path the local store's files are served under
        s3_client: Preconfigured boto3 S3 client (tests, custom sessions)

    Raises:
        ValueError: If the URI scheme is not supported
    """
    parsed = urlparse(uri)

    if parsed.scheme == "file":
        # file://./uploads keeps "." in netloc; file:///srv/uploads has none
        raw_path = f"{parsed.netloc}{parsed.path}" if parsed.netloc else parsed.path
        return LocalBlobStore(Path(os.path.expanduser(raw_path)), url_prefix=url_prefix)

    elif parsed.scheme == "s3":
        if not parsed.netloc:
            raise ValueError(f"S3 storage URI is missing a bucket: {uri}")
        if s3_client is None:
            import boto3

            s3_client = boto3.client(
                "s3", endpoint_url=s3_endpoint_url, region_name=s3_region
            )
        return S3BlobStore(
            bucket=parsed.netloc,
            prefix=parsed.path,
            client=s3_client,
            public_base_url=s3_public_base_url,
        )

    else:
        raise ValueError(
            f"Unsupported storage scheme: {parsed.scheme}. Supported: file://, s3://"
        )
