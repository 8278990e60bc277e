"""
Blob storage for uploaded files.
"""

from .blob_store import (
    BlobNotFoundError,
    BlobStorageError,
    BlobStore,
    LocalBlobStore,
    S3BlobStore,
    StoreResult,
    create_blob_store,
)

__all__ = [
    "BlobNotFoundError",
    "BlobStorageError",
    "BlobStore",
    "LocalBlobStore",
    "S3BlobStore",
    "StoreResult",
    "create_blob_store",
]
