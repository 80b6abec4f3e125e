"""
Blob storage backends for photo uploads.

Provides the abstract adapter contract and implementations for:
- Local disk storage with token-bearing URLs
- Google Cloud Storage with expiring signed URLs
"""

from .base import BlobAdapter, StorageStats, WipeResult
from .factory import StorageSettings, create_blob_adapter, get_blob_adapter, reset_blob_adapter
from .local import LocalBlobAdapter

__all__ = [
    "BlobAdapter",
    "LocalBlobAdapter",
    "StorageSettings",
    "StorageStats",
    "WipeResult",
    "create_blob_adapter",
    "get_blob_adapter",
    "reset_blob_adapter",
]
