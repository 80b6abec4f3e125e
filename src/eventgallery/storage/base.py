"""Abstract base class for blob storage backends."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from ..errors import StorageError
from ..logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class WipeResult:
    """Per-item outcome of deleting every stored object."""

    deleted: int
    failed: int
    total: int

    def to_dict(self) -> dict[str, int]:
        return {"deleted": self.deleted, "failed": self.failed, "total": self.total}


@dataclass
class StorageStats:
    """Aggregate usage of a backend."""

    file_count: int
    total_size: int
    location: str

    @property
    def total_size_mb(self) -> float:
        return round(self.total_size / (1024 * 1024), 2)

    def to_dict(self) -> dict[str, Any]:
        return {
            "fileCount": self.file_count,
            "totalSize": self.total_size,
            "totalSizeMB": self.total_size_mb,
            "location": self.location,
        }


class BlobAdapter(ABC):
    """
    Common contract for photo blob storage.

    Implementations hide addressing and access control of the backend. The
    rest of the application only sees keys and URLs; whether a URL expires is
    exposed through ``urls_expire`` instead of being inferred from its shape.
    """

    @property
    @abstractmethod
    def backend_name(self) -> str:
        """Return the name of this backend (e.g., 'local', 'gcs')."""

    @property
    @abstractmethod
    def urls_expire(self) -> bool:
        """Whether URLs returned by this backend stop working after a while."""

    @property
    @abstractmethod
    def location(self) -> str:
        """Human-readable location of the stored objects."""

    @abstractmethod
    async def save_file(self, data: bytes, desired_key: str, metadata: dict[str, Any] | None = None) -> str:
        """
        Persist ``data`` and return a URL for retrieving it.

        Args:
            data: Full content of the object
            desired_key: Storage key; the stored key is derived from it
            metadata: Advisory metadata (``mimetype``, ``originalName``, ...)

        Returns:
            Retrieval URL

        Raises:
            StorageWriteError: On any I/O or permission failure
        """

    @abstractmethod
    async def delete_file(self, key: str) -> bool:
        """
        Remove an object.

        Returns:
            True if deleted, False if the object was already absent

        Raises:
            StorageDeleteError: On a genuine backend fault
        """

    @abstractmethod
    async def file_exists(self, key: str) -> bool:
        """
        Check whether an object exists.

        Backend faults are logged and reported as False; this is advisory only.
        """

    @abstractmethod
    async def list_files(self, prefix: str = "") -> list[str]:
        """List stored keys starting with ``prefix``."""

    @abstractmethod
    async def get_signed_url(self, key: str, expires_in_minutes: int | None = None) -> str:
        """Return a retrieval URL for an existing object."""

    @abstractmethod
    async def get_stats(self) -> StorageStats:
        """Sum per-object sizes. Potentially expensive; not for hot paths."""

    async def delete_all_files(self) -> WipeResult:
        """
        Delete every stored object, one at a time.

        Individual failures are counted rather than raised so one stuck object
        does not block cleanup of the rest.
        """
        keys = await self.list_files()
        logger.warning("deleting_all_files", backend=self.backend_name, count=len(keys))

        deleted = 0
        failed = 0
        for key in keys:
            try:
                await self.delete_file(key)
                deleted += 1
            except StorageError as e:
                logger.error("bulk_delete_item_failed", backend=self.backend_name, key=key, error=str(e))
                failed += 1

        logger.info("delete_all_files_completed", backend=self.backend_name, deleted=deleted, failed=failed)
        return WipeResult(deleted=deleted, failed=failed, total=len(keys))

    async def check_connection(self) -> bool:
        """Whether the backend is reachable right now."""
        try:
            await self.list_files()
            return True
        except StorageError as e:
            logger.warning("storage_connection_check_failed", backend=self.backend_name, error=str(e))
            return False

    def describe(self) -> dict[str, Any]:
        """Static description of the backend for status reporting."""
        return {
            "backend": self.backend_name,
            "location": self.location,
            "urlsExpire": self.urls_expire,
        }
