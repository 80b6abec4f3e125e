"""Local disk blob storage backend."""

import contextlib
from pathlib import Path
from typing import Any
from urllib.parse import quote

import aiofiles
import aiofiles.os

from ..errors import StorageDeleteError, StorageError, StorageWriteError
from ..logging_config import get_logger
from .base import BlobAdapter, StorageStats

logger = get_logger(__name__)


class LocalBlobAdapter(BlobAdapter):
    """
    Stores each object as ``{root}/{key}``.

    URLs embed the gallery's static access token, so they are stable and
    never expire: ``{base_url}/uploads/{key}?token={access_token}``.
    """

    def __init__(self, root_dir: str | Path, base_url: str, access_token: str):
        """
        Initialize local blob storage.

        Args:
            root_dir: Directory holding the uploaded files (created on first write)
            base_url: Public base URL of the gallery, without trailing slash
            access_token: Access token appended to every URL
        """
        self.root_dir = Path(root_dir)
        self.base_url = base_url.rstrip("/")
        self.access_token = access_token

        logger.info("local_storage_initialized", root_dir=str(self.root_dir), base_url=self.base_url)

    @property
    def backend_name(self) -> str:
        return "local"

    @property
    def urls_expire(self) -> bool:
        return False

    @property
    def location(self) -> str:
        return str(self.root_dir)

    def _path_for(self, key: str) -> Path:
        # Keys are flat file names; anything that would leave the root is refused.
        if not key or key in (".", "..") or Path(key).name != key or "\\" in key:
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.root_dir / key

    def url_for(self, key: str) -> str:
        """Compose the stable retrieval URL of a key without touching the disk."""
        return f"{self.base_url}/uploads/{quote(key)}?token={quote(self.access_token, safe='')}"

    async def save_file(self, data: bytes, desired_key: str, metadata: dict[str, Any] | None = None) -> str:
        try:
            file_path = self._path_for(desired_key)
        except ValueError as e:
            raise StorageWriteError(str(e), key=desired_key, original_exception=e) from e

        try:
            await aiofiles.os.makedirs(self.root_dir, exist_ok=True)
            async with aiofiles.open(file_path, "wb") as f:
                await f.write(data)
        except OSError as e:
            with contextlib.suppress(OSError):
                await aiofiles.os.remove(file_path)
            raise StorageWriteError(
                f"Failed to save file locally '{desired_key}': {e}", key=desired_key, original_exception=e
            ) from e

        logger.info("local_file_saved", key=desired_key, size=len(data))
        return self.url_for(desired_key)

    async def delete_file(self, key: str) -> bool:
        try:
            file_path = self._path_for(key)
        except ValueError as e:
            raise StorageDeleteError(str(e), key=key, original_exception=e) from e

        try:
            await aiofiles.os.remove(file_path)
        except FileNotFoundError:
            logger.warning("local_file_not_found_for_deletion", key=key)
            return False
        except OSError as e:
            raise StorageDeleteError(f"Failed to delete file locally '{key}': {e}", key=key, original_exception=e) from e

        logger.info("local_file_deleted", key=key)
        return True

    async def file_exists(self, key: str) -> bool:
        try:
            return await aiofiles.os.path.isfile(self._path_for(key))
        except (ValueError, OSError) as e:
            logger.warning("local_file_exists_check_failed", key=key, error=str(e))
            return False

    async def list_files(self, prefix: str = "") -> list[str]:
        try:
            names = await aiofiles.os.listdir(self.root_dir)
        except FileNotFoundError:
            return []
        except OSError as e:
            raise StorageError(f"Failed to list files in '{self.root_dir}': {e}", original_exception=e) from e

        files = []
        for name in sorted(names):
            if prefix and not name.startswith(prefix):
                continue
            if await aiofiles.os.path.isfile(self.root_dir / name):
                files.append(name)
        return files

    async def get_signed_url(self, key: str, expires_in_minutes: int | None = None) -> str:
        # Local URLs are token-based; the validity window does not apply.
        try:
            self._path_for(key)
        except ValueError as e:
            raise StorageError(str(e), details={"key": key}, original_exception=e) from e
        return self.url_for(key)

    async def get_stats(self) -> StorageStats:
        file_count = 0
        total_size = 0
        for name in await self.list_files():
            try:
                stat_result = await aiofiles.os.stat(self.root_dir / name)
            except FileNotFoundError:
                continue
            file_count += 1
            total_size += stat_result.st_size

        return StorageStats(file_count=file_count, total_size=total_size, location=self.location)
