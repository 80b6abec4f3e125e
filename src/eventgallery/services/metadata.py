"""
Photo metadata store backed by a single JSON document.

The store owns the in-memory photo collection for the whole process. It is
loaded once at startup and the complete document is rewritten after every
mutation; there is no incremental format and no external database.

Concurrency:
    Request handlers run as coroutines on one event loop. Every
    read-modify-persist sequence runs inside ``transaction()``, which holds an
    ``asyncio.Lock`` across the mutation and the write. Concurrent mutations
    therefore serialize in lock-acquisition order and the last one to persist
    wins; a failed mutation or write rolls the in-memory collection back to
    the last persisted state.

Usage:
    store = PhotoMetadataStore("data/photos.json")
    await store.load()
    await store.add(photo)
    photo = await store.update(photo_id, lambda p: setattr(p, "tag", PhotoTag.WEDDING))
"""

import asyncio
import copy
import json
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from pathlib import Path

import aiofiles
import aiofiles.os

from ..errors import MetadataStoreError, NotFoundError
from ..logging_config import get_logger
from ..models.photo import Photo

logger = get_logger(__name__)


class PhotoMetadataStore:
    """Ordered, persisted collection of photo records."""

    def __init__(self, path: str | Path):
        """
        Args:
            path: Location of the JSON document
        """
        self.path = Path(path)
        self._photos: list[Photo] = []
        self._lock = asyncio.Lock()
        self._loaded = False

    def __len__(self) -> int:
        return len(self._photos)

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    async def load(self) -> int:
        """
        Load the document into memory, replacing any current contents.

        A missing document starts an empty collection.

        Returns:
            Number of records loaded

        Raises:
            MetadataStoreError: If the document is unreadable or malformed
        """
        async with self._lock:
            try:
                async with aiofiles.open(self.path, encoding="utf-8") as f:
                    raw = await f.read()
            except FileNotFoundError:
                logger.info("metadata_document_missing_starting_fresh", path=str(self.path))
                self._photos = []
                self._loaded = True
                return 0
            except OSError as e:
                raise MetadataStoreError(
                    f"Failed to read metadata document: {e}", path=str(self.path), original_exception=e
                ) from e

            self._photos = self._parse(raw)
            self._loaded = True

        logger.info("metadata_loaded", path=str(self.path), photos=len(self._photos))
        return len(self._photos)

    def _parse(self, raw: str) -> list[Photo]:
        if not raw.strip():
            return []
        try:
            data = json.loads(raw)
            if not isinstance(data, list):
                raise ValueError("metadata document must be a JSON array")
            photos = [Photo.from_dict(item) for item in data]
        except (ValueError, KeyError, TypeError) as e:
            raise MetadataStoreError(
                f"Malformed metadata document: {e}", path=str(self.path), original_exception=e
            ) from e

        seen: set[str] = set()
        for photo in photos:
            if photo.id in seen:
                raise MetadataStoreError(f"Duplicate photo id in metadata document: {photo.id}", path=str(self.path))
            seen.add(photo.id)
        return photos

    async def _persist(self) -> None:
        """Write the full collection. Caller must hold the lock."""
        payload = json.dumps([photo.to_dict() for photo in self._photos], indent=2, ensure_ascii=False)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            await aiofiles.os.makedirs(self.path.parent, exist_ok=True)
            async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
                await f.write(payload)
            await aiofiles.os.replace(tmp_path, self.path)
        except OSError as e:
            raise MetadataStoreError(
                f"Failed to write metadata document: {e}", path=str(self.path), original_exception=e
            ) from e

        logger.debug("metadata_persisted", path=str(self.path), photos=len(self._photos))

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[list[Photo]]:
        """
        Mutate the owned collection and persist it.

        The block receives the live list. If the block or the write raises,
        the collection is restored to its previous state and nothing is written.
        """
        async with self._lock:
            backup = copy.deepcopy(self._photos)
            try:
                yield self._photos
                await self._persist()
            except BaseException:
                self._photos = backup
                raise

    def snapshot(self) -> list[Photo]:
        """Copies of every record, in upload order."""
        return copy.deepcopy(self._photos)

    def get(self, photo_id: str) -> Photo | None:
        for photo in self._photos:
            if photo.id == photo_id:
                return copy.deepcopy(photo)
        return None

    async def add(self, photo: Photo) -> Photo:
        """
        Append a record and persist.

        Raises:
            MetadataStoreError: If the id is already present (including soft-deleted records)
        """
        async with self.transaction() as photos:
            if any(existing.id == photo.id for existing in photos):
                raise MetadataStoreError(f"Duplicate photo id: {photo.id}", path=str(self.path))
            photos.append(copy.deepcopy(photo))
        return photo

    async def update(self, photo_id: str, mutate: Callable[[Photo], None]) -> Photo:
        """
        Apply ``mutate`` to the matching record in place and persist.

        Raises:
            NotFoundError: If no record has this id
        """
        async with self.transaction() as photos:
            for photo in photos:
                if photo.id == photo_id:
                    mutate(photo)
                    result = copy.deepcopy(photo)
                    break
            else:
                raise NotFoundError(photo_id)
        return result

    async def remove(self, photo_id: str) -> Photo:
        """
        Remove the matching record and persist.

        Raises:
            NotFoundError: If no record has this id
        """
        async with self.transaction() as photos:
            for index, photo in enumerate(photos):
                if photo.id == photo_id:
                    removed = photos.pop(index)
                    break
            else:
                raise NotFoundError(photo_id)
        return removed

    async def clear(self) -> int:
        """Remove every record and persist an empty document."""
        async with self.transaction() as photos:
            count = len(photos)
            photos.clear()
        logger.warning("metadata_cleared", path=str(self.path), removed=count)
        return count
