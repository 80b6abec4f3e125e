"""
Upload/delete lifecycle orchestration for gallery photos.

``GalleryService`` sequences blob operations and metadata mutations so the two
stay consistent:

    (absent) --upload--> ACTIVE --soft_delete--> SOFT_DELETED --hard_delete--> PURGED
                           \\------------------------hard_delete------------> PURGED

Metadata is always persisted after the corresponding blob operation has
completed (or, for hard delete, has been attempted). A crash between the two
steps can leave an orphan blob but never a record pointing at a missing blob.
"""

import random
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from ..config import Config, get_config
from ..errors import ConfirmationError, NotFoundError, StorageError, UploadError, ValidationError
from ..health import check_storage_health
from ..logging_config import get_logger, log_admin_action, log_performance
from ..models.photo import FaceDetection, Photo, PhotoTag, normalize_people
from ..storage.base import BlobAdapter, WipeResult
from ..storage.factory import StorageSettings, create_blob_adapter
from ..storage.gcs import signed_url_expires_at
from .metadata import PhotoMetadataStore

logger = get_logger(__name__)

WIPE_CONFIRMATION = "DELETE_ALL_DATA"


@dataclass
class HardDeleteResult:
    """Outcome of a hard delete; the record is gone even when the blob is not."""

    photo_id: str
    filename: str
    metadata_removed: bool = True
    blob_removed: bool = False
    blob_error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "photoId": self.photo_id,
            "filename": self.filename,
            "metadataRemoved": self.metadata_removed,
            "blobRemoved": self.blob_removed,
            "blobError": self.blob_error,
        }


@dataclass
class GalleryStats:
    """Counts over the visible collection."""

    total_photos: int
    by_tag: dict[str, int] = field(default_factory=dict)
    total_size: int = 0
    uploaded_today: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalPhotos": self.total_photos,
            "byTag": dict(self.by_tag),
            "totalSize": self.total_size,
            "uploadedToday": self.uploaded_today,
        }


def parse_tag(value: str | PhotoTag) -> PhotoTag:
    """
    Validate a tag value.

    Raises:
        ValidationError: If the value is outside the fixed categories
    """
    try:
        return PhotoTag.parse(value)
    except ValueError as e:
        raise ValidationError(
            f"Invalid tag {value!r}; expected one of {', '.join(PhotoTag.values())}", field="tag", value=value
        ) from e


def generate_storage_key(original_name: str) -> str:
    """
    Build a unique storage key: ``photo-{epoch_ms}-{random}{ext}``.

    The random suffix keeps concurrent uploads of identically named files apart.
    """
    extension = Path(original_name).suffix.lower()
    # Extension must stay a plain suffix for the local backend's flat key space.
    if not extension[1:].isalnum():
        extension = ""
    unique_suffix = f"{int(time.time() * 1000)}-{random.randint(0, 999_999_999)}"
    return f"photo-{unique_suffix}{extension}"


class GalleryService:
    """Public surface used by request handlers."""

    def __init__(self, adapter: BlobAdapter, store: PhotoMetadataStore):
        self.adapter = adapter
        self.store = store

    async def load(self) -> int:
        """
        Load the metadata document at startup.

        For backends whose URLs never expire, stored URLs that no longer match
        the current base URL or access token are rewritten and persisted once.

        Returns:
            Number of records loaded
        """
        count = await self.store.load()

        if not self.adapter.urls_expire and count:
            expected = {}
            for photo in self.store.snapshot():
                url = await self.adapter.get_signed_url(photo.filename)
                if photo.url != url:
                    expected[photo.id] = url

            if expected:
                async with self.store.transaction() as photos:
                    for photo in photos:
                        if photo.id in expected:
                            photo.url = expected[photo.id]
                logger.info("photo_urls_rewritten", count=len(expected))

        logger.info("gallery_loaded", photos=count, backend=self.adapter.backend_name)
        return count

    async def upload(self, data: bytes, original_name: str, mimetype: str, tag: str | PhotoTag = PhotoTag.OTHER) -> Photo:
        """
        Store a photo and create its record.

        Raises:
            ValidationError: If the tag is invalid (nothing is written)
            UploadError: If the blob write fails (no record is created)
        """
        photo_tag = parse_tag(tag)
        key = generate_storage_key(original_name)

        try:
            url = await self.adapter.save_file(
                data, key, {"mimetype": mimetype, "originalName": original_name, "tag": photo_tag.value}
            )
        except StorageError as e:
            raise UploadError(
                f"Failed to upload photo '{original_name}': {e}",
                details={"original_name": original_name, "key": key},
                original_exception=e,
            ) from e

        photo = Photo.create_new(
            filename=key,
            original_name=original_name,
            url=url,
            tag=photo_tag,
            size=len(data),
            mimetype=mimetype,
        )
        await self.store.add(photo)

        logger.info("photo_uploaded", photo_id=photo.id, key=key, size=photo.size, tag=photo_tag.value)
        return photo

    async def soft_delete(self, photo_id: str) -> Photo:
        """Hide a photo from default listings; the blob stays retrievable."""
        photo = await self.store.update(photo_id, lambda p: p.mark_deleted())
        logger.info("photo_soft_deleted", photo_id=photo_id)
        return photo

    async def restore(self, photo_id: str) -> Photo:
        """Undo a soft delete."""
        photo = await self.store.update(photo_id, lambda p: p.clear_deleted())
        logger.info("photo_restored", photo_id=photo_id)
        return photo

    async def hard_delete(self, photo_id: str) -> HardDeleteResult:
        """
        Remove the blob (best effort) and then the record.

        Blob faults are logged and reported in the result, never raised.

        Raises:
            NotFoundError: If the id is unknown
        """
        photo = self.store.get(photo_id)
        if photo is None:
            raise NotFoundError(photo_id)

        result = HardDeleteResult(photo_id=photo_id, filename=photo.filename)
        try:
            result.blob_removed = await self.adapter.delete_file(photo.filename)
            if not result.blob_removed:
                logger.warning("photo_blob_already_absent", photo_id=photo_id, key=photo.filename)
        except StorageError as e:
            result.blob_error = str(e)
            logger.error("photo_blob_delete_failed", photo_id=photo_id, key=photo.filename, error=str(e))

        await self.store.remove(photo_id)
        logger.info(
            "photo_hard_deleted",
            photo_id=photo_id,
            blob_removed=result.blob_removed,
            blob_error=result.blob_error,
        )
        return result

    async def wipe_all(self, confirmation: str) -> WipeResult:
        """
        Delete every blob and every record.

        Raises:
            ConfirmationError: Unless ``confirmation`` is exactly ``DELETE_ALL_DATA``
        """
        if confirmation != WIPE_CONFIRMATION:
            raise ConfirmationError()

        log_admin_action("wipe_all_started", photos=len(self.store), backend=self.adapter.backend_name)
        started = time.perf_counter()

        result = await self.adapter.delete_all_files()
        removed = await self.store.clear()

        log_performance("wipe_all", time.perf_counter() - started, **result.to_dict(), records_removed=removed)
        log_admin_action("wipe_all_completed", **result.to_dict(), records_removed=removed)
        return result

    async def update_category(self, photo_id: str, tag: str | PhotoTag) -> Photo:
        """
        Raises:
            ValidationError: If the tag is invalid (record unchanged)
            NotFoundError: If the id is unknown
        """
        photo_tag = parse_tag(tag)

        def apply(photo: Photo) -> None:
            photo.tag = photo_tag

        photo = await self.store.update(photo_id, apply)
        logger.info("photo_category_updated", photo_id=photo_id, tag=photo_tag.value)
        return photo

    async def update_people_and_faces(
        self,
        photo_id: str,
        people: list[str] | None = None,
        faces: list[FaceDetection | dict[str, Any]] | None = None,
    ) -> Photo:
        """Partial update; ``None`` leaves the field unchanged."""
        parsed_faces = None
        if faces is not None:
            try:
                parsed_faces = [face if isinstance(face, FaceDetection) else FaceDetection.from_dict(face) for face in faces]
            except (KeyError, TypeError, ValueError) as e:
                raise ValidationError(f"Invalid face annotation: {e}", field="faces") from e

        def apply(photo: Photo) -> None:
            if people is not None:
                photo.people = normalize_people(people)
            if parsed_faces is not None:
                photo.faces = parsed_faces

        photo = await self.store.update(photo_id, apply)
        logger.info(
            "photo_people_updated",
            photo_id=photo_id,
            people=len(photo.people),
            faces=len(photo.faces),
        )
        return photo

    def get_photo(self, photo_id: str) -> Photo:
        """
        Raises:
            NotFoundError: If the id is unknown
        """
        photo = self.store.get(photo_id)
        if photo is None:
            raise NotFoundError(photo_id)
        return photo

    def list_visible(
        self,
        include_deleted: bool = False,
        tag: str | PhotoTag | None = None,
        person: str | None = None,
    ) -> list[Photo]:
        """
        Records in upload order, optionally filtered by tag and person.

        Stored URLs are returned as-is; expiring URLs are not refreshed here.
        """
        wanted_tag = parse_tag(tag) if tag is not None else None
        photos = []
        for photo in self.store.snapshot():
            if photo.deleted and not include_deleted:
                continue
            if wanted_tag is not None and photo.tag is not wanted_tag:
                continue
            if person and not photo.has_person(person):
                continue
            photos.append(photo)
        return photos

    def known_people(self) -> list[str]:
        """Distinct person names across visible photos, sorted case-insensitively."""
        names = {name for photo in self.list_visible() for name in photo.people}
        return sorted(names, key=str.lower)

    def stats(self, now: datetime | None = None) -> GalleryStats:
        """Counts over visible photos; "today" is the current UTC date."""
        today = (now or datetime.now(UTC)).astimezone(UTC).date()
        photos = self.list_visible()

        by_tag = {tag.value: 0 for tag in PhotoTag}
        for photo in photos:
            by_tag[photo.tag.value] += 1

        return GalleryStats(
            total_photos=len(photos),
            by_tag=by_tag,
            total_size=sum(photo.size for photo in photos),
            uploaded_today=sum(1 for photo in photos if photo.uploaded_at.astimezone(UTC).date() == today),
        )

    async def refresh_url(self, photo_id: str, expires_in_minutes: int | None = None) -> Photo:
        """
        Re-issue the retrieval URL of a photo and persist it.

        Only meaningful for backends whose URLs expire; for the others the
        stable URL is written back unchanged.
        """
        photo = self.get_photo(photo_id)
        url = await self.adapter.get_signed_url(photo.filename, expires_in_minutes)

        def apply(record: Photo) -> None:
            record.url = url

        photo = await self.store.update(photo_id, apply)
        logger.info("photo_url_refreshed", photo_id=photo_id, urls_expire=self.adapter.urls_expire)
        return photo

    def find_expired_urls(self, now: datetime | None = None) -> list[str]:
        """Ids of visible photos whose stored signed URL has already expired."""
        if not self.adapter.urls_expire:
            return []
        now = now or datetime.now(UTC)
        expired = []
        for photo in self.list_visible():
            expires_at = signed_url_expires_at(photo.url)
            if expires_at is not None and expires_at <= now:
                expired.append(photo.id)
        return expired

    async def storage_status(self) -> dict[str, Any]:
        """Backend description, connectivity and expired URL count for operators."""
        status = await check_storage_health(self.adapter)
        status["photos"] = len(self.store)
        status["expiredUrls"] = len(self.find_expired_urls())
        return status


def create_gallery_service(config: Config | None = None) -> GalleryService:
    """
    Build the service from configuration.

    Raises:
        ConfigurationError: If the storage backend cannot be configured
    """
    config = config or get_config()
    adapter = create_blob_adapter(StorageSettings.from_config(config))
    return GalleryService(adapter, PhotoMetadataStore(config.get("PHOTOS_FILE", "./data/photos.json")))


# Global gallery service instance
_gallery_service: GalleryService | None = None


def get_gallery_service() -> GalleryService:
    """Get the process-wide gallery service (not yet loaded)."""
    global _gallery_service

    if _gallery_service is None:
        _gallery_service = create_gallery_service()

    return _gallery_service


def reset_gallery_service() -> None:
    global _gallery_service
    _gallery_service = None
