"""
Pytest configuration and fixtures for eventgallery tests.
"""

import tempfile
from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio

from eventgallery.config import reset_config
from eventgallery.errors import StorageDeleteError, StorageError, StorageWriteError
from eventgallery.services.gallery import GalleryService, reset_gallery_service
from eventgallery.services.metadata import PhotoMetadataStore
from eventgallery.storage.base import BlobAdapter, StorageStats
from eventgallery.storage.factory import reset_blob_adapter

# 1x1 pixel PNG
SAMPLE_PNG = bytes.fromhex(
    "89504e470d0a1a0a0000000d49484452000000010000000108020000009077"
    "53de0000000c4944415408d763f8000000000100018e5a0b8f0000000049454e44ae426082"
)


class InMemoryBlobAdapter(BlobAdapter):
    """
    Blob adapter test double keeping objects in a dict.

    Individual keys can be made to fail on write or delete to exercise the
    orchestrator's error policies.
    """

    def __init__(self, urls_expire: bool = False):
        self.objects: dict[str, bytes] = {}
        self.metadata: dict[str, dict[str, Any]] = {}
        self.fail_writes = False
        self.fail_deletes: set[str] = set()
        self.fail_listing = False
        self.save_calls: list[str] = []
        self._urls_expire = urls_expire
        self.url_version = 1

    @property
    def backend_name(self) -> str:
        return "memory"

    @property
    def urls_expire(self) -> bool:
        return self._urls_expire

    @property
    def location(self) -> str:
        return "memory://test"

    def url_for(self, key: str) -> str:
        return f"memory://test/{key}?v={self.url_version}"

    async def save_file(self, data: bytes, desired_key: str, metadata: dict[str, Any] | None = None) -> str:
        self.save_calls.append(desired_key)
        if self.fail_writes:
            raise StorageWriteError("disk full", key=desired_key)
        self.objects[desired_key] = bytes(data)
        self.metadata[desired_key] = dict(metadata or {})
        return self.url_for(desired_key)

    async def delete_file(self, key: str) -> bool:
        if key in self.fail_deletes:
            raise StorageDeleteError("permission denied", key=key)
        return self.objects.pop(key, None) is not None

    async def file_exists(self, key: str) -> bool:
        return key in self.objects

    async def list_files(self, prefix: str = "") -> list[str]:
        if self.fail_listing:
            raise StorageError("listing failed")
        return sorted(key for key in self.objects if key.startswith(prefix))

    async def get_signed_url(self, key: str, expires_in_minutes: int | None = None) -> str:
        return self.url_for(key)

    async def get_stats(self) -> StorageStats:
        return StorageStats(
            file_count=len(self.objects),
            total_size=sum(len(data) for data in self.objects.values()),
            location=self.location,
        )


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmp_dir:
        yield Path(tmp_dir)


@pytest.fixture
def sample_image_data() -> bytes:
    """Provide sample image data for testing."""
    return SAMPLE_PNG


@pytest.fixture
def memory_adapter() -> InMemoryBlobAdapter:
    return InMemoryBlobAdapter()


@pytest.fixture
def metadata_store(temp_dir: Path) -> PhotoMetadataStore:
    return PhotoMetadataStore(temp_dir / "photos.json")


@pytest_asyncio.fixture
async def gallery(memory_adapter: InMemoryBlobAdapter, metadata_store: PhotoMetadataStore) -> GalleryService:
    """A loaded gallery service over the in-memory adapter."""
    service = GalleryService(memory_adapter, metadata_store)
    await service.load()
    return service


@pytest.fixture(autouse=True)
def setup_test_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Isolate tests from the developer's environment and global instances."""
    for key in (
        "STORAGE_TYPE",
        "UPLOADS_DIR",
        "BASE_URL",
        "ACCESS_TOKEN",
        "GCS_BUCKET_NAME",
        "GCS_PROJECT_ID",
        "GOOGLE_CLOUD_PROJECT",
        "GCS_KEYFILE",
        "GCS_SERVICE_ACCOUNT_KEY_BASE64",
        "GCS_SIGNED_URL_EXPIRATION_MINUTES",
        "PHOTOS_FILE",
    ):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("ENVIRONMENT", "test")

    reset_config()
    reset_blob_adapter()
    reset_gallery_service()
    yield
    reset_config()
    reset_blob_adapter()
    reset_gallery_service()
