"""
Signed URL expiry with real V4 signing.

The GCS client signs URLs locally with the service account's private key, so
no network access is needed; a throwaway RSA key stands in for a real one.
"""

import asyncio
from datetime import UTC, datetime
from urllib.parse import parse_qs, urlparse

import pytest
from google.cloud import storage  # type: ignore[attr-defined]
from google.oauth2 import service_account

from eventgallery.models.photo import Photo, PhotoTag
from eventgallery.services.gallery import GalleryService
from eventgallery.services.metadata import PhotoMetadataStore
from eventgallery.storage.gcs import GCSBlobAdapter, signed_url_expires_at

rsa = pytest.importorskip("rsa")


@pytest.fixture(scope="module")
def signing_credentials() -> service_account.Credentials:
    _, private_key = rsa.newkeys(1024)
    info = {
        "type": "service_account",
        "project_id": "test-project",
        "private_key_id": "test-key",
        "private_key": private_key.save_pkcs1().decode("ascii"),
        "client_email": "gallery@test-project.iam.gserviceaccount.com",
        "token_uri": "https://oauth2.googleapis.com/token",
    }
    return service_account.Credentials.from_service_account_info(info)


@pytest.fixture
def adapter(signing_credentials: service_account.Credentials) -> GCSBlobAdapter:
    client = storage.Client(project="test-project", credentials=signing_credentials)
    return GCSBlobAdapter(
        "test-bucket",
        project_id="test-project",
        credentials=signing_credentials,
        signed_url_expiration_minutes=60,
        client=client,
    )


def query_of(url: str) -> dict[str, list[str]]:
    return parse_qs(urlparse(url).query)


@pytest.mark.integration
class TestSignedUrlExpiry:
    """Expiry is encoded in the signature, not only in our records."""

    @pytest.mark.asyncio
    async def test_fresh_url_is_valid(self, adapter: GCSBlobAdapter):
        url = await adapter.get_signed_url("photo-1-2.jpg")

        query = query_of(url)
        assert query["X-Goog-Expires"] == ["3600"]
        assert query["X-Goog-Credential"][0].startswith("gallery@test-project.iam.gserviceaccount.com/")
        assert signed_url_expires_at(url) > datetime.now(UTC)

    @pytest.mark.asyncio
    async def test_zero_validity_is_exhausted(self, adapter: GCSBlobAdapter):
        """A zero-minute URL is already expired by the time anyone resolves it."""
        url = await adapter.get_signed_url("photo-1-2.jpg", expires_in_minutes=0)
        await asyncio.sleep(1)

        assert query_of(url)["X-Goog-Expires"] == ["0"]
        assert signed_url_expires_at(url) < datetime.now(UTC)

    @pytest.mark.asyncio
    async def test_expired_urls_are_detected_and_refreshed(self, adapter: GCSBlobAdapter, temp_dir):
        service = GalleryService(adapter, PhotoMetadataStore(temp_dir / "photos.json"))
        await service.load()
        url = await adapter.get_signed_url("photo-1-2.jpg", expires_in_minutes=0)
        photo = await service.store.add(
            Photo.create_new(
                filename="photo-1-2.jpg",
                original_name="a.jpg",
                url=url,
                tag=PhotoTag.OTHER,
                size=1,
                mimetype="image/jpeg",
            )
        )
        await asyncio.sleep(1)

        assert service.find_expired_urls() == [photo.id]

        refreshed = await service.refresh_url(photo.id)

        assert signed_url_expires_at(refreshed.url) > datetime.now(UTC)
        assert service.find_expired_urls() == []
