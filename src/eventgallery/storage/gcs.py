"""Google Cloud Storage blob backend.

Objects stay private; reads go through V4 signed URLs that are generated at
save time and can be re-issued with ``get_signed_url``. The google-cloud-storage
client is blocking, so every remote call is driven through ``asyncio.to_thread``.
"""

import asyncio
from datetime import UTC, datetime, timedelta
from typing import Any
from urllib.parse import parse_qs, urlparse

import google.auth
import google.auth.credentials
import google.auth.transport.requests
from google.auth.exceptions import GoogleAuthError, RefreshError
from google.cloud import storage  # type: ignore[attr-defined]
from google.cloud.exceptions import GoogleCloudError, NotFound
from google.oauth2 import service_account

from ..errors import ConfigurationError, StorageDeleteError, StorageError, StorageWriteError, ValidationError
from ..logging_config import get_logger
from .base import BlobAdapter, StorageStats, WipeResult

logger = get_logger(__name__)

# V4 signatures are capped at seven days by GCS.
MAX_SIGNED_URL_MINUTES = 7 * 24 * 60
DEFAULT_SIGNED_URL_MINUTES = MAX_SIGNED_URL_MINUTES


def build_credentials(
    key_file: str | None = None,
    credentials_info: dict[str, Any] | None = None,
) -> tuple[google.auth.credentials.Credentials, str | None]:
    """
    Resolve credentials from a key file, inline service-account info or ADC.

    Returns:
        Tuple of (credentials, project id found alongside them)

    Raises:
        ConfigurationError: If no usable credentials can be built
    """
    try:
        if key_file:
            credentials = service_account.Credentials.from_service_account_file(key_file)
            return credentials, credentials.project_id
        if credentials_info:
            credentials = service_account.Credentials.from_service_account_info(credentials_info)
            return credentials, credentials_info.get("project_id")
        credentials, project_id = google.auth.default()
        return credentials, project_id
    except (GoogleAuthError, OSError, ValueError, KeyError) as e:
        raise ConfigurationError(f"Failed to load GCS credentials: {e}", setting="credentials", original_exception=e) from e


def signed_url_expires_at(url: str) -> datetime | None:
    """
    Read the expiry instant encoded in a V4 signed URL.

    Returns:
        Expiry as an aware UTC datetime, or None if the URL is not V4-signed
    """
    query = parse_qs(urlparse(url).query)
    issued = query.get("X-Goog-Date")
    expires = query.get("X-Goog-Expires")
    if not issued or not expires:
        return None
    issued_at = datetime.strptime(issued[0], "%Y%m%dT%H%M%SZ").replace(tzinfo=UTC)
    return issued_at + timedelta(seconds=int(expires[0]))


class GCSBlobAdapter(BlobAdapter):
    """Service for Google Cloud Storage blob operations."""

    def __init__(
        self,
        bucket_name: str,
        project_id: str | None = None,
        credentials: google.auth.credentials.Credentials | None = None,
        signed_url_expiration_minutes: int = DEFAULT_SIGNED_URL_MINUTES,
        client: storage.Client | None = None,
    ) -> None:
        """
        Initialize the GCS adapter.

        Args:
            bucket_name: Bucket holding the photos
            project_id: GCP project ID
            credentials: Credentials used for the client and for URL signing
            signed_url_expiration_minutes: Validity of URLs returned by save_file
            client: Preconfigured client (skips client construction)

        Raises:
            ConfigurationError: If the bucket is missing, the validity is out of
                range, or the client cannot be created
        """
        if not bucket_name:
            raise ConfigurationError("GCS bucket name is required", setting="GCS_BUCKET_NAME")
        if not 0 < signed_url_expiration_minutes <= MAX_SIGNED_URL_MINUTES:
            raise ConfigurationError(
                f"Signed URL validity must be between 1 and {MAX_SIGNED_URL_MINUTES} minutes",
                setting="GCS_SIGNED_URL_EXPIRATION_MINUTES",
            )

        self.bucket_name = bucket_name
        self.project_id = project_id
        self.credentials = credentials
        self.signed_url_expiration_minutes = signed_url_expiration_minutes

        try:
            self.client = client or storage.Client(project=project_id, credentials=credentials)
            self.bucket = self.client.bucket(bucket_name)
        except (GoogleCloudError, GoogleAuthError, OSError, ValueError) as e:
            raise ConfigurationError(
                f"Failed to initialize GCS client: {e}", setting="GCS_BUCKET_NAME", original_exception=e
            ) from e

        logger.info(
            "gcs_storage_initialized",
            bucket=bucket_name,
            project_id=project_id,
            signed_url_expiration_minutes=signed_url_expiration_minutes,
        )

    @property
    def backend_name(self) -> str:
        return "gcs"

    @property
    def urls_expire(self) -> bool:
        return True

    @property
    def location(self) -> str:
        return f"gs://{self.bucket_name}"

    def _signing_kwargs(self) -> dict[str, Any]:
        """
        Extra arguments for ``generate_signed_url``.

        Credentials without a local private key (e.g. compute engine ADC) sign
        through the IAM API using the service account email and a fresh token.
        """
        credentials = self.credentials
        if credentials is None or isinstance(credentials, google.auth.credentials.Signing):
            return {}

        try:
            credentials.refresh(google.auth.transport.requests.Request())
        except RefreshError as e:
            logger.warning("gcs_credentials_refresh_failed", error=str(e))

        return {
            "service_account_email": getattr(credentials, "service_account_email", None),
            "access_token": credentials.token,
        }

    def _generate_signed_url(self, key: str, minutes: int) -> str:
        blob = self.bucket.blob(key)
        url: str = blob.generate_signed_url(
            version="v4",
            expiration=timedelta(minutes=minutes),
            method="GET",
            **self._signing_kwargs(),
        )
        return url

    async def save_file(self, data: bytes, desired_key: str, metadata: dict[str, Any] | None = None) -> str:
        metadata = dict(metadata or {})
        content_type = metadata.pop("mimetype", None) or "image/jpeg"

        blob = self.bucket.blob(desired_key)
        # Advisory only; the metadata document stays authoritative.
        blob.metadata = {
            "uploadedAt": datetime.now(UTC).isoformat(),
            **{key: str(value) for key, value in metadata.items() if value is not None},
        }

        try:
            await asyncio.to_thread(blob.upload_from_string, data, content_type=content_type)
        except GoogleCloudError as e:
            raise StorageWriteError(
                f"Failed to save file to GCS '{desired_key}': {e}", key=desired_key, original_exception=e
            ) from e
        except Exception as e:
            raise StorageWriteError(
                f"Unexpected error saving '{desired_key}' to GCS: {e}", key=desired_key, original_exception=e
            ) from e

        logger.info("gcs_file_saved", key=desired_key, size=len(data), content_type=content_type)

        try:
            return await asyncio.to_thread(self._generate_signed_url, desired_key, self.signed_url_expiration_minutes)
        except Exception as e:
            raise StorageWriteError(
                f"Uploaded '{desired_key}' but failed to sign its URL: {e}", key=desired_key, original_exception=e
            ) from e

    async def get_signed_url(self, key: str, expires_in_minutes: int | None = None) -> str:
        """
        Generate a V4 signed GET URL for an existing object.

        Args:
            key: Object key
            expires_in_minutes: Validity counted from now (defaults to the configured value);
                0 yields a URL that is already exhausted

        Raises:
            ValidationError: If the validity is negative or above seven days
            StorageError: If signing fails
        """
        minutes = self.signed_url_expiration_minutes if expires_in_minutes is None else expires_in_minutes
        if not 0 <= minutes <= MAX_SIGNED_URL_MINUTES:
            raise ValidationError(
                f"Signed URL validity must be between 0 and {MAX_SIGNED_URL_MINUTES} minutes",
                field="expires_in_minutes",
                value=minutes,
            )

        try:
            url = await asyncio.to_thread(self._generate_signed_url, key, minutes)
        except Exception as e:
            raise StorageError(
                f"Failed to generate signed URL for '{key}': {e}", details={"key": key}, original_exception=e
            ) from e

        logger.debug("gcs_signed_url_generated", key=key, expires_in_minutes=minutes)
        return url

    async def delete_file(self, key: str) -> bool:
        blob = self.bucket.blob(key)
        try:
            await asyncio.to_thread(blob.delete)
        except NotFound:
            logger.warning("gcs_file_not_found_for_deletion", key=key)
            return False
        except GoogleCloudError as e:
            raise StorageDeleteError(f"Failed to delete file from GCS '{key}': {e}", key=key, original_exception=e) from e
        except Exception as e:
            raise StorageDeleteError(f"Unexpected error deleting '{key}': {e}", key=key, original_exception=e) from e

        logger.info("gcs_file_deleted", key=key)
        return True

    async def file_exists(self, key: str) -> bool:
        try:
            exists: bool = await asyncio.to_thread(self.bucket.blob(key).exists)
            return exists
        except Exception as e:
            logger.warning("gcs_file_exists_check_failed", key=key, error=str(e))
            return False

    async def check_connection(self) -> bool:
        try:
            await asyncio.to_thread(self.bucket.reload)
            return True
        except NotFound:
            logger.error("gcs_bucket_not_found", bucket=self.bucket_name)
            return False
        except Exception as e:
            logger.error("gcs_bucket_check_failed", bucket=self.bucket_name, error=str(e))
            return False

    async def _list_blobs(self, prefix: str = "") -> list[storage.Blob]:
        return await asyncio.to_thread(lambda: list(self.client.list_blobs(self.bucket, prefix=prefix or None)))

    async def list_files(self, prefix: str = "") -> list[str]:
        try:
            blobs = await self._list_blobs(prefix)
        except Exception as e:
            raise StorageError(f"Failed to list files in {self.location}: {e}", original_exception=e) from e

        names = [blob.name for blob in blobs]
        logger.debug("gcs_files_listed", prefix=prefix, count=len(names))
        return names

    async def delete_all_files(self) -> WipeResult:
        try:
            blobs = await self._list_blobs()
        except Exception as e:
            raise StorageDeleteError(f"Failed to enumerate {self.location} for deletion: {e}", original_exception=e) from e

        logger.warning("deleting_all_files", backend=self.backend_name, count=len(blobs))

        deleted = 0
        failed = 0
        for blob in blobs:
            try:
                await asyncio.to_thread(blob.delete)
                deleted += 1
            except NotFound:
                # Already gone counts as cleaned up.
                deleted += 1
            except Exception as e:
                logger.error("bulk_delete_item_failed", backend=self.backend_name, key=blob.name, error=str(e))
                failed += 1

        logger.info("delete_all_files_completed", backend=self.backend_name, deleted=deleted, failed=failed)
        return WipeResult(deleted=deleted, failed=failed, total=len(blobs))

    async def get_stats(self) -> StorageStats:
        try:
            blobs = await self._list_blobs()
        except Exception as e:
            raise StorageError(f"Failed to list files in {self.location}: {e}", original_exception=e) from e

        total_size = 0
        file_count = 0
        for blob in blobs:
            try:
                await asyncio.to_thread(blob.reload)
            except NotFound:
                continue
            file_count += 1
            total_size += int(blob.size or 0)

        return StorageStats(file_count=file_count, total_size=total_size, location=self.location)
