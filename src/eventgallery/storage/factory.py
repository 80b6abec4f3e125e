"""Factory for creating the blob adapter from configuration."""

import base64
import binascii
import json
from dataclasses import dataclass
from typing import Any

from ..config import Config, get_config
from ..errors import ConfigurationError
from ..logging_config import get_logger
from .base import BlobAdapter
from .gcs import DEFAULT_SIGNED_URL_MINUTES, GCSBlobAdapter, build_credentials
from .local import LocalBlobAdapter

logger = get_logger(__name__)

LOCAL_MODES = ("local",)
CLOUD_MODES = ("gcs", "cloud")


@dataclass
class StorageSettings:
    """Everything the factory needs to build one adapter."""

    mode: str = "local"
    uploads_dir: str = "./uploads"
    base_url: str = ""
    access_token: str | None = None
    bucket_name: str | None = None
    project_id: str | None = None
    key_file: str | None = None
    credentials_base64: str | None = None
    signed_url_expiration_minutes: int = DEFAULT_SIGNED_URL_MINUTES

    @classmethod
    def from_config(cls, config: Config | None = None) -> "StorageSettings":
        config = config or get_config()
        return cls(
            mode=config.get("STORAGE_TYPE", "local").lower(),
            uploads_dir=config.get("UPLOADS_DIR", "./uploads"),
            base_url=config.get("BASE_URL", ""),
            access_token=config.get("ACCESS_TOKEN"),
            bucket_name=config.get("GCS_BUCKET_NAME"),
            project_id=config.first("GCS_PROJECT_ID", "GOOGLE_CLOUD_PROJECT"),
            key_file=config.get("GCS_KEYFILE"),
            credentials_base64=config.get("GCS_SERVICE_ACCOUNT_KEY_BASE64"),
            signed_url_expiration_minutes=config.get(
                "GCS_SIGNED_URL_EXPIRATION_MINUTES", DEFAULT_SIGNED_URL_MINUTES, int
            ),
        )

    @property
    def is_cloud(self) -> bool:
        return self.mode in CLOUD_MODES


def decode_credentials(encoded: str) -> dict[str, Any]:
    """
    Decode base64-encoded service-account JSON.

    Raises:
        ConfigurationError: If the value is not base64 JSON
    """
    try:
        return json.loads(base64.b64decode(encoded, validate=True).decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ConfigurationError(
            "GCS_SERVICE_ACCOUNT_KEY_BASE64 is not valid base64-encoded JSON",
            setting="GCS_SERVICE_ACCOUNT_KEY_BASE64",
            original_exception=e,
        ) from e


def create_blob_adapter(settings: StorageSettings) -> BlobAdapter:
    """
    Build the adapter selected by ``settings.mode``.

    Raises:
        ConfigurationError: If the mode is unknown or required settings are missing
    """
    logger.info("initializing_storage", mode=settings.mode)

    if settings.is_cloud:
        if not settings.bucket_name:
            raise ConfigurationError(
                "GCS bucket name is required. Set GCS_BUCKET_NAME environment variable.", setting="GCS_BUCKET_NAME"
            )

        credentials_info = decode_credentials(settings.credentials_base64) if settings.credentials_base64 else None
        credentials, discovered_project = build_credentials(
            key_file=settings.key_file, credentials_info=credentials_info
        )

        return GCSBlobAdapter(
            bucket_name=settings.bucket_name,
            project_id=settings.project_id or discovered_project,
            credentials=credentials,
            signed_url_expiration_minutes=settings.signed_url_expiration_minutes,
        )

    if settings.mode in LOCAL_MODES:
        if not settings.access_token:
            raise ConfigurationError(
                "ACCESS_TOKEN is required for local storage URLs", setting="ACCESS_TOKEN"
            )
        return LocalBlobAdapter(
            root_dir=settings.uploads_dir,
            base_url=settings.base_url,
            access_token=settings.access_token,
        )

    raise ConfigurationError(f"Unknown storage mode: {settings.mode!r}", setting="STORAGE_TYPE")


# Global adapter instance
_blob_adapter: BlobAdapter | None = None


def get_blob_adapter(settings: StorageSettings | None = None) -> BlobAdapter:
    """
    Get the process-wide blob adapter, creating it on first use.

    Args:
        settings: Settings to use on first creation (defaults to the environment)
    """
    global _blob_adapter

    if _blob_adapter is None:
        _blob_adapter = create_blob_adapter(settings or StorageSettings.from_config())

    return _blob_adapter


def reset_blob_adapter() -> None:
    """Forget the process-wide adapter."""
    global _blob_adapter
    _blob_adapter = None
