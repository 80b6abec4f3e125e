"""
Error taxonomy for eventgallery.

Every error carries a category, severity, machine-readable code and a
user-facing message, and logs itself on construction so operators see the
underlying cause even when handlers only show the generic message.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from .logging_config import get_logger, log_error

logger = get_logger(__name__)


class ErrorCategory(Enum):
    """Error categories for classification and handling."""

    STORAGE = "storage"
    UPLOAD = "upload"
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    AUTHORIZATION = "authorization"
    CONFIGURATION = "configuration"
    DATABASE = "database"
    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    """Error severity levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass
class ErrorInfo:
    """Structured error information handed to request handlers."""

    category: ErrorCategory
    severity: ErrorSeverity
    code: str
    message: str
    user_message: str
    details: dict[str, Any]
    timestamp: datetime
    recoverable: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category.value,
            "severity": self.severity.value,
            "code": self.code,
            "message": self.message,
            "user_message": self.user_message,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
            "recoverable": self.recoverable,
        }


class GalleryError(Exception):
    """Base exception class for eventgallery."""

    default_user_message = "An unexpected error occurred."

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        code: str | None = None,
        user_message: str | None = None,
        details: dict[str, Any] | None = None,
        recoverable: bool = True,
        original_exception: Exception | None = None,
    ):
        super().__init__(message)
        self.category = category
        self.severity = severity
        self.code = code or f"{category.value}_error"
        self.user_message = user_message or self.default_user_message
        self.details = details or {}
        self.recoverable = recoverable
        self.original_exception = original_exception
        self.timestamp = datetime.now(UTC)

        self._log_error()

    def _log_error(self) -> None:
        error_context = {
            "category": self.category.value,
            "severity": self.severity.value,
            "code": self.code,
            "recoverable": self.recoverable,
            **self.details,
        }

        if self.original_exception:
            error_context["original_exception"] = str(self.original_exception)

        log_error(self, error_context)

    def get_error_info(self) -> ErrorInfo:
        """Get structured error information."""
        return ErrorInfo(
            category=self.category,
            severity=self.severity,
            code=self.code,
            message=str(self),
            user_message=self.user_message,
            details=self.details,
            timestamp=self.timestamp,
            recoverable=self.recoverable,
        )

    def to_dict(self) -> dict[str, Any]:
        return self.get_error_info().to_dict()


class StorageError(GalleryError):
    """Blob backend faults."""

    default_user_message = "A storage error occurred."

    def __init__(
        self,
        message: str,
        code: str | None = None,
        user_message: str | None = None,
        details: dict[str, Any] | None = None,
        original_exception: Exception | None = None,
    ):
        super().__init__(
            message=message,
            category=ErrorCategory.STORAGE,
            severity=ErrorSeverity.HIGH,
            code=code or "storage_failed",
            user_message=user_message,
            details=details,
            recoverable=True,
            original_exception=original_exception,
        )


class StorageWriteError(StorageError):
    """A blob could not be written. Partial writes must not be assumed visible."""

    def __init__(self, message: str, key: str | None = None, original_exception: Exception | None = None):
        super().__init__(
            message=message,
            code="storage_write_failed",
            details={"key": key} if key else None,
            original_exception=original_exception,
        )
        self.key = key


class StorageDeleteError(StorageError):
    """A genuine backend fault while deleting. Never raised for not-found."""

    def __init__(self, message: str, key: str | None = None, original_exception: Exception | None = None):
        super().__init__(
            message=message,
            code="storage_delete_failed",
            details={"key": key} if key else None,
            original_exception=original_exception,
        )
        self.key = key


class UploadError(GalleryError):
    """Upload aborted; the storage cause is attached for operators."""

    default_user_message = "Failed to upload photo."

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        original_exception: Exception | None = None,
    ):
        super().__init__(
            message=message,
            category=ErrorCategory.UPLOAD,
            severity=ErrorSeverity.MEDIUM,
            code="upload_failed",
            details=details,
            recoverable=True,
            original_exception=original_exception,
        )


class ValidationError(GalleryError):
    """Invalid input such as an unknown tag."""

    default_user_message = "The request contained invalid data."

    def __init__(self, message: str, field: str | None = None, value: Any = None):
        super().__init__(
            message=message,
            category=ErrorCategory.VALIDATION,
            severity=ErrorSeverity.LOW,
            code="validation_failed",
            details={"field": field, "value": value} if field else None,
            recoverable=True,
        )
        self.field = field
        self.value = value


class NotFoundError(GalleryError):
    """No photo record matches the given id."""

    default_user_message = "Photo not found."

    def __init__(self, photo_id: str):
        super().__init__(
            message=f"Photo not found: {photo_id}",
            category=ErrorCategory.NOT_FOUND,
            severity=ErrorSeverity.LOW,
            code="photo_not_found",
            details={"photo_id": photo_id},
            recoverable=False,
        )
        self.photo_id = photo_id


class ConfirmationError(GalleryError):
    """Bulk wipe requested without the exact confirmation literal."""

    default_user_message = "Confirmation required to delete all data."

    def __init__(self, message: str = "Bulk wipe requires the exact confirmation string"):
        super().__init__(
            message=message,
            category=ErrorCategory.AUTHORIZATION,
            severity=ErrorSeverity.HIGH,
            code="confirmation_required",
            recoverable=False,
        )


class ConfigurationError(GalleryError):
    """Storage settings cannot be resolved. Fatal at startup."""

    default_user_message = "The service is misconfigured."

    def __init__(self, message: str, setting: str | None = None, original_exception: Exception | None = None):
        super().__init__(
            message=message,
            category=ErrorCategory.CONFIGURATION,
            severity=ErrorSeverity.CRITICAL,
            code="configuration_invalid",
            details={"setting": setting} if setting else None,
            recoverable=False,
            original_exception=original_exception,
        )
        self.setting = setting


class MetadataStoreError(GalleryError):
    """The metadata document could not be read or written."""

    default_user_message = "A database error occurred."

    def __init__(self, message: str, path: str | None = None, original_exception: Exception | None = None):
        super().__init__(
            message=message,
            category=ErrorCategory.DATABASE,
            severity=ErrorSeverity.CRITICAL,
            code="metadata_store_failed",
            details={"path": path} if path else None,
            recoverable=False,
            original_exception=original_exception,
        )
        self.path = path
