"""Custom exceptions and error codes."""

from enum import StrEnum
from typing import Any


class ErrorCode(StrEnum):
    """Standardized error codes for the notification engine."""

    # Not found errors (404)
    NOTIFICATION_NOT_FOUND = "NOTIFICATION_NOT_FOUND"

    # Validation errors (400)
    VALIDATION_ERROR = "VALIDATION_ERROR"
    MISSING_RECIPIENT = "MISSING_RECIPIENT"
    BATCH_SIZE_EXCEEDED = "BATCH_SIZE_EXCEEDED"
    BATCH_PROCESSING_DISABLED = "BATCH_PROCESSING_DISABLED"
    MAX_RETRY_ATTEMPTS_EXCEEDED = "MAX_RETRY_ATTEMPTS_EXCEEDED"
    INVALID_STATUS = "INVALID_STATUS"

    # Server errors (500)
    INTERNAL_ERROR = "INTERNAL_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"


class AppException(Exception):
    """Base application exception."""

    def __init__(
        self,
        error_code: ErrorCode,
        message: str,
        status_code: int = 400,
        details: Any | None = None,
    ) -> None:
        self.error_code = error_code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)


class NotificationNotFoundError(AppException):
    """Notification not found."""

    def __init__(self, notification_id: str) -> None:
        super().__init__(
            error_code=ErrorCode.NOTIFICATION_NOT_FOUND,
            message=f"Notification not found: {notification_id}",
            status_code=404,
            details={"notification_id": notification_id},
        )


class MissingRecipientError(AppException):
    """Notification has no addressable recipient."""

    def __init__(self) -> None:
        super().__init__(
            error_code=ErrorCode.MISSING_RECIPIENT,
            message="Notification requires a recipient user id, email or phone",
            status_code=400,
        )


class BatchSizeExceededError(AppException):
    """Batch is larger than the configured maximum."""

    def __init__(self, size: int, maximum: int) -> None:
        super().__init__(
            error_code=ErrorCode.BATCH_SIZE_EXCEEDED,
            message=f"Batch size {size} exceeds maximum {maximum}",
            status_code=400,
            details={"size": size, "maximum": maximum},
        )


class BatchProcessingDisabledError(AppException):
    """Batch sends are turned off by configuration."""

    def __init__(self) -> None:
        super().__init__(
            error_code=ErrorCode.BATCH_PROCESSING_DISABLED,
            message="Batch processing is not enabled",
            status_code=400,
        )


class MaxRetryAttemptsExceededError(AppException):
    """Notification has used up its delivery attempts."""

    def __init__(self, notification_id: str, max_attempts: int) -> None:
        super().__init__(
            error_code=ErrorCode.MAX_RETRY_ATTEMPTS_EXCEEDED,
            message=f"Maximum retry attempts ({max_attempts}) exceeded",
            status_code=400,
            details={"notification_id": notification_id, "max_attempts": max_attempts},
        )


class InvalidNotificationStatusError(AppException):
    """Operation is not valid for the notification's current status."""

    def __init__(self, notification_id: str, status: str, expected: str) -> None:
        super().__init__(
            error_code=ErrorCode.INVALID_STATUS,
            message=f"Notification {notification_id} is {status}, expected {expected}",
            status_code=409,
            details={"notification_id": notification_id, "status": status},
        )


class PersistenceError(AppException):
    """The storage layer failed."""

    def __init__(self, message: str = "Database operation failed") -> None:
        super().__init__(
            error_code=ErrorCode.DATABASE_ERROR,
            message=message,
            status_code=500,
        )
