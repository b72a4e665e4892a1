"""Operation result returned across the service boundary."""

from dataclasses import dataclass
from typing import Generic, TypeVar

from core.exceptions import AppException, ErrorCode

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Result(Generic[T]):
    """Success flag plus either a value or a human-readable error.

    Provider-level delivery failures never show up here; they are recorded
    on the notification itself. A failed Result means the request was
    rejected or the storage layer failed.
    """

    is_success: bool
    value: T | None = None
    error_message: str | None = None
    error_code: ErrorCode | None = None

    @classmethod
    def ok(cls, value: T | None = None) -> "Result[T]":
        return cls(is_success=True, value=value)

    @classmethod
    def fail(cls, message: str, error_code: ErrorCode = ErrorCode.INTERNAL_ERROR) -> "Result[T]":
        return cls(is_success=False, error_message=message, error_code=error_code)

    @classmethod
    def from_exception(cls, exc: AppException) -> "Result[T]":
        return cls.fail(exc.message, exc.error_code)
