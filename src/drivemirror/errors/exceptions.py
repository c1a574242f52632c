"""Exception hierarchy and HTTP error mapping for drivemirror."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


class DriveMirrorError(Exception):
    """
    Base exception for drivemirror.

    Attributes:
        details: Optional structured information (e.g., HTTP status, drive id).
        cause: Optional original exception that triggered this error.
    """

    def __init__(
        self,
        message: str,
        *,
        details: Optional[dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.details = details or {}
        self.cause = cause


class ConfigError(DriveMirrorError):
    """Raised when the runtime configuration is incomplete or invalid."""


class InvalidStateError(DriveMirrorError):
    """Raised when a component is used in an invalid state."""


class SyncInProgressError(InvalidStateError):
    """Raised when a sync run is requested while another one is running."""


class RunTimeoutError(DriveMirrorError):
    """Raised when a sync run exceeds its configured deadline."""


class MirrorStoreError(DriveMirrorError):
    """Raised when a mirror (Firestore) read or write fails."""


class AuthError(DriveMirrorError):
    """Raised when credentials cannot be loaded or refreshed."""


class PermissionError(DriveMirrorError):
    """Raised when access is denied (HTTP 403 non-quota)."""


class InvalidArgumentError(DriveMirrorError):
    """Raised when request arguments are invalid (HTTP 400, etc.)."""


class NotFoundError(DriveMirrorError):
    """Raised when a Drive resource is not found (HTTP 404)."""


class ConflictError(DriveMirrorError):
    """Raised when a conflict occurs (HTTP 409/412)."""


class RateLimitError(DriveMirrorError):
    """Raised when rate-limited (HTTP 429, or 403 with a rate-limit reason)."""


class QuotaExceededError(DriveMirrorError):
    """Raised when a non-transient quota is exceeded (HTTP 403 quota reason)."""


class NetworkError(DriveMirrorError):
    """Raised when network/timeout issues prevent the request."""


class ApiError(DriveMirrorError):
    """Raised for unclassified API errors (5xx, unknown 4xx, etc.)."""


@dataclass(frozen=True)
class HttpErrorInfo:
    """Lightweight HTTP error information for mapping to drivemirror exceptions."""

    status_code: int
    reason: str | None = None
    message: str | None = None
    details: dict[str, Any] | None = None


_RATE_LIMIT_REASONS: tuple[str, ...] = (
    "rateLimitExceeded",
    "userRateLimitExceeded",
)

_QUOTA_REASON_KEYWORDS: tuple[str, ...] = (
    "quota",
    "dailyLimitExceeded",
    "usageLimits",
    "storageQuotaExceeded",
)


def _is_rate_limit_reason(reason: str | None) -> bool:
    if not reason:
        return False
    return any(key.lower() == reason.lower() for key in _RATE_LIMIT_REASONS)


def _is_quota_reason(reason: str | None) -> bool:
    if not reason:
        return False
    return any(key.lower() in reason.lower() for key in _QUOTA_REASON_KEYWORDS)


def map_http_error(
    info: HttpErrorInfo,
    *,
    cause: Optional[BaseException] = None,
) -> DriveMirrorError:
    """
    Map an HTTP error to a drivemirror exception.

    Policy:
        - 401 -> AuthError
        - 403 -> RateLimitError for rate-limit reasons, QuotaExceededError for
          other quota reasons, PermissionError otherwise
        - 404 -> NotFoundError
        - 409/412 -> ConflictError
        - 429 -> RateLimitError
        - 400 -> InvalidArgumentError
        - 5xx -> ApiError
        - otherwise -> ApiError
    """
    details: dict[str, Any] = {
        "status_code": info.status_code,
        "reason": info.reason,
    }
    if info.details:
        details.update(info.details)

    message = info.message or f"HTTP error {info.status_code}"

    if info.status_code == 400:
        return InvalidArgumentError(message, details=details, cause=cause)
    if info.status_code == 401:
        return AuthError(message, details=details, cause=cause)
    if info.status_code == 403:
        if _is_rate_limit_reason(info.reason):
            return RateLimitError(message, details=details, cause=cause)
        if _is_quota_reason(info.reason):
            return QuotaExceededError(message, details=details, cause=cause)
        return PermissionError(message, details=details, cause=cause)
    if info.status_code == 404:
        return NotFoundError(message, details=details, cause=cause)
    if info.status_code in (409, 412):
        return ConflictError(message, details=details, cause=cause)
    if info.status_code == 429:
        return RateLimitError(message, details=details, cause=cause)
    if 500 <= info.status_code <= 599:
        return ApiError(message, details=details, cause=cause)

    return ApiError(message, details=details, cause=cause)
