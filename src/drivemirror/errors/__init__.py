"""Public error exports for drivemirror."""

from __future__ import annotations

from .exceptions import (
    ApiError,
    AuthError,
    ConfigError,
    ConflictError,
    DriveMirrorError,
    HttpErrorInfo,
    InvalidArgumentError,
    InvalidStateError,
    MirrorStoreError,
    NetworkError,
    NotFoundError,
    PermissionError,
    QuotaExceededError,
    RateLimitError,
    RunTimeoutError,
    SyncInProgressError,
    map_http_error,
)

__all__ = [
    "DriveMirrorError",
    "ConfigError",
    "InvalidStateError",
    "SyncInProgressError",
    "RunTimeoutError",
    "MirrorStoreError",
    "AuthError",
    "PermissionError",
    "InvalidArgumentError",
    "NotFoundError",
    "ConflictError",
    "RateLimitError",
    "QuotaExceededError",
    "NetworkError",
    "ApiError",
    "HttpErrorInfo",
    "map_http_error",
]
