"""drivemirror public API."""

from __future__ import annotations

from drivemirror.auth import AuthInfo, CredentialsProvider
from drivemirror.config import SyncConfig
from drivemirror.engine import ReconciliationEngine, RunGuard, best_effort
from drivemirror.errors import (
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
from drivemirror.models import (
    CreatedDrive,
    Drive,
    DriveSnapshot,
    Folder,
    HealthReport,
    MaintenanceResult,
    Manager,
    SyncResult,
    SyncStats,
)
from drivemirror.paths import PathResolver, resolve_paths
from drivemirror.remote import RemoteHierarchyReader, RetryPolicy
from drivemirror.store import BatchWriter, MirrorStore

__all__ = [
    # High-level
    "ReconciliationEngine",
    "RemoteHierarchyReader",
    "MirrorStore",
    "SyncConfig",
    # Building blocks
    "RunGuard",
    "best_effort",
    "RetryPolicy",
    "BatchWriter",
    "PathResolver",
    "resolve_paths",
    # Auth
    "AuthInfo",
    "CredentialsProvider",
    # Models
    "Drive",
    "Folder",
    "Manager",
    "DriveSnapshot",
    "SyncStats",
    "SyncResult",
    "MaintenanceResult",
    "HealthReport",
    "CreatedDrive",
    # Errors
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
