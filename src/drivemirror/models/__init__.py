"""Public model exports for drivemirror."""

from __future__ import annotations

from .records import MANAGER_ROLES, Drive, DriveSnapshot, Folder, Manager
from .results import (
    STATUS_COMPLETED,
    STATUS_COMPLETED_WITH_ERRORS,
    STATUS_FAILED,
    STATUS_IDLE,
    STATUS_RUNNING,
    TERMINAL_STATUSES,
    ConnectionInfo,
    CreatedDrive,
    DriveSyncSummary,
    HealthReport,
    MaintenanceResult,
    SyncResult,
    SyncStats,
    SyncStatusValue,
    jsonable,
)

__all__ = [
    "MANAGER_ROLES",
    "Drive",
    "Folder",
    "Manager",
    "DriveSnapshot",
    "SyncStatusValue",
    "STATUS_IDLE",
    "STATUS_RUNNING",
    "STATUS_COMPLETED",
    "STATUS_COMPLETED_WITH_ERRORS",
    "STATUS_FAILED",
    "TERMINAL_STATUSES",
    "SyncStats",
    "SyncResult",
    "DriveSyncSummary",
    "MaintenanceResult",
    "ConnectionInfo",
    "HealthReport",
    "CreatedDrive",
    "jsonable",
]
