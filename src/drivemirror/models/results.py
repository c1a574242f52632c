"""Result models for sync runs and service operations."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Literal, Optional

from drivemirror.util.time import to_rfc3339

from .records import Drive, Manager

SyncStatusValue = Literal[
    "idle",
    "running",
    "completed",
    "completed_with_errors",
    "failed",
]

STATUS_IDLE: SyncStatusValue = "idle"
STATUS_RUNNING: SyncStatusValue = "running"
STATUS_COMPLETED: SyncStatusValue = "completed"
STATUS_COMPLETED_WITH_ERRORS: SyncStatusValue = "completed_with_errors"
STATUS_FAILED: SyncStatusValue = "failed"

TERMINAL_STATUSES: frozenset[str] = frozenset(
    {STATUS_COMPLETED, STATUS_COMPLETED_WITH_ERRORS, STATUS_FAILED}
)


def jsonable(value: Any) -> Any:
    """Convert datetimes (recursively) to RFC3339 strings for JSON output."""
    if isinstance(value, datetime):
        return to_rfc3339(value) if value.tzinfo is not None else value.isoformat()
    if isinstance(value, dict):
        return {k: jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [jsonable(v) for v in value]
    return value


@dataclass(slots=True)
class SyncStats:
    """Counters and error list accumulated during one run."""

    drives_count: int = 0
    folders_count: int = 0
    managers_count: int = 0
    errors: list[str] = field(default_factory=list)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    duration_ms: int = 0
    duration_minutes: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return jsonable(asdict(self))


@dataclass(slots=True)
class SyncResult:
    """Outcome of perform_sync / perform_incremental_sync."""

    success: bool
    sync_id: str
    stats: SyncStats
    status: SyncStatusValue
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "success": self.success,
            "sync_id": self.sync_id,
            "stats": self.stats.to_dict(),
            "status": self.status,
        }
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass(slots=True)
class DriveSyncSummary:
    """Counts returned by the drive-level diff."""

    processed: int
    deleted: int


@dataclass(slots=True)
class MaintenanceResult:
    success: bool
    cleaned_records: int = 0
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(slots=True)
class ConnectionInfo:
    """Result of the remote liveness probe."""

    success: bool
    user: dict[str, Any] = field(default_factory=dict)
    quota: dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(slots=True)
class HealthReport:
    success: bool
    google_drive: Optional[ConnectionInfo] = None
    firestore: dict[str, Any] = field(default_factory=dict)
    sync_service: dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "success": self.success,
            "google_drive": self.google_drive.to_dict() if self.google_drive else None,
            "firestore": jsonable(self.firestore),
            "sync_service": jsonable(self.sync_service),
        }
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass(slots=True)
class CreatedDrive:
    """A drive created through the service, with the managers actually added."""

    drive: Drive
    managers: list[Manager] = field(default_factory=list)
    failed_managers: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return jsonable(
            {
                "drive": self.drive.to_document(),
                "managers": [m.to_document() for m in self.managers],
                "failed_managers": dict(self.failed_managers),
            }
        )
