"""Single-run mutual exclusion for the reconciliation engine."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from drivemirror.errors import RunTimeoutError, SyncInProgressError
from drivemirror.models import SyncStats


@dataclass(slots=True)
class ActiveRun:
    """State of the run currently holding the guard."""

    sync_id: str
    mode: str
    started_at: datetime
    stats: SyncStats = field(default_factory=SyncStats)
    deadline: Optional[float] = None

    def check_deadline(self) -> None:
        """Raise RunTimeoutError once the monotonic deadline has passed."""
        if self.deadline is not None and time.monotonic() > self.deadline:
            raise RunTimeoutError(
                "Sync run exceeded its deadline",
                details={"sync_id": self.sync_id, "mode": self.mode},
            )


class RunGuard:
    """
    At most one run at a time.

    `begin` takes the lock without blocking: a concurrent caller gets
    SyncInProgressError immediately instead of waiting.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._active: Optional[ActiveRun] = None

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    @property
    def active(self) -> Optional[ActiveRun]:
        return self._active

    @property
    def current_sync_id(self) -> Optional[str]:
        run = self._active
        return run.sync_id if run else None

    @property
    def started_at(self) -> Optional[datetime]:
        run = self._active
        return run.started_at if run else None

    def begin(
        self,
        sync_id: str,
        mode: str,
        started_at: datetime,
        *,
        timeout_sec: Optional[float] = None,
    ) -> ActiveRun:
        if not self._lock.acquire(blocking=False):
            raise SyncInProgressError(
                "A sync is already in progress",
                details={"current_sync_id": self.current_sync_id},
            )
        deadline = time.monotonic() + timeout_sec if timeout_sec else None
        self._active = ActiveRun(
            sync_id=sync_id,
            mode=mode,
            started_at=started_at,
            stats=SyncStats(start_time=started_at),
            deadline=deadline,
        )
        return self._active

    def end(self) -> None:
        self._active = None
        self._lock.release()
