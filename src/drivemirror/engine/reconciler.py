"""Reconciliation engine: fetch remote state, apply it to the mirror."""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Any, Callable, Iterable, Optional, Sequence

from drivemirror.errors import DriveMirrorError
from drivemirror.models import (
    STATUS_COMPLETED,
    STATUS_COMPLETED_WITH_ERRORS,
    STATUS_FAILED,
    STATUS_RUNNING,
    ConnectionInfo,
    CreatedDrive,
    Drive,
    DriveSnapshot,
    Folder,
    HealthReport,
    MaintenanceResult,
    Manager,
    SyncResult,
    SyncStatusValue,
)
from drivemirror.util.ids import new_sync_id
from drivemirror.util.time import elapsed_ms, ms_to_minutes, now_utc

from .run_state import ActiveRun, RunGuard
from .telemetry import best_effort

log = logging.getLogger(__name__)

MODE_FULL = "full"
MODE_INCREMENTAL = "incremental"


class ReconciliationEngine:
    """
    Drive one run at a time from remote listing to mirror writes.

    Notes:
        - Drives are processed sequentially with `drive_delay_sec` between
          them; folders and managers of one drive are fetched (and later
          written) concurrently on a two-worker pool.
        - Per-drive failures are recorded in the run's error list and never
          abort the run. Anything else escaping fetch/apply fails the run.
        - Progress, completion and status writes go through `best_effort`.
    """

    def __init__(
        self,
        reader: Any,
        store: Any,
        *,
        drive_delay_sec: float = 0.5,
        run_timeout_sec: Optional[float] = None,
        history_keep: int = 50,
        sync_interval_minutes: Optional[int] = None,
        clock: Callable[[], datetime] = now_utc,
    ) -> None:
        self._reader = reader
        self._store = store
        self._drive_delay_sec = drive_delay_sec
        self._run_timeout_sec = run_timeout_sec
        self._history_keep = history_keep
        self._sync_interval_minutes = sync_interval_minutes
        self._clock = clock
        self._guard = RunGuard()

    @property
    def is_running(self) -> bool:
        return self._guard.is_running

    @property
    def current_sync_id(self) -> Optional[str]:
        return self._guard.current_sync_id

    # ----------------------------
    # Runs
    # ----------------------------
    def perform_sync(self, sync_id: Optional[str] = None) -> SyncResult:
        """Full sync: every drive is fetched and mirror-only drives are deleted."""
        return self._run(MODE_FULL, sync_id, self._fetch_all, prune_drives=True)

    def perform_incremental_sync(
        self,
        drive_ids: Iterable[str] = (),
        sync_id: Optional[str] = None,
    ) -> SyncResult:
        """
        Re-fetch only the given drives.

        With no ids this is a full sync (including the drive deletion diff).
        With ids, the selected drives are upserted and no drive is deleted,
        since the global drive set was not recomputed.
        """
        ids = list(dict.fromkeys(d for d in drive_ids if d))
        if not ids:
            return self._run(MODE_INCREMENTAL, sync_id, self._fetch_all, prune_drives=True)
        return self._run(
            MODE_INCREMENTAL,
            sync_id,
            lambda run: self._fetch_selected(run, ids),
            prune_drives=False,
        )

    def _run(
        self,
        mode: str,
        sync_id: Optional[str],
        fetch: Callable[[ActiveRun], list[DriveSnapshot]],
        *,
        prune_drives: bool,
    ) -> SyncResult:
        run = self._guard.begin(
            sync_id or new_sync_id(),
            mode,
            self._clock(),
            timeout_sec=self._run_timeout_sec,
        )
        try:
            log.info("Starting %s sync - ID: %s", mode, run.sync_id)
            status: SyncStatusValue
            error: Optional[str] = None
            try:
                self._store.record_run_start(run.sync_id, run.started_at)
                best_effort("Status update", self._store.set_status, STATUS_RUNNING, run.sync_id)
                self._probe()

                snapshots = fetch(run)
                best_effort(
                    "Progress update",
                    self._store.update_run_progress,
                    run.sync_id,
                    {
                        "drives_count": run.stats.drives_count,
                        "folders_count": run.stats.folders_count,
                        "managers_count": run.stats.managers_count,
                        "status": "syncing_to_firestore",
                    },
                )

                self._apply(run, snapshots, prune_drives=prune_drives)
                status = STATUS_COMPLETED_WITH_ERRORS if run.stats.errors else STATUS_COMPLETED
            except Exception as exc:
                log.exception("%s sync failed - ID: %s", mode.capitalize(), run.sync_id)
                run.stats.errors.append(f"Fatal error: {exc}")
                status = STATUS_FAILED
                error = str(exc)

            self._finish(run, status)
            return SyncResult(
                success=status != STATUS_FAILED,
                sync_id=run.sync_id,
                stats=run.stats,
                status=status,
                error=error,
            )
        finally:
            self._guard.end()

    def _probe(self) -> None:
        info = self._reader.test_connection()
        if not info.success:
            raise DriveMirrorError(f"Google Drive connection failed: {info.error}")
        email = (info.user or {}).get("emailAddress")
        log.info("Google Drive connection OK%s", f" as {email}" if email else "")

    def _finish(self, run: ActiveRun, status: SyncStatusValue) -> None:
        stats = run.stats
        stats.end_time = self._clock()
        stats.duration_ms = elapsed_ms(run.started_at, stats.end_time)
        stats.duration_minutes = ms_to_minutes(stats.duration_ms)

        best_effort("Run completion record", self._store.complete_run, run.sync_id, stats, status)
        best_effort("Status update", self._store.set_status, status, run.sync_id)

        log.info(
            "Sync %s finished with status %s in %.2f minutes: "
            "%d drives, %d folders, %d managers, %d errors",
            run.sync_id,
            status,
            stats.duration_minutes,
            stats.drives_count,
            stats.folders_count,
            stats.managers_count,
            len(stats.errors),
        )

    # ----------------------------
    # Fetch
    # ----------------------------
    def _fetch_all(self, run: ActiveRun) -> list[DriveSnapshot]:
        drives = self._reader.list_drives()
        run.stats.drives_count = len(drives)

        snapshots: list[DriveSnapshot] = []
        for index, drive in enumerate(drives):
            run.check_deadline()
            log.info("Processing drive %d/%d: %s", index + 1, len(drives), drive.name)
            snapshots.append(self._fetch_drive(run, drive))
            self._pause_between_drives(index, len(drives))
        return snapshots

    def _fetch_selected(self, run: ActiveRun, drive_ids: Sequence[str]) -> list[DriveSnapshot]:
        snapshots: list[DriveSnapshot] = []
        for index, drive_id in enumerate(drive_ids):
            run.check_deadline()
            try:
                drive = self._reader.get_drive(drive_id)
            except Exception as exc:
                self._record_error(run, f"Error processing drive {drive_id}: {exc}")
                continue

            run.stats.drives_count += 1
            log.info("Processing drive %d/%d: %s", index + 1, len(drive_ids), drive.name)
            snapshots.append(self._fetch_drive(run, drive))
            self._pause_between_drives(index, len(drive_ids))
        return snapshots

    def _fetch_drive(self, run: ActiveRun, drive: Drive) -> DriveSnapshot:
        try:
            with ThreadPoolExecutor(max_workers=2) as pool:
                folders_future = pool.submit(
                    self._reader.list_folders_under_drive, drive.drive_id, drive.name
                )
                managers_future = pool.submit(
                    self._reader.list_managers_for_drive, drive.drive_id, drive.name
                )
                folders: list[Folder] = folders_future.result()
                managers: list[Manager] = managers_future.result()
        except Exception as exc:
            self._record_error(
                run, f"Error processing drive {drive.name} ({drive.drive_id}): {exc}"
            )
            return DriveSnapshot(drive=drive, fetch_failed=True)

        run.stats.folders_count += len(folders)
        run.stats.managers_count += len(managers)
        return DriveSnapshot(drive=drive, folders=folders, managers=managers)

    def _pause_between_drives(self, index: int, total: int) -> None:
        if index < total - 1 and self._drive_delay_sec > 0:
            time.sleep(self._drive_delay_sec)

    # ----------------------------
    # Apply
    # ----------------------------
    def _apply(self, run: ActiveRun, snapshots: Sequence[DriveSnapshot], *, prune_drives: bool) -> None:
        drives = [s.drive for s in snapshots]
        if prune_drives:
            summary = self._store.sync_drives(drives)
            log.info("Drives synced: %d processed, %d deleted", summary.processed, summary.deleted)
        else:
            self._store.upsert_drives(drives)

        total = len(snapshots)
        for index, snapshot in enumerate(snapshots, start=1):
            run.check_deadline()
            drive = snapshot.drive
            if snapshot.fetch_failed:
                log.warning(
                    "Skipping folder and manager sync for drive %s (%s): fetch failed",
                    drive.name,
                    drive.drive_id,
                )
                continue

            try:
                self._apply_drive(snapshot)
            except Exception as exc:
                self._record_error(
                    run,
                    f"Error syncing drive {drive.name} ({drive.drive_id}) to Firestore: {exc}",
                )
                continue

            best_effort(
                "Progress update",
                self._store.update_run_progress,
                run.sync_id,
                {"current_drive": f"{index}/{total}", "current_drive_name": drive.name},
            )

    def _apply_drive(self, snapshot: DriveSnapshot) -> None:
        drive = snapshot.drive
        with ThreadPoolExecutor(max_workers=2) as pool:
            folders_future = pool.submit(
                self._store.sync_folders_for_drive, drive.drive_id, snapshot.folders
            )
            managers_future = pool.submit(
                self._store.replace_managers_for_drive,
                drive.drive_id,
                drive.name,
                snapshot.managers,
            )
            folders_future.result()
            managers_future.result()

    def _record_error(self, run: ActiveRun, message: str) -> None:
        log.error(message)
        run.stats.errors.append(message)

    # ----------------------------
    # Other operations
    # ----------------------------
    def perform_maintenance(self, keep_last: Optional[int] = None) -> MaintenanceResult:
        """Prune old run records. Never raises."""
        keep = self._history_keep if keep_last is None else keep_last
        try:
            cleaned = self._store.prune_old_runs(keep)
        except Exception as exc:
            log.error("Maintenance failed: %s", exc)
            return MaintenanceResult(success=False, error=str(exc))

        log.info("Maintenance removed %d sync history records", cleaned)
        return MaintenanceResult(success=True, cleaned_records=cleaned)

    def health_check(self) -> HealthReport:
        """Probe Drive and the mirror concurrently. Never raises."""
        with ThreadPoolExecutor(max_workers=2) as pool:
            connection_future = pool.submit(self._reader.test_connection)
            stats_future = pool.submit(self._store.database_stats)

        errors: list[str] = []
        try:
            connection = connection_future.result()
        except Exception as exc:
            log.error("Drive health probe failed: %s", exc)
            connection = ConnectionInfo(success=False, error=str(exc))
            errors.append(str(exc))

        try:
            firestore: dict[str, Any] = {"connected": True, "stats": stats_future.result()}
        except Exception as exc:
            log.error("Firestore health probe failed: %s", exc)
            firestore = {"connected": False, "error": str(exc)}
            errors.append(str(exc))

        return HealthReport(
            success=connection.success and firestore["connected"],
            google_drive=connection,
            firestore=firestore,
            sync_service=self._run_state(),
            error="; ".join(errors) or None,
        )

    def get_sync_status(self) -> dict[str, Any]:
        data: dict[str, Any] = {"current_sync": self._run_state()}
        try:
            data["firestore_status"] = self._store.get_status()
            data["database_stats"] = self._store.database_stats()
        except Exception as exc:
            log.error("Failed to read sync status: %s", exc)
            data["error"] = str(exc)
        data["sync_config"] = {"interval_minutes": self._sync_interval_minutes}
        return data

    def create_drive(self, name: str, managers: Iterable[str] = ()) -> CreatedDrive:
        """
        Create a shared drive, grant managers, and mirror it once.

        A manager that cannot be added is logged and reported in
        `failed_managers`; the drive itself is still created and mirrored.
        """
        drive = self._reader.create_drive(name)

        added: list[Manager] = []
        failed: dict[str, str] = {}
        for email in managers:
            try:
                added.append(self._reader.add_manager(drive.drive_id, email, drive.name))
            except DriveMirrorError as exc:
                log.error("Failed to add manager %s to drive %s: %s", email, drive.drive_id, exc)
                failed[email] = str(exc)

        self._store.save_created_drive(drive, added)
        return CreatedDrive(drive=drive, managers=added, failed_managers=failed)

    def list_mirrored_drives(self) -> list[dict[str, Any]]:
        """Drive documents currently in the mirror, ordered by name."""
        return self._store.list_drives()

    def _run_state(self) -> dict[str, Any]:
        return {
            "is_running": self._guard.is_running,
            "current_sync_id": self._guard.current_sync_id,
            "started_at": self._guard.started_at,
        }
