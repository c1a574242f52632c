"""Firestore-backed mirror of shared drives, folders and managers."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Callable, Iterable, Iterator, Mapping, Optional, Sequence

from google.api_core.exceptions import GoogleAPIError
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from drivemirror.errors import InvalidArgumentError, MirrorStoreError
from drivemirror.models import (
    STATUS_IDLE,
    STATUS_RUNNING,
    TERMINAL_STATUSES,
    Drive,
    DriveSyncSummary,
    Folder,
    Manager,
    SyncStats,
)
from drivemirror.util.time import now_utc

from .batching import BatchWriter
from .collections import (
    DRIVE_MANAGERS,
    FOLDERS,
    MAX_BATCH_SIZE,
    SHARED_DRIVES,
    STATUS_DOCUMENT_ID,
    SYNC_HISTORY,
    SYNC_STATUS,
)

log = logging.getLogger(__name__)

DocumentItems = Iterable[tuple[str, dict[str, Any]]]


def preserve_frontend_fields(
    new: dict[str, Any],
    existing: Optional[Mapping[str, Any]],
) -> dict[str, Any]:
    """
    Carry locally-authored markers from the stored document into a new write.

    A stored document flagged `created_by_frontend` keeps the flag and its
    original `created_at`, whatever the incoming document says.
    """
    if existing and existing.get("created_by_frontend"):
        new["created_by_frontend"] = True
        new["created_at"] = existing.get("created_at")
    return new


@contextmanager
def _firestore_errors(action: str, **details: Any) -> Iterator[None]:
    try:
        yield
    except GoogleAPIError as exc:
        raise MirrorStoreError(
            f"Firestore {action} failed: {exc}",
            details=details,
            cause=exc,
        ) from exc


class MirrorStore:
    """
    Document-store adapter for the mirror.

    Notes:
        - Multi-document writes go through BatchWriter (<= 500 ops per batch).
        - Drive and folder writes are merge writes stamped with `synced_at`
          and `synced_by_backend`.
    """

    MAX_BATCH_SIZE: int = MAX_BATCH_SIZE

    def __init__(
        self,
        client: Any,
        *,
        batch_size: int = MAX_BATCH_SIZE,
        clock: Callable[[], datetime] = now_utc,
    ) -> None:
        if not 1 <= batch_size <= MAX_BATCH_SIZE:
            raise InvalidArgumentError(
                f"batch_size must be between 1 and {MAX_BATCH_SIZE}",
                details={"batch_size": batch_size},
            )
        self._client = client
        self._batch_size = batch_size
        self._clock = clock

    @classmethod
    def connect(
        cls,
        project_id: str,
        *,
        database_id: str = "(default)",
        credentials: Any = None,
    ) -> "MirrorStore":
        """Open a Firestore client for the given project and database."""
        kwargs: dict[str, Any] = {"project": project_id}
        if database_id and database_id != "(default)":
            kwargs["database"] = database_id
        if credentials is not None:
            kwargs["credentials"] = credentials
        log.info("Connecting to Firestore project %s (database %s)", project_id, database_id)
        return cls(firestore.Client(**kwargs))

    # ----------------------------
    # Generic collection operations
    # ----------------------------
    def list_all(self, collection: str) -> dict[str, dict[str, Any]]:
        with _firestore_errors("list", collection=collection):
            return {
                snap.id: snap.to_dict() or {}
                for snap in self._client.collection(collection).stream()
            }

    def batch_upsert(
        self,
        collection: str,
        documents: Mapping[str, dict[str, Any]] | DocumentItems,
        *,
        existing: Optional[Mapping[str, Mapping[str, Any]]] = None,
    ) -> int:
        """
        Merge-write documents keyed by id, preserving frontend-created markers.

        `existing` may carry the stored documents already read by the caller;
        otherwise they are fetched in bounded chunks.
        """
        items = list(documents.items()) if isinstance(documents, Mapping) else list(documents)
        if not items:
            return 0

        with _firestore_errors("upsert", collection=collection, count=len(items)):
            if existing is None:
                existing = self._load_existing(collection, [doc_id for doc_id, _ in items])

            coll = self._client.collection(collection)
            now = self._clock()
            with self._writer() as writer:
                for doc_id, data in items:
                    payload = dict(data)
                    payload["synced_at"] = now
                    payload["synced_by_backend"] = True
                    preserve_frontend_fields(payload, existing.get(doc_id))
                    writer.set(coll.document(doc_id), payload, merge=True)

        log.debug("Upserted %d documents into %s", len(items), collection)
        return len(items)

    def batch_delete(self, collection: str, ids: Iterable[str]) -> int:
        doc_ids = list(ids)
        if not doc_ids:
            return 0

        with _firestore_errors("delete", collection=collection, count=len(doc_ids)):
            coll = self._client.collection(collection)
            with self._writer() as writer:
                for doc_id in doc_ids:
                    writer.delete(coll.document(doc_id))

        log.debug("Deleted %d documents from %s", len(doc_ids), collection)
        return len(doc_ids)

    def count_all(self, collection: str) -> int:
        """Server-side count aggregation; no documents are transferred."""
        with _firestore_errors("count", collection=collection):
            result = self._client.collection(collection).count().get()
        return int(result[0][0].value)

    # ----------------------------
    # Drives / folders / managers
    # ----------------------------
    def sync_drives(self, drives: Sequence[Drive]) -> DriveSyncSummary:
        """
        Make the mirrored drive set equal to `drives`.

        Every mirrored id absent from `drives` is deleted; all of `drives`
        are upserted. Delete batches are committed before upserts start.
        """
        existing = self.list_all(SHARED_DRIVES)
        current_ids = {d.drive_id for d in drives}
        to_delete = [doc_id for doc_id in existing if doc_id not in current_ids]

        log.info("Drives to delete from mirror: %d", len(to_delete))
        if to_delete:
            log.debug("Drive ids to delete: %s", ", ".join(to_delete))

        deleted = self.batch_delete(SHARED_DRIVES, to_delete)
        processed = self.batch_upsert(
            SHARED_DRIVES,
            [(d.drive_id, d.to_document()) for d in drives],
            existing=existing,
        )
        log.info("Drive sync: %d upserted, %d deleted", processed, deleted)
        return DriveSyncSummary(processed=processed, deleted=deleted)

    def upsert_drives(self, drives: Sequence[Drive]) -> int:
        return self.batch_upsert(SHARED_DRIVES, [(d.drive_id, d.to_document()) for d in drives])

    def sync_folders_for_drive(self, drive_id: str, folders: Sequence[Folder]) -> int:
        """Upsert the folders of one drive. Folders missing remotely are kept."""
        items: list[tuple[str, dict[str, Any]]] = []
        for folder in folders:
            doc = folder.to_document()
            doc["driveId"] = drive_id
            items.append((folder.folder_id, doc))

        count = self.batch_upsert(FOLDERS, items)
        log.info("%d folders synced for drive %s", count, drive_id)
        return count

    def replace_managers_for_drive(
        self,
        drive_id: str,
        drive_name: str,
        managers: Sequence[Manager],
    ) -> int:
        """
        Replace the backend-synced managers of a drive with `managers`.

        Deletes are committed before inserts begin. A failure in between
        leaves the drive without managers until the next sync.
        """
        coll = self._client.collection(DRIVE_MANAGERS)
        with _firestore_errors("manager replace", drive_id=drive_id):
            query = coll.where(filter=FieldFilter("driveId", "==", drive_id)).where(
                filter=FieldFilter("synced_by_backend", "==", True)
            )
            stale = [snap.reference for snap in query.stream()]

            with self._writer() as writer:
                for ref in stale:
                    writer.delete(ref)

            now = self._clock()
            with self._writer() as writer:
                for manager in managers:
                    payload = manager.to_document()
                    payload["driveId"] = drive_id
                    payload["driveName"] = drive_name
                    payload["synced_at"] = now
                    payload["synced_by_backend"] = True
                    writer.set(coll.document(), payload, merge=False)

        log.info(
            "%d managers synced for drive %s (%d replaced)",
            len(managers),
            drive_id,
            len(stale),
        )
        return len(managers)

    def save_created_drive(self, drive: Drive, managers: Sequence[Manager] = ()) -> dict[str, Any]:
        """Write a drive created through this service, flagged as locally created."""
        now = self._clock()
        data = drive.to_document()
        data.update(
            {
                "created_by_frontend": True,
                "created_at": now,
                "synced_at": now,
                "synced_by_backend": True,
            }
        )
        with _firestore_errors("drive create", drive_id=drive.drive_id):
            self._client.collection(SHARED_DRIVES).document(drive.drive_id).set(data)
        log.info("Saved created drive %s (%s)", drive.name, drive.drive_id)

        if managers:
            self.replace_managers_for_drive(drive.drive_id, drive.name, managers)
        return data

    def list_drives(self) -> list[dict[str, Any]]:
        with _firestore_errors("list", collection=SHARED_DRIVES):
            snaps = self._client.collection(SHARED_DRIVES).order_by("name").stream()
            return [{**(snap.to_dict() or {}), "id": snap.id} for snap in snaps]

    def database_stats(self) -> dict[str, Any]:
        return {
            "drives_count": self.count_all(SHARED_DRIVES),
            "folders_count": self.count_all(FOLDERS),
            "managers_count": self.count_all(DRIVE_MANAGERS),
            "timestamp": self._clock(),
        }

    # ----------------------------
    # Sync runs
    # ----------------------------
    def record_run_start(self, sync_id: str, started_at: datetime) -> None:
        with _firestore_errors("run record", sync_id=sync_id):
            self._client.collection(SYNC_HISTORY).document(sync_id).set(
                {
                    "sync_id": sync_id,
                    "sync_date": started_at,
                    "status": STATUS_RUNNING,
                    "start_time": started_at,
                    "drives_count": 0,
                    "folders_count": 0,
                    "managers_count": 0,
                    "errors": [],
                    "created_at": self._clock(),
                }
            )
        log.info("Sync run recorded: %s", sync_id)

    def update_run_progress(self, sync_id: str, progress: Mapping[str, Any]) -> None:
        with _firestore_errors("run progress", sync_id=sync_id):
            self._client.collection(SYNC_HISTORY).document(sync_id).set(
                {**progress, "updated_at": self._clock()},
                merge=True,
            )

    def complete_run(self, sync_id: str, stats: SyncStats, status: str) -> None:
        now = self._clock()
        with _firestore_errors("run completion", sync_id=sync_id):
            self._client.collection(SYNC_HISTORY).document(sync_id).set(
                {
                    "status": status,
                    "end_time": stats.end_time or now,
                    "duration_ms": stats.duration_ms,
                    "duration_minutes": stats.duration_minutes,
                    "drives_count": stats.drives_count,
                    "folders_count": stats.folders_count,
                    "managers_count": stats.managers_count,
                    "errors": list(stats.errors),
                    "completed_at": now,
                    "updated_at": now,
                },
                merge=True,
            )
        log.info("Sync run completed: %s - status: %s", sync_id, status)

    def prune_old_runs(self, keep_last: int = 50) -> int:
        """
        Delete all but the `keep_last` most recent sync runs (by sync_date).

        Returns the number of deleted records; logs and returns 0 on failure.
        """
        if keep_last < 0:
            raise InvalidArgumentError("keep_last must be >= 0", details={"keep_last": keep_last})

        try:
            query = (
                self._client.collection(SYNC_HISTORY)
                .order_by("sync_date", direction=firestore.Query.DESCENDING)
                .offset(keep_last)
            )
            refs = [snap.reference for snap in query.stream()]
            if not refs:
                return 0

            with self._writer() as writer:
                for ref in refs:
                    writer.delete(ref)
        except GoogleAPIError as exc:
            log.error("Failed to prune sync history: %s", exc)
            return 0

        log.info("%d old sync records deleted", len(refs))
        return len(refs)

    # ----------------------------
    # Status singleton
    # ----------------------------
    def get_status(self) -> dict[str, Any]:
        with _firestore_errors("status read"):
            snap = self._client.collection(SYNC_STATUS).document(STATUS_DOCUMENT_ID).get()
        if snap.exists:
            return snap.to_dict() or {}
        return {"status": STATUS_IDLE, "last_sync": None, "current_sync_id": None}

    def set_status(self, status: str, sync_id: Optional[str] = None) -> None:
        now = self._clock()
        data: dict[str, Any] = {"status": status, "updated_at": now}
        if sync_id:
            data["current_sync_id"] = sync_id
        if status in TERMINAL_STATUSES:
            data["last_sync"] = now
            data["current_sync_id"] = None

        with _firestore_errors("status write", status=status):
            self._client.collection(SYNC_STATUS).document(STATUS_DOCUMENT_ID).set(
                data, merge=True
            )

    # ----------------------------
    # Internals
    # ----------------------------
    def _writer(self) -> BatchWriter:
        return BatchWriter(self._client, max_batch_size=self._batch_size)

    def _load_existing(self, collection: str, ids: Sequence[str]) -> dict[str, dict[str, Any]]:
        coll = self._client.collection(collection)
        found: dict[str, dict[str, Any]] = {}
        for start in range(0, len(ids), self._batch_size):
            refs = [coll.document(doc_id) for doc_id in ids[start : start + self._batch_size]]
            for snap in self._client.get_all(refs):
                if snap.exists:
                    found[snap.id] = snap.to_dict() or {}
        return found
