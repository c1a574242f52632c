"""Firestore collection names and document keys used by the mirror."""

from __future__ import annotations

SHARED_DRIVES: str = "shared_drives"
FOLDERS: str = "folders"
DRIVE_MANAGERS: str = "drive_managers"
SYNC_HISTORY: str = "sync_history"
SYNC_STATUS: str = "sync_status"

STATUS_DOCUMENT_ID: str = "current"

# Firestore rejects write batches with more than 500 operations.
MAX_BATCH_SIZE: int = 500
