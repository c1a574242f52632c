"""Firestore mirror exports for drivemirror."""

from __future__ import annotations

from .batching import BatchWriter
from .collections import (
    DRIVE_MANAGERS,
    FOLDERS,
    MAX_BATCH_SIZE,
    SHARED_DRIVES,
    SYNC_HISTORY,
    SYNC_STATUS,
)
from .mirror_store import MirrorStore, preserve_frontend_fields

__all__ = [
    "MirrorStore",
    "BatchWriter",
    "preserve_frontend_fields",
    "MAX_BATCH_SIZE",
    "SHARED_DRIVES",
    "FOLDERS",
    "DRIVE_MANAGERS",
    "SYNC_HISTORY",
    "SYNC_STATUS",
]
