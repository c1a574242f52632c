"""Google Drive reader exports for drivemirror."""

from __future__ import annotations

from .reader import RemoteHierarchyReader, RetryPolicy

__all__ = ["RemoteHierarchyReader", "RetryPolicy"]
