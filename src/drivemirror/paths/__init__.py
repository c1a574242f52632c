"""Folder path resolution."""

from __future__ import annotations

from .resolver import ROOT_PATH, PathResolver, join_path, resolve_paths

__all__ = ["ROOT_PATH", "PathResolver", "join_path", "resolve_paths"]
