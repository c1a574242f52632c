"""Materialized folder paths from parent pointers."""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable, Optional

from drivemirror.models import Folder

ROOT_PATH: str = "/"


def join_path(prefix: str, name: str) -> str:
    return f"{prefix.rstrip('/')}/{name}"


class PathResolver:
    """
    Resolve `full_path` for a flat set of folders belonging to one drive.

    Rules:
        - A folder whose parent is None, the drive id, or a folder outside
          the set is a root-level folder: "/<name>".
        - Every folder that is part of a parent cycle resolves to "/", and
          its descendants build on that.
        - Paths are memoized, so shared ancestors are walked once.
    """

    def __init__(self, folders: Iterable[Folder], drive_id: str) -> None:
        self._drive_id = drive_id
        self._by_id: dict[str, Folder] = {f.folder_id: f for f in folders}
        self._paths: dict[str, str] = {}

    def path_of(self, folder_id: str) -> str:
        if folder_id in self._paths:
            return self._paths[folder_id]
        if folder_id not in self._by_id:
            return ROOT_PATH

        chain: list[str] = []
        position: dict[str, int] = {}
        base = ROOT_PATH
        current: Optional[str] = folder_id

        while current is not None:
            if current in self._paths:
                base = self._paths[current]
                break

            if current in position:
                start = position[current]
                for member in chain[start:]:
                    self._paths[member] = ROOT_PATH
                del chain[start:]
                base = ROOT_PATH
                break

            position[current] = len(chain)
            chain.append(current)

            parent_id = self._by_id[current].parent_id
            if parent_id is None or parent_id == self._drive_id or parent_id not in self._by_id:
                base = ROOT_PATH
                break
            current = parent_id

        # chain runs from the requested folder upward; resolve top-down.
        for fid in reversed(chain):
            base = join_path(base, self._by_id[fid].name)
            self._paths[fid] = base

        return self._paths[folder_id]

    def resolve(self, folders: Iterable[Folder]) -> list[Folder]:
        return [replace(f, full_path=self.path_of(f.folder_id)) for f in folders]


def resolve_paths(folders: Iterable[Folder], drive_id: str) -> list[Folder]:
    """Return copies of `folders` (input order) with `full_path` filled in."""
    items = list(folders)
    return PathResolver(items, drive_id).resolve(items)
