"""Data models for mirrored Drive entities."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from drivemirror.util.mime import FOLDER_MIME
from drivemirror.util.time import parse_optional_rfc3339

MANAGER_ROLES: tuple[str, ...] = ("organizer", "fileOrganizer")


def _str_or(value: Any, default: str = "") -> str:
    return value if isinstance(value, str) else default


def _flags(value: Any) -> dict[str, bool]:
    if not isinstance(value, dict):
        return {}
    return {str(k): bool(v) for k, v in value.items()}


@dataclass(slots=True)
class Drive:
    """A shared drive as listed by the Drive API."""

    drive_id: str
    name: str
    kind: str = "drive#drive"
    color_rgb: Optional[str] = None
    background_image_file: Optional[dict[str, Any]] = None
    capabilities: dict[str, bool] = field(default_factory=dict)
    created_time: Optional[datetime] = None
    hidden: bool = False
    restrictions: dict[str, bool] = field(default_factory=dict)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Drive:
        background = data.get("backgroundImageFile")
        return cls(
            drive_id=_str_or(data.get("id")),
            name=_str_or(data.get("name")),
            kind=_str_or(data.get("kind"), "drive#drive"),
            color_rgb=data.get("colorRgb") if isinstance(data.get("colorRgb"), str) else None,
            background_image_file=background if isinstance(background, dict) else None,
            capabilities=_flags(data.get("capabilities")),
            created_time=parse_optional_rfc3339(data.get("createdTime")),
            hidden=bool(data.get("hidden", False)),
            restrictions=_flags(data.get("restrictions")),
        )

    def to_document(self) -> dict[str, Any]:
        return {
            "id": self.drive_id,
            "name": self.name,
            "kind": self.kind,
            "colorRgb": self.color_rgb,
            "backgroundImageFile": self.background_image_file,
            "capabilities": dict(self.capabilities),
            "createdTime": self.created_time,
            "hidden": self.hidden,
            "restrictions": dict(self.restrictions),
        }


@dataclass(slots=True)
class Folder:
    """
    A folder inside a shared drive.

    Notes:
        - parent_id is None when the folder sits directly under the drive root.
        - full_path is filled in by the path resolver ("/" until then).
    """

    folder_id: str
    name: str
    drive_id: str
    parent_id: Optional[str] = None
    mime_type: str = FOLDER_MIME
    created_time: Optional[datetime] = None
    modified_time: Optional[datetime] = None
    full_path: str = "/"

    @classmethod
    def from_api(cls, data: dict[str, Any], drive_id: str) -> Folder:
        parents = data.get("parents") or []
        parent_id = parents[0] if isinstance(parents, list) and parents else None
        if parent_id == drive_id:
            parent_id = None
        return cls(
            folder_id=_str_or(data.get("id")),
            name=_str_or(data.get("name")),
            drive_id=drive_id,
            parent_id=parent_id if isinstance(parent_id, str) else None,
            mime_type=_str_or(data.get("mimeType"), FOLDER_MIME),
            created_time=parse_optional_rfc3339(data.get("createdTime")),
            modified_time=parse_optional_rfc3339(data.get("modifiedTime")),
        )

    def to_document(self) -> dict[str, Any]:
        return {
            "id": self.folder_id,
            "name": self.name,
            "driveId": self.drive_id,
            "parent_id": self.parent_id,
            "full_path": self.full_path or "/",
            "mimeType": self.mime_type,
            "createdTime": self.created_time,
            "modifiedTime": self.modified_time,
        }


@dataclass(slots=True)
class Manager:
    """An organizer-class permission grant on a shared drive."""

    drive_id: str
    drive_name: str
    email: str
    role: str
    type: str = "user"
    permission_id: Optional[str] = None
    display_name: Optional[str] = None
    photo_link: Optional[str] = None

    @classmethod
    def from_api(cls, data: dict[str, Any], drive_id: str, drive_name: str) -> Manager:
        return cls(
            drive_id=drive_id,
            drive_name=drive_name,
            email=_str_or(data.get("emailAddress") or data.get("email")),
            role=_str_or(data.get("role")),
            type=_str_or(data.get("type"), "user"),
            permission_id=data.get("id") if isinstance(data.get("id"), str) else None,
            display_name=data.get("displayName") if isinstance(data.get("displayName"), str) else None,
            photo_link=data.get("photoLink") if isinstance(data.get("photoLink"), str) else None,
        )

    def is_manager_role(self) -> bool:
        return self.role in MANAGER_ROLES

    def identity(self) -> tuple[str, str, Optional[str]]:
        return (self.email, self.role, self.permission_id)

    def to_document(self) -> dict[str, Any]:
        return {
            "driveId": self.drive_id,
            "driveName": self.drive_name,
            "email": self.email,
            "role": self.role,
            "type": self.type,
            "permissionId": self.permission_id,
            "displayName": self.display_name,
            "photoLink": self.photo_link,
        }


@dataclass(slots=True)
class DriveSnapshot:
    """Remote state fetched for one drive during a run."""

    drive: Drive
    folders: list[Folder] = field(default_factory=list)
    managers: list[Manager] = field(default_factory=list)
    fetch_failed: bool = False
