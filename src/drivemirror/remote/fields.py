"""Field definitions for Google Drive API responses."""

from __future__ import annotations

DRIVE_FIELDS: str = (
    "id,"
    "name,"
    "kind,"
    "colorRgb,"
    "backgroundImageFile,"
    "capabilities,"
    "createdTime,"
    "hidden,"
    "restrictions"
)

DRIVE_LIST_FIELDS: str = f"nextPageToken,drives({DRIVE_FIELDS})"

FOLDER_FIELDS: str = "id,name,parents,mimeType,createdTime,modifiedTime"

FOLDER_LIST_FIELDS: str = f"nextPageToken,files({FOLDER_FIELDS})"

PERMISSION_FIELDS: str = "id,emailAddress,role,type,displayName,photoLink"

PERMISSION_LIST_FIELDS: str = f"nextPageToken,permissions({PERMISSION_FIELDS})"

ABOUT_FIELDS: str = "user,storageQuota"

DRIVE_PAGE_SIZE: int = 100
FOLDER_PAGE_SIZE: int = 1000
PERMISSION_PAGE_SIZE: int = 100
