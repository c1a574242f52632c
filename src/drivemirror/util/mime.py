from __future__ import annotations

FOLDER_MIME: str = "application/vnd.google-apps.folder"


def folder_children_query(parent_id: str) -> str:
    """Drive `q` expression selecting non-trashed folders directly under parent_id."""
    return f"'{parent_id}' in parents and mimeType='{FOLDER_MIME}' and trashed=false"
