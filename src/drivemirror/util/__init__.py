from .ids import new_request_id, new_sync_id, new_uuid
from .mime import FOLDER_MIME, folder_children_query
from .time import (
    elapsed_ms,
    ms_to_minutes,
    normalize_dt,
    now_utc,
    parse_optional_rfc3339,
    parse_rfc3339,
    to_rfc3339,
)

__all__ = [
    "new_uuid",
    "new_sync_id",
    "new_request_id",
    "FOLDER_MIME",
    "folder_children_query",
    "now_utc",
    "parse_rfc3339",
    "parse_optional_rfc3339",
    "to_rfc3339",
    "normalize_dt",
    "elapsed_ms",
    "ms_to_minutes",
]
