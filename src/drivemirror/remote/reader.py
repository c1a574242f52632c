"""Paginated, retrying reader over the Google Drive API."""

from __future__ import annotations

import json
import logging
import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence, TypeVar

from drivemirror.auth import AuthInfo, CredentialsProvider
from drivemirror.errors import (
    ApiError,
    DriveMirrorError,
    HttpErrorInfo,
    InvalidArgumentError,
    NetworkError,
    RateLimitError,
    map_http_error,
)
from drivemirror.models import (
    MANAGER_ROLES,
    ConnectionInfo,
    Drive,
    Folder,
    Manager,
)
from drivemirror.paths import resolve_paths
from drivemirror.util.ids import new_request_id
from drivemirror.util.mime import folder_children_query

from .fields import (
    ABOUT_FIELDS,
    DRIVE_FIELDS,
    DRIVE_LIST_FIELDS,
    DRIVE_PAGE_SIZE,
    FOLDER_LIST_FIELDS,
    FOLDER_PAGE_SIZE,
    PERMISSION_FIELDS,
    PERMISSION_LIST_FIELDS,
    PERMISSION_PAGE_SIZE,
)

T = TypeVar("T")

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """Retry schedule for transient Drive API failures."""

    max_retries: int = 3
    initial_delay_sec: float = 1.0
    multiplier: float = 2.0
    max_delay_sec: float = 30.0

    def delays(self) -> list[float]:
        out: list[float] = []
        delay = self.initial_delay_sec
        for _ in range(self.max_retries):
            out.append(min(delay, self.max_delay_sec))
            delay *= self.multiplier
        return out


class RemoteHierarchyReader:
    """
    Read (and minimally write) shared drives, folders and managers.

    Notes:
        - Pagination is sequential, with `page_delay_sec` between pages.
        - Every call goes through `_execute`, which maps HttpError to
          drivemirror errors and retries transient ones.
        - Each thread sends its requests on its own authorized transport,
          since httplib2.Http is not thread-safe.
        - Errors are raised, never swallowed; callers decide what to skip.
    """

    DEFAULT_SCOPES: tuple[str, ...] = ("https://www.googleapis.com/auth/drive",)

    def __init__(
        self,
        auth_info: AuthInfo,
        *,
        scopes: Optional[Sequence[str]] = None,
        retry_policy: Optional[RetryPolicy] = None,
        page_delay_sec: float = 0.1,
        request_timeout_sec: Optional[float] = None,
    ) -> None:
        self._retry_policy = retry_policy or RetryPolicy()
        self._page_delay_sec = page_delay_sec
        self._local = threading.local()

        use_scopes = list(scopes) if scopes is not None else list(self.DEFAULT_SCOPES)
        provider = CredentialsProvider(auth_info)
        self._new_http = provider.http_factory(use_scopes, timeout_sec=request_timeout_sec)
        self._service = provider.build_drive_service(self._thread_http())

    @classmethod
    def from_service(
        cls,
        service: Any,
        *,
        retry_policy: Optional[RetryPolicy] = None,
        page_delay_sec: float = 0.0,
        http_factory: Optional[Callable[[], Any]] = None,
    ) -> "RemoteHierarchyReader":
        """
        Create reader from a pre-built Drive service (useful for tests).

        Without http_factory, requests run on the service's own transport.
        """
        obj = cls.__new__(cls)
        obj._retry_policy = retry_policy or RetryPolicy()
        obj._page_delay_sec = page_delay_sec
        obj._local = threading.local()
        obj._new_http = http_factory
        obj._service = service
        return obj

    # ----------------------------
    # Drives
    # ----------------------------
    def list_drives(self) -> list[Drive]:
        log.info("Listing shared drives")

        def make_request(page_token: Optional[str]) -> Any:
            return self._service.drives().list(
                pageSize=DRIVE_PAGE_SIZE,
                fields=DRIVE_LIST_FIELDS,
                pageToken=page_token,
            )

        raw = self._paginate(make_request, "drives", label="drives")
        drives = [Drive.from_api(d) for d in raw]
        log.info("Found %d shared drives", len(drives))
        return drives

    def get_drive(self, drive_id: str) -> Drive:
        req = self._service.drives().get(driveId=drive_id, fields=DRIVE_FIELDS)
        try:
            data = self._send(req)
        except DriveMirrorError as exc:
            exc.details.setdefault("drive_id", drive_id)
            raise
        return Drive.from_api(data)

    def create_drive(self, name: str, request_id: Optional[str] = None) -> Drive:
        """
        Create a shared drive.

        The request id makes the call idempotent: retries (including the
        internal ones) with the same id return the same drive.
        """
        if not name or not name.strip():
            raise InvalidArgumentError("Drive name must be a non-empty string")

        token = request_id or new_request_id()
        req = self._service.drives().create(
            requestId=token,
            body={"name": name.strip()},
            fields=DRIVE_FIELDS,
        )
        data = self._send(req)
        drive = Drive.from_api(data)
        log.info("Created shared drive %s (%s)", drive.name, drive.drive_id)
        return drive

    # ----------------------------
    # Folders
    # ----------------------------
    def list_folders_under_drive(
        self,
        drive_id: str,
        drive_name: Optional[str] = None,
    ) -> list[Folder]:
        """
        List every non-trashed folder under a drive, with full paths.

        The walk uses an explicit worklist of parent ids and a visited set,
        so each folder is returned once even if parent links form a cycle.
        """
        label = drive_name or drive_id
        log.info("Listing folders of drive %s (%s)", label, drive_id)

        folders: list[Folder] = []
        seen: set[str] = {drive_id}
        queue: deque[str] = deque([drive_id])

        while queue:
            parent_id = queue.popleft()
            try:
                children = self._list_child_folders(drive_id, parent_id)
            except DriveMirrorError as exc:
                exc.details.setdefault("drive_id", drive_id)
                exc.details.setdefault("parent_id", parent_id)
                raise

            for raw in children:
                folder_id = raw.get("id")
                if not isinstance(folder_id, str) or folder_id in seen:
                    continue
                seen.add(folder_id)
                folders.append(Folder.from_api(raw, drive_id))
                queue.append(folder_id)

        resolved = resolve_paths(folders, drive_id)
        log.info("Found %d folders in drive %s", len(resolved), label)
        return resolved

    # ----------------------------
    # Managers
    # ----------------------------
    def list_managers_for_drive(self, drive_id: str, drive_name: str = "") -> list[Manager]:
        """List permission entries on the drive root with an organizer-class role."""
        label = drive_name or drive_id
        log.info("Listing managers of drive %s (%s)", label, drive_id)

        def make_request(page_token: Optional[str]) -> Any:
            return self._service.permissions().list(
                fileId=drive_id,
                pageSize=PERMISSION_PAGE_SIZE,
                fields=PERMISSION_LIST_FIELDS,
                supportsAllDrives=True,
                pageToken=page_token,
            )

        try:
            raw = self._paginate(make_request, "permissions", label=f"permissions of {label}")
        except DriveMirrorError as exc:
            exc.details.setdefault("drive_id", drive_id)
            raise

        managers = [
            Manager.from_api(p, drive_id, drive_name)
            for p in raw
            if p.get("role") in MANAGER_ROLES
        ]
        log.info("Found %d managers in drive %s", len(managers), label)
        return managers

    def add_manager(self, drive_id: str, email: str, drive_name: str = "") -> Manager:
        req = self._service.permissions().create(
            fileId=drive_id,
            supportsAllDrives=True,
            body={"role": "organizer", "type": "user", "emailAddress": email},
            fields=PERMISSION_FIELDS,
        )
        try:
            data = self._send(req)
        except DriveMirrorError as exc:
            exc.details.setdefault("drive_id", drive_id)
            exc.details.setdefault("email", email)
            raise

        manager = Manager.from_api(data, drive_id, drive_name)
        if not manager.email:
            manager.email = email
        if not manager.role:
            manager.role = "organizer"
        return manager

    # ----------------------------
    # Connectivity
    # ----------------------------
    def test_connection(self) -> ConnectionInfo:
        """Cheap liveness probe. Never raises."""
        try:
            req = self._service.about().get(fields=ABOUT_FIELDS)
            data = self._send(req)
        except Exception as exc:
            log.error("Drive connectivity probe failed: %s", exc)
            return ConnectionInfo(success=False, error=str(exc))

        return ConnectionInfo(
            success=True,
            user=data.get("user") or {},
            quota=data.get("storageQuota") or {},
        )

    # ----------------------------
    # Internals
    # ----------------------------
    def _list_child_folders(self, drive_id: str, parent_id: str) -> list[dict[str, Any]]:
        q = folder_children_query(parent_id)

        def make_request(page_token: Optional[str]) -> Any:
            return self._service.files().list(
                q=q,
                pageSize=FOLDER_PAGE_SIZE,
                fields=FOLDER_LIST_FIELDS,
                corpora="drive",
                driveId=drive_id,
                includeItemsFromAllDrives=True,
                supportsAllDrives=True,
                pageToken=page_token,
            )

        return self._paginate(make_request, "files", label=f"folders under {parent_id}")

    def _paginate(
        self,
        make_request: Callable[[Optional[str]], Any],
        items_key: str,
        *,
        label: str,
    ) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        page_token: Optional[str] = None
        page_count = 0

        while True:
            req = make_request(page_token)
            data = self._send(req)
            page = data.get(items_key, []) or []
            items.extend(page)
            page_count += 1
            log.debug("%s page %d: %d items", label, page_count, len(page))

            page_token = data.get("nextPageToken")
            if not page_token:
                break
            if self._page_delay_sec > 0:
                time.sleep(self._page_delay_sec)

        return items

    def _thread_http(self) -> Any:
        http = getattr(self._local, "http", None)
        if http is None:
            http = self._local.http = self._new_http()
        return http

    def _send(self, req: Any) -> Any:
        if self._new_http is None:
            return self._execute(req.execute)
        return self._execute(lambda: req.execute(http=self._thread_http()))

    def _execute(self, func: Callable[[], T]) -> T:
        delays = self._retry_policy.delays()
        for attempt in range(len(delays) + 1):
            try:
                return func()
            except Exception as exc:
                mapped = self._map_exception(exc)
                if self._should_retry(mapped) and attempt < len(delays):
                    log.warning(
                        "Transient Drive API error (%s), retry %d/%d in %.1fs",
                        mapped,
                        attempt + 1,
                        len(delays),
                        delays[attempt],
                    )
                    time.sleep(delays[attempt])
                    continue
                raise mapped from exc

        raise ApiError("Unexpected retry loop termination")

    def _should_retry(self, exc: Exception) -> bool:
        if isinstance(exc, RateLimitError):
            return True
        if isinstance(exc, NetworkError):
            return True
        if isinstance(exc, ApiError):
            status_code = getattr(exc, "details", {}).get("status_code")
            return isinstance(status_code, int) and 500 <= status_code <= 599
        return False

    def _map_exception(self, exc: Exception) -> Exception:
        from googleapiclient.errors import HttpError

        if isinstance(exc, DriveMirrorError):
            return exc

        if isinstance(exc, HttpError):
            info = _http_error_to_info(exc)
            return map_http_error(info, cause=exc)

        if isinstance(exc, (OSError, TimeoutError)):
            return NetworkError("Network error", cause=exc)

        return ApiError("Drive API error", cause=exc)


def _http_error_to_info(exc: Any) -> HttpErrorInfo:
    status_code = getattr(getattr(exc, "resp", None), "status", None)
    reason = getattr(getattr(exc, "resp", None), "reason", None)

    message = None
    details: dict[str, Any] = {}

    content = getattr(exc, "content", None)
    if isinstance(content, (bytes, bytearray)):
        try:
            payload = json.loads(content.decode("utf-8"))
        except (UnicodeDecodeError, ValueError):
            payload = {}
        err = payload.get("error", {}) if isinstance(payload, dict) else {}
        if isinstance(err, dict):
            message = err.get("message") or None
            errors = err.get("errors") or []
            if errors and isinstance(errors, list) and isinstance(errors[0], dict):
                details["domain"] = errors[0].get("domain")
                details["reason_detail"] = errors[0].get("reason")
                if isinstance(errors[0].get("reason"), str):
                    reason = errors[0]["reason"]

    if not isinstance(status_code, int):
        try:
            status_code = int(status_code)
        except (TypeError, ValueError):
            status_code = 0

    return HttpErrorInfo(
        status_code=status_code,
        reason=reason if isinstance(reason, str) else None,
        message=message,
        details=details or None,
    )
