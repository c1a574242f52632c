"""Credential loading and Drive service construction for drivemirror."""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional, Sequence

from drivemirror.errors import AuthError, InvalidArgumentError

from .auth_info import AuthInfo

log = logging.getLogger(__name__)


class CredentialsProvider:
    """Create Google credentials and Drive API service objects from AuthInfo."""

    def __init__(self, auth_info: AuthInfo) -> None:
        self._auth_info = auth_info

    @property
    def auth_info(self) -> AuthInfo:
        return self._auth_info

    def get_credentials(self, scopes: Sequence[str]):
        """
        Return service-account credentials delegated to the configured subject.

        Raises:
            AuthError: if the key file cannot be loaded.
            InvalidArgumentError: if scopes is invalid.
        """
        _check_scopes(scopes)
        creds = self._load_service_account(scopes)
        subject = self._auth_info.subject
        log.info("Using service account credentials, impersonating %s", subject)
        return creds.with_subject(subject)

    def get_project_credentials(self, scopes: Sequence[str]):
        """Service-account credentials without delegation, for project APIs such as Firestore."""
        _check_scopes(scopes)
        return self._load_service_account(scopes)

    def http_factory(
        self,
        scopes: Sequence[str],
        *,
        timeout_sec: Optional[float] = None,
    ) -> Callable[[], Any]:
        """
        Return a callable that builds a fresh authorized HTTP transport.

        httplib2.Http objects must not be shared between threads; every
        thread that talks to Drive takes its own transport from this factory.
        All transports share one credentials object.
        """
        import google_auth_httplib2
        import httplib2

        creds = self.get_credentials(scopes)

        def new_http() -> Any:
            return google_auth_httplib2.AuthorizedHttp(
                creds, http=httplib2.Http(timeout=timeout_sec)
            )

        return new_http

    def build_drive_service(self, http: Any) -> Any:
        """Build a Drive v3 service resource on the given transport."""
        from googleapiclient.discovery import build

        try:
            return build("drive", "v3", http=http, cache_discovery=False)
        except Exception as exc:
            raise AuthError("Failed to build Drive service", cause=exc) from exc

    # ----------------------------
    # Internals
    # ----------------------------
    def _load_service_account(self, scopes: Sequence[str]):
        from google.oauth2 import service_account

        path = self._auth_info.service_account_file
        try:
            creds = service_account.Credentials.from_service_account_file(
                path,
                scopes=list(scopes),
            )
        except Exception as exc:
            raise AuthError(
                "Failed to load service account file",
                details={"service_account_file": path},
                cause=exc,
            ) from exc

        return creds


def _check_scopes(scopes: Sequence[str]) -> None:
    if not scopes or not all(isinstance(s, str) and s.strip() for s in scopes):
        raise InvalidArgumentError("scopes must be a non-empty sequence of strings")
