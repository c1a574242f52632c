"""Runtime configuration loaded from the environment (and an optional .env file)."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Callable, Mapping, Optional, TypeVar

import dotenv

from drivemirror.auth import AuthInfo
from drivemirror.errors import ConfigError
from drivemirror.remote import RetryPolicy

N = TypeVar("N", int, float)

log = logging.getLogger(__name__)

VALID_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


def _number(env: Mapping[str, str], key: str, default: N, cast: Callable[[str], N]) -> N:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        return cast(raw.strip())
    except ValueError:
        log.warning("Invalid value %r for %s, using default %s", raw, key, default)
        return default


def _optional_float(env: Mapping[str, str], key: str) -> Optional[float]:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return None
    try:
        return float(raw.strip())
    except ValueError:
        log.warning("Invalid value %r for %s, ignoring it", raw, key)
        return None


@dataclass(frozen=True)
class SyncConfig:
    """Settings for one drivemirror process."""

    impersonate_user_email: str = ""
    service_account_file: str = ""
    project_id: str = ""
    database_id: str = "(default)"
    sync_interval_minutes: int = 120
    max_retries: int = 3
    retry_delay_sec: float = 1.0
    retry_max_delay_sec: float = 30.0
    page_delay_sec: float = 0.1
    drive_delay_sec: float = 0.5
    request_timeout_sec: float = 60.0
    run_timeout_sec: Optional[float] = None
    history_keep: int = 50
    log_level: str = "INFO"

    @classmethod
    def from_env(
        cls,
        env: Optional[Mapping[str, str]] = None,
        dotenv_path: Optional[str] = None,
    ) -> SyncConfig:
        """
        Build a config from `env` (default: os.environ).

        When reading os.environ, a .env file is loaded first; variables
        already set in the process environment win.
        """
        if env is None:
            dotenv.load_dotenv(dotenv_path or dotenv.find_dotenv(usecwd=True))
            env = os.environ

        service_account_file = env.get("GOOGLE_SERVICE_ACCOUNT_FILE") or env.get(
            "GOOGLE_APPLICATION_CREDENTIALS", ""
        )

        log_level = (env.get("LOG_LEVEL") or "INFO").strip().upper()
        if log_level not in VALID_LOG_LEVELS:
            log.warning("Invalid LOG_LEVEL %r, using INFO", log_level)
            log_level = "INFO"

        return cls(
            impersonate_user_email=(env.get("IMPERSONATE_USER_EMAIL") or "").strip(),
            service_account_file=service_account_file.strip(),
            project_id=(env.get("GCP_PROJECT_ID") or "").strip(),
            database_id=(env.get("FIRESTORE_DATABASE_ID") or "(default)").strip(),
            sync_interval_minutes=_number(env, "SYNC_INTERVAL_MINUTES", 120, int),
            max_retries=_number(env, "SYNC_MAX_RETRIES", 3, int),
            retry_delay_sec=_number(env, "SYNC_RETRY_DELAY", 1.0, float),
            retry_max_delay_sec=_number(env, "SYNC_RETRY_MAX_DELAY", 30.0, float),
            page_delay_sec=_number(env, "SYNC_PAGE_DELAY", 0.1, float),
            drive_delay_sec=_number(env, "SYNC_DRIVE_DELAY", 0.5, float),
            request_timeout_sec=_number(env, "SYNC_REQUEST_TIMEOUT", 60.0, float),
            run_timeout_sec=_optional_float(env, "SYNC_RUN_TIMEOUT"),
            history_keep=_number(env, "SYNC_HISTORY_KEEP", 50, int),
            log_level=log_level,
        )

    def validate(self) -> None:
        """Raise ConfigError naming every problem found."""
        problems: list[str] = []
        if not self.impersonate_user_email:
            problems.append("IMPERSONATE_USER_EMAIL is required")
        if not self.project_id:
            problems.append("GCP_PROJECT_ID is required")
        if self.sync_interval_minutes <= 0:
            problems.append("SYNC_INTERVAL_MINUTES must be positive")
        if self.max_retries < 0:
            problems.append("SYNC_MAX_RETRIES must not be negative")
        if self.history_keep < 0:
            problems.append("SYNC_HISTORY_KEEP must not be negative")
        for name, value in (
            ("SYNC_RETRY_DELAY", self.retry_delay_sec),
            ("SYNC_RETRY_MAX_DELAY", self.retry_max_delay_sec),
            ("SYNC_PAGE_DELAY", self.page_delay_sec),
            ("SYNC_DRIVE_DELAY", self.drive_delay_sec),
        ):
            if value < 0:
                problems.append(f"{name} must not be negative")
        if self.request_timeout_sec <= 0:
            problems.append("SYNC_REQUEST_TIMEOUT must be positive")
        if self.run_timeout_sec is not None and self.run_timeout_sec <= 0:
            problems.append("SYNC_RUN_TIMEOUT must be positive when set")

        if problems:
            raise ConfigError(
                "Invalid configuration: " + "; ".join(problems),
                details={"problems": problems},
            )

    def auth_info(self) -> AuthInfo:
        if not self.service_account_file:
            raise ConfigError(
                "GOOGLE_SERVICE_ACCOUNT_FILE or GOOGLE_APPLICATION_CREDENTIALS is required"
            )
        return AuthInfo.service_account(self.service_account_file, self.impersonate_user_email)

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_retries=self.max_retries,
            initial_delay_sec=self.retry_delay_sec,
            max_delay_sec=self.retry_max_delay_sec,
        )
