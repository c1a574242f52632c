"""Command-line entry point: run one engine operation and print JSON."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, Optional, Sequence

from drivemirror.auth import CredentialsProvider
from drivemirror.config import SyncConfig
from drivemirror.engine import ReconciliationEngine
from drivemirror.errors import DriveMirrorError, SyncInProgressError
from drivemirror.logging_setup import configure_logging
from drivemirror.models import jsonable
from drivemirror.remote import RemoteHierarchyReader
from drivemirror.store import MirrorStore

log = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_IN_PROGRESS = 2

DRIVE_SCOPES = ("https://www.googleapis.com/auth/drive",)
FIRESTORE_SCOPES = ("https://www.googleapis.com/auth/datastore",)


def build_engine(config: SyncConfig) -> ReconciliationEngine:
    """Wire reader, store and engine from a validated config."""
    auth_info = config.auth_info()
    reader = RemoteHierarchyReader(
        auth_info,
        scopes=DRIVE_SCOPES,
        retry_policy=config.retry_policy(),
        page_delay_sec=config.page_delay_sec,
        request_timeout_sec=config.request_timeout_sec,
    )
    store = MirrorStore.connect(
        config.project_id,
        database_id=config.database_id,
        credentials=CredentialsProvider(auth_info).get_project_credentials(FIRESTORE_SCOPES),
    )
    return ReconciliationEngine(
        reader,
        store,
        drive_delay_sec=config.drive_delay_sec,
        run_timeout_sec=config.run_timeout_sec,
        history_keep=config.history_keep,
        sync_interval_minutes=config.sync_interval_minutes,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="drivemirror",
        description="Mirror Google shared drives, folders and managers into Firestore.",
    )
    parser.add_argument(
        "--env-file",
        help="Path to a .env file (default: search upwards from the working directory)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Override LOG_LEVEL",
    )

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("sync", help="Run a full sync")

    incremental = sub.add_parser("incremental", help="Re-sync selected drives (all when none given)")
    incremental.add_argument("drive_ids", nargs="*", metavar="DRIVE_ID")

    sub.add_parser("status", help="Show current and last sync status")

    maintenance = sub.add_parser("maintenance", help="Prune old sync history records")
    maintenance.add_argument("--keep", type=int, default=None, help="Number of runs to keep")

    sub.add_parser("health", help="Check Google Drive and Firestore connectivity")
    sub.add_parser("drives", help="List mirrored drives")

    create = sub.add_parser("create-drive", help="Create a shared drive and mirror it")
    create.add_argument("name")
    create.add_argument(
        "--manager",
        action="append",
        default=[],
        metavar="EMAIL",
        help="Email to grant the organizer role (repeatable)",
    )
    return parser


def _emit(payload: Any) -> None:
    print(json.dumps(jsonable(payload), indent=2, ensure_ascii=False, default=str))


def _dispatch(engine: ReconciliationEngine, args: argparse.Namespace) -> int:
    command = args.command

    if command == "sync":
        result = engine.perform_sync()
        _emit(result.to_dict())
        return EXIT_OK if result.success else EXIT_FAILED

    if command == "incremental":
        result = engine.perform_incremental_sync(args.drive_ids)
        _emit(result.to_dict())
        return EXIT_OK if result.success else EXIT_FAILED

    if command == "status":
        data = engine.get_sync_status()
        _emit({"success": "error" not in data, "data": data})
        return EXIT_OK if "error" not in data else EXIT_FAILED

    if command == "maintenance":
        outcome = engine.perform_maintenance(args.keep)
        _emit(outcome.to_dict())
        return EXIT_OK if outcome.success else EXIT_FAILED

    if command == "health":
        report = engine.health_check()
        _emit(report.to_dict())
        return EXIT_OK if report.success else EXIT_FAILED

    if command == "drives":
        drives = engine.list_mirrored_drives()
        _emit({"success": True, "data": drives, "count": len(drives)})
        return EXIT_OK

    if command == "create-drive":
        created = engine.create_drive(args.name, args.manager)
        _emit({"success": True, "data": created.to_dict()})
        return EXIT_OK

    raise ValueError(f"Unknown command: {command}")


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = SyncConfig.from_env(dotenv_path=args.env_file)
        configure_logging(args.log_level or config.log_level)
        config.validate()
        engine = build_engine(config)
        return _dispatch(engine, args)
    except SyncInProgressError as exc:
        log.warning("%s", exc)
        _emit({"success": False, "error": str(exc), "details": exc.details})
        return EXIT_IN_PROGRESS
    except DriveMirrorError as exc:
        log.error("%s failed: %s", args.command, exc)
        _emit({"success": False, "error": str(exc), "details": exc.details})
        return EXIT_FAILED


if __name__ == "__main__":
    sys.exit(main())
