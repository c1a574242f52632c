import unittest
from datetime import datetime, timedelta, timezone

from fakes import FakeFirestoreClient
from google.api_core.exceptions import ServiceUnavailable

from drivemirror.errors import InvalidArgumentError, MirrorStoreError
from drivemirror.models import Drive, Folder, Manager, SyncStats
from drivemirror.store import (
    DRIVE_MANAGERS,
    FOLDERS,
    SHARED_DRIVES,
    SYNC_HISTORY,
    SYNC_STATUS,
    MirrorStore,
    preserve_frontend_fields,
)

T0 = datetime(2025, 1, 1, tzinfo=timezone.utc)


class _Clock:
    def __init__(self) -> None:
        self.now = T0

    def __call__(self) -> datetime:
        return self.now


def _manager(drive_id: str, email: str, role: str = "organizer", perm: str = "") -> Manager:
    return Manager(
        drive_id=drive_id,
        drive_name="Drive",
        email=email,
        role=role,
        permission_id=perm or f"perm-{email}",
    )


class MirrorStoreTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.client = FakeFirestoreClient()
        self.clock = _Clock()
        self.store = MirrorStore(self.client, clock=self.clock)


class TestPreserveFrontendFields(unittest.TestCase):
    def test_keeps_flag_and_created_at(self) -> None:
        new = {"name": "x", "created_by_frontend": False}
        out = preserve_frontend_fields(new, {"created_by_frontend": True, "created_at": T0})
        self.assertTrue(out["created_by_frontend"])
        self.assertEqual(out["created_at"], T0)

    def test_no_existing_record(self) -> None:
        self.assertEqual(preserve_frontend_fields({"name": "x"}, None), {"name": "x"})


class TestDriveSync(MirrorStoreTestCase):
    def test_scenario_remote_d1_d2_mirror_d1_d3(self) -> None:
        self.client.seed(SHARED_DRIVES, "D1", {"id": "D1", "name": "Old name"})
        self.client.seed(SHARED_DRIVES, "D3", {"id": "D3", "name": "Gone"})

        summary = self.store.sync_drives([Drive("D1", "One"), Drive("D2", "Two")])

        self.assertEqual(summary.processed, 2)
        self.assertEqual(summary.deleted, 1)
        docs = self.client.documents(SHARED_DRIVES)
        self.assertEqual(set(docs), {"D1", "D2"})
        self.assertEqual(docs["D1"]["name"], "One")
        self.assertTrue(docs["D2"]["synced_by_backend"])
        self.assertEqual(docs["D2"]["synced_at"], T0)
        self.assertEqual(self.client.deletes(SHARED_DRIVES), ["D3"])

    def test_frontend_created_drive_keeps_markers(self) -> None:
        created_at = T0 - timedelta(days=3)
        self.client.seed(
            SHARED_DRIVES,
            "D1",
            {"id": "D1", "name": "One", "created_by_frontend": True, "created_at": created_at},
        )

        self.store.sync_drives([Drive("D1", "Renamed")])

        doc = self.client.documents(SHARED_DRIVES)["D1"]
        self.assertTrue(doc["created_by_frontend"])
        self.assertEqual(doc["created_at"], created_at)
        self.assertEqual(doc["name"], "Renamed")

    def test_upsert_many_drives_uses_bounded_batches(self) -> None:
        self.client.seed(SHARED_DRIVES, "stale", {"id": "stale"})
        drives = [Drive(f"D{i}", f"Drive {i}") for i in range(1100)]

        self.store.sync_drives(drives)

        self.assertTrue(all(size <= 500 for size in self.client.batch_sizes))
        self.assertEqual(self.client.batch_sizes, [1, 500, 500, 100])
        self.assertEqual(len(self.client.documents(SHARED_DRIVES)), 1100)

    def test_upsert_drives_never_deletes(self) -> None:
        self.client.seed(SHARED_DRIVES, "D9", {"id": "D9"})
        self.store.upsert_drives([Drive("D1", "One")])
        self.assertEqual(set(self.client.documents(SHARED_DRIVES)), {"D1", "D9"})

    def test_upsert_preserves_markers_via_get_all(self) -> None:
        self.client.seed(
            SHARED_DRIVES, "D1", {"id": "D1", "created_by_frontend": True, "created_at": T0}
        )
        self.store.upsert_drives([Drive("D1", "One")])
        self.assertTrue(self.client.documents(SHARED_DRIVES)["D1"]["created_by_frontend"])

    def test_firestore_failure_is_wrapped(self) -> None:
        self.client.fail("stream", ServiceUnavailable("down"), SHARED_DRIVES)
        with self.assertRaises(MirrorStoreError) as ctx:
            self.store.sync_drives([Drive("D1", "One")])
        self.assertEqual(ctx.exception.details["collection"], SHARED_DRIVES)


class TestFolders(MirrorStoreTestCase):
    def test_folders_are_upserted_and_never_deleted(self) -> None:
        self.client.seed(FOLDERS, "OLD", {"id": "OLD", "driveId": "D1"})
        folder = Folder("F1", "A", "D1", full_path="/A")

        count = self.store.sync_folders_for_drive("D1", [folder])

        self.assertEqual(count, 1)
        docs = self.client.documents(FOLDERS)
        self.assertEqual(set(docs), {"OLD", "F1"})
        self.assertEqual(docs["F1"]["full_path"], "/A")
        self.assertEqual(docs["F1"]["driveId"], "D1")
        self.assertTrue(docs["F1"]["synced_by_backend"])


class TestManagers(MirrorStoreTestCase):
    def _backend_managers(self, drive_id: str) -> set:
        return {
            (doc["email"], doc["role"], doc["permissionId"])
            for doc in self.client.documents(DRIVE_MANAGERS).values()
            if doc.get("driveId") == drive_id and doc.get("synced_by_backend")
        }

    def test_replace_all(self) -> None:
        self.store.replace_managers_for_drive(
            "D1", "Drive", [_manager("D1", "a@example.com"), _manager("D1", "b@example.com")]
        )
        self.store.replace_managers_for_drive("D1", "Drive", [_manager("D1", "c@example.com")])

        self.assertEqual(
            self._backend_managers("D1"),
            {("c@example.com", "organizer", "perm-c@example.com")},
        )

    def test_other_drives_and_manual_entries_are_untouched(self) -> None:
        self.client.seed(DRIVE_MANAGERS, "m-other", {"driveId": "D2", "email": "x@example.com", "synced_by_backend": True})
        self.client.seed(DRIVE_MANAGERS, "m-manual", {"driveId": "D1", "email": "y@example.com"})

        self.store.replace_managers_for_drive("D1", "Drive", [])

        self.assertEqual(set(self.client.documents(DRIVE_MANAGERS)), {"m-other", "m-manual"})

    def test_many_managers_use_bounded_batches(self) -> None:
        managers = [_manager("D1", f"u{i}@example.com") for i in range(750)]
        self.store.replace_managers_for_drive("D1", "Drive", managers)
        self.store.replace_managers_for_drive("D1", "Drive", managers[:10])

        self.assertTrue(all(size <= 500 for size in self.client.batch_sizes))
        self.assertEqual(len(self._backend_managers("D1")), 10)

    def test_documents_carry_drive_name_and_stamp(self) -> None:
        self.store.replace_managers_for_drive("D1", "Renamed", [_manager("D1", "a@example.com")])
        doc = next(iter(self.client.documents(DRIVE_MANAGERS).values()))
        self.assertEqual(doc["driveName"], "Renamed")
        self.assertEqual(doc["synced_at"], T0)


class TestCreatedDrive(MirrorStoreTestCase):
    def test_save_created_drive_and_following_sync(self) -> None:
        self.store.save_created_drive(Drive("N1", "New"), [_manager("N1", "a@example.com")])

        doc = self.client.documents(SHARED_DRIVES)["N1"]
        self.assertTrue(doc["created_by_frontend"])
        self.assertEqual(doc["created_at"], T0)
        self.assertEqual(len(self.client.documents(DRIVE_MANAGERS)), 1)

        self.clock.now = T0 + timedelta(hours=2)
        self.store.sync_drives([Drive("N1", "New")])

        doc = self.client.documents(SHARED_DRIVES)["N1"]
        self.assertTrue(doc["created_by_frontend"])
        self.assertEqual(doc["created_at"], T0)
        self.assertEqual(doc["synced_at"], T0 + timedelta(hours=2))

    def test_list_drives_is_ordered_by_name(self) -> None:
        self.client.seed(SHARED_DRIVES, "D2", {"name": "Beta"})
        self.client.seed(SHARED_DRIVES, "D1", {"name": "Alpha"})
        self.assertEqual([d["id"] for d in self.store.list_drives()], ["D1", "D2"])


class TestRunsAndStatus(MirrorStoreTestCase):
    def test_run_lifecycle(self) -> None:
        self.store.record_run_start("S1", T0)
        self.store.update_run_progress("S1", {"current_drive": "1/2"})
        stats = SyncStats(drives_count=2, folders_count=5, managers_count=3, errors=["e"], end_time=T0, duration_ms=1200, duration_minutes=0.02)
        self.store.complete_run("S1", stats, "completed_with_errors")

        doc = self.client.documents(SYNC_HISTORY)["S1"]
        self.assertEqual(doc["status"], "completed_with_errors")
        self.assertEqual(doc["sync_date"], T0)
        self.assertEqual(doc["current_drive"], "1/2")
        self.assertEqual(doc["drives_count"], 2)
        self.assertEqual(doc["errors"], ["e"])
        self.assertEqual(doc["duration_ms"], 1200)

    def test_prune_keeps_most_recent(self) -> None:
        for i in range(8):
            self.store.record_run_start(f"S{i}", T0 + timedelta(hours=i))

        deleted = self.store.prune_old_runs(keep_last=3)

        self.assertEqual(deleted, 5)
        self.assertEqual(set(self.client.documents(SYNC_HISTORY)), {"S5", "S6", "S7"})
        self.assertEqual(self.store.prune_old_runs(keep_last=3), 0)

    def test_prune_failure_returns_zero(self) -> None:
        self.store.record_run_start("S1", T0)
        self.client.fail("stream", ServiceUnavailable("down"), SYNC_HISTORY)
        self.assertEqual(self.store.prune_old_runs(keep_last=0), 0)

    def test_prune_rejects_negative(self) -> None:
        with self.assertRaises(InvalidArgumentError):
            self.store.prune_old_runs(keep_last=-1)

    def test_status_defaults_to_idle(self) -> None:
        self.assertEqual(
            self.store.get_status(),
            {"status": "idle", "last_sync": None, "current_sync_id": None},
        )

    def test_terminal_status_sets_last_sync_and_clears_id(self) -> None:
        self.store.set_status("running", "S1")
        self.assertEqual(self.store.get_status()["current_sync_id"], "S1")
        self.assertNotIn("last_sync", self.client.documents(SYNC_STATUS)["current"])

        self.clock.now = T0 + timedelta(minutes=5)
        self.store.set_status("failed", "S1")

        status = self.store.get_status()
        self.assertEqual(status["status"], "failed")
        self.assertIsNone(status["current_sync_id"])
        self.assertEqual(status["last_sync"], T0 + timedelta(minutes=5))

    def test_database_stats_counts(self) -> None:
        self.client.seed(SHARED_DRIVES, "D1", {})
        self.client.seed(FOLDERS, "F1", {})
        self.client.seed(FOLDERS, "F2", {})
        stats = self.store.database_stats()
        self.assertEqual(stats["drives_count"], 1)
        self.assertEqual(stats["folders_count"], 2)
        self.assertEqual(stats["managers_count"], 0)
        self.assertEqual(stats["timestamp"], T0)


class TestConstruction(unittest.TestCase):
    def test_batch_size_bounds(self) -> None:
        with self.assertRaises(InvalidArgumentError):
            MirrorStore(FakeFirestoreClient(), batch_size=501)


if __name__ == "__main__":
    unittest.main()
