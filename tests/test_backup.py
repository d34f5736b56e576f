"""Integration tests for backup archives and the database / spreadsheet restores."""

import tempfile
import unittest
import zipfile
from pathlib import Path

from sqlalchemy import create_engine

from outsourcing_register.core.database import Store
from outsourcing_register.core.errors import (
    ArchiveMalformedError,
    StoreUnavailableError,
    ValidationFailedError,
)
from outsourcing_register.models import Base, CriticalMonitorRecord, Event, Issue, Supplier
from outsourcing_register.schemas.backup import RestoreOptions
from outsourcing_register.schemas.records import (
    CriticalMonitorEntry,
    EventRecord,
    IssueFollowUp,
    IssueRecord,
    SupplierRecord,
)
from outsourcing_register.services import auth as auth_service
from outsourcing_register.services import users as user_service
from outsourcing_register.services.backup import (
    ARCHIVE_MEMBERS,
    BackupCoordinator,
    BackupState,
    UPGRADE_FAILED_MESSAGE,
)
from outsourcing_register.services.records import (
    CriticalMonitorRepository,
    EventRepository,
    IssueRepository,
    SupplierRepository,
)

ALL = RestoreOptions(suppliers=True, events=True, issues=True, critical_monitor=True)


class BackupTestCase(unittest.TestCase):
    """A store seeded with one record per category, and a separate folder for archives."""

    def setUp(self) -> None:
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        root = Path(tmp.name)
        self.data_dir = root / "data"
        self.backup_dir = root / "backups"
        self.backup_dir.mkdir()
        self.store = Store(self.data_dir / "register.db").open()
        self.addCleanup(self.store.close)
        self.coordinator = BackupCoordinator(self.store)
        self.seed()

    def seed(self) -> None:
        with self.store.transaction() as db:
            SupplierRepository(db).add(
                SupplierRecord(
                    reference_number="OUT-001",
                    status="Active",
                    category="Cloud",
                    provider_name="Acme Cloud",
                    function_name="Hosting",
                    is_critical=True,
                    payload={"countries": ["LU"], "notes": "Tier 1"},
                )
            )
            EventRepository(db).add(
                EventRecord(type="status_change", event_date="2025-03-01", summary="Activated OUT-001")
            )
            IssueRepository(db).add(
                IssueRecord(
                    title="Missing audit report",
                    description="Q4 report not received",
                    category="Audit",
                    date_opened="2025-03-01T09:00:00",
                    date_last_update="2025-03-02T09:00:00",
                    follow_ups=[IssueFollowUp(note="Chased provider", date="2025-03-02")],
                )
            )
            CriticalMonitorRepository(db).add(
                CriticalMonitorEntry(supplier_reference_number="OUT-001", contract="Signed 2024")
            )

    def backup(self, name: str = "backup.zip") -> Path:
        dest = self.backup_dir / name
        self.coordinator.create_backup(dest)
        return dest

    def suppliers(self) -> list[str]:
        with self.store.session() as db:
            return [s.reference_number for s in SupplierRepository(db).list()]

    def snapshot(self) -> dict[str, list[dict]]:
        """Every stored row, field by field, including accounts."""
        with self.store.session() as db:
            return {
                "suppliers": [r.model_dump() for r in SupplierRepository(db).list()],
                "events": [r.model_dump() for r in EventRepository(db).list()],
                "issues": [r.model_dump() for r in IssueRepository(db).list()],
                "critical_monitor": [r.model_dump() for r in CriticalMonitorRepository(db).list()],
                "users": [u.model_dump() for u in user_service.get_all_users(db)],
                "auth_settings": [auth_service.get_auth_settings(db).model_dump()],
            }

    def contract(self) -> str | None:
        with self.store.session() as db:
            entry = CriticalMonitorRepository(db).get_by_key("OUT-001")
            return entry.contract if entry else None


class TestCreateBackup(BackupTestCase):
    def test_archive_has_database_and_spreadsheets(self) -> None:
        dest = self.backup_dir / "backup.zip"
        result = self.coordinator.create_backup(dest)
        self.assertTrue(result.success)
        self.assertEqual(result.path, str(dest))
        self.assertEqual(result.files, list(ARCHIVE_MEMBERS))
        with zipfile.ZipFile(dest) as zf:
            self.assertEqual(sorted(zf.namelist()), sorted(ARCHIVE_MEMBERS))

    def test_staging_files_removed_and_store_reopened(self) -> None:
        self.backup()
        self.assertEqual([p.name for p in self.backup_dir.iterdir()], ["backup.zip"])
        self.assertTrue(self.store.is_open)
        self.assertEqual(self.coordinator.state, BackupState.IDLE)
        self.assertEqual(self.suppliers(), ["OUT-001"])

    def test_invalid_destinations(self) -> None:
        with self.assertRaises(ValidationFailedError):
            self.coordinator.create_backup(self.backup_dir / "backup.tar")
        with self.assertRaises(ValidationFailedError):
            self.coordinator.create_backup(self.backup_dir / "missing" / "backup.zip")

    def test_second_operation_while_busy_is_rejected(self) -> None:
        self.coordinator._busy.acquire()
        self.addCleanup(self.coordinator._busy.release)
        with self.assertRaises(StoreUnavailableError):
            self.coordinator.create_backup(self.backup_dir / "backup.zip")
        self.assertFalse((self.backup_dir / "backup.zip").exists())


class TestRestoreFromDatabase(BackupTestCase):
    def test_full_restore_replaces_everything_including_users(self) -> None:
        with self.store.session() as db:
            auth_service.enable_auth(db)
        before = self.snapshot()
        archive = self.backup()
        with self.store.transaction() as db:
            SupplierRepository(db).add(SupplierRecord(reference_number="OUT-002"))
            IssueRepository(db).delete_all()
        with self.store.session() as db:
            user_service.create_user(db, {"username": "late", "password": "secret1", "display_name": "Late", "role": "admin"})
            auth_service.disable_auth(db)

        result = self.coordinator.restore_from_database_backup(archive, ALL)

        self.assertTrue(result.success)
        self.assertEqual(result.stats.model_dump(), {"suppliers": 1, "events": 1, "issues": 1, "critical_monitor": 1})
        self.assertEqual(self.snapshot(), before)
        self.assertTrue(self.store.is_open)
        leftovers = [p.name for p in self.data_dir.iterdir() if p.name.startswith(".")]
        self.assertEqual(leftovers, [])

    def test_unmigrated_archive_leaves_live_store_untouched(self) -> None:
        legacy = self.backup_dir / "legacy.db"
        engine = create_engine(f"sqlite:///{legacy}")
        Base.metadata.create_all(
            engine,
            tables=[Supplier.__table__, Event.__table__, Issue.__table__, CriticalMonitorRecord.__table__],
        )
        engine.dispose()
        archive = self.backup_dir / "legacy.zip"
        with zipfile.ZipFile(archive, "w") as zf:
            zf.write(legacy, arcname="database.db")
        with self.store.session() as db:
            auth_service.enable_auth(db)
        before = self.snapshot()

        with self.assertRaises(ArchiveMalformedError) as ctx:
            self.coordinator.restore_from_database_backup(archive, ALL)

        self.assertEqual(ctx.exception.message, UPGRADE_FAILED_MESSAGE)
        self.assertTrue(self.store.is_open)
        self.assertEqual(self.snapshot(), before)
        self.assertEqual(self.coordinator.state, BackupState.IDLE)

    def test_partial_restore_touches_only_selected_tables(self) -> None:
        archive = self.backup()
        with self.store.transaction() as db:
            SupplierRepository(db).add(SupplierRecord(reference_number="OUT-002"))
            CriticalMonitorRepository(db).upsert(
                CriticalMonitorEntry(supplier_reference_number="OUT-001", contract="Renewed 2025")
            )
        with self.store.session() as db:
            auth_service.enable_auth(db)

        result = self.coordinator.restore_from_database_backup(archive, RestoreOptions(suppliers=True))

        self.assertEqual(result.stats.suppliers, 1)
        self.assertEqual(result.stats.critical_monitor, 0)
        self.assertEqual(self.suppliers(), ["OUT-001"])
        self.assertEqual(self.contract(), "Renewed 2025")
        with self.store.session() as db:
            self.assertTrue(auth_service.get_auth_settings(db).auth_enabled)
            self.assertIsNotNone(user_service.get_user_by_username(db, "admin"))
            supplier = SupplierRepository(db).get_by_key("OUT-001")
        self.assertEqual(supplier.payload, {"countries": ["LU"], "notes": "Tier 1"})
        self.assertTrue(supplier.is_critical)

    def test_archive_without_database_changes_nothing(self) -> None:
        archive = self.backup_dir / "sheets-only.zip"
        with zipfile.ZipFile(archive, "w") as zf:
            zf.writestr("Suppliers.xlsx", b"")
        with self.store.transaction() as db:
            SupplierRepository(db).add(SupplierRecord(reference_number="OUT-002"))

        with self.assertRaises(ArchiveMalformedError) as ctx:
            self.coordinator.restore_from_database_backup(archive, ALL)

        self.assertEqual(ctx.exception.message, "Backup does not contain a database file")
        self.assertEqual(self.suppliers(), ["OUT-001", "OUT-002"])
        self.assertTrue(self.store.is_open)
        self.assertEqual(self.coordinator.state, BackupState.IDLE)

    def test_not_a_zip(self) -> None:
        archive = self.backup_dir / "garbage.zip"
        archive.write_bytes(b"definitely not a zip")
        with self.assertRaises(ArchiveMalformedError):
            self.coordinator.restore_from_database_backup(archive, ALL)

    def test_database_member_that_is_not_sqlite(self) -> None:
        archive = self.backup_dir / "bad-db.zip"
        with zipfile.ZipFile(archive, "w") as zf:
            zf.writestr("database.db", b"this is not sqlite at all" * 10)
        with self.assertRaises(ArchiveMalformedError):
            self.coordinator.restore_from_database_backup(archive, RestoreOptions(suppliers=True))
        self.assertEqual(self.suppliers(), ["OUT-001"])

    def test_nothing_selected_or_missing_file(self) -> None:
        archive = self.backup()
        with self.assertRaises(ValidationFailedError):
            self.coordinator.restore_from_database_backup(archive, RestoreOptions())
        with self.assertRaises(ValidationFailedError):
            self.coordinator.restore_from_database_backup(self.backup_dir / "nope.zip", ALL)

    def test_no_staging_left_next_to_store(self) -> None:
        archive = self.backup()
        self.coordinator.restore_from_database_backup(archive, RestoreOptions(events=True))
        leftovers = [p.name for p in self.data_dir.iterdir() if p.name.startswith(".")]
        self.assertEqual(leftovers, [])


class TestRestoreFromSpreadsheets(BackupTestCase):
    def test_round_trip_of_all_categories(self) -> None:
        archive = self.backup()
        with self.store.transaction() as db:
            for repo in (SupplierRepository(db), EventRepository(db), IssueRepository(db), CriticalMonitorRepository(db)):
                repo.delete_all()

        result = self.coordinator.restore_from_excel_backup(archive, ALL)

        self.assertEqual(result.message, "Data restored from Excel files successfully")
        self.assertEqual(result.stats.model_dump(), {"suppliers": 1, "events": 1, "issues": 1, "critical_monitor": 1})
        with self.store.session() as db:
            supplier = SupplierRepository(db).get_by_key("OUT-001")
            issue = IssueRepository(db).list()[0]
            event = EventRepository(db).list()[0]
        self.assertEqual(supplier.provider_name, "Acme Cloud")
        self.assertTrue(supplier.is_critical)
        self.assertEqual(supplier.payload, {"countries": ["LU"], "notes": "Tier 1"})
        self.assertEqual(issue.title, "Missing audit report")
        self.assertEqual(issue.date_opened, "2025-03-01T09:00:00")
        self.assertEqual(issue.follow_ups, [IssueFollowUp(note="Chased provider", date="2025-03-02")])
        self.assertEqual(event.summary, "Activated OUT-001")
        self.assertIsNone(event.old_value)
        self.assertEqual(self.contract(), "Signed 2024")

    def test_selected_category_only(self) -> None:
        archive = self.backup()
        with self.store.transaction() as db:
            SupplierRepository(db).add(SupplierRecord(reference_number="OUT-002"))
            CriticalMonitorRepository(db).upsert(
                CriticalMonitorEntry(supplier_reference_number="OUT-001", contract="Renewed 2025")
            )
        self.coordinator.restore_from_excel_backup(archive, RestoreOptions(suppliers=True))
        self.assertEqual(self.suppliers(), ["OUT-001"])
        self.assertEqual(self.contract(), "Renewed 2025")

    def test_missing_spreadsheet_changes_nothing(self) -> None:
        archive = self.backup_dir / "partial.zip"
        with zipfile.ZipFile(self.backup()) as src, zipfile.ZipFile(archive, "w") as dst:
            for name in ("database.db", "Suppliers.xlsx"):
                dst.writestr(name, src.read(name))
        with self.store.transaction() as db:
            SupplierRepository(db).add(SupplierRecord(reference_number="OUT-002"))

        with self.assertRaises(ArchiveMalformedError) as ctx:
            self.coordinator.restore_from_excel_backup(archive, RestoreOptions(suppliers=True, issues=True))

        self.assertEqual(ctx.exception.message, "Backup does not contain Issues.xlsx")
        self.assertEqual(self.suppliers(), ["OUT-001", "OUT-002"])


class TestStoreExclusiveAccess(unittest.TestCase):
    def test_sessions_unavailable_while_file_is_held(self) -> None:
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        store = Store(Path(tmp.name) / "register.db").open()
        self.addCleanup(store.close)
        with store.exclusive() as path:
            self.assertTrue(path.exists())
            self.assertFalse(store.is_open)
            with self.assertRaises(StoreUnavailableError):
                with store.session():
                    pass
        self.assertTrue(store.is_open)


class TestStoreReplaceFile(unittest.TestCase):
    def setUp(self) -> None:
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.root = Path(tmp.name)
        self.store = Store(self.root / "register.db").open()
        self.addCleanup(self.store.close)
        with self.store.transaction() as db:
            SupplierRepository(db).add(SupplierRecord(reference_number="OUT-001"))

    def test_file_that_cannot_be_opened_is_rolled_back(self) -> None:
        replacement = self.root / "replacement.db"
        replacement.write_bytes(b"not a sqlite file" * 64)

        with self.assertRaises(Exception):
            self.store.replace_file(replacement)

        self.assertTrue(self.store.is_open)
        with self.store.session() as db:
            self.assertEqual([s.reference_number for s in SupplierRepository(db).list()], ["OUT-001"])
        self.assertEqual(sorted(p.name for p in self.root.iterdir() if p.name.startswith(".")), [])

    def test_replacement_is_opened_in_place(self) -> None:
        other = Store(self.root / "other.db").open()
        other.checkpoint()
        other.close()

        self.store.replace_file(self.root / "other.db")

        self.assertTrue(self.store.is_open)
        self.assertFalse((self.root / "other.db").exists())
        with self.store.session() as db:
            self.assertEqual(SupplierRepository(db).count(), 0)


if __name__ == "__main__":
    unittest.main()
