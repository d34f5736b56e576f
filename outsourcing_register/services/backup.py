"""
Backup and restore of the register store.

A backup is one zip archive holding the raw SQLite file (``database.db``) plus one
spreadsheet per category for people who want to read the data without the app.
Restores come from either half of the archive:

- the database file, either replacing the whole store (all categories selected) or
  copying only the selected tables in a single transaction;
- the spreadsheets, parsed and written back in a single transaction.

Only one backup or restore runs at a time.
"""

import logging
import os
import shutil
import tempfile
import threading
import zipfile
from collections.abc import Iterator
from contextlib import contextmanager
from enum import Enum
from pathlib import Path

from sqlalchemy import MetaData, Table, delete, insert, inspect, select
from sqlalchemy.engine import Connection
from sqlalchemy.exc import DatabaseError
from sqlalchemy.orm import Session

from outsourcing_register.core.database import Store, create_sqlite_engine, run_migrations
from outsourcing_register.core.errors import (
    ArchiveMalformedError,
    StoreUnavailableError,
    ValidationFailedError,
)
from outsourcing_register.models import AuthSettings, CriticalMonitorRecord, Event, Issue, Supplier, User
from outsourcing_register.schemas.backup import BackupResult, RestoreOptions, RestoreResult, RestoreStats
from outsourcing_register.services import spreadsheets
from outsourcing_register.services.records import (
    CriticalMonitorRepository,
    EventRepository,
    IssueRepository,
    SupplierRepository,
)

logger = logging.getLogger(__name__)

ARCHIVE_DATABASE_NAME = "database.db"
SUPPLIERS_EXPORT_NAME = "Suppliers.xlsx"
EVENTS_EXPORT_NAME = "Events.xlsx"
ISSUES_EXPORT_NAME = "Issues.xlsx"
CRITICAL_MONITOR_EXPORT_NAME = "CriticalMonitor.xlsx"

ARCHIVE_MEMBERS = (
    ARCHIVE_DATABASE_NAME,
    SUPPLIERS_EXPORT_NAME,
    EVENTS_EXPORT_NAME,
    ISSUES_EXPORT_NAME,
    CRITICAL_MONITOR_EXPORT_NAME,
)

BACKUP_STAGING_PREFIX = ".backup-temp-"
RESTORE_STAGING_PREFIX = ".restore-temp-"

BUSY_MESSAGE = "Another backup or restore is already in progress"
NOTHING_SELECTED_MESSAGE = "Select at least one category to restore"
MISSING_DATABASE_MESSAGE = "Backup does not contain a database file"
UPGRADE_FAILED_MESSAGE = "Backup database could not be upgraded to the current schema"


class BackupState(str, Enum):
    IDLE = "idle"
    EXPORTING = "exporting"
    RESTORING = "restoring"


def _selected_tables(options: RestoreOptions) -> list[Table]:
    pairs = (
        (options.suppliers, Supplier.__table__),
        (options.events, Event.__table__),
        (options.issues, Issue.__table__),
        (options.critical_monitor, CriticalMonitorRecord.__table__),
    )
    return [table for selected, table in pairs if selected]


def _selected_exports(options: RestoreOptions) -> list[str]:
    pairs = (
        (options.suppliers, SUPPLIERS_EXPORT_NAME),
        (options.events, EVENTS_EXPORT_NAME),
        (options.issues, ISSUES_EXPORT_NAME),
        (options.critical_monitor, CRITICAL_MONITOR_EXPORT_NAME),
    )
    return [name for selected, name in pairs if selected]


def _validate_destination(destination: str | Path) -> Path:
    dest = Path(destination).expanduser()
    if dest.suffix.lower() != ".zip":
        raise ValidationFailedError("Backup file must have a .zip extension")
    if not dest.parent.is_dir():
        raise ValidationFailedError(f"Destination directory does not exist: {dest.parent}")
    if dest.is_dir():
        raise ValidationFailedError(f"Destination is a directory: {dest}")
    return dest


def _validate_archive_path(archive: str | Path) -> Path:
    path = Path(archive).expanduser()
    if not path.is_file():
        raise ValidationFailedError(f"Backup file not found: {path}")
    return path


def _extract_members(archive: Path, names: list[str], staging: Path) -> dict[str, Path]:
    """Extract the named members into staging. Every name must be present or nothing is extracted."""
    try:
        with zipfile.ZipFile(archive) as zf:
            present = set(zf.namelist())
            for name in names:
                if name not in present:
                    if name == ARCHIVE_DATABASE_NAME:
                        raise ArchiveMalformedError(MISSING_DATABASE_MESSAGE)
                    raise ArchiveMalformedError(f"Backup does not contain {name}")
            for name in names:
                zf.extract(name, staging)
    except zipfile.BadZipFile as e:
        raise ArchiveMalformedError("Backup file is not a valid zip archive") from e
    return {name: staging / name for name in names}


def _reflect(connection: Connection, name: str) -> Table:
    return Table(name, MetaData(), autoload_with=connection)


def _check_archived_database(path: Path, required_tables: list[Table]) -> None:
    """Make sure the archived file is a SQLite database that has the tables about to be restored."""
    engine = create_sqlite_engine(path, pragmas=False)
    try:
        with engine.connect() as connection:
            present = set(inspect(connection).get_table_names())
    except DatabaseError as e:
        raise ArchiveMalformedError("Backup database file is not a readable SQLite database") from e
    finally:
        engine.dispose()
    for table in required_tables:
        if table.name not in present:
            raise ArchiveMalformedError(f"Backup database has no '{table.name}' table")


def _upgrade_archived_database(path: Path) -> None:
    """Migrate the staged copy in place so the swapped-in file is known to open."""
    engine = create_sqlite_engine(path)
    try:
        run_migrations(engine)
        with engine.connect() as connection:
            present = set(inspect(connection).get_table_names())
    except Exception as e:
        raise ArchiveMalformedError(UPGRADE_FAILED_MESSAGE) from e
    finally:
        engine.dispose()
    for table in (User.__table__, AuthSettings.__table__):
        if table.name not in present:
            raise ArchiveMalformedError(f"Backup database has no '{table.name}' table")


class BackupCoordinator:
    """Runs backups and restores against one Store, one at a time."""

    def __init__(self, store: Store) -> None:
        self.store = store
        self.state = BackupState.IDLE
        self._busy = threading.Lock()

    @contextmanager
    def _operation(self, state: BackupState) -> Iterator[None]:
        if not self._busy.acquire(blocking=False):
            raise StoreUnavailableError(BUSY_MESSAGE)
        self.state = state
        try:
            yield
        finally:
            self.state = BackupState.IDLE
            self._busy.release()

    # -- backup -----------------------------------------------------------------

    def create_backup(self, destination: str | Path) -> BackupResult:
        """
        Write a backup archive to destination (an existing directory, a .zip name).

        The raw store file is copied while the store is closed; the spreadsheets are written
        after it reopens. The archive is built next to the destination and moved into place,
        so an existing file there is only replaced by a complete archive.
        """
        dest = _validate_destination(destination)
        with self._operation(BackupState.EXPORTING):
            try:
                with tempfile.TemporaryDirectory(dir=dest.parent, prefix=BACKUP_STAGING_PREFIX) as tmp:
                    staging = Path(tmp)
                    with self.store.exclusive() as db_path:
                        shutil.copyfile(db_path, staging / ARCHIVE_DATABASE_NAME)
                    self._write_exports(staging)
                    self._write_archive(staging, dest)
            except Exception as e:
                logger.exception("Backup to %s failed: %s", dest, e)
                raise
        logger.info("Backup created: %s", dest)
        return BackupResult(
            success=True,
            message="Backup created successfully",
            path=str(dest),
            files=list(ARCHIVE_MEMBERS),
        )

    def _write_exports(self, staging: Path) -> None:
        with self.store.session() as db:
            suppliers = SupplierRepository(db).list()
            events = EventRepository(db).list()
            issues = IssueRepository(db).list()
            critical = CriticalMonitorRepository(db).list()
        spreadsheets.write_suppliers(staging / SUPPLIERS_EXPORT_NAME, suppliers)
        spreadsheets.write_events(staging / EVENTS_EXPORT_NAME, events)
        spreadsheets.write_issues(staging / ISSUES_EXPORT_NAME, issues)
        spreadsheets.write_critical_monitor(staging / CRITICAL_MONITOR_EXPORT_NAME, critical, suppliers)

    @staticmethod
    def _write_archive(staging: Path, dest: Path) -> None:
        fd, tmp_name = tempfile.mkstemp(dir=dest.parent, prefix=".backup-", suffix=".zip.tmp")
        os.close(fd)
        try:
            with zipfile.ZipFile(tmp_name, "w", compression=zipfile.ZIP_DEFLATED) as zf:
                for name in ARCHIVE_MEMBERS:
                    zf.write(staging / name, arcname=name)
            os.replace(tmp_name, dest)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    # -- restore from the database file -------------------------------------------

    def restore_from_database_backup(self, archive: str | Path, options: RestoreOptions) -> RestoreResult:
        """
        Restore the selected categories from the archived database file.

        With every category selected the store file is swapped for the archived one (users
        and auth settings included). Otherwise only the selected tables are replaced, and
        accounts are left alone.
        """
        if not options.any_selected:
            raise ValidationFailedError(NOTHING_SELECTED_MESSAGE)
        path = _validate_archive_path(archive)
        with self._operation(BackupState.RESTORING):
            try:
                with tempfile.TemporaryDirectory(
                    dir=self.store.path.parent, prefix=RESTORE_STAGING_PREFIX
                ) as tmp:
                    extracted = _extract_members(path, [ARCHIVE_DATABASE_NAME], Path(tmp))
                    archived_db = extracted[ARCHIVE_DATABASE_NAME]
                    _check_archived_database(archived_db, _selected_tables(options))
                    if options.all_selected:
                        self._replace_store_file(archived_db)
                    else:
                        self._copy_tables(archived_db, options)
            except Exception as e:
                logger.exception("Restore from %s failed: %s", path, e)
                raise
            stats = self._stats(options)
        logger.info("Database restored from %s (%s)", path, stats.model_dump())
        return RestoreResult(success=True, message="Database restored successfully", stats=stats)

    def _replace_store_file(self, archived_db: Path) -> None:
        _upgrade_archived_database(archived_db)
        # The staging dir is a sibling of the store, so this is a same-filesystem rename.
        self.store.replace_file(archived_db)

    def _copy_tables(self, archived_db: Path, options: RestoreOptions) -> None:
        source = create_sqlite_engine(archived_db, pragmas=False)
        try:
            with source.connect() as src, self.store.transaction() as db:
                for table in _selected_tables(options):
                    self._copy_table(src, db, table)
        finally:
            source.dispose()

    @staticmethod
    def _copy_table(src: Connection, db: Session, table: Table) -> None:
        archived = _reflect(src, table.name)
        # Columns both sides know; newer live columns keep their defaults.
        columns = [c.name for c in table.columns if c.name in archived.c]
        rows = [dict(r) for r in src.execute(select(*(archived.c[name] for name in columns))).mappings()]
        db.execute(delete(table))
        if rows:
            db.execute(insert(table), rows)
        logger.info("Restored table %s: %s rows", table.name, len(rows))

    # -- restore from the spreadsheets ---------------------------------------------

    def restore_from_excel_backup(self, archive: str | Path, options: RestoreOptions) -> RestoreResult:
        """
        Restore the selected categories from the archived spreadsheets.

        All selected sheets are parsed before the store is touched. Record ids are
        reassigned by the store.
        """
        if not options.any_selected:
            raise ValidationFailedError(NOTHING_SELECTED_MESSAGE)
        path = _validate_archive_path(archive)
        with self._operation(BackupState.RESTORING):
            try:
                with tempfile.TemporaryDirectory(
                    dir=self.store.path.parent, prefix=RESTORE_STAGING_PREFIX
                ) as tmp:
                    files = _extract_members(path, _selected_exports(options), Path(tmp))
                    parsed = {
                        name: self._parse_export(name, file_path) for name, file_path in files.items()
                    }
                with self.store.transaction() as db:
                    if options.suppliers:
                        self._replace_rows(SupplierRepository(db), parsed[SUPPLIERS_EXPORT_NAME])
                    if options.events:
                        self._replace_rows(EventRepository(db), parsed[EVENTS_EXPORT_NAME])
                    if options.issues:
                        self._replace_rows(IssueRepository(db), parsed[ISSUES_EXPORT_NAME])
                    if options.critical_monitor:
                        self._replace_rows(
                            CriticalMonitorRepository(db), parsed[CRITICAL_MONITOR_EXPORT_NAME]
                        )
            except Exception as e:
                logger.exception("Restore from spreadsheets in %s failed: %s", path, e)
                raise
            stats = self._stats(options)
        logger.info("Data restored from spreadsheets in %s (%s)", path, stats.model_dump())
        return RestoreResult(
            success=True,
            message="Data restored from Excel files successfully",
            stats=stats,
        )

    @staticmethod
    def _parse_export(name: str, path: Path) -> list:
        readers = {
            SUPPLIERS_EXPORT_NAME: spreadsheets.read_suppliers,
            EVENTS_EXPORT_NAME: spreadsheets.read_events,
            ISSUES_EXPORT_NAME: spreadsheets.read_issues,
            CRITICAL_MONITOR_EXPORT_NAME: spreadsheets.read_critical_monitor,
        }
        return readers[name](path)

    @staticmethod
    def _replace_rows(repository, records: list) -> None:
        repository.delete_all()
        for record in records:
            repository.add(record)

    def _stats(self, options: RestoreOptions) -> RestoreStats:
        with self.store.session() as db:
            return RestoreStats(
                suppliers=SupplierRepository(db).count() if options.suppliers else 0,
                events=EventRepository(db).count() if options.events else 0,
                issues=IssueRepository(db).count() if options.issues else 0,
                critical_monitor=CriticalMonitorRepository(db).count() if options.critical_monitor else 0,
            )
