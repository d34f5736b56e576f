"""SQLite store: engine and session management, migrations, and exclusive access for backup/restore."""

import logging
import os
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from outsourcing_register.core.errors import StoreUnavailableError

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parent.parent / "migrations"

# SQLite keeps uncheckpointed pages and the shared-memory index next to the main file.
SIDECAR_SUFFIXES = ("-wal", "-shm")

STORE_UNAVAILABLE_MESSAGE = "The data store is temporarily unavailable (backup or restore in progress)."


def _enable_sqlite_pragmas(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    # WAL lets several readers share the file (e.g. data dir on a network share).
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.close()


def create_sqlite_engine(path: Path, echo: bool = False, pragmas: bool = True) -> Engine:
    """Create an engine for a SQLite file. pragmas=False for side files that are only read."""
    engine = create_engine(
        f"sqlite:///{path}",
        connect_args={"check_same_thread": False},
        echo=echo,
    )
    if pragmas:
        event.listen(engine, "connect", _enable_sqlite_pragmas)
    return engine


def run_migrations(engine: Engine) -> None:
    """Upgrade the schema to the latest Alembic revision (idempotent)."""
    cfg = Config()
    cfg.set_main_option("script_location", str(MIGRATIONS_DIR))
    with engine.begin() as connection:
        cfg.attributes["connection"] = connection
        command.upgrade(cfg, "head")


def current_revision(engine: Engine) -> str | None:
    """Return the Alembic revision the store is at, or None for an unmigrated file."""
    with engine.connect() as connection:
        return MigrationContext.configure(connection).get_current_revision()


def remove_sidecar_files(path: Path) -> None:
    """Delete stale -wal/-shm files so they are not replayed onto a replaced database file."""
    for suffix in SIDECAR_SUFFIXES:
        sidecar = path.with_name(path.name + suffix)
        if sidecar.exists():
            sidecar.unlink()


class Store:
    """
    Owner of the live database file.

    Backup and restore need the file closed for a short window (close -> copy/replace -> reopen).
    While closed, session() raises StoreUnavailableError instead of touching the file.
    """

    def __init__(self, path: Path, echo: bool = False) -> None:
        self.path = Path(path)
        self.echo = echo
        self._lock = threading.RLock()
        self._engine: Engine | None = None
        self._session_factory: sessionmaker[Session] | None = None

    @property
    def is_open(self) -> bool:
        return self._session_factory is not None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise StoreUnavailableError(STORE_UNAVAILABLE_MESSAGE)
        return self._engine

    def open(self) -> "Store":
        """Open (or reopen) the store, creating the file and running migrations as needed."""
        with self._lock:
            if self.is_open:
                return self
            self.path.parent.mkdir(parents=True, exist_ok=True)
            engine = create_sqlite_engine(self.path, echo=self.echo)
            try:
                run_migrations(engine)
            except Exception:
                engine.dispose()
                raise
            self._engine = engine
            self._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
            logger.info("Database opened: %s", self.path)
            return self

    def close(self) -> None:
        """Close all pooled connections. Safe to call on a closed store."""
        with self._lock:
            if self._engine is None:
                return
            self._session_factory = None
            engine, self._engine = self._engine, None
            engine.dispose()
            logger.info("Database closed: %s", self.path)

    def checkpoint(self) -> None:
        """Fold the write-ahead log into the main file so a plain file copy is complete."""
        with self.engine.connect() as connection:
            connection.exec_driver_sql("PRAGMA wal_checkpoint(TRUNCATE)")

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Yield a session and close it when done. Caller commits."""
        factory = self._session_factory
        if factory is None:
            raise StoreUnavailableError(STORE_UNAVAILABLE_MESSAGE)
        db = factory()
        try:
            yield db
        finally:
            db.close()

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """Yield a session inside one transaction: committed on success, rolled back on error."""
        with self.session() as db, db.begin():
            yield db

    @contextmanager
    def exclusive(self) -> Iterator[Path]:
        """
        Close the store, yield its file path for copying or replacing, then always reopen it.

        Migrations run on reopen, so a replaced file from an older backup is upgraded.
        """
        with self._lock:
            if self.is_open:
                self.checkpoint()
            self.close()
            try:
                yield self.path
            finally:
                self.open()

    def replace_file(self, replacement: Path) -> None:
        """
        Swap the store file for replacement and reopen.

        The current file is set aside first and put back if the reopen fails, so the store is
        never left closed on a half-replaced file. replacement must be on the same filesystem.
        """
        previous = self.path.with_name(f".{self.path.name}.previous")
        with self._lock:
            if self.is_open:
                self.checkpoint()
            self.close()
            remove_sidecar_files(self.path)
            os.replace(self.path, previous)
            try:
                os.replace(replacement, self.path)
                self.open()
            except Exception:
                logger.exception("Reopen after replacing %s failed; putting the previous file back", self.path)
                self.close()
                remove_sidecar_files(self.path)
                os.replace(previous, self.path)
                self.open()
                raise
            previous.unlink()
