"""Where the store file lives, and basic statistics about it.

The location is kept in ``app-config.json`` under the data directory so it can point at a
shared drive. A change only takes effect the next time the store is opened.
"""

import json
import logging
import os
from pathlib import Path

from sqlalchemy import func, select

from outsourcing_register.core.config import Settings, get_settings
from outsourcing_register.core.database import Store, current_revision
from outsourcing_register.core.errors import ValidationFailedError
from outsourcing_register.models import Supplier
from outsourcing_register.schemas.database import DatabaseLocation, DatabaseStats, PathValidation

logger = logging.getLogger(__name__)

DATABASE_PATH_KEY = "database_path"


def read_config(app_settings: Settings | None = None) -> dict:
    """Contents of app-config.json, or an empty dict when it is missing or unreadable."""
    path = (app_settings or get_settings()).app_config_path
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.error("Could not read %s: %s", path, e)
        return {}
    return data if isinstance(data, dict) else {}


def write_config(data: dict, app_settings: Settings | None = None) -> None:
    path = (app_settings or get_settings()).app_config_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")


def get_effective_database_path(app_settings: Settings | None = None) -> Path:
    """The configured custom path if any, otherwise the default under DATA_DIR."""
    s = app_settings or get_settings()
    custom = read_config(s).get(DATABASE_PATH_KEY)
    if custom:
        path = Path(custom)
        path.parent.mkdir(parents=True, exist_ok=True)
        return path
    return s.default_database_path


def is_using_custom_path(app_settings: Settings | None = None) -> bool:
    return bool(read_config(app_settings).get(DATABASE_PATH_KEY))


def get_database_location(app_settings: Settings | None = None) -> DatabaseLocation:
    s = app_settings or get_settings()
    return DatabaseLocation(
        path=str(get_effective_database_path(s)),
        default_path=str(s.default_database_path),
        is_custom=is_using_custom_path(s),
    )


def _nearest_existing_parent(path: Path) -> Path:
    parent = path.parent
    while not parent.exists() and parent != parent.parent:
        parent = parent.parent
    return parent


def validate_database_path(path: str) -> PathValidation:
    """Check that path is absolute, ends in .db, and that its directory is (or can be made) writable."""
    if not path or not path.strip():
        return PathValidation(valid=False, error="Path is required")
    candidate = Path(path.strip()).expanduser()
    if not candidate.is_absolute():
        return PathValidation(valid=False, error="Path must be absolute")
    if candidate.suffix.lower() != ".db":
        return PathValidation(valid=False, error="Database file must have a .db extension")
    if candidate.is_dir():
        return PathValidation(valid=False, error="Path points to a directory")

    directory = candidate.parent if candidate.parent.exists() else _nearest_existing_parent(candidate)
    if not directory.is_dir() or not os.access(directory, os.W_OK):
        return PathValidation(valid=False, error=f"Directory is not writable: {directory}")
    return PathValidation(valid=True, exists=candidate.exists())


def set_database_path(path: str | None, app_settings: Settings | None = None) -> DatabaseLocation:
    """Persist a custom store path (None resets to the default). Applies on the next start."""
    s = app_settings or get_settings()
    config = read_config(s)
    if path is None:
        config.pop(DATABASE_PATH_KEY, None)
        logger.info("Database path reset to default")
    else:
        check = validate_database_path(path)
        if not check.valid:
            raise ValidationFailedError(check.error or "Invalid database path")
        config[DATABASE_PATH_KEY] = str(Path(path.strip()).expanduser())
        logger.info("Database path set to %s", config[DATABASE_PATH_KEY])
    write_config(config, s)
    return get_database_location(s)


def get_database_stats(store: Store) -> DatabaseStats:
    """Size, supplier count and schema revision of an open store."""
    with store.session() as db:
        total = db.scalar(select(func.count()).select_from(Supplier)) or 0
    size = store.path.stat().st_size if store.path.exists() else 0
    return DatabaseStats(
        path=str(store.path),
        size=size,
        total_suppliers=total,
        schema_version=current_revision(store.engine),
    )
