"""
CLI entrypoint for backups and restores, e.g. from a scheduled task:

  python -m outsourcing_register.backup create /mnt/share/register-2025-03-01.zip
  python -m outsourcing_register.backup restore-db backup.zip --all
  python -m outsourcing_register.backup restore-excel backup.zip --suppliers --issues

Restores do not check user permissions; whoever can run this can already read the store file.
"""

import argparse
import logging
import sys

from outsourcing_register.core.database import Store
from outsourcing_register.core.errors import RegisterError
from outsourcing_register.schemas.backup import RestoreOptions
from outsourcing_register.services.backup import BackupCoordinator
from outsourcing_register.services.database_location import get_effective_database_path

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Back up or restore the Outsourcing Register store.")
    parser.add_argument("--database", help="Store file (default: configured location)")
    commands = parser.add_subparsers(dest="command", required=True)

    create = commands.add_parser("create", help="Write a backup archive")
    create.add_argument("destination", help="Archive path ending with .zip")

    for name, help_text in (
        ("restore-db", "Restore from the database file in an archive"),
        ("restore-excel", "Restore from the spreadsheets in an archive"),
    ):
        restore = commands.add_parser(name, help=help_text)
        restore.add_argument("archive", help="Backup archive (.zip)")
        restore.add_argument("--all", action="store_true", help="Restore every category")
        restore.add_argument("--suppliers", action="store_true")
        restore.add_argument("--events", action="store_true")
        restore.add_argument("--issues", action="store_true")
        restore.add_argument("--critical-monitor", action="store_true")
    return parser


def _options(args: argparse.Namespace) -> RestoreOptions:
    if args.all:
        return RestoreOptions(suppliers=True, events=True, issues=True, critical_monitor=True)
    return RestoreOptions(
        suppliers=args.suppliers,
        events=args.events,
        issues=args.issues,
        critical_monitor=args.critical_monitor,
    )


def main(argv: list[str] | None = None) -> int:
    """Run one backup or restore against the store; exit code 0 on success."""
    args = _parser().parse_args(argv)
    store = Store(args.database or get_effective_database_path()).open()
    coordinator = BackupCoordinator(store)
    try:
        if args.command == "create":
            result = coordinator.create_backup(args.destination)
            logger.info("%s: %s (%s)", result.message, result.path, ", ".join(result.files))
        else:
            options = _options(args)
            if args.command == "restore-db":
                result = coordinator.restore_from_database_backup(args.archive, options)
            else:
                result = coordinator.restore_from_excel_backup(args.archive, options)
            logger.info("%s: %s", result.message, result.stats.model_dump() if result.stats else {})
        return 0
    except RegisterError as e:
        logger.error("%s", e.message)
        return 1
    except Exception as e:
        logger.exception("Backup job failed: %s", e)
        return 1
    finally:
        store.close()


if __name__ == "__main__":
    sys.exit(main())
