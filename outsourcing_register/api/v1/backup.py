"""Backup and restore endpoints. Paths are local to the machine running the service."""

from typing import Annotated

from fastapi import APIRouter, Depends

from outsourcing_register.api.deps import get_backup_coordinator, http_error, require_permission
from outsourcing_register.core.errors import RegisterError
from outsourcing_register.core.rbac import Permission
from outsourcing_register.schemas.backup import BackupRequest, BackupResult, RestoreRequest, RestoreResult
from outsourcing_register.services.auth_context import AuthContext
from outsourcing_register.services.backup import BackupCoordinator

router = APIRouter()

ManageAuth = Annotated[AuthContext, Depends(require_permission(Permission.MANAGE_AUTH))]
Coordinator = Annotated[BackupCoordinator, Depends(get_backup_coordinator)]


@router.post("", response_model=BackupResult)
def create_backup(body: BackupRequest, _auth: ManageAuth, coordinator: Coordinator) -> BackupResult:
    """Write a zip archive (database file plus spreadsheets) to body.path."""
    try:
        return coordinator.create_backup(body.path)
    except RegisterError as e:
        raise http_error(e) from e


@router.post("/restore/database", response_model=RestoreResult)
def restore_database(body: RestoreRequest, auth: ManageAuth, coordinator: Coordinator) -> RestoreResult:
    """
    Restore the selected categories from the archived database file.

    A full restore may replace the users table, so auth settings are reloaded afterwards.
    """
    try:
        result = coordinator.restore_from_database_backup(body.path, body.options)
    except RegisterError as e:
        raise http_error(e) from e
    auth.refresh_auth_settings()
    return result


@router.post("/restore/excel", response_model=RestoreResult)
def restore_excel(body: RestoreRequest, _auth: ManageAuth, coordinator: Coordinator) -> RestoreResult:
    """Restore the selected categories from the archived spreadsheets."""
    try:
        return coordinator.restore_from_excel_backup(body.path, body.options)
    except RegisterError as e:
        raise http_error(e) from e
