"""Store location and statistics."""

from typing import Annotated

from fastapi import APIRouter, Depends

from outsourcing_register.api.deps import get_store, http_error, require_permission
from outsourcing_register.core.database import Store
from outsourcing_register.core.errors import RegisterError
from outsourcing_register.core.rbac import Permission
from outsourcing_register.schemas.database import (
    DatabaseLocation,
    DatabaseLocationRequest,
    DatabaseStats,
    PathValidation,
)
from outsourcing_register.services import database_location
from outsourcing_register.services.auth_context import AuthContext

router = APIRouter()

ManageAuth = Annotated[AuthContext, Depends(require_permission(Permission.MANAGE_AUTH))]


@router.get("/location", response_model=DatabaseLocation)
def get_location(_auth: ManageAuth) -> DatabaseLocation:
    return database_location.get_database_location()


@router.post("/location/validate", response_model=PathValidation)
def validate_location(body: DatabaseLocationRequest, _auth: ManageAuth) -> PathValidation:
    return database_location.validate_database_path(body.path or "")


@router.put("/location", response_model=DatabaseLocation)
def set_location(body: DatabaseLocationRequest, _auth: ManageAuth) -> DatabaseLocation:
    """Save a custom store path, or reset to the default with null. Applies after a restart."""
    try:
        return database_location.set_database_path(body.path)
    except RegisterError as e:
        raise http_error(e) from e


@router.get("/stats", response_model=DatabaseStats)
def get_stats(
    _auth: Annotated[AuthContext, Depends(require_permission(Permission.VIEW_REPORTING))],
    store: Annotated[Store, Depends(get_store)],
) -> DatabaseStats:
    try:
        return database_location.get_database_stats(store)
    except RegisterError as e:
        raise http_error(e) from e
