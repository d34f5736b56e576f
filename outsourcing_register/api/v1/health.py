"""Health check endpoint with store status and statistics."""

from typing import Annotated

from fastapi import APIRouter, Depends

from outsourcing_register.api.deps import get_backup_coordinator, get_store
from outsourcing_register.core.config import settings
from outsourcing_register.core.database import Store
from outsourcing_register.core.errors import StoreUnavailableError
from outsourcing_register.schemas.health import HealthResponse
from outsourcing_register.services.backup import BackupCoordinator, BackupState
from outsourcing_register.services.database_location import get_database_stats

router = APIRouter()


@router.get("/", response_model=HealthResponse)
def get_health(
    store: Annotated[Store, Depends(get_store)],
    coordinator: Annotated[BackupCoordinator, Depends(get_backup_coordinator)],
) -> HealthResponse:
    """
    Return service health and store status.

    The store reports "busy" while a backup or restore has it closed.
    """
    if coordinator.state != BackupState.IDLE and not store.is_open:
        return HealthResponse(status="ok", environment=settings.APP_ENV, database="busy")
    try:
        stats = get_database_stats(store)
    except StoreUnavailableError:
        return HealthResponse(status="ok", environment=settings.APP_ENV, database="disconnected")
    return HealthResponse(
        status="ok",
        environment=settings.APP_ENV,
        database="connected",
        stats=stats,
    )
