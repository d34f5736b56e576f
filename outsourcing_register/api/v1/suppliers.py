"""Supplier (outsourcing arrangement) records and their critical monitor entries."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from outsourcing_register.api.deps import get_db, http_error, require_permission
from outsourcing_register.core.errors import RecordNotFoundError, RegisterError
from outsourcing_register.core.rbac import Permission
from outsourcing_register.schemas.records import CriticalMonitorEntry, EventRecord, SupplierRecord
from outsourcing_register.services.auth_context import AuthContext
from outsourcing_register.services.records import (
    CriticalMonitorRepository,
    EventRepository,
    SupplierRepository,
)

router = APIRouter()

ViewSuppliers = Annotated[AuthContext, Depends(require_permission(Permission.VIEW_SUPPLIERS))]
EditSuppliers = Annotated[AuthContext, Depends(require_permission(Permission.EDIT_SUPPLIERS))]
DeleteSuppliers = Annotated[AuthContext, Depends(require_permission(Permission.DELETE_SUPPLIERS))]


@router.get("", response_model=list[SupplierRecord])
def list_suppliers(_auth: ViewSuppliers, db: Annotated[Session, Depends(get_db)]) -> list[SupplierRecord]:
    return SupplierRepository(db).list()


@router.post("", response_model=SupplierRecord, status_code=status.HTTP_201_CREATED)
def create_supplier(
    body: SupplierRecord,
    _auth: EditSuppliers,
    db: Annotated[Session, Depends(get_db)],
) -> SupplierRecord:
    try:
        created = SupplierRepository(db).add(body)
        db.commit()
    except RegisterError as e:
        db.rollback()
        raise http_error(e) from e
    return created


@router.get("/events", response_model=list[EventRecord])
def list_events(_auth: ViewSuppliers, db: Annotated[Session, Depends(get_db)]) -> list[EventRecord]:
    """Change log across all suppliers, oldest first."""
    return EventRepository(db).list()


@router.get("/{reference_number}", response_model=SupplierRecord)
def get_supplier(
    reference_number: str,
    _auth: ViewSuppliers,
    db: Annotated[Session, Depends(get_db)],
) -> SupplierRecord:
    supplier = SupplierRepository(db).get_by_key(reference_number)
    if supplier is None:
        raise http_error(RecordNotFoundError("Supplier", reference_number))
    return supplier


@router.put("/{reference_number}", response_model=SupplierRecord)
def update_supplier(
    reference_number: str,
    body: SupplierRecord,
    _auth: EditSuppliers,
    db: Annotated[Session, Depends(get_db)],
) -> SupplierRecord:
    if body.reference_number != reference_number:
        raise HTTPException(status_code=422, detail="Reference number in body does not match the URL")
    try:
        updated = SupplierRepository(db).update(body)
        db.commit()
    except RegisterError as e:
        db.rollback()
        raise http_error(e) from e
    return updated


@router.delete("/{reference_number}", status_code=status.HTTP_204_NO_CONTENT)
def delete_supplier(
    reference_number: str,
    _auth: DeleteSuppliers,
    db: Annotated[Session, Depends(get_db)],
) -> Response:
    try:
        SupplierRepository(db).delete(reference_number)
        db.commit()
    except RegisterError as e:
        db.rollback()
        raise http_error(e) from e
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{reference_number}/critical-monitor", response_model=CriticalMonitorEntry)
def get_critical_monitor(
    reference_number: str,
    _auth: ViewSuppliers,
    db: Annotated[Session, Depends(get_db)],
) -> CriticalMonitorEntry:
    entry = CriticalMonitorRepository(db).get_by_key(reference_number)
    if entry is None:
        raise http_error(RecordNotFoundError("Critical monitor record", reference_number))
    return entry


@router.put("/{reference_number}/critical-monitor", response_model=CriticalMonitorEntry)
def upsert_critical_monitor(
    reference_number: str,
    body: CriticalMonitorEntry,
    _auth: EditSuppliers,
    db: Annotated[Session, Depends(get_db)],
) -> CriticalMonitorEntry:
    """Create or replace the monitoring record for a supplier."""
    if SupplierRepository(db).get_by_key(reference_number) is None:
        raise http_error(RecordNotFoundError("Supplier", reference_number))
    entry = body.model_copy(update={"supplier_reference_number": reference_number})
    saved = CriticalMonitorRepository(db).upsert(entry)
    db.commit()
    return saved
