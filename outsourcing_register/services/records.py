"""CRUD repositories for register records: suppliers, events, issues and critical monitor.

Repositories flush but never commit; the caller owns the transaction (an API request, or a
restore that must replace a whole table atomically).
"""

from datetime import datetime, timezone
from typing import Any, ClassVar, Generic, TypeVar

from pydantic import BaseModel
from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from outsourcing_register.core.errors import RecordNotFoundError, ValidationFailedError
from outsourcing_register.models import CriticalMonitorRecord, Event, Issue, Supplier
from outsourcing_register.schemas.records import (
    CriticalMonitorEntry,
    EventRecord,
    IssueRecord,
    SupplierRecord,
)

SchemaT = TypeVar("SchemaT", bound=BaseModel)

# Columns managed by the database, never copied from an incoming record.
_MANAGED_FIELDS = frozenset({"id", "created_at", "updated_at"})


def _clean_nullable(value: str | None) -> str | None:
    """Blank strings are stored as NULL."""
    if value is None:
        return None
    value = value.strip()
    return value or None


class RecordRepository(Generic[SchemaT]):
    """list / get_by_key / add / update / delete / delete_all over one table."""

    kind: ClassVar[str]
    model: ClassVar[type]
    schema: ClassVar[type[BaseModel]]
    key_field: ClassVar[str] = "id"
    order_by: ClassVar[tuple[str, ...]] = ("id",)

    def __init__(self, db: Session) -> None:
        self.db = db

    def _key_column(self):
        return getattr(self.model, self.key_field)

    def _values(self, record: SchemaT) -> dict[str, Any]:
        return record.model_dump(mode="json", exclude=set(_MANAGED_FIELDS))

    def _get_row(self, key: Any):
        return self.db.execute(
            select(self.model).where(self._key_column() == key)
        ).scalar_one_or_none()

    def _key_of(self, record: SchemaT) -> Any:
        return getattr(record, self.key_field)

    def list(self) -> list[SchemaT]:
        columns = [getattr(self.model, name) for name in self.order_by]
        rows = self.db.execute(select(self.model).order_by(*columns)).scalars().all()
        return [self.schema.model_validate(r) for r in rows]

    def get_by_key(self, key: Any) -> SchemaT | None:
        row = self._get_row(key)
        return self.schema.model_validate(row) if row is not None else None

    def add(self, record: SchemaT) -> SchemaT:
        row = self.model(**self._values(record))
        self.db.add(row)
        self.db.flush()
        self.db.refresh(row)
        return self.schema.model_validate(row)

    def update(self, record: SchemaT) -> SchemaT:
        key = self._key_of(record)
        if key is None:
            raise ValidationFailedError(f"{self.kind} {self.key_field} is required to update")
        row = self._get_row(key)
        if row is None:
            raise RecordNotFoundError(self.kind, key)
        for name, value in self._values(record).items():
            setattr(row, name, value)
        self.db.flush()
        self.db.refresh(row)
        return self.schema.model_validate(row)

    def delete(self, key: Any) -> None:
        row = self._get_row(key)
        if row is None:
            raise RecordNotFoundError(self.kind, key)
        self.db.delete(row)
        self.db.flush()

    def delete_all(self) -> int:
        result = self.db.execute(delete(self.model))
        return result.rowcount or 0

    def count(self) -> int:
        return self.db.scalar(select(func.count()).select_from(self.model)) or 0


class SupplierRepository(RecordRepository[SupplierRecord]):
    kind = "Supplier"
    model = Supplier
    schema = SupplierRecord
    key_field = "reference_number"
    order_by = ("reference_number",)

    def add(self, record: SupplierRecord) -> SupplierRecord:
        if self._get_row(record.reference_number) is not None:
            raise ValidationFailedError(
                f"Supplier with reference number '{record.reference_number}' already exists"
            )
        return super().add(record)


class EventRepository(RecordRepository[EventRecord]):
    kind = "Event"
    model = Event
    schema = EventRecord
    order_by = ("event_date", "id")

    def _values(self, record: EventRecord) -> dict[str, Any]:
        values = super()._values(record)
        for name in ("old_value", "new_value", "risk_before", "risk_after", "severity",
                     "supplier_name", "function_name"):
            values[name] = _clean_nullable(values[name])
        return values


class IssueRepository(RecordRepository[IssueRecord]):
    kind = "Issue"
    model = Issue
    schema = IssueRecord
    order_by = ("date_opened", "id")

    def _values(self, record: IssueRecord) -> dict[str, Any]:
        values = super()._values(record)
        now = datetime.now(timezone.utc).isoformat()
        values["date_opened"] = values["date_opened"].strip() or now
        values["date_last_update"] = values["date_last_update"].strip() or now
        for name in ("severity", "owner", "supplier_name", "function_name", "date_closed", "due_date"):
            values[name] = _clean_nullable(values[name])
        values["follow_ups"] = values["follow_ups"] or None
        return values

    def update(self, record: IssueRecord) -> IssueRecord:
        # date_opened is fixed at creation.
        existing = self.get_by_key(record.id) if record.id is not None else None
        if existing is not None:
            record = record.model_copy(update={"date_opened": existing.date_opened})
        return super().update(record)


class CriticalMonitorRepository(RecordRepository[CriticalMonitorEntry]):
    kind = "Critical monitor record"
    model = CriticalMonitorRecord
    schema = CriticalMonitorEntry
    key_field = "supplier_reference_number"
    order_by = ("supplier_reference_number",)

    def _values(self, record: CriticalMonitorEntry) -> dict[str, Any]:
        values = super()._values(record)
        for name in ("contract", "suitability_assessment_date", "audit_reports", "co_ro_assessment_date"):
            values[name] = _clean_nullable(values[name])
        return values

    def add(self, record: CriticalMonitorEntry) -> CriticalMonitorEntry:
        """Insert, or update the existing record for the same supplier."""
        if self._get_row(record.supplier_reference_number) is not None:
            return self.update(record)
        return super().add(record)

    def upsert(self, record: CriticalMonitorEntry) -> CriticalMonitorEntry:
        return self.add(record)
