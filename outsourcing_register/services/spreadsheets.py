"""Human-readable spreadsheet exports of the register tables, and parsing them back for restore.

Nested values (supplier details, issue follow-ups) are written as JSON text in a single
column. Hand-edited sheets are accepted, but such columns only round-trip if the JSON
stays valid.
"""

import json
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import pandas as pd
from pydantic import ValidationError

from outsourcing_register.core.errors import ValidationFailedError
from outsourcing_register.schemas.records import (
    CriticalMonitorEntry,
    EventRecord,
    IssueRecord,
    SupplierRecord,
)

logger = logging.getLogger(__name__)

SUPPLIERS_SHEET = "Suppliers"
EVENTS_SHEET = "Events"
ISSUES_SHEET = "Issues"
CRITICAL_MONITOR_SHEET = "Critical Monitor"

SUPPLIER_COLUMNS = (
    "Reference Number",
    "Status",
    "Category",
    "Provider Name",
    "Function Name",
    "Is Critical",
    "Details",
)
EVENT_COLUMNS = (
    "ID",
    "Date",
    "Type",
    "Summary",
    "Severity",
    "Supplier Name",
    "Function Name",
    "Old Value",
    "New Value",
    "Risk Before",
    "Risk After",
)
ISSUE_COLUMNS = (
    "ID",
    "Title",
    "Description",
    "Category",
    "Status",
    "Severity",
    "Owner",
    "Supplier Name",
    "Function Name",
    "Date Opened",
    "Date Last Update",
    "Date Closed",
    "Due Date",
    "Follow-ups",
)
CRITICAL_MONITOR_COLUMNS = (
    "Supplier Reference",
    "Provider Name",
    "Function Name",
    "Category",
    "Contract",
    "Suitability Assessment Date",
    "Audit Reports",
    "CO RO Assessment Date",
)


def _yes_no(value: bool) -> str:
    return "Yes" if value else "No"


def _write_sheet(path: Path, sheet_name: str, columns: tuple[str, ...], rows: list[dict[str, Any]]) -> None:
    frame = pd.DataFrame(rows, columns=list(columns))
    frame.to_excel(path, sheet_name=sheet_name, index=False, engine="openpyxl")


def _read_sheet(path: Path) -> list[dict[str, Any]]:
    """Rows of the first sheet as dicts keyed by header."""
    frame = pd.read_excel(path, sheet_name=0, dtype=str, keep_default_na=False, engine="openpyxl")
    return frame.to_dict(orient="records")


def _cell(row: dict[str, Any], column: str) -> str:
    value = row.get(column)
    if value is None or pd.isna(value):
        return ""
    return str(value).strip()


def _optional(row: dict[str, Any], column: str) -> str | None:
    return _cell(row, column) or None


def _json_cell(row: dict[str, Any], column: str, default: Any) -> Any:
    text = _cell(row, column)
    if not text:
        return default
    try:
        return json.loads(text)
    except ValueError:
        logger.warning("Ignoring invalid JSON in column '%s'", column)
        return default


def _validate(schema: type, data: dict[str, Any], sheet: str, row_number: int) -> Any:
    try:
        return schema.model_validate(data)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(p) for p in first.get("loc", ()))
        raise ValidationFailedError(
            f"{sheet} row {row_number}: {field}: {first.get('msg', 'invalid value')}"
        ) from e


# -- export ---------------------------------------------------------------------


def write_suppliers(path: Path, suppliers: Iterable[SupplierRecord]) -> None:
    rows = [
        {
            "Reference Number": s.reference_number,
            "Status": s.status,
            "Category": s.category,
            "Provider Name": s.provider_name,
            "Function Name": s.function_name,
            "Is Critical": _yes_no(s.is_critical),
            "Details": json.dumps(s.payload, ensure_ascii=False) if s.payload else "",
        }
        for s in suppliers
    ]
    _write_sheet(path, SUPPLIERS_SHEET, SUPPLIER_COLUMNS, rows)


def write_events(path: Path, events: Iterable[EventRecord]) -> None:
    rows = [
        {
            "ID": e.id,
            "Date": e.event_date,
            "Type": e.type,
            "Summary": e.summary,
            "Severity": e.severity or "",
            "Supplier Name": e.supplier_name or "",
            "Function Name": e.function_name or "",
            "Old Value": e.old_value or "",
            "New Value": e.new_value or "",
            "Risk Before": e.risk_before or "",
            "Risk After": e.risk_after or "",
        }
        for e in events
    ]
    _write_sheet(path, EVENTS_SHEET, EVENT_COLUMNS, rows)


def write_issues(path: Path, issues: Iterable[IssueRecord]) -> None:
    rows = [
        {
            "ID": i.id,
            "Title": i.title,
            "Description": i.description,
            "Category": i.category,
            "Status": i.status,
            "Severity": i.severity or "",
            "Owner": i.owner or "",
            "Supplier Name": i.supplier_name or "",
            "Function Name": i.function_name or "",
            "Date Opened": i.date_opened,
            "Date Last Update": i.date_last_update,
            "Date Closed": i.date_closed or "",
            "Due Date": i.due_date or "",
            "Follow-ups": json.dumps([f.model_dump() for f in i.follow_ups], ensure_ascii=False),
        }
        for i in issues
    ]
    _write_sheet(path, ISSUES_SHEET, ISSUE_COLUMNS, rows)


def write_critical_monitor(
    path: Path,
    records: Iterable[CriticalMonitorEntry],
    suppliers: Iterable[SupplierRecord],
) -> None:
    """Critical monitor sheet, with provider/function/category looked up from the suppliers."""
    by_reference = {s.reference_number: s for s in suppliers}
    rows = []
    for r in records:
        supplier = by_reference.get(r.supplier_reference_number)
        rows.append(
            {
                "Supplier Reference": r.supplier_reference_number,
                "Provider Name": supplier.provider_name if supplier else "",
                "Function Name": supplier.function_name if supplier else "",
                "Category": supplier.category if supplier else "",
                "Contract": r.contract or "",
                "Suitability Assessment Date": r.suitability_assessment_date or "",
                "Audit Reports": r.audit_reports or "",
                "CO RO Assessment Date": r.co_ro_assessment_date or "",
            }
        )
    _write_sheet(path, CRITICAL_MONITOR_SHEET, CRITICAL_MONITOR_COLUMNS, rows)


# -- import ---------------------------------------------------------------------


def read_suppliers(path: Path) -> list[SupplierRecord]:
    """Parse a suppliers sheet. Rows without a reference number are skipped."""
    records = []
    for index, row in enumerate(_read_sheet(path), start=2):
        reference = _cell(row, "Reference Number")
        if not reference:
            logger.warning("%s row %s has no reference number; skipped", SUPPLIERS_SHEET, index)
            continue
        payload = _json_cell(row, "Details", {})
        data = {
            "reference_number": reference,
            "status": _cell(row, "Status") or "Draft",
            "category": _cell(row, "Category"),
            "provider_name": _cell(row, "Provider Name"),
            "function_name": _cell(row, "Function Name"),
            "is_critical": _cell(row, "Is Critical").lower() == "yes",
            "payload": payload if isinstance(payload, dict) else {},
        }
        records.append(_validate(SupplierRecord, data, SUPPLIERS_SHEET, index))
    return records


def read_events(path: Path) -> list[EventRecord]:
    """Parse an events sheet. IDs are not kept; the store assigns new ones."""
    records = []
    for index, row in enumerate(_read_sheet(path), start=2):
        data = {
            "event_date": _cell(row, "Date"),
            "type": _cell(row, "Type"),
            "summary": _cell(row, "Summary"),
            "severity": _optional(row, "Severity"),
            "supplier_name": _optional(row, "Supplier Name"),
            "function_name": _optional(row, "Function Name"),
            "old_value": _optional(row, "Old Value"),
            "new_value": _optional(row, "New Value"),
            "risk_before": _optional(row, "Risk Before"),
            "risk_after": _optional(row, "Risk After"),
        }
        records.append(_validate(EventRecord, data, EVENTS_SHEET, index))
    return records


def read_issues(path: Path) -> list[IssueRecord]:
    """Parse an issues sheet. IDs are not kept; invalid follow-up JSON becomes an empty list."""
    records = []
    for index, row in enumerate(_read_sheet(path), start=2):
        follow_ups = _json_cell(row, "Follow-ups", [])
        data = {
            "title": _cell(row, "Title"),
            "description": _cell(row, "Description"),
            "category": _cell(row, "Category"),
            "status": _cell(row, "Status") or "Open",
            "severity": _optional(row, "Severity"),
            "owner": _optional(row, "Owner"),
            "supplier_name": _optional(row, "Supplier Name"),
            "function_name": _optional(row, "Function Name"),
            "date_opened": _cell(row, "Date Opened"),
            "date_last_update": _cell(row, "Date Last Update"),
            "date_closed": _optional(row, "Date Closed"),
            "due_date": _optional(row, "Due Date"),
            "follow_ups": follow_ups if isinstance(follow_ups, list) else [],
        }
        records.append(_validate(IssueRecord, data, ISSUES_SHEET, index))
    return records


def read_critical_monitor(path: Path) -> list[CriticalMonitorEntry]:
    """Parse a critical monitor sheet. The looked-up supplier columns are ignored."""
    records = []
    for index, row in enumerate(_read_sheet(path), start=2):
        reference = _cell(row, "Supplier Reference")
        if not reference:
            logger.warning("%s row %s has no supplier reference; skipped", CRITICAL_MONITOR_SHEET, index)
            continue
        data = {
            "supplier_reference_number": reference,
            "contract": _optional(row, "Contract"),
            "suitability_assessment_date": _optional(row, "Suitability Assessment Date"),
            "audit_reports": _optional(row, "Audit Reports"),
            "co_ro_assessment_date": _optional(row, "CO RO Assessment Date"),
        }
        records.append(_validate(CriticalMonitorEntry, data, CRITICAL_MONITOR_SHEET, index))
    return records
