"""Schemas for register records moved by backup/restore (suppliers, events, issues, critical monitor)."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator


class SupplierRecord(BaseModel):
    """
    An outsourcing arrangement keyed by reference number.

    payload holds the regulatory detail (dates, provider data, locations, cloud details ...)
    and is passed through untouched.
    """

    id: int | None = None
    reference_number: str = Field(..., min_length=1, max_length=64)
    status: str = "Draft"
    category: str = ""
    provider_name: str = ""
    function_name: str = ""
    is_critical: bool = False
    payload: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("payload", mode="before")
    @classmethod
    def payload_default(cls, v: Any) -> Any:
        return {} if v is None else v

    class Config:
        from_attributes = True


class EventRecord(BaseModel):
    id: int | None = None
    type: str = Field(..., min_length=1)
    event_date: str = Field(..., min_length=1, description="ISO date of the event")
    summary: str
    old_value: str | None = None
    new_value: str | None = None
    risk_before: str | None = None
    risk_after: str | None = None
    severity: str | None = None
    supplier_name: str | None = None
    function_name: str | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class IssueFollowUp(BaseModel):
    note: str
    date: str


class IssueRecord(BaseModel):
    """Tracked issue. Blank date_opened / date_last_update are filled with the current time on save."""

    id: int | None = None
    title: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    category: str = ""
    status: str = "Open"
    severity: str | None = None
    owner: str | None = None
    supplier_name: str | None = None
    function_name: str | None = None
    date_opened: str = ""
    date_last_update: str = ""
    date_closed: str | None = None
    due_date: str | None = None
    follow_ups: list[IssueFollowUp] = Field(default_factory=list)
    created_at: datetime | None = None

    @field_validator("follow_ups", mode="before")
    @classmethod
    def follow_ups_default(cls, v: Any) -> Any:
        return [] if v is None else v

    class Config:
        from_attributes = True


class CriticalMonitorEntry(BaseModel):
    """Monitoring record for a critical supplier, keyed by the supplier reference number."""

    id: int | None = None
    supplier_reference_number: str = Field(..., min_length=1, max_length=64)
    contract: str | None = None
    suitability_assessment_date: str | None = None
    audit_reports: str | None = None
    co_ro_assessment_date: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True
