"""Pydantic request/response schemas."""

from outsourcing_register.schemas.auth import (
    AuthSettingsView,
    CanDeleteUserResult,
    CreateUserInput,
    EnableAuthResult,
    LoginError,
    LoginResult,
    SessionSnapshot,
    UpdateUserInput,
    User,
)
from outsourcing_register.schemas.backup import (
    BackupResult,
    RestoreOptions,
    RestoreResult,
    RestoreStats,
)
from outsourcing_register.schemas.database import DatabaseStats, PathValidation
from outsourcing_register.schemas.health import HealthResponse
from outsourcing_register.schemas.records import (
    CriticalMonitorEntry,
    EventRecord,
    IssueFollowUp,
    IssueRecord,
    SupplierRecord,
)

__all__ = [
    "AuthSettingsView",
    "BackupResult",
    "CanDeleteUserResult",
    "CreateUserInput",
    "CriticalMonitorEntry",
    "DatabaseStats",
    "EnableAuthResult",
    "EventRecord",
    "HealthResponse",
    "IssueFollowUp",
    "IssueRecord",
    "LoginError",
    "LoginResult",
    "PathValidation",
    "RestoreOptions",
    "RestoreResult",
    "RestoreStats",
    "SessionSnapshot",
    "SupplierRecord",
    "UpdateUserInput",
    "User",
]
