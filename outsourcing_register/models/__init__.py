"""SQLAlchemy ORM models."""

from outsourcing_register.models.auth_settings import AUTH_SETTINGS_ID, AuthSettings
from outsourcing_register.models.base import Base
from outsourcing_register.models.critical_monitor import CriticalMonitorRecord
from outsourcing_register.models.event import Event
from outsourcing_register.models.issue import Issue
from outsourcing_register.models.supplier import Supplier
from outsourcing_register.models.user import User

__all__ = [
    "AUTH_SETTINGS_ID",
    "AuthSettings",
    "Base",
    "CriticalMonitorRecord",
    "Event",
    "Issue",
    "Supplier",
    "User",
]
