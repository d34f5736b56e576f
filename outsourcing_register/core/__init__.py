"""Core app configuration, errors, security and the database store."""

from outsourcing_register.core.config import get_settings, settings
from outsourcing_register.core.database import Store

__all__ = ["get_settings", "settings", "Store"]
