"""ORM model for the singleton authentication settings row."""

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Integer, String, func

from outsourcing_register.models.base import Base

# The only valid primary key; the table holds exactly one row.
AUTH_SETTINGS_ID = 1


class AuthSettings(Base):
    """Global auth switch and the recovery (master) password hash."""

    __tablename__ = "auth_settings"
    __table_args__ = (CheckConstraint("id = 1", name="ck_auth_settings_singleton"),)

    id = Column(Integer, primary_key=True, default=AUTH_SETTINGS_ID)
    auth_enabled = Column(Boolean, nullable=False, default=False, server_default="0")
    master_password_hash = Column(String(255), nullable=False)
    master_password_changed = Column(Boolean, nullable=False, default=False, server_default="0")
    updated_at = Column(
        DateTime,
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
