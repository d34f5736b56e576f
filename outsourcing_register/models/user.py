"""ORM model for local user accounts (auth and RBAC)."""

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Integer, String, func

from outsourcing_register.models.base import Base


class User(Base):
    """
    Local user account.

    username is unique case-insensitively (NOCASE collation) and never changes after creation.
    role: 'admin', 'editor' or 'viewer'. is_system_user marks the bootstrap admin.
    """

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("role IN ('admin', 'editor', 'viewer')", name="ck_users_role"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(50, collation="NOCASE"), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    display_name = Column(String(100), nullable=False)
    role = Column(String(16), nullable=False, index=True)
    is_system_user = Column(Boolean, nullable=False, default=False, server_default="0")
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime,
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
