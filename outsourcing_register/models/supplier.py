"""ORM model for outsourcing arrangements (suppliers)."""

from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, String, func

from outsourcing_register.models.base import Base


class Supplier(Base):
    """
    One outsourcing arrangement, keyed by reference number.

    Only the columns needed for listing and joins are broken out; the regulatory
    fields are kept as an opaque JSON payload.
    """

    __tablename__ = "suppliers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    reference_number = Column(String(64), nullable=False, unique=True, index=True)
    status = Column(String(64), nullable=False, default="Draft")
    category = Column(String(255), nullable=False, default="")
    provider_name = Column(String(255), nullable=False, default="")
    function_name = Column(String(255), nullable=False, default="")
    is_critical = Column(Boolean, nullable=False, default=False)
    payload = Column(JSON, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime,
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
