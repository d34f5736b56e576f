"""ORM model for the monitoring record kept for each critical supplier."""

from sqlalchemy import Column, DateTime, Integer, String, Text, func

from outsourcing_register.models.base import Base


class CriticalMonitorRecord(Base):
    """
    Monitoring dates for a critical supplier.

    supplier_reference_number is a plain unique column, not a foreign key, so that
    replacing the suppliers table does not cascade into this one.
    """

    __tablename__ = "critical_monitor"

    id = Column(Integer, primary_key=True, autoincrement=True)
    supplier_reference_number = Column(String(64), nullable=False, unique=True, index=True)
    contract = Column(Text, nullable=True)
    suitability_assessment_date = Column(String(32), nullable=True)
    audit_reports = Column(Text, nullable=True)
    co_ro_assessment_date = Column(String(32), nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime,
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
