"""ORM model for register events (audit trail of changes)."""

from sqlalchemy import Column, DateTime, Integer, String, Text, func

from outsourcing_register.models.base import Base


class Event(Base):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    type = Column(String(64), nullable=False, index=True)
    event_date = Column(String(32), nullable=False, index=True)
    summary = Column(Text, nullable=False)
    old_value = Column(Text, nullable=True)
    new_value = Column(Text, nullable=True)
    risk_before = Column(String(64), nullable=True)
    risk_after = Column(String(64), nullable=True)
    severity = Column(String(32), nullable=True)
    supplier_name = Column(String(255), nullable=True)
    function_name = Column(String(255), nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
