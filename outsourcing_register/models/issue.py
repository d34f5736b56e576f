"""ORM model for tracked issues."""

from sqlalchemy import JSON, Column, DateTime, Integer, String, Text, func

from outsourcing_register.models.base import Base


class Issue(Base):
    """Issue raised against a supplier or function; follow_ups is a JSON list of {note, date}."""

    __tablename__ = "issues"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    category = Column(String(255), nullable=False, default="")
    status = Column(String(32), nullable=False, index=True)
    severity = Column(String(32), nullable=True, index=True)
    owner = Column(String(255), nullable=True)
    supplier_name = Column(String(255), nullable=True)
    function_name = Column(String(255), nullable=True)
    date_opened = Column(String(32), nullable=False)
    date_last_update = Column(String(32), nullable=False)
    date_closed = Column(String(32), nullable=True)
    due_date = Column(String(32), nullable=True, index=True)
    follow_ups = Column(JSON, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
