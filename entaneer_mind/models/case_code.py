"""Registration code model definitions."""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from entaneer_mind.database import Base


class CaseCode(Base):
    """Out-of-band code a counselor hands to a new client to activate the account."""
    __tablename__ = "case_codes"

    id = Column(Integer, primary_key=True)
    code = Column(String, unique=True, index=True, nullable=False)
    issued_by = Column(Integer, ForeignKey("users.id"))
    used_by = Column(Integer, ForeignKey("users.id"))
    created_at = Column(DateTime, default=datetime.now)
    used_at = Column(DateTime)
