"""Case note model definitions."""

from datetime import datetime

from sqlalchemy import JSON, Column, Date, DateTime, ForeignKey, Integer, String, Text
from entaneer_mind.database import Base


class CaseNote(Base):
    """Session notes a counselor records for a client."""
    __tablename__ = "case_notes"

    id = Column(Integer, primary_key=True)
    client_id = Column(Integer, ForeignKey("users.id"), index=True)
    counselor_id = Column(Integer, ForeignKey("users.id"))
    case_code = Column(String)
    session_date = Column(Date)
    session_time = Column(String)
    mood_scale = Column(Integer)
    tags = Column(JSON, default=list)
    session_summary = Column(Text, default="")
    interventions = Column(Text, default="")
    follow_up = Column(Text, default="")
    created_at = Column(DateTime, default=datetime.now)
