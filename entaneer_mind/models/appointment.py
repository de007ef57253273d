"""Appointment model definitions."""

from datetime import datetime

from sqlalchemy import Column, Date, DateTime, ForeignKey, Index, Integer, String, text
from entaneer_mind.database import Base

STATUS_UPCOMING = "upcoming"
STATUS_COMPLETED = "completed"
STATUS_CANCELLED = "cancelled"
APPOINTMENT_STATUSES = (STATUS_UPCOMING, STATUS_COMPLETED, STATUS_CANCELLED)


class Appointment(Base):
    """Represents a counseling session booked by a client."""
    __tablename__ = "appointments"
    __table_args__ = (
        # A client holds at most one upcoming appointment.
        Index(
            "uq_appointments_one_upcoming",
            "client_id",
            unique=True,
            sqlite_where=text("status = 'upcoming'"),
            postgresql_where=text("status = 'upcoming'"),
        ),
    )

    id = Column(Integer, primary_key=True)
    client_id = Column(Integer, ForeignKey("users.id"), index=True)
    counselor_id = Column(Integer, ForeignKey("users.id"))
    slot_id = Column(Integer, ForeignKey("schedule_slots.id"))
    date = Column(Date)
    time = Column(String)  # "HH:MM"
    status = Column(String, default=STATUS_UPCOMING)
    notes = Column(String)
    google_event_id = Column(String)
    created_at = Column(DateTime, default=datetime.now)
