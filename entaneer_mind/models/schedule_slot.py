"""Schedule slot model definitions."""

from sqlalchemy import Boolean, Column, Date, ForeignKey, Integer, String, UniqueConstraint
from entaneer_mind.database import Base


class ScheduleSlot(Base):
    """One (day, time) cell of a counselor's weekly availability grid.

    A slot with ``booked_by`` set is never ``available``; every write goes
    through a conditional UPDATE on that pair of columns.
    """
    __tablename__ = "schedule_slots"
    __table_args__ = (
        UniqueConstraint("counselor_id", "week_start", "day", "time", name="uq_schedule_slot_cell"),
    )

    id = Column(Integer, primary_key=True)
    counselor_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    room = Column(String)
    week_start = Column(Date, nullable=False)  # Monday of the week
    day = Column(String, nullable=False)
    time = Column(String, nullable=False)
    available = Column(Boolean, default=False, nullable=False)
    booked_by = Column(String)  # case code of the client holding the slot
    client_name = Column(String)
