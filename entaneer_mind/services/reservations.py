"""Atomic state changes on schedule slots.

Every write is a single conditional UPDATE whose WHERE clause carries the
expected slot state, so two concurrent bookings of the same slot cannot both
succeed. Callers own the transaction.
"""
from datetime import date

from sqlalchemy import not_
from sqlalchemy.orm import Session

from entaneer_mind.models.schedule_slot import ScheduleSlot


def reserve_slot(db: Session, slot_id: int, case_code: str, client_name: str | None = None) -> bool:
    updated = db.query(ScheduleSlot).filter(
        ScheduleSlot.id == slot_id,
        ScheduleSlot.available.is_(True),
        ScheduleSlot.booked_by.is_(None),
    ).update(
        {
            ScheduleSlot.available: False,
            ScheduleSlot.booked_by: case_code,
            ScheduleSlot.client_name: client_name,
        },
        synchronize_session=False,
    )
    return updated == 1


def toggle_slot(db: Session, slot_id: int, counselor_id: int) -> bool:
    updated = db.query(ScheduleSlot).filter(
        ScheduleSlot.id == slot_id,
        ScheduleSlot.counselor_id == counselor_id,
        ScheduleSlot.booked_by.is_(None),
    ).update(
        {ScheduleSlot.available: not_(ScheduleSlot.available)},
        synchronize_session=False,
    )
    return updated == 1


def set_all_slots(db: Session, counselor_id: int, week_start: date, available: bool) -> int:
    return db.query(ScheduleSlot).filter(
        ScheduleSlot.counselor_id == counselor_id,
        ScheduleSlot.week_start == week_start,
        ScheduleSlot.booked_by.is_(None),
    ).update(
        {ScheduleSlot.available: available},
        synchronize_session=False,
    )


def release_slot(db: Session, slot_id: int, case_code: str | None = None) -> bool:
    """Clear a booking. With ``case_code`` only that client's booking is released."""
    conditions = [ScheduleSlot.id == slot_id, ScheduleSlot.booked_by.is_not(None)]
    if case_code is not None:
        conditions.append(ScheduleSlot.booked_by == case_code)

    updated = db.query(ScheduleSlot).filter(*conditions).update(
        {
            ScheduleSlot.available: True,
            ScheduleSlot.booked_by: None,
            ScheduleSlot.client_name: None,
        },
        synchronize_session=False,
    )
    return updated == 1
