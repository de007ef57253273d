import logging
import random
from datetime import date, datetime, time

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from entaneer_mind.auth.dependencies import ensure_role, get_current_user
from entaneer_mind.database import get_db
from entaneer_mind.models.appointment import STATUS_CANCELLED, STATUS_UPCOMING, Appointment
from entaneer_mind.models.schedule_slot import ScheduleSlot
from entaneer_mind.models.user import ROLE_COUNSELOR, User
from entaneer_mind.routes.common import database_unavailable, ensure_database_ready
from entaneer_mind.services import reservations
from entaneer_mind.services.schedule import WEEK_DAYS, TimeBlock, WeeklySchedule, date_for_day, week_start_for

router = APIRouter(tags=['schedule'])

logger = logging.getLogger(__name__)

DEFAULT_ROOM = 'Counseling Room 1'
COUNSELING_ROOMS = ('Counseling Room 1', 'Counseling Room 2', 'Group Activity Room')


class InitializeWeekRequest(BaseModel):
    week_start: date
    room: str = DEFAULT_ROOM
    seed_mock: bool = False

    @field_validator('week_start')
    @classmethod
    def normalize_week_start(cls, value: date) -> date:
        return week_start_for(value)

    @field_validator('room')
    @classmethod
    def validate_room(cls, value: str) -> str:
        normalized = value.strip()
        if normalized not in COUNSELING_ROOMS:
            raise ValueError('Unknown counseling room.')
        return normalized


class SetAllRequest(BaseModel):
    week_start: date
    available: bool

    @field_validator('week_start')
    @classmethod
    def normalize_week_start(cls, value: date) -> date:
        return week_start_for(value)


class ScheduleSlotResponse(BaseModel):
    id: int
    counselor_id: int
    room: str | None = None
    week_start: date
    day: str
    time: str
    date: date
    available: bool
    booked_by: str | None = None
    client_name: str | None = None
    status: str


class WeekScheduleResponse(BaseModel):
    week_start: date
    room: str | None = None
    slots: list[ScheduleSlotResponse]
    summary: dict[str, int]


class AvailableSlotResponse(BaseModel):
    id: int
    counselor_id: int
    counselor: str
    room: str | None = None
    date: date
    day: str
    time: str


def slot_status(slot: ScheduleSlot) -> str:
    if slot.booked_by:
        return 'booked'
    return 'available' if slot.available else 'closed'


def slot_start(slot: ScheduleSlot) -> datetime:
    return datetime.combine(date_for_day(slot.week_start, slot.day), time.fromisoformat(slot.time))


def to_slot_response(slot: ScheduleSlot) -> ScheduleSlotResponse:
    return ScheduleSlotResponse(
        id=slot.id,
        counselor_id=slot.counselor_id,
        room=slot.room,
        week_start=slot.week_start,
        day=slot.day,
        time=slot.time,
        date=date_for_day(slot.week_start, slot.day),
        available=slot.available,
        booked_by=slot.booked_by,
        client_name=slot.client_name,
        status=slot_status(slot),
    )


def sort_key(slot: ScheduleSlot) -> tuple[int, str]:
    return WEEK_DAYS.index(slot.day), slot.time


def load_week(db: Session, counselor_id: int, week_start: date) -> list[ScheduleSlot]:
    slots = db.query(ScheduleSlot).filter(
        ScheduleSlot.counselor_id == counselor_id,
        ScheduleSlot.week_start == week_start,
    ).all()
    return sorted(slots, key=sort_key)


def build_week_response(week_start: date, slots: list[ScheduleSlot]) -> WeekScheduleResponse:
    grid = WeeklySchedule([
        TimeBlock(
            day=slot.day,
            time=slot.time,
            available=slot.available,
            booked_by=slot.booked_by,
            client_name=slot.client_name,
        )
        for slot in slots
    ])
    return WeekScheduleResponse(
        week_start=week_start,
        room=slots[0].room if slots else None,
        slots=[to_slot_response(slot) for slot in slots],
        summary=grid.summary(),
    )


def get_owned_slot(db: Session, slot_id: int, counselor_id: int) -> ScheduleSlot:
    slot = db.query(ScheduleSlot).filter(
        ScheduleSlot.id == slot_id,
        ScheduleSlot.counselor_id == counselor_id,
    ).first()
    if slot is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Schedule slot not found.',
        )
    return slot


@router.post('/week', response_model=WeekScheduleResponse, status_code=status.HTTP_201_CREATED)
def initialize_week(
    data: InitializeWeekRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_role(current_user, ROLE_COUNSELOR)
    ensure_database_ready()

    try:
        existing = load_week(db, current_user.id, data.week_start)
        if existing:
            return build_week_response(data.week_start, existing)

        grid = WeeklySchedule.generate(rng=random.Random()) if data.seed_mock else WeeklySchedule.closed()
        for block in grid.blocks:
            db.add(
                ScheduleSlot(
                    counselor_id=current_user.id,
                    room=data.room,
                    week_start=data.week_start,
                    day=block.day,
                    time=block.time,
                    available=block.available,
                    booked_by=block.booked_by,
                    client_name=block.client_name,
                )
            )
        db.commit()
        logger.info('Initialized week %s for counselor %s', data.week_start, current_user.id)

        return build_week_response(data.week_start, load_week(db, current_user.id, data.week_start))
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.get('/week', response_model=WeekScheduleResponse)
def get_week(
    week_start: date = Query(...),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_role(current_user, ROLE_COUNSELOR)
    ensure_database_ready()

    normalized_week = week_start_for(week_start)
    try:
        return build_week_response(normalized_week, load_week(db, current_user.id, normalized_week))
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.post('/slots/{slot_id}/toggle', response_model=ScheduleSlotResponse)
def toggle_slot(
    slot_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_role(current_user, ROLE_COUNSELOR)
    ensure_database_ready()

    try:
        # A booked slot is left as is and returned unchanged.
        reservations.toggle_slot(db, slot_id, current_user.id)
        db.commit()

        slot = get_owned_slot(db, slot_id, current_user.id)
        db.refresh(slot)
        return to_slot_response(slot)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.post('/set-all', response_model=WeekScheduleResponse)
def set_all_slots(
    data: SetAllRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_role(current_user, ROLE_COUNSELOR)
    ensure_database_ready()

    try:
        changed = reservations.set_all_slots(db, current_user.id, data.week_start, data.available)
        db.commit()
        logger.info('Set %s slots to available=%s for counselor %s', changed, data.available, current_user.id)

        slots = load_week(db, current_user.id, data.week_start)
        for slot in slots:
            db.refresh(slot)
        return build_week_response(data.week_start, slots)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.post('/slots/{slot_id}/release', response_model=ScheduleSlotResponse)
def release_slot(
    slot_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_role(current_user, ROLE_COUNSELOR)
    ensure_database_ready()

    try:
        slot = get_owned_slot(db, slot_id, current_user.id)
        if not reservations.release_slot(db, slot.id):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail='This slot has no booking to cancel.',
            )

        db.query(Appointment).filter(
            Appointment.slot_id == slot.id,
            Appointment.status == STATUS_UPCOMING,
        ).update({Appointment.status: STATUS_CANCELLED}, synchronize_session=False)
        db.commit()
        db.refresh(slot)
        logger.info('Counselor %s released slot %s', current_user.id, slot.id)

        return to_slot_response(slot)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.get('/available', response_model=list[AvailableSlotResponse])
def list_available_slots(
    week_start: date = Query(...),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    del current_user
    ensure_database_ready()

    normalized_week = week_start_for(week_start)
    try:
        rows = db.query(ScheduleSlot, User).join(User, User.id == ScheduleSlot.counselor_id).filter(
            ScheduleSlot.week_start == normalized_week,
            ScheduleSlot.available.is_(True),
            ScheduleSlot.booked_by.is_(None),
        ).all()

        now = datetime.now()
        open_slots = [
            AvailableSlotResponse(
                id=slot.id,
                counselor_id=slot.counselor_id,
                counselor=counselor.full_name,
                room=slot.room,
                date=date_for_day(slot.week_start, slot.day),
                day=slot.day,
                time=slot.time,
            )
            for slot, counselor in rows
            if slot_start(slot) > now
        ]
        return sorted(open_slots, key=lambda slot: (slot.date, slot.time, slot.counselor_id))
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc
