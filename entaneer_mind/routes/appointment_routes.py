import logging
from datetime import date, datetime, timedelta

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from entaneer_mind.auth.dependencies import ensure_role, get_current_user
from entaneer_mind.core import config
from entaneer_mind.database import get_db
from entaneer_mind.models.appointment import (
    APPOINTMENT_STATUSES,
    STATUS_CANCELLED,
    STATUS_COMPLETED,
    STATUS_UPCOMING,
    Appointment,
)
from entaneer_mind.models.schedule_slot import ScheduleSlot
from entaneer_mind.models.user import ROLE_ADMIN, ROLE_CLIENT, ROLE_COUNSELOR, STATUS_SUSPENDED, User
from entaneer_mind.routes.common import database_unavailable, ensure_database_ready
from entaneer_mind.routes.schedule_routes import slot_start
from entaneer_mind.services import booking, google_calendar, reservations
from entaneer_mind.services.onboarding import OnboardingStep, next_step
from entaneer_mind.services.schedule import date_for_day

router = APIRouter(tags=['appointments'])

logger = logging.getLogger(__name__)

URGENCY_RANK = {'high': 0, 'medium': 1, 'low': 2}


class BookAppointmentRequest(BaseModel):
    slot_id: int
    client_id: str
    phone: str
    description: str
    sync_calendar: bool = False
    calendar_access_token: str | None = None

    @field_validator('client_id')
    @classmethod
    def validate_client_id(cls, value: str) -> str:
        return booking.validate_client_id(value)

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, value: str) -> str:
        return booking.validate_phone(value)

    @field_validator('description')
    @classmethod
    def validate_description(cls, value: str) -> str:
        return booking.validate_description(value)


class AppointmentResponse(BaseModel):
    id: int
    slot_id: int | None = None
    date: date
    time: str
    counselor: str
    client_name: str | None = None
    status: str
    notes: str | None = None
    google_event_id: str | None = None


class AppointmentSummaryResponse(BaseModel):
    upcoming: int
    completed: int
    cancelled: int


class TodayAppointmentResponse(BaseModel):
    id: int
    time: str
    client_name: str
    status: str
    case_code: str | None = None


class WaitingClientResponse(BaseModel):
    id: int
    name: str
    waiting_since: datetime | None = None
    urgency: str


def to_appointment_response(appointment: Appointment, people: dict[int, User]) -> AppointmentResponse:
    counselor = people.get(appointment.counselor_id)
    client = people.get(appointment.client_id)
    return AppointmentResponse(
        id=appointment.id,
        slot_id=appointment.slot_id,
        date=appointment.date,
        time=appointment.time,
        counselor=counselor.full_name if counselor else '',
        client_name=client.full_name if client else None,
        status=appointment.status or STATUS_UPCOMING,
        notes=appointment.notes,
        google_event_id=appointment.google_event_id,
    )


def load_people(db: Session, appointments: list[Appointment]) -> dict[int, User]:
    ids = {appointment.counselor_id for appointment in appointments} | {
        appointment.client_id for appointment in appointments
    }
    ids.discard(None)
    if not ids:
        return {}
    return {user.id: user for user in db.query(User).filter(User.id.in_(ids)).all()}


def has_upcoming_appointment(db: Session, client_id: int) -> bool:
    return db.query(Appointment.id).filter(
        Appointment.client_id == client_id,
        Appointment.status == STATUS_UPCOMING,
    ).first() is not None


def sync_to_calendar(appointment: Appointment, counselor: User, access_token: str) -> str | None:
    start = datetime.combine(appointment.date, datetime.strptime(appointment.time, '%H:%M').time())
    return google_calendar.create_calendar_event(
        access_token,
        summary=f'Counseling session with {counselor.full_name}',
        start=start,
        description=appointment.notes,
    )


@router.post('/book', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def book_appointment(
    data: BookAppointmentRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_role(current_user, ROLE_CLIENT)
    if next_step(current_user) != OnboardingStep.NONE:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail='Finish onboarding before booking a session.',
        )

    ensure_database_ready()

    try:
        if has_upcoming_appointment(db, current_user.id):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail='You already have an upcoming appointment.',
            )

        slot = db.query(ScheduleSlot).filter(ScheduleSlot.id == data.slot_id).first()
        if slot is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail='Schedule slot not found.',
            )

        if slot_start(slot) <= datetime.now():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail='Appointments must be scheduled in the future.',
            )

        case_code = booking.case_code_for(current_user)
        if not reservations.reserve_slot(db, slot.id, case_code, current_user.full_name):
            db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail='This time is already booked.',
            )

        current_user.client_id = data.client_id
        current_user.phone_num = data.phone

        appointment = Appointment(
            client_id=current_user.id,
            counselor_id=slot.counselor_id,
            slot_id=slot.id,
            date=date_for_day(slot.week_start, slot.day),
            time=slot.time,
            status=STATUS_UPCOMING,
            notes=data.description,
        )
        db.add(appointment)
        try:
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail='You already have an upcoming appointment.',
            ) from exc
        db.refresh(appointment)
        logger.info('Client %s booked slot %s', current_user.id, slot.id)

        people = load_people(db, [appointment])

        if data.sync_calendar:
            counselor = people.get(appointment.counselor_id)
            if not data.calendar_access_token:
                logger.warning('Calendar sync requested without an access token; skipping')
            elif counselor is not None:
                event_id = sync_to_calendar(appointment, counselor, data.calendar_access_token)
                if event_id:
                    appointment.google_event_id = event_id
                    db.commit()
                    db.refresh(appointment)

        return to_appointment_response(appointment, people)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.get('', response_model=list[AppointmentResponse])
def list_appointments(
    status_filter: str | None = Query(default=None, alias='status'),
    search: str | None = Query(default=None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if status_filter is not None and status_filter not in APPOINTMENT_STATUSES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Invalid appointment status.',
        )

    ensure_database_ready()

    try:
        query = db.query(Appointment)
        if current_user.role == ROLE_CLIENT:
            query = query.filter(Appointment.client_id == current_user.id)
        elif current_user.role == ROLE_COUNSELOR:
            query = query.filter(Appointment.counselor_id == current_user.id)
        if status_filter:
            query = query.filter(Appointment.status == status_filter)

        appointments = query.order_by(Appointment.date.desc(), Appointment.time.desc()).all()
        people = load_people(db, appointments)
        responses = [to_appointment_response(appointment, people) for appointment in appointments]

        if search and search.strip():
            needle = search.strip().lower()
            responses = [
                response
                for response in responses
                if needle in response.counselor.lower() or needle in response.date.isoformat()
            ]
        return responses
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('/summary', response_model=AppointmentSummaryResponse)
def appointment_summary(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        query = db.query(Appointment.status)
        if current_user.role == ROLE_CLIENT:
            query = query.filter(Appointment.client_id == current_user.id)
        elif current_user.role == ROLE_COUNSELOR:
            query = query.filter(Appointment.counselor_id == current_user.id)

        statuses = [row_status for (row_status,) in query.all()]
        return AppointmentSummaryResponse(
            upcoming=statuses.count(STATUS_UPCOMING),
            completed=statuses.count(STATUS_COMPLETED),
            cancelled=statuses.count(STATUS_CANCELLED),
        )
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.post('/{appointment_id}/cancel', response_model=AppointmentResponse)
def cancel_my_appointment(
    appointment_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_role(current_user, ROLE_CLIENT)
    ensure_database_ready()

    try:
        appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
        if appointment is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail='Appointment not found.',
            )

        if appointment.client_id != current_user.id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail='Only the client who booked this appointment can cancel it.',
            )

        if appointment.status != STATUS_UPCOMING:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail='Only upcoming appointments can be cancelled.',
            )

        appointment.status = STATUS_CANCELLED
        if appointment.slot_id is not None:
            reservations.release_slot(db, appointment.slot_id, booking.case_code_for(current_user))
        db.commit()
        db.refresh(appointment)
        logger.info('Client %s cancelled appointment %s', current_user.id, appointment.id)

        return to_appointment_response(appointment, load_people(db, [appointment]))
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.post('/{appointment_id}/complete', response_model=AppointmentResponse)
def complete_appointment(
    appointment_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_role(current_user, ROLE_COUNSELOR, ROLE_ADMIN)
    ensure_database_ready()

    try:
        appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
        if appointment is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail='Appointment not found.',
            )

        if current_user.role == ROLE_COUNSELOR and appointment.counselor_id != current_user.id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail='Only the assigned counselor can complete this appointment.',
            )

        if appointment.status != STATUS_UPCOMING:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail='Only upcoming appointments can be completed.',
            )

        appointment.status = STATUS_COMPLETED
        db.commit()
        db.refresh(appointment)

        return to_appointment_response(appointment, load_people(db, [appointment]))
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


def today_status(appointment: Appointment, now: datetime) -> str:
    if appointment.status == STATUS_COMPLETED:
        return 'completed'
    start = datetime.combine(appointment.date, datetime.strptime(appointment.time, '%H:%M').time())
    if start <= now < start + timedelta(minutes=config.SESSION_LENGTH_MINUTES):
        return 'in-progress'
    return 'pending'


@router.get('/today', response_model=list[TodayAppointmentResponse])
def list_today_appointments(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_role(current_user, ROLE_COUNSELOR)
    ensure_database_ready()

    try:
        now = datetime.now()
        appointments = db.query(Appointment).filter(
            Appointment.counselor_id == current_user.id,
            Appointment.date == now.date(),
            Appointment.status != STATUS_CANCELLED,
        ).order_by(Appointment.time.asc()).all()
        people = load_people(db, appointments)

        responses = []
        for appointment in appointments:
            client = people.get(appointment.client_id)
            responses.append(
                TodayAppointmentResponse(
                    id=appointment.id,
                    time=appointment.time,
                    client_name=client.full_name if client else '',
                    status=today_status(appointment, now),
                    case_code=client.case_code if client else None,
                )
            )
        return responses
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('/waiting', response_model=list[WaitingClientResponse])
def list_waiting_clients(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_role(current_user, ROLE_COUNSELOR)
    ensure_database_ready()

    try:
        booked_client_ids = {
            client_id
            for (client_id,) in db.query(Appointment.client_id).filter(Appointment.status == STATUS_UPCOMING).all()
        }
        clients = db.query(User).filter(
            User.role == ROLE_CLIENT,
            User.status != STATUS_SUSPENDED,
            User.urgency_completed.is_(True),
            User.pdpa_accepted.is_(True),
            User.token_verified.is_(True),
        ).all()

        waiting = [client for client in clients if client.id not in booked_client_ids]
        waiting.sort(
            key=lambda client: (
                URGENCY_RANK.get(client.urgency_level, len(URGENCY_RANK)),
                client.urgency_submitted_at or datetime.max,
            )
        )
        return [
            WaitingClientResponse(
                id=client.id,
                name=client.full_name,
                waiting_since=client.urgency_submitted_at,
                urgency=client.urgency_level or 'low',
            )
            for client in waiting
        ]
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc
