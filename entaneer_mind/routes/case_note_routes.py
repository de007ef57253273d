import logging
from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from entaneer_mind.auth.dependencies import ensure_role, get_current_user
from entaneer_mind.database import get_db
from entaneer_mind.models.case_note import CaseNote
from entaneer_mind.models.user import ROLE_CLIENT, ROLE_COUNSELOR, User
from entaneer_mind.routes.common import database_unavailable

router = APIRouter(tags=['case-notes'])

logger = logging.getLogger(__name__)

PROBLEM_TAGS = (
    'Academic Stress', 'Anxiety', 'Depression', 'Relationship Issues',
    'Family Problems', 'Self-esteem', 'Sleep Issues', 'Time Management',
    'Career Concerns', 'Social Anxiety', 'Grief/Loss', 'Trauma',
    'Adjustment Issues', 'Substance Use', 'Other',
)
MOOD_SCALE_MIN = 1
MOOD_SCALE_MAX = 5
MAX_NOTE_FIELD_LENGTH = 5000


class CreateCaseNoteRequest(BaseModel):
    client_id: int
    session_date: date
    session_time: str = '14:00'
    mood_scale: int = 3
    tags: list[str] = []
    session_summary: str = ''
    interventions: str = ''
    follow_up: str = ''

    @field_validator('session_time')
    @classmethod
    def validate_session_time(cls, value: str) -> str:
        try:
            return datetime.strptime(value.strip(), '%H:%M').strftime('%H:%M')
        except ValueError as exc:
            raise ValueError('Session time must be HH:MM.') from exc

    @field_validator('mood_scale')
    @classmethod
    def validate_mood_scale(cls, value: int) -> int:
        if not MOOD_SCALE_MIN <= value <= MOOD_SCALE_MAX:
            raise ValueError(f'Mood scale must be between {MOOD_SCALE_MIN} and {MOOD_SCALE_MAX}.')
        return value

    @field_validator('tags')
    @classmethod
    def validate_tags(cls, value: list[str]) -> list[str]:
        unknown = [tag for tag in value if tag not in PROBLEM_TAGS]
        if unknown:
            raise ValueError(f'Unknown tags: {", ".join(unknown)}.')
        return list(dict.fromkeys(value))

    @field_validator('session_summary', 'interventions', 'follow_up')
    @classmethod
    def validate_text(cls, value: str) -> str:
        normalized = value.strip()
        if len(normalized) > MAX_NOTE_FIELD_LENGTH:
            raise ValueError(f'Note fields must be {MAX_NOTE_FIELD_LENGTH} characters or fewer.')
        return normalized


class CaseNoteResponse(BaseModel):
    id: int
    case_code: str | None = None
    client_id: int
    client_name: str
    department: str | None = None
    session_date: date
    session_time: str
    mood_scale: int
    tags: list[str]
    session_summary: str
    interventions: str
    follow_up: str
    created_at: datetime


def to_case_note_response(note: CaseNote, client: User) -> CaseNoteResponse:
    return CaseNoteResponse(
        id=note.id,
        case_code=note.case_code,
        client_id=client.id,
        client_name=client.full_name,
        department=client.department,
        session_date=note.session_date,
        session_time=note.session_time,
        mood_scale=note.mood_scale,
        tags=note.tags or [],
        session_summary=note.session_summary or '',
        interventions=note.interventions or '',
        follow_up=note.follow_up or '',
        created_at=note.created_at,
    )


def get_client(db: Session, client_id: int) -> User:
    client = db.query(User).filter(User.id == client_id, User.role == ROLE_CLIENT).first()
    if client is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Client not found.')
    return client


@router.post('', response_model=CaseNoteResponse, status_code=status.HTTP_201_CREATED)
def create_case_note(
    data: CreateCaseNoteRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_role(current_user, ROLE_COUNSELOR)

    try:
        client = get_client(db, data.client_id)
        note = CaseNote(
            client_id=client.id,
            counselor_id=current_user.id,
            case_code=client.case_code,
            session_date=data.session_date,
            session_time=data.session_time,
            mood_scale=data.mood_scale,
            tags=data.tags,
            session_summary=data.session_summary,
            interventions=data.interventions,
            follow_up=data.follow_up,
        )
        db.add(note)
        db.commit()
        db.refresh(note)
        logger.info('Counselor %s saved a case note for client %s', current_user.id, client.id)

        return to_case_note_response(note, client)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.get('', response_model=list[CaseNoteResponse])
def list_case_notes(
    client_id: int = Query(...),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_role(current_user, ROLE_COUNSELOR)

    try:
        client = get_client(db, client_id)
        notes = db.query(CaseNote).filter(CaseNote.client_id == client.id).order_by(
            CaseNote.session_date.desc(),
            CaseNote.id.desc(),
        ).all()
        return [to_case_note_response(note, client) for note in notes]
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('/tags', response_model=list[str])
def list_problem_tags():
    return list(PROBLEM_TAGS)
