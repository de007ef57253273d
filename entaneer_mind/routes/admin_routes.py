from datetime import date, datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from entaneer_mind.auth.dependencies import ensure_role, get_current_user
from entaneer_mind.database import get_db
from entaneer_mind.models.appointment import STATUS_CANCELLED, STATUS_UPCOMING, Appointment
from entaneer_mind.models.user import ROLE_ADMIN, ROLE_CLIENT, ROLE_COUNSELOR, STATUS_ACTIVE, STATUS_PENDING, User
from entaneer_mind.routes.common import database_unavailable
from entaneer_mind.services.reports import average_wait_days

router = APIRouter(tags=['admin'])


class AdminStatsResponse(BaseModel):
    """Wire keys are camelCase to match the dashboard."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total_users: int
    active_students: int
    active_counselors: int
    pending_approvals: int
    total_sessions: int
    sessions_this_month: int
    upcoming_sessions: int
    average_wait_time: str


def month_start(today: date) -> date:
    return today.replace(day=1)


@router.get('/stats', response_model=AdminStatsResponse)
def admin_stats(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_role(current_user, ROLE_ADMIN)

    try:
        users = db.query(User.role, User.status).all()
        sessions = db.query(Appointment.date, Appointment.status).filter(
            Appointment.status != STATUS_CANCELLED,
        ).all()
        wait_days = average_wait_days(db)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    today = datetime.now().date()
    first_of_month = month_start(today)
    return AdminStatsResponse(
        total_users=len(users),
        active_students=sum(1 for role, state in users if role == ROLE_CLIENT and state == STATUS_ACTIVE),
        active_counselors=sum(1 for role, state in users if role == ROLE_COUNSELOR and state == STATUS_ACTIVE),
        pending_approvals=sum(1 for _, state in users if state == STATUS_PENDING),
        total_sessions=len(sessions),
        sessions_this_month=sum(
            1 for session_date, _ in sessions if session_date is not None and first_of_month <= session_date <= today
        ),
        upcoming_sessions=sum(1 for _, session_status in sessions if session_status == STATUS_UPCOMING),
        average_wait_time=f'{wait_days} days',
    )
