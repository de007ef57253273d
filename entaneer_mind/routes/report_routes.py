from datetime import date, timedelta

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import HTMLResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from entaneer_mind.auth.dependencies import ensure_role, get_current_user
from entaneer_mind.database import get_db
from entaneer_mind.models.user import ROLE_ADMIN, ROLE_COUNSELOR, User
from entaneer_mind.routes.common import database_unavailable
from entaneer_mind.services import reports

router = APIRouter(tags=['reports'])

MAX_REPORT_DAYS = 366


def validate_period(date_from: date, date_to: date) -> None:
    if date_from > date_to:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='The start date must be on or before the end date.',
        )
    if date_to - date_from > timedelta(days=MAX_REPORT_DAYS):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Reports can cover at most one year.',
        )


def load_report(db: Session, date_from: date, date_to: date) -> dict:
    validate_period(date_from, date_to)
    try:
        return reports.build_report(db, date_from, date_to)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('')
def get_report(
    date_from: date = Query(...),
    date_to: date = Query(...),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_role(current_user, ROLE_COUNSELOR, ROLE_ADMIN)
    return load_report(db, date_from, date_to)


@router.get('/print', response_class=HTMLResponse)
def print_report(
    date_from: date = Query(...),
    date_to: date = Query(...),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_role(current_user, ROLE_COUNSELOR, ROLE_ADMIN)
    return HTMLResponse(content=reports.render_report_html(load_report(db, date_from, date_to)))
