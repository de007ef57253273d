import logging

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from entaneer_mind.auth.dependencies import get_current_user
from entaneer_mind.core import config
from entaneer_mind.database import get_db
from entaneer_mind.models.user import User
from entaneer_mind.routes.common import database_unavailable
from entaneer_mind.services import onboarding

router = APIRouter(tags=['onboarding'])

logger = logging.getLogger(__name__)

MAX_URGENCY_DETAILS_LENGTH = 600


class UrgencyRequest(BaseModel):
    urgency_level: str
    details: str | None = None

    @field_validator('urgency_level')
    @classmethod
    def validate_urgency_level(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in onboarding.URGENCY_LEVELS:
            raise ValueError('Please choose an urgency level.')
        return normalized

    @field_validator('details')
    @classmethod
    def validate_details(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if not normalized:
            return None

        if len(normalized) > MAX_URGENCY_DETAILS_LENGTH:
            raise ValueError(f'Details must be {MAX_URGENCY_DETAILS_LENGTH} characters or fewer.')

        return normalized


class OnboardingResponse(BaseModel):
    step: onboarding.OnboardingStep
    urgency_completed: bool
    pdpa_accepted: bool
    token_verified: bool


def to_onboarding_response(user: User) -> OnboardingResponse:
    return OnboardingResponse(
        step=onboarding.next_step(user),
        urgency_completed=bool(user.urgency_completed),
        pdpa_accepted=bool(user.pdpa_accepted),
        token_verified=bool(user.token_verified),
    )


def order_conflict(exc: onboarding.OnboardingOrderError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail=f'Onboarding is at step "{exc.current.value}", not "{exc.requested.value}".',
    )


def save_progress(user: User, db: Session) -> OnboardingResponse:
    try:
        db.commit()
        db.refresh(user)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc
    return to_onboarding_response(user)


@router.get('', response_model=OnboardingResponse)
def get_onboarding(current_user: User = Depends(get_current_user)):
    return to_onboarding_response(current_user)


@router.post('/urgency', response_model=OnboardingResponse)
def submit_urgency(
    data: UrgencyRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        onboarding.submit_urgency(current_user, data.urgency_level, data.details)
    except onboarding.OnboardingOrderError as exc:
        raise order_conflict(exc) from exc
    return save_progress(current_user, db)


@router.post('/pdpa', response_model=OnboardingResponse)
def accept_pdpa(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        onboarding.accept_pdpa(current_user)
    except onboarding.OnboardingOrderError as exc:
        raise order_conflict(exc) from exc
    return save_progress(current_user, db)


@router.post('/skip', response_model=OnboardingResponse)
def skip_onboarding(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not config.ONBOARDING_DEBUG_SKIP:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Not Found')

    logger.warning('Onboarding skipped for user %s (debug mode)', current_user.id)
    onboarding.skip_all(current_user)
    return save_progress(current_user, db)
