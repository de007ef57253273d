import logging
import secrets
import string
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from entaneer_mind.auth.dependencies import ensure_role, get_current_user
from entaneer_mind.database import get_db
from entaneer_mind.models.case_code import CaseCode
from entaneer_mind.models.user import ROLE_COUNSELOR, User
from entaneer_mind.routes.common import database_unavailable
from entaneer_mind.routes.onboarding_routes import OnboardingResponse, order_conflict, to_onboarding_response
from entaneer_mind.services import onboarding

router = APIRouter(tags=['cases'])

logger = logging.getLogger(__name__)

CODE_PREFIX = 'ENT-'
CODE_LENGTH = 8
CODE_ALPHABET = string.ascii_uppercase + string.digits
MAX_CODE_ATTEMPTS = 5


class VerifyCodeRequest(BaseModel):
    code: str

    @field_validator('code')
    @classmethod
    def normalize_code(cls, value: str) -> str:
        normalized = value.strip().upper()
        if not normalized:
            raise ValueError('Please enter a verification token')
        return normalized


class CaseCodeResponse(BaseModel):
    code: str
    created_at: datetime


def generate_code() -> str:
    return CODE_PREFIX + ''.join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))


@router.post('/codes', response_model=CaseCodeResponse, status_code=status.HTTP_201_CREATED)
def create_case_code(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_role(current_user, ROLE_COUNSELOR)

    for _ in range(MAX_CODE_ATTEMPTS):
        case_code = CaseCode(code=generate_code(), issued_by=current_user.id)
        db.add(case_code)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            continue
        except SQLAlchemyError as exc:
            db.rollback()
            raise database_unavailable() from exc
        db.refresh(case_code)
        logger.info('Counselor %s issued a registration code', current_user.id)
        return CaseCodeResponse(code=case_code.code, created_at=case_code.created_at)

    raise HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail='Could not generate a unique code. Try again.',
    )


@router.post('/verify-code', response_model=OnboardingResponse)
def verify_code(
    data: VerifyCodeRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    current_step = onboarding.next_step(current_user)
    if current_step != onboarding.OnboardingStep.TOKEN:
        raise order_conflict(onboarding.OnboardingOrderError(onboarding.OnboardingStep.TOKEN, current_step))

    try:
        claimed = db.query(CaseCode).filter(
            CaseCode.code == data.code,
            CaseCode.used_by.is_(None),
        ).update(
            {CaseCode.used_by: current_user.id, CaseCode.used_at: datetime.now()},
            synchronize_session=False,
        )
        if claimed != 1:
            db.rollback()
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail='Invalid or already used verification token.',
            )

        onboarding.verify_token(current_user, data.code)
        db.commit()
        db.refresh(current_user)
        logger.info('User %s activated with a registration code', current_user.id)

        return to_onboarding_response(current_user)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc
