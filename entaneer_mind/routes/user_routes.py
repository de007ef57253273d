import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from entaneer_mind.auth.dependencies import ensure_role, get_current_user
from entaneer_mind.database import get_db
from entaneer_mind.models.user import (
    ROLE_ADMIN,
    ROLE_CLIENT,
    ROLE_COUNSELOR,
    STATUS_ACTIVE,
    STATUS_PENDING,
    STATUS_SUSPENDED,
    USER_ROLES,
    USER_STATUSES,
    User,
)
from entaneer_mind.routes.common import database_unavailable
from entaneer_mind.services import booking
from entaneer_mind.services.onboarding import URGENCY_LEVELS, OnboardingStep, next_step

router = APIRouter(tags=['users'])

logger = logging.getLogger(__name__)

GENDERS = ('male', 'female', 'other', 'unspecified')
MANAGED_BY_COUNSELOR = (ROLE_CLIENT,)


class UserResponse(BaseModel):
    id: int
    account: str
    first_name: str
    last_name: str
    role: str
    status: str
    phone_num: str | None = None
    gender: str | None = None
    major: str | None = None
    department: str | None = None
    client_id: str | None = None
    counselor_number: str | None = None
    case_code: str | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class MeResponse(UserResponse):
    onboarding_step: OnboardingStep


class UpdateProfileRequest(BaseModel):
    phone_num: str | None = None
    gender: str | None = None
    major: str | None = None
    department: str | None = None
    client_id: str | None = None

    @field_validator('phone_num')
    @classmethod
    def validate_phone(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return booking.validate_phone(value)

    @field_validator('client_id')
    @classmethod
    def validate_client_id(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return booking.validate_client_id(value)

    @field_validator('gender')
    @classmethod
    def validate_gender(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip().lower()
        if normalized not in GENDERS:
            raise ValueError('Invalid gender.')
        return normalized


class CreateUserRequest(BaseModel):
    first_name: str
    last_name: str
    account: str
    role: str = ROLE_CLIENT
    department: str | None = None
    counselor_number: str | None = None
    priority: str = 'medium'

    @field_validator('account')
    @classmethod
    def validate_account(cls, value: str) -> str:
        normalized = value.strip().lower()
        if '@' not in normalized:
            raise ValueError('Account must be an e-mail address.')
        return normalized

    @field_validator('first_name', 'last_name')
    @classmethod
    def validate_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Name is required.')
        return normalized

    @field_validator('role')
    @classmethod
    def validate_role(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in (ROLE_CLIENT, ROLE_COUNSELOR):
            raise ValueError('New users are clients or counselors.')
        return normalized

    @field_validator('priority')
    @classmethod
    def validate_priority(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in URGENCY_LEVELS:
            raise ValueError('Invalid priority.')
        return normalized


class ChangeRoleRequest(BaseModel):
    role: str

    @field_validator('role')
    @classmethod
    def validate_role(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in USER_ROLES:
            raise ValueError('Invalid role.')
        return normalized


def matches_search(user: User, needle: str) -> bool:
    haystack = (user.full_name, user.account or '', user.department or '')
    return any(needle in value.lower() for value in haystack)


def get_managed_user(db: Session, user_id: int, manager: User) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='User not found.')
    if manager.role == ROLE_COUNSELOR and user.role not in MANAGED_BY_COUNSELOR:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail='Counselors can only manage client accounts.',
        )
    if user.id == manager.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='You cannot change your own account.',
        )
    return user


def commit_user(user: User, db: Session) -> User:
    try:
        db.commit()
        db.refresh(user)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc
    return user


@router.get('/me', response_model=MeResponse)
def me(current_user: User = Depends(get_current_user)):
    return MeResponse(
        **UserResponse.model_validate(current_user).model_dump(),
        onboarding_step=next_step(current_user),
    )


@router.put('/profile', response_model=UserResponse)
def update_profile(
    data: UpdateProfileRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(current_user, field, value)
    return commit_user(current_user, db)


@router.get('', response_model=list[UserResponse])
def list_users(
    search: str | None = Query(default=None),
    role: str | None = Query(default=None),
    status_filter: str | None = Query(default=None, alias='status'),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_role(current_user, ROLE_ADMIN, ROLE_COUNSELOR)
    if role is not None and role not in USER_ROLES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Invalid role.')
    if status_filter is not None and status_filter not in USER_STATUSES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Invalid status.')

    try:
        query = db.query(User)
        if role:
            query = query.filter(User.role == role)
        if status_filter:
            query = query.filter(User.status == status_filter)
        users = query.order_by(User.created_at.desc(), User.id.desc()).all()
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    if search and search.strip():
        needle = search.strip().lower()
        users = [user for user in users if matches_search(user, needle)]
    return users


@router.post('', response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    data: CreateUserRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_role(current_user, ROLE_ADMIN, ROLE_COUNSELOR)
    if current_user.role == ROLE_COUNSELOR and data.role not in MANAGED_BY_COUNSELOR:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail='Counselors can only add client accounts.',
        )

    user = User(
        account=data.account,
        first_name=data.first_name,
        last_name=data.last_name,
        role=data.role,
        status=STATUS_ACTIVE,
        department=data.department if data.role == ROLE_CLIENT else None,
        counselor_number=data.counselor_number if data.role == ROLE_COUNSELOR else None,
    )
    if data.role == ROLE_CLIENT:
        # Clients added by staff skip the self-service urgency form.
        user.urgency_level = data.priority
        user.urgency_submitted_at = datetime.now()
        user.urgency_completed = True

    db.add(user)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail='An account with this e-mail already exists.',
        ) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc
    db.refresh(user)
    logger.info('User %s added account %s as %s', current_user.id, user.account, user.role)
    return user


@router.post('/{user_id}/approve', response_model=UserResponse)
def approve_user(
    user_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_role(current_user, ROLE_ADMIN, ROLE_COUNSELOR)
    user = get_managed_user(db, user_id, current_user)
    if user.status not in (STATUS_PENDING, STATUS_SUSPENDED):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail='User is already active.')
    user.status = STATUS_ACTIVE
    return commit_user(user, db)


@router.post('/{user_id}/suspend', response_model=UserResponse)
def suspend_user(
    user_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_role(current_user, ROLE_ADMIN, ROLE_COUNSELOR)
    user = get_managed_user(db, user_id, current_user)
    if user.status == STATUS_SUSPENDED:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail='User is already suspended.')
    user.status = STATUS_SUSPENDED
    return commit_user(user, db)


@router.patch('/{user_id}/role', response_model=UserResponse)
def change_role(
    user_id: int,
    data: ChangeRoleRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_role(current_user, ROLE_ADMIN)
    user = get_managed_user(db, user_id, current_user)
    user.role = data.role
    return commit_user(user, db)
