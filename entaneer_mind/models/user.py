"""User model definitions."""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Integer, String
from entaneer_mind.database import Base

ROLE_CLIENT = "client"
ROLE_COUNSELOR = "counselor"
ROLE_ADMIN = "admin"
USER_ROLES = (ROLE_CLIENT, ROLE_COUNSELOR, ROLE_ADMIN)

STATUS_PENDING = "pending"
STATUS_ACTIVE = "active"
STATUS_SUSPENDED = "suspended"
USER_STATUSES = (STATUS_PENDING, STATUS_ACTIVE, STATUS_SUSPENDED)


class User(Base):
    """Represents an application user (client, counselor or admin)."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    account = Column(String, unique=True, index=True)  # university IT account e-mail
    first_name = Column(String, default="")
    last_name = Column(String, default="")
    role = Column(String, default=ROLE_CLIENT)
    status = Column(String, default=STATUS_PENDING)
    sso_subject = Column(String, index=True)
    phone_num = Column(String)
    gender = Column(String)
    major = Column(String)
    department = Column(String)
    client_id = Column(String)  # 9-digit student number
    counselor_number = Column(String)
    case_code = Column(String)

    urgency_level = Column(String)
    urgency_details = Column(String)
    urgency_submitted_at = Column(DateTime)

    # Onboarding progress; a flag is never cleared once set.
    urgency_completed = Column(Boolean, default=False, nullable=False)
    pdpa_accepted = Column(Boolean, default=False, nullable=False)
    token_verified = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=datetime.now)

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip() or (self.account or "")
