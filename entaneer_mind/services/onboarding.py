"""First-login sequence for clients: urgency, then PDPA consent, then registration code.

Progress lives in three flags on the user row. The current step is derived
from them, so a completed step can never come back.
"""
from datetime import datetime
from enum import Enum

from entaneer_mind.models.user import ROLE_CLIENT, STATUS_ACTIVE

URGENCY_LEVELS = ('low', 'medium', 'high')


class OnboardingStep(str, Enum):
    NONE = 'none'
    URGENCY = 'urgency'
    PDPA = 'pdpa'
    TOKEN = 'token'


class OnboardingOrderError(Exception):
    def __init__(self, requested: OnboardingStep, current: OnboardingStep):
        self.requested = requested
        self.current = current
        super().__init__(f'Cannot complete {requested.value} while at {current.value}.')


def next_step(user) -> OnboardingStep:
    if user.role != ROLE_CLIENT:
        return OnboardingStep.NONE
    if not user.urgency_completed:
        return OnboardingStep.URGENCY
    if not user.pdpa_accepted:
        return OnboardingStep.PDPA
    if not user.token_verified:
        return OnboardingStep.TOKEN
    return OnboardingStep.NONE


def _require_step(user, step: OnboardingStep) -> None:
    current = next_step(user)
    if current != step:
        raise OnboardingOrderError(step, current)


def submit_urgency(user, level: str, details: str | None = None) -> OnboardingStep:
    _require_step(user, OnboardingStep.URGENCY)
    user.urgency_level = level
    user.urgency_details = details
    user.urgency_submitted_at = datetime.now()
    user.urgency_completed = True
    return next_step(user)


def accept_pdpa(user) -> OnboardingStep:
    _require_step(user, OnboardingStep.PDPA)
    user.pdpa_accepted = True
    return next_step(user)


def verify_token(user, case_code: str) -> OnboardingStep:
    _require_step(user, OnboardingStep.TOKEN)
    user.case_code = case_code
    user.token_verified = True
    user.status = STATUS_ACTIVE
    return next_step(user)


def skip_all(user) -> OnboardingStep:
    user.urgency_completed = True
    user.pdpa_accepted = True
    user.token_verified = True
    return next_step(user)
