import pytest

from entaneer_mind.models.user import ROLE_ADMIN, ROLE_CLIENT, ROLE_COUNSELOR, STATUS_ACTIVE, STATUS_PENDING, User
from entaneer_mind.services import onboarding
from entaneer_mind.services.onboarding import OnboardingOrderError, OnboardingStep


def _new_client() -> User:
    return User(role=ROLE_CLIENT, status=STATUS_PENDING)


@pytest.mark.parametrize('role', [ROLE_COUNSELOR, ROLE_ADMIN])
def test_staff_skip_onboarding(role: str) -> None:
    assert onboarding.next_step(User(role=role)) == OnboardingStep.NONE


def test_new_client_starts_at_urgency() -> None:
    assert onboarding.next_step(_new_client()) == OnboardingStep.URGENCY


def test_sequence_moves_forward_to_dashboard() -> None:
    client = _new_client()

    assert onboarding.submit_urgency(client, 'high', 'cannot sleep') == OnboardingStep.PDPA
    assert client.urgency_level == 'high'
    assert client.urgency_submitted_at is not None

    assert onboarding.accept_pdpa(client) == OnboardingStep.TOKEN
    assert onboarding.verify_token(client, 'ENT-ABCDEFGH') == OnboardingStep.NONE
    assert client.case_code == 'ENT-ABCDEFGH'
    assert client.status == STATUS_ACTIVE


def test_steps_cannot_be_skipped() -> None:
    client = _new_client()

    with pytest.raises(OnboardingOrderError) as exception_info:
        onboarding.accept_pdpa(client)

    assert exception_info.value.requested == OnboardingStep.PDPA
    assert exception_info.value.current == OnboardingStep.URGENCY
    assert not client.pdpa_accepted


def test_completed_step_is_never_reentered() -> None:
    client = _new_client()
    onboarding.submit_urgency(client, 'low')
    onboarding.accept_pdpa(client)

    with pytest.raises(OnboardingOrderError):
        onboarding.submit_urgency(client, 'high')
    with pytest.raises(OnboardingOrderError):
        onboarding.accept_pdpa(client)

    assert client.urgency_level == 'low'
    assert onboarding.next_step(client) == OnboardingStep.TOKEN


def test_finished_client_stays_at_dashboard() -> None:
    client = _new_client()
    onboarding.skip_all(client)

    for step_call in (
        lambda: onboarding.submit_urgency(client, 'low'),
        lambda: onboarding.accept_pdpa(client),
        lambda: onboarding.verify_token(client, 'ENT-OTHER000'),
    ):
        with pytest.raises(OnboardingOrderError):
            step_call()
    assert onboarding.next_step(client) == OnboardingStep.NONE
