from datetime import date, datetime, timedelta

import pytest
from fastapi import HTTPException
from pydantic import ValidationError

from entaneer_mind.models.appointment import STATUS_CANCELLED, STATUS_COMPLETED, STATUS_UPCOMING, Appointment
from entaneer_mind.models.user import (
    ROLE_ADMIN,
    ROLE_CLIENT,
    ROLE_COUNSELOR,
    STATUS_ACTIVE,
    STATUS_PENDING,
    STATUS_SUSPENDED,
)
from entaneer_mind.routes import admin_routes, user_routes
from entaneer_mind.services.onboarding import OnboardingStep


def test_me_reports_onboarding_step(db, make_user) -> None:
    client = make_user(status=STATUS_PENDING, urgency_completed=True)

    response = user_routes.me(current_user=client)

    assert response.account == client.account
    assert response.onboarding_step == OnboardingStep.PDPA


def test_update_profile_normalizes_phone(db, make_user) -> None:
    client = make_user()

    response = user_routes.update_profile(
        user_routes.UpdateProfileRequest(phone_num='081 234 5678', gender='Female'),
        current_user=client,
        db=db,
    )

    assert response.phone_num == '0812345678'
    assert response.gender == 'female'
    assert response.major is None


def test_update_profile_rejects_bad_student_id() -> None:
    with pytest.raises(ValidationError):
        user_routes.UpdateProfileRequest(client_id='65061')


def test_list_users_filters_and_searches(db, make_user) -> None:
    admin = make_user(role=ROLE_ADMIN)
    make_user(first_name='Anong', department='Engineering')
    make_user(first_name='Boon', status=STATUS_PENDING)
    make_user(role=ROLE_COUNSELOR, first_name='Chai')

    clients = user_routes.list_users(None, ROLE_CLIENT, None, current_user=admin, db=db)
    pending = user_routes.list_users(None, None, STATUS_PENDING, current_user=admin, db=db)
    engineering = user_routes.list_users('engineer', None, None, current_user=admin, db=db)

    assert {user.first_name for user in clients} == {'Anong', 'Boon'}
    assert [user.first_name for user in pending] == ['Boon']
    assert [user.first_name for user in engineering] == ['Anong']


def test_list_users_rejects_unknown_role(db, make_user) -> None:
    with pytest.raises(HTTPException) as exception_info:
        user_routes.list_users(None, 'wizard', None, current_user=make_user(role=ROLE_ADMIN), db=db)

    assert exception_info.value.status_code == 400


def test_clients_cannot_list_users(db, make_user) -> None:
    with pytest.raises(HTTPException) as exception_info:
        user_routes.list_users(None, None, None, current_user=make_user(), db=db)

    assert exception_info.value.status_code == 403


def test_counselor_adds_client_with_priority(db, make_user) -> None:
    counselor = make_user(role=ROLE_COUNSELOR)

    created = user_routes.create_user(
        user_routes.CreateUserRequest(
            first_name='Dao',
            last_name='Kaew',
            account=' Dao.K@CMU.ac.th ',
            department='Science',
            priority='high',
        ),
        current_user=counselor,
        db=db,
    )

    assert created.account == 'dao.k@cmu.ac.th'
    assert created.role == ROLE_CLIENT
    assert created.status == STATUS_ACTIVE
    assert created.department == 'Science'


def test_counselor_cannot_add_counselor(db, make_user) -> None:
    counselor = make_user(role=ROLE_COUNSELOR)

    with pytest.raises(HTTPException) as exception_info:
        user_routes.create_user(
            user_routes.CreateUserRequest(first_name='E', last_name='F', account='e@cmu.ac.th', role=ROLE_COUNSELOR),
            current_user=counselor,
            db=db,
        )

    assert exception_info.value.status_code == 403


def test_duplicate_account_conflicts(db, make_user) -> None:
    admin = make_user(role=ROLE_ADMIN)
    existing = make_user()

    with pytest.raises(HTTPException) as exception_info:
        user_routes.create_user(
            user_routes.CreateUserRequest(first_name='G', last_name='H', account=existing.account),
            current_user=admin,
            db=db,
        )

    assert exception_info.value.status_code == 409


def test_create_user_rejects_admin_role() -> None:
    with pytest.raises(ValidationError):
        user_routes.CreateUserRequest(first_name='I', last_name='J', account='i@cmu.ac.th', role=ROLE_ADMIN)


def test_approve_and_suspend_client(db, make_user) -> None:
    counselor = make_user(role=ROLE_COUNSELOR)
    client = make_user(status=STATUS_PENDING)

    assert user_routes.approve_user(client.id, current_user=counselor, db=db).status == STATUS_ACTIVE
    with pytest.raises(HTTPException) as exception_info:
        user_routes.approve_user(client.id, current_user=counselor, db=db)
    assert exception_info.value.status_code == 409

    assert user_routes.suspend_user(client.id, current_user=counselor, db=db).status == STATUS_SUSPENDED


def test_counselor_cannot_manage_staff(db, make_user) -> None:
    counselor = make_user(role=ROLE_COUNSELOR)
    colleague = make_user(role=ROLE_COUNSELOR)

    with pytest.raises(HTTPException) as exception_info:
        user_routes.suspend_user(colleague.id, current_user=counselor, db=db)

    assert exception_info.value.status_code == 403


def test_admin_changes_role_but_not_own(db, make_user) -> None:
    admin = make_user(role=ROLE_ADMIN)
    client = make_user()

    changed = user_routes.change_role(
        client.id,
        user_routes.ChangeRoleRequest(role='Counselor'),
        current_user=admin,
        db=db,
    )
    assert changed.role == ROLE_COUNSELOR

    with pytest.raises(HTTPException) as exception_info:
        user_routes.change_role(admin.id, user_routes.ChangeRoleRequest(role=ROLE_CLIENT), current_user=admin, db=db)
    assert exception_info.value.status_code == 400


def test_admin_stats_counts_users_and_sessions(db, make_user) -> None:
    admin = make_user(role=ROLE_ADMIN)
    counselor = make_user(role=ROLE_COUNSELOR)
    today = date.today()
    requested = datetime.combine(today - timedelta(days=4), datetime.min.time())
    client = make_user(urgency_submitted_at=requested)
    make_user(status=STATUS_PENDING)
    db.add_all([
        Appointment(client_id=client.id, counselor_id=counselor.id, date=today, time='09:00', status=STATUS_COMPLETED),
        Appointment(client_id=client.id, counselor_id=counselor.id, date=today, time='10:00', status=STATUS_CANCELLED),
        Appointment(
            client_id=client.id,
            counselor_id=counselor.id,
            date=today + timedelta(days=40),
            time='09:00',
            status=STATUS_UPCOMING,
        ),
    ])
    db.commit()

    stats = admin_routes.admin_stats(current_user=admin, db=db)

    assert stats.total_users == 4
    assert stats.active_students == 1
    assert stats.active_counselors == 1
    assert stats.pending_approvals == 1
    assert stats.total_sessions == 2
    assert stats.sessions_this_month == 1
    assert stats.upcoming_sessions == 1
    assert stats.average_wait_time == '4.0 days'

    wire = stats.model_dump(by_alias=True)
    assert list(wire) == [
        'totalUsers',
        'activeStudents',
        'activeCounselors',
        'pendingApprovals',
        'totalSessions',
        'sessionsThisMonth',
        'upcomingSessions',
        'averageWaitTime',
    ]
    assert wire['totalUsers'] == 4


def test_admin_stats_requires_admin(db, make_user) -> None:
    with pytest.raises(HTTPException) as exception_info:
        admin_routes.admin_stats(current_user=make_user(role=ROLE_COUNSELOR), db=db)

    assert exception_info.value.status_code == 403
