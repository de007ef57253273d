import os
from datetime import date, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite://')

from entaneer_mind.database import Base  # noqa: E402
from entaneer_mind.models import appointment, case_code, case_note  # noqa: E402,F401
from entaneer_mind.models.schedule_slot import ScheduleSlot  # noqa: E402
from entaneer_mind.models.user import ROLE_CLIENT, STATUS_ACTIVE, User  # noqa: E402
from entaneer_mind.services.schedule import week_start_for  # noqa: E402


@pytest.fixture
def db(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr('entaneer_mind.routes.schedule_routes.ensure_database_ready', lambda: None)
    monkeypatch.setattr('entaneer_mind.routes.appointment_routes.ensure_database_ready', lambda: None)

    engine = create_engine('sqlite:///:memory:')
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def make_user(db):
    counter = {'n': 0}

    def factory(**overrides) -> User:
        counter['n'] += 1
        values = {
            'account': f'user{counter["n"]}@cmu.ac.th',
            'first_name': f'User{counter["n"]}',
            'last_name': 'Test',
            'role': ROLE_CLIENT,
            'status': STATUS_ACTIVE,
        }
        values.update(overrides)
        user = User(**values)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return factory


@pytest.fixture
def onboarded_client(make_user):
    return make_user(
        urgency_completed=True,
        pdpa_accepted=True,
        token_verified=True,
        urgency_level='medium',
        case_code='ENT-TESTCODE',
    )


@pytest.fixture
def future_week() -> date:
    return week_start_for(date.today() + timedelta(days=14))


@pytest.fixture
def make_slot(db):
    def factory(counselor_id: int, week_start: date, **overrides) -> ScheduleSlot:
        values = {
            'counselor_id': counselor_id,
            'room': 'Counseling Room 1',
            'week_start': week_start,
            'day': 'Monday',
            'time': '09:00',
            'available': True,
        }
        values.update(overrides)
        slot = ScheduleSlot(**values)
        db.add(slot)
        db.commit()
        db.refresh(slot)
        return slot

    return factory
