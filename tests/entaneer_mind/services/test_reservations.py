from entaneer_mind.models.schedule_slot import ScheduleSlot
from entaneer_mind.models.user import ROLE_COUNSELOR
from entaneer_mind.services import reservations


def test_reserve_slot_allows_only_one_booking(db, make_user, make_slot, future_week) -> None:
    counselor = make_user(role=ROLE_COUNSELOR)
    slot = make_slot(counselor.id, future_week)

    assert reservations.reserve_slot(db, slot.id, 'CASE-0001', 'First') is True
    assert reservations.reserve_slot(db, slot.id, 'CASE-0002', 'Second') is False
    db.commit()

    db.refresh(slot)
    assert slot.booked_by == 'CASE-0001'
    assert slot.client_name == 'First'
    assert slot.available is False


def test_reserve_slot_rejects_closed_slot(db, make_user, make_slot, future_week) -> None:
    counselor = make_user(role=ROLE_COUNSELOR)
    slot = make_slot(counselor.id, future_week, available=False)

    assert reservations.reserve_slot(db, slot.id, 'CASE-0001') is False


def test_toggle_slot_skips_booked_slot(db, make_user, make_slot, future_week) -> None:
    counselor = make_user(role=ROLE_COUNSELOR)
    booked = make_slot(counselor.id, future_week, available=False, booked_by='CASE-0001')
    free = make_slot(counselor.id, future_week, time='10:00', available=False)

    assert reservations.toggle_slot(db, booked.id, counselor.id) is False
    assert reservations.toggle_slot(db, free.id, counselor.id) is True
    db.commit()

    db.refresh(booked)
    db.refresh(free)
    assert booked.available is False
    assert booked.booked_by == 'CASE-0001'
    assert free.available is True


def test_toggle_slot_requires_owner(db, make_user, make_slot, future_week) -> None:
    counselor = make_user(role=ROLE_COUNSELOR)
    other = make_user(role=ROLE_COUNSELOR)
    slot = make_slot(counselor.id, future_week, available=False)

    assert reservations.toggle_slot(db, slot.id, other.id) is False


def test_set_all_slots_leaves_bookings_alone(db, make_user, make_slot, future_week) -> None:
    counselor = make_user(role=ROLE_COUNSELOR)
    booked = make_slot(counselor.id, future_week, available=False, booked_by='CASE-0001')
    make_slot(counselor.id, future_week, time='10:00', available=False)
    make_slot(counselor.id, future_week, time='11:00', available=False)

    assert reservations.set_all_slots(db, counselor.id, future_week, True) == 2
    db.commit()

    db.refresh(booked)
    assert booked.available is False
    assert db.query(ScheduleSlot).filter(ScheduleSlot.available.is_(True)).count() == 2


def test_release_slot_checks_case_code(db, make_user, make_slot, future_week) -> None:
    counselor = make_user(role=ROLE_COUNSELOR)
    slot = make_slot(counselor.id, future_week, available=False, booked_by='CASE-0001', client_name='A')

    assert reservations.release_slot(db, slot.id, 'CASE-9999') is False
    assert reservations.release_slot(db, slot.id, 'CASE-0001') is True
    db.commit()

    db.refresh(slot)
    assert slot.available is True
    assert slot.booked_by is None
    assert slot.client_name is None
