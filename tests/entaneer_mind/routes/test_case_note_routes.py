from datetime import date

import pytest
from fastapi import HTTPException
from pydantic import ValidationError

from entaneer_mind.models.user import ROLE_COUNSELOR
from entaneer_mind.routes import case_note_routes


def test_create_and_list_case_notes(db, make_user) -> None:
    counselor = make_user(role=ROLE_COUNSELOR)
    client = make_user(case_code='ENT-CASE0001', department='Engineering')

    for session_date in (date(2026, 10, 5), date(2026, 10, 12)):
        case_note_routes.create_case_note(
            case_note_routes.CreateCaseNoteRequest(
                client_id=client.id,
                session_date=session_date,
                session_time='9:30',
                mood_scale=2,
                tags=['Anxiety', 'Sleep Issues', 'Anxiety'],
                session_summary='  Discussed exam stress. ',
            ),
            current_user=counselor,
            db=db,
        )

    notes = case_note_routes.list_case_notes(client.id, current_user=counselor, db=db)

    assert [note.session_date for note in notes] == [date(2026, 10, 12), date(2026, 10, 5)]
    assert notes[0].case_code == 'ENT-CASE0001'
    assert notes[0].session_time == '09:30'
    assert notes[0].tags == ['Anxiety', 'Sleep Issues']
    assert notes[0].session_summary == 'Discussed exam stress.'
    assert notes[0].department == 'Engineering'


@pytest.mark.parametrize(
    'overrides',
    [
        {'mood_scale': 0},
        {'mood_scale': 6},
        {'tags': ['Boredom']},
        {'session_time': 'noon'},
    ],
)
def test_case_note_request_rejects_bad_values(overrides: dict) -> None:
    values = {'client_id': 1, 'session_date': date(2026, 10, 5)}
    values.update(overrides)

    with pytest.raises(ValidationError):
        case_note_routes.CreateCaseNoteRequest(**values)


def test_case_note_for_unknown_client_is_not_found(db, make_user) -> None:
    counselor = make_user(role=ROLE_COUNSELOR)

    with pytest.raises(HTTPException) as exception_info:
        case_note_routes.create_case_note(
            case_note_routes.CreateCaseNoteRequest(client_id=counselor.id, session_date=date(2026, 10, 5)),
            current_user=counselor,
            db=db,
        )

    assert exception_info.value.status_code == 404


def test_clients_cannot_read_case_notes(db, make_user) -> None:
    client = make_user()

    with pytest.raises(HTTPException) as exception_info:
        case_note_routes.list_case_notes(client.id, current_user=client, db=db)

    assert exception_info.value.status_code == 403


def test_problem_tags_are_listed() -> None:
    tags = case_note_routes.list_problem_tags()

    assert 'Academic Stress' in tags
    assert len(tags) == len(set(tags)) == 15
