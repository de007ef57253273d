from datetime import date

import pytest
from fastapi import HTTPException

from entaneer_mind.models.user import ROLE_ADMIN
from entaneer_mind.routes import report_routes


def test_report_rejects_reversed_period(db, make_user) -> None:
    with pytest.raises(HTTPException) as exception_info:
        report_routes.get_report(date(2026, 10, 31), date(2026, 10, 1), current_user=make_user(role=ROLE_ADMIN), db=db)

    assert exception_info.value.status_code == 400


def test_report_rejects_period_over_a_year(db, make_user) -> None:
    with pytest.raises(HTTPException) as exception_info:
        report_routes.get_report(date(2025, 1, 1), date(2026, 6, 1), current_user=make_user(role=ROLE_ADMIN), db=db)

    assert exception_info.value.status_code == 400


def test_clients_cannot_see_reports(db, make_user) -> None:
    with pytest.raises(HTTPException) as exception_info:
        report_routes.get_report(date(2026, 10, 1), date(2026, 10, 31), current_user=make_user(), db=db)

    assert exception_info.value.status_code == 403


def test_print_report_returns_printable_html(db, make_user) -> None:
    response = report_routes.print_report(
        date(2026, 10, 1),
        date(2026, 10, 31),
        current_user=make_user(role=ROLE_ADMIN),
        db=db,
    )

    body = response.body.decode()
    assert response.media_type == 'text/html'
    assert 'window.print()' in body
    assert '2026-10-01' in body
    assert 'No data for this period.' in body
