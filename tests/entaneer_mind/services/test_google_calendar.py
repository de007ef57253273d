import json
from datetime import datetime

import httpx

from entaneer_mind.services import google_calendar


def test_build_event_payload_spans_one_session() -> None:
    payload = google_calendar.build_event_payload('Session', datetime(2026, 10, 26, 9, 0), 'notes')

    assert payload['summary'] == 'Session'
    assert payload['start']['dateTime'] == '2026-10-26T09:00:00'
    assert payload['end']['dateTime'] == '2026-10-26T10:00:00'
    assert payload['start']['timeZone'] == 'Asia/Bangkok'


def test_create_calendar_event_returns_event_id() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen['auth'] = request.headers['Authorization']
        seen['body'] = json.loads(request.content)
        return httpx.Response(200, json={'id': 'evt-123'})

    client = httpx.Client(transport=httpx.MockTransport(handler))

    event_id = google_calendar.create_calendar_event(
        'google-token', 'Session', datetime(2026, 10, 26, 9, 0), client=client
    )

    assert event_id == 'evt-123'
    assert seen['auth'] == 'Bearer google-token'
    assert seen['body']['summary'] == 'Session'


def test_create_calendar_event_swallows_http_errors() -> None:
    client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(403, json={})))

    assert google_calendar.create_calendar_event('bad', 'Session', datetime(2026, 10, 26, 9, 0), client=client) is None


def test_create_calendar_event_swallows_network_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError('unreachable', request=request)

    client = httpx.Client(transport=httpx.MockTransport(handler))

    assert google_calendar.create_calendar_event('tok', 'Session', datetime(2026, 10, 26, 9, 0), client=client) is None
