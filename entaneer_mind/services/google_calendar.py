"""Google Calendar event creation for booked sessions.

Sync is best-effort: any failure is logged and reported as ``None`` so the
booking itself is never rolled back because of the calendar.
"""
import logging
from datetime import datetime, timedelta

import httpx

from entaneer_mind.core import config

logger = logging.getLogger(__name__)


def build_event_payload(summary: str, start: datetime, description: str | None = None) -> dict:
    end = start + timedelta(minutes=config.SESSION_LENGTH_MINUTES)
    return {
        "summary": summary,
        "description": description or "",
        "start": {"dateTime": start.isoformat(), "timeZone": config.CALENDAR_TIMEZONE},
        "end": {"dateTime": end.isoformat(), "timeZone": config.CALENDAR_TIMEZONE},
        "reminders": {"useDefault": True},
    }


def create_calendar_event(
    access_token: str,
    summary: str,
    start: datetime,
    description: str | None = None,
    client: httpx.Client | None = None,
) -> str | None:
    """Create an event in the user's calendar and return its id, or None on failure."""
    url = f"{config.GOOGLE_CALENDAR_API}/calendars/{config.GOOGLE_CALENDAR_ID}/events"
    payload = build_event_payload(summary, start, description)
    http = client or httpx.Client(timeout=config.OAUTH_TIMEOUT_SECONDS)
    try:
        response = http.post(
            url,
            json=payload,
            headers={"Authorization": f"Bearer {access_token}"},
        )
        response.raise_for_status()
        event_id = response.json().get("id")
        logger.info("Created calendar event %s", event_id)
        return event_id
    except (httpx.HTTPError, ValueError):
        logger.exception("Calendar sync failed; booking continues without an event")
        return None
    finally:
        if client is None:
            http.close()
