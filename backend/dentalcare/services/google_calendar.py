from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any

import httpx

from dentalcare.core.settings import settings

logger = logging.getLogger("dentalcare.calendar")

EMAIL_REMINDER_MINUTES = 24 * 60
POPUP_REMINDER_MINUTES = 30


class CalendarEventError(RuntimeError):
    pass


@dataclass(frozen=True)
class CalendarAppointment:
    patient_name: str
    patient_email: str
    date: date
    time: time
    duration: int
    treatment_type: str
    notes: str | None = None


def build_calendar_event(appointment: CalendarAppointment, *, timezone_name: str | None = None) -> dict[str, Any]:
    tz_name = timezone_name or settings.clinic_timezone
    start = datetime.combine(appointment.date, appointment.time)
    end = start + timedelta(minutes=appointment.duration)
    return {
        "summary": f"Appointment: {appointment.treatment_type}",
        "description": f"Patient: {appointment.patient_name}\n{appointment.notes or ''}",
        "start": {"dateTime": start.isoformat(), "timeZone": tz_name},
        "end": {"dateTime": end.isoformat(), "timeZone": tz_name},
        "attendees": [{"email": appointment.patient_email}],
        "reminders": {
            "useDefault": False,
            "overrides": [
                {"method": "email", "minutes": EMAIL_REMINDER_MINUTES},
                {"method": "popup", "minutes": POPUP_REMINDER_MINUTES},
            ],
        },
    }


def create_calendar_event(
    appointment: CalendarAppointment,
    access_token: str,
    *,
    client: httpx.Client | None = None,
) -> dict[str, Any]:
    """POST the event to the user's primary calendar and return Google's payload."""
    event = build_calendar_event(appointment)
    headers = {"Authorization": f"Bearer {access_token}"}
    owns_client = client is None
    http = client or httpx.Client(timeout=settings.google_calendar_timeout_seconds)
    try:
        response = http.post(
            settings.google_calendar_api_url,
            params={"sendUpdates": "all"},
            json=event,
            headers=headers,
        )
    except httpx.HTTPError as exc:
        logger.warning("Calendar request failed: %s", exc)
        raise CalendarEventError("Calendar service unreachable") from exc
    finally:
        if owns_client:
            http.close()

    if response.status_code >= 400:
        logger.warning(
            "Calendar event rejected: status=%s body=%s", response.status_code, response.text[:500]
        )
        raise CalendarEventError(f"Calendar event rejected ({response.status_code})")
    try:
        return response.json()
    except ValueError as exc:
        raise CalendarEventError("Calendar service returned an invalid response") from exc
