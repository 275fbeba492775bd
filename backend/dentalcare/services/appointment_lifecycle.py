from __future__ import annotations

from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from dentalcare.core.settings import settings
from dentalcare.models.appointment import AppointmentStatus

AUTO_COMPLETE_AFTER = timedelta(hours=1)

STATUS_COLORS: dict[AppointmentStatus, str] = {
    AppointmentStatus.scheduled: "#EAB308",
    AppointmentStatus.in_progress: "#3B82F6",
    AppointmentStatus.completed: "#22C55E",
    AppointmentStatus.cancelled: "#EF4444",
}

STATUS_LABELS: dict[AppointmentStatus, str] = {
    AppointmentStatus.scheduled: "Scheduled",
    AppointmentStatus.in_progress: "In progress",
    AppointmentStatus.completed: "Completed",
    AppointmentStatus.cancelled: "Cancelled",
}


def clinic_now() -> datetime:
    """Current wall-clock time in the clinic timezone, without tzinfo.

    Appointment dates and times are stored as clinic-local values, so
    comparisons happen on naive datetimes.
    """
    return datetime.now(ZoneInfo(settings.clinic_timezone)).replace(tzinfo=None)


def clinic_today() -> date:
    return clinic_now().date()


def derive_status(
    status: AppointmentStatus, scheduled_at: datetime, now: datetime
) -> AppointmentStatus:
    """Status an appointment should have at ``now`` under the time rule.

    Movement is forward only. A ``scheduled`` appointment is in progress
    from its start and completed one hour after it. An ``in-progress``
    appointment is completed one hour after its start. Completed and
    cancelled appointments never move, and the rule never cancels anything.
    """
    status = AppointmentStatus(status)
    if status not in (AppointmentStatus.scheduled, AppointmentStatus.in_progress):
        return status
    if scheduled_at <= now - AUTO_COMPLETE_AFTER:
        return AppointmentStatus.completed
    if status == AppointmentStatus.scheduled and scheduled_at <= now:
        return AppointmentStatus.in_progress
    return status


def pending_transition(
    status: AppointmentStatus, scheduled_at: datetime, now: datetime
) -> AppointmentStatus | None:
    target = derive_status(status, scheduled_at, now)
    return None if target == AppointmentStatus(status) else target


def scheduled_at(day: date, at: time) -> datetime:
    return datetime.combine(day, at)


def reschedule_status(_current: AppointmentStatus) -> AppointmentStatus:
    # Moving an appointment always reopens it, whatever it was before.
    return AppointmentStatus.scheduled


def status_color(status: AppointmentStatus | str) -> str:
    return STATUS_COLORS[AppointmentStatus(status)]


def status_label(status: AppointmentStatus | str) -> str:
    return STATUS_LABELS[AppointmentStatus(status)]
