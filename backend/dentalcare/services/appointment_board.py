"""Appointment list loading with the time-driven status sync.

A board load reads the appointment rows, writes every due automatic
transition back one row at a time, and only then shows the new status.
A row whose write fails keeps its stored status on the board. Patient
names are resolved last; if that lookup fails the board is still served
without names.
"""

from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from dentalcare.db.row_store import RowStore
from dentalcare.models.appointment import AppointmentStatus
from dentalcare.services.appointment_lifecycle import pending_transition, scheduled_at

logger = logging.getLogger("dentalcare.appointments")

SCOPES = ("all", "today", "upcoming", "month")
UNAVAILABLE_MESSAGE = "Appointments could not be loaded. Please try again."


class AppointmentListUnavailable(RuntimeError):
    pass


@dataclass(frozen=True)
class StatusTransition:
    appointment_id: int
    before: AppointmentStatus
    after: AppointmentStatus


@dataclass(frozen=True)
class FailedTransition:
    appointment_id: int
    target: AppointmentStatus
    message: str


@dataclass
class AppointmentBoard:
    rows: list[dict[str, Any]] = field(default_factory=list)
    transitions: list[StatusTransition] = field(default_factory=list)
    failures: list[FailedTransition] = field(default_factory=list)
    names_resolved: bool = True


def month_days(year: int, month: int) -> list[date]:
    _, last = calendar.monthrange(year, month)
    return [date(year, month, day) for day in range(1, last + 1)]


def scope_filters(
    scope: str,
    today: date,
    *,
    year: int | None = None,
    month: int | None = None,
    patient_id: int | None = None,
) -> dict[str, Any]:
    if scope not in SCOPES:
        raise ValueError(f"Unknown appointment scope: {scope}")
    filters: dict[str, Any] = {}
    if patient_id is not None:
        filters["patient_id"] = patient_id
    if scope == "today":
        filters["date"] = today
    elif scope == "month":
        filters["date"] = month_days(year or today.year, month or today.month)
    return filters


def load_board(
    store: RowStore,
    *,
    now: datetime,
    scope: str = "all",
    year: int | None = None,
    month: int | None = None,
    patient_id: int | None = None,
    actor_id: int | None = None,
) -> AppointmentBoard:
    filters = scope_filters(scope, now.date(), year=year, month=month, patient_id=patient_id)
    result = store.select("appointments", filters, order=["date", "time"])
    if not result.ok:
        logger.error("Appointment list fetch failed: %s", result.error.message)
        raise AppointmentListUnavailable(UNAVAILABLE_MESSAGE)

    rows = result.data or []
    if scope == "upcoming":
        rows = [row for row in rows if row["date"] >= now.date()]

    board = AppointmentBoard(rows=rows)
    for row in rows:
        current = AppointmentStatus(row["status"])
        target = pending_transition(current, scheduled_at(row["date"], row["time"]), now)
        if target is None:
            continue
        patch: dict[str, Any] = {"status": target}
        if actor_id is not None:
            patch["updated_by_user_id"] = actor_id
        written = store.update("appointments", patch, {"id": row["id"]})
        if not written.ok or not written.data:
            message = written.error.message if written.error else "row not found"
            logger.warning(
                "Appointment %s status sync to %s failed: %s", row["id"], target.value, message
            )
            board.failures.append(
                FailedTransition(appointment_id=row["id"], target=target, message=message)
            )
            continue
        row.update(written.data[0])
        board.transitions.append(
            StatusTransition(appointment_id=row["id"], before=current, after=target)
        )

    attach_patient_names(store, board)
    return board


def attach_patient_names(store: RowStore, board: AppointmentBoard) -> None:
    patient_ids = sorted({row["patient_id"] for row in board.rows})
    names: dict[int, str] = {}
    if patient_ids:
        result = store.select("patients", {"id": patient_ids})
        if result.ok:
            names = {
                patient["id"]: f"{patient['first_name']} {patient['last_name']}".strip()
                for patient in result.data or []
            }
        else:
            board.names_resolved = False
            logger.warning("Patient name lookup failed: %s", result.error.message)
    for row in board.rows:
        row["patient_name"] = names.get(row["patient_id"])
