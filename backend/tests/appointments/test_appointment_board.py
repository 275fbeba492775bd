from datetime import date, datetime, time

import pytest

from dentalcare.db.row_store import StoreError, StoreResult
from dentalcare.models.appointment import AppointmentStatus
from dentalcare.services.appointment_board import (
    AppointmentListUnavailable,
    load_board,
    scope_filters,
)


class FakeStore:
    """In-memory stand-in for RowStore with switchable failures."""

    def __init__(self, appointments, patients, *, fail_select=False, fail_names=False, fail_updates=()):
        self.appointments = appointments
        self.patients = patients
        self.fail_select = fail_select
        self.fail_names = fail_names
        self.fail_updates = set(fail_updates)
        self.updates = []

    def _error(self, table, operation):
        return StoreResult(data=None, error=StoreError(table=table, operation=operation, message="boom"))

    def select(self, table, filters=None, order=None, limit=None):
        filters = filters or {}
        if table == "appointments":
            if self.fail_select:
                return self._error(table, "select")
            rows = [dict(row) for row in self.appointments if _matches(row, filters)]
            return StoreResult(data=sorted(rows, key=lambda r: (r["date"], r["time"])))
        if self.fail_names:
            return self._error(table, "select")
        return StoreResult(data=[dict(row) for row in self.patients if _matches(row, filters)])

    def update(self, table, patch, filters):
        row_id = filters["id"]
        self.updates.append((row_id, patch["status"]))
        if row_id in self.fail_updates:
            return self._error(table, "update")
        for row in self.appointments:
            if row["id"] == row_id:
                row.update(patch)
                return StoreResult(data=[dict(row)])
        return StoreResult(data=[])


def _matches(row, filters):
    for key, value in filters.items():
        if isinstance(value, (list, tuple, set)):
            if row[key] not in value:
                return False
        elif row[key] != value:
            return False
    return True


def _appointment(appointment_id, day, at, status=AppointmentStatus.scheduled, patient_id=1):
    return {
        "id": appointment_id,
        "patient_id": patient_id,
        "date": day,
        "time": at,
        "status": status,
        "treatment_type": "cleaning",
    }


PATIENTS = [{"id": 1, "first_name": "Ana", "last_name": "Lopez"}]
NOW = datetime(2025, 1, 10, 11, 0)


def test_due_transitions_are_persisted_before_they_show():
    store = FakeStore(
        [
            _appointment(1, date(2025, 1, 10), time(9, 0)),
            _appointment(2, date(2025, 1, 10), time(10, 30)),
            _appointment(3, date(2025, 1, 10), time(15, 0)),
        ],
        PATIENTS,
    )

    board = load_board(store, now=NOW)

    statuses = {row["id"]: row["status"] for row in board.rows}
    assert statuses == {
        1: AppointmentStatus.completed,
        2: AppointmentStatus.in_progress,
        3: AppointmentStatus.scheduled,
    }
    assert store.updates == [(1, AppointmentStatus.completed), (2, AppointmentStatus.in_progress)]
    assert [row["patient_name"] for row in board.rows] == ["Ana Lopez"] * 3


def test_failed_write_keeps_stored_status_and_others_still_apply():
    store = FakeStore(
        [
            _appointment(1, date(2025, 1, 10), time(9, 0)),
            _appointment(2, date(2025, 1, 10), time(10, 30)),
        ],
        PATIENTS,
        fail_updates={1},
    )

    board = load_board(store, now=NOW)

    statuses = {row["id"]: row["status"] for row in board.rows}
    assert statuses[1] == AppointmentStatus.scheduled
    assert statuses[2] == AppointmentStatus.in_progress
    assert [f.appointment_id for f in board.failures] == [1]
    assert [t.appointment_id for t in board.transitions] == [2]


def test_list_fetch_failure_is_reported_without_data():
    store = FakeStore([_appointment(1, date(2025, 1, 10), time(9, 0))], PATIENTS, fail_select=True)
    with pytest.raises(AppointmentListUnavailable):
        load_board(store, now=NOW)
    assert store.updates == []


def test_name_lookup_failure_still_serves_board():
    store = FakeStore([_appointment(1, date(2025, 1, 11), time(9, 0))], PATIENTS, fail_names=True)

    board = load_board(store, now=NOW)

    assert board.names_resolved is False
    assert board.rows[0]["patient_name"] is None


def test_cancelled_and_manual_statuses_are_left_alone():
    store = FakeStore(
        [_appointment(1, date(2025, 1, 10), time(9, 0), status=AppointmentStatus.cancelled)],
        PATIENTS,
    )
    board = load_board(store, now=NOW)
    assert board.rows[0]["status"] == AppointmentStatus.cancelled
    assert store.updates == []


def test_upcoming_scope_drops_past_days():
    store = FakeStore(
        [
            _appointment(1, date(2025, 1, 9), time(9, 0), status=AppointmentStatus.completed),
            _appointment(2, date(2025, 1, 12), time(9, 0)),
        ],
        PATIENTS,
    )
    board = load_board(store, now=NOW, scope="upcoming")
    assert [row["id"] for row in board.rows] == [2]


def test_scope_filters():
    today = date(2024, 2, 10)
    assert scope_filters("today", today) == {"date": today}
    month = scope_filters("month", today)["date"]
    assert month[0] == date(2024, 2, 1) and month[-1] == date(2024, 2, 29)
    assert scope_filters("all", today, patient_id=4) == {"patient_id": 4}
    with pytest.raises(ValueError):
        scope_filters("yesterday", today)


def test_in_progress_rows_are_completed_an_hour_after_start():
    store = FakeStore(
        [_appointment(1, date(2025, 1, 10), time(9, 30), status=AppointmentStatus.in_progress)],
        PATIENTS,
    )
    board = load_board(store, now=NOW)
    assert board.rows[0]["status"] == AppointmentStatus.completed
    assert store.updates == [(1, AppointmentStatus.completed)]
