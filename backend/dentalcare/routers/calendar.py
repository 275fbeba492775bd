from collections import defaultdict

from fastapi import APIRouter, Depends, Header, Query, Request
from sqlalchemy.orm import Session

from dentalcare.db.row_store import RowStore
from dentalcare.db.session import get_db
from dentalcare.deps import get_current_user, get_row_store
from dentalcare.models.user import User
from dentalcare.routers.appointments import load_board_or_503, record_transitions
from dentalcare.schemas.appointment import AppointmentBoardItem
from dentalcare.schemas.calendar import CalendarDay, CalendarMonthOut
from dentalcare.services import appointment_lifecycle

router = APIRouter(prefix="/calendar", tags=["calendar"])


@router.get("", response_model=CalendarMonthOut)
def month_view(
    request: Request,
    year: int | None = Query(default=None, ge=1900, le=9999),
    month: int | None = Query(default=None, ge=1, le=12),
    db: Session = Depends(get_db),
    store: RowStore = Depends(get_row_store),
    user: User = Depends(get_current_user),
    request_id: str | None = Header(default=None),
):
    today = appointment_lifecycle.clinic_today()
    year = year or today.year
    month = month or today.month
    board = load_board_or_503(store, scope="month", year=year, month=month, actor_id=user.id)
    record_transitions(db, board, user=user, request=request, request_id=request_id)

    by_day: dict = defaultdict(list)
    for row in board.rows:
        by_day[row["date"]].append(AppointmentBoardItem.from_row(row))
    return CalendarMonthOut(
        year=year,
        month=month,
        days=[CalendarDay(date=day, appointments=items) for day, items in sorted(by_day.items())],
        patient_names_available=board.names_resolved,
    )
