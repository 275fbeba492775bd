import logging

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from dentalcare.db.row_store import RowStore
from dentalcare.db.session import get_db
from dentalcare.deps import get_current_user, get_row_store
from dentalcare.models.appointment import Appointment, AppointmentStatus
from dentalcare.models.audit_log import AuditLog
from dentalcare.models.patient import Patient
from dentalcare.models.user import User
from dentalcare.schemas.appointment import (
    AppointmentBoardItem,
    AppointmentBoardOut,
    AppointmentBooked,
    AppointmentCreate,
    AppointmentOut,
    AppointmentReschedule,
    AppointmentStatusUpdate,
    AppointmentSyncFailure,
)
from dentalcare.schemas.audit_log import AuditLogOut
from dentalcare.services import appointment_lifecycle, google_calendar
from dentalcare.services.appointment_board import (
    AppointmentBoard,
    AppointmentListUnavailable,
    load_board,
)
from dentalcare.services.audit import log_event, snapshot_model
from dentalcare.services.users import calendar_token_for

router = APIRouter(prefix="/appointments", tags=["appointments"])
logger = logging.getLogger("dentalcare.appointments")


def get_appointment_or_404(db: Session, appointment_id: int) -> Appointment:
    appt = db.get(Appointment, appointment_id)
    if not appt:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Appointment not found")
    return appt


def record_transitions(
    db: Session,
    board: AppointmentBoard,
    *,
    user: User,
    request: Request,
    request_id: str | None,
) -> None:
    if not board.transitions:
        return
    for transition in board.transitions:
        log_event(
            db,
            actor=user,
            action="appointment.status_synced",
            entity_type="appointment",
            entity_id=str(transition.appointment_id),
            before_data={"status": transition.before.value},
            after_data={"status": transition.after.value},
            request_id=request_id,
            ip_address=request.client.host if request.client else None,
        )
    db.commit()


def load_board_or_503(store: RowStore, **kwargs) -> AppointmentBoard:
    try:
        return load_board(store, now=appointment_lifecycle.clinic_now(), **kwargs)
    except AppointmentListUnavailable as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc


@router.get("", response_model=AppointmentBoardOut)
def list_appointments(
    request: Request,
    scope: str = Query(default="all", pattern="^(all|today|upcoming|month)$"),
    year: int | None = Query(default=None, ge=1900, le=9999),
    month: int | None = Query(default=None, ge=1, le=12),
    patient_id: int | None = Query(default=None),
    db: Session = Depends(get_db),
    store: RowStore = Depends(get_row_store),
    user: User = Depends(get_current_user),
    request_id: str | None = Header(default=None),
):
    board = load_board_or_503(
        store,
        scope=scope,
        year=year,
        month=month,
        patient_id=patient_id,
        actor_id=user.id,
    )
    record_transitions(db, board, user=user, request=request, request_id=request_id)
    return AppointmentBoardOut(
        appointments=[AppointmentBoardItem.from_row(row) for row in board.rows],
        sync_failures=[
            AppointmentSyncFailure(appointment_id=failure.appointment_id, target_status=failure.target)
            for failure in board.failures
        ],
        patient_names_available=board.names_resolved,
    )


@router.post("", response_model=AppointmentBooked, status_code=status.HTTP_201_CREATED)
def create_appointment(
    payload: AppointmentCreate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    request_id: str | None = Header(default=None),
    calendar_token: str | None = Header(default=None, alias="X-Calendar-Token"),
):
    patient = db.get(Patient, payload.patient_id)
    if not patient:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Patient not found")

    appt = Appointment(
        patient_id=payload.patient_id,
        doctor_id=user.id,
        date=payload.date,
        time=payload.time,
        duration=payload.duration,
        treatment_type=payload.treatment_type,
        status=AppointmentStatus.scheduled,
        notes=payload.notes,
        created_by_user_id=user.id,
        updated_by_user_id=user.id,
    )
    db.add(appt)
    db.flush()
    log_event(
        db,
        actor=user,
        action="appointment.created",
        entity_type="appointment",
        entity_id=str(appt.id),
        before_obj=None,
        after_obj=appt,
        request_id=request_id,
        ip_address=request.client.host if request.client else None,
    )
    db.commit()
    db.refresh(appt)

    # An explicit header wins over the calendar connected on the profile.
    calendar_token = calendar_token or calendar_token_for(user)
    calendar_created = False
    calendar_warning = None
    if calendar_token:
        if not patient.email:
            calendar_warning = "Patient has no email; calendar event skipped"
        else:
            try:
                event = google_calendar.create_calendar_event(
                    google_calendar.CalendarAppointment(
                        patient_name=patient.full_name,
                        patient_email=patient.email,
                        date=appt.date,
                        time=appt.time,
                        duration=appt.duration,
                        treatment_type=appt.treatment_type or "",
                        notes=appt.notes,
                    ),
                    calendar_token,
                )
            except google_calendar.CalendarEventError as exc:
                logger.warning("Calendar event for appointment %s not created: %s", appt.id, exc)
                calendar_warning = "Appointment booked, but the calendar event could not be created"
            else:
                appt.calendar_event_id = event.get("id")
                db.add(appt)
                db.commit()
                db.refresh(appt)
                calendar_created = True

    booked = AppointmentBooked.model_validate(appt)
    booked.calendar_event_created = calendar_created
    booked.calendar_warning = calendar_warning
    return booked


@router.get("/{appointment_id}", response_model=AppointmentOut)
def get_appointment(
    appointment_id: int,
    db: Session = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    return get_appointment_or_404(db, appointment_id)


@router.post("/{appointment_id}/status", response_model=AppointmentOut)
def change_appointment_status(
    appointment_id: int,
    payload: AppointmentStatusUpdate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    request_id: str | None = Header(default=None),
):
    appt = get_appointment_or_404(db, appointment_id)
    before_data = snapshot_model(appt)
    appt.status = payload.status
    appt.updated_by_user_id = user.id
    db.add(appt)
    log_event(
        db,
        actor=user,
        action="appointment.status_changed",
        entity_type="appointment",
        entity_id=str(appt.id),
        before_data=before_data,
        after_obj=appt,
        request_id=request_id,
        ip_address=request.client.host if request.client else None,
    )
    db.commit()
    db.refresh(appt)
    return appt


@router.post("/{appointment_id}/reschedule", response_model=AppointmentOut)
def reschedule_appointment(
    appointment_id: int,
    payload: AppointmentReschedule,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    request_id: str | None = Header(default=None),
):
    appt = get_appointment_or_404(db, appointment_id)
    before_data = snapshot_model(appt)
    appt.date = payload.date
    appt.time = payload.time
    if payload.duration is not None:
        appt.duration = payload.duration
    appt.status = appointment_lifecycle.reschedule_status(appt.status)
    appt.updated_by_user_id = user.id
    db.add(appt)
    log_event(
        db,
        actor=user,
        action="appointment.rescheduled",
        entity_type="appointment",
        entity_id=str(appt.id),
        before_data=before_data,
        after_obj=appt,
        request_id=request_id,
        ip_address=request.client.host if request.client else None,
    )
    db.commit()
    db.refresh(appt)
    return appt


@router.get("/{appointment_id}/audit", response_model=list[AuditLogOut])
def appointment_audit(
    appointment_id: int,
    db: Session = Depends(get_db),
    _user: User = Depends(get_current_user),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
):
    stmt = (
        select(AuditLog)
        .where(
            AuditLog.entity_type == "appointment",
            AuditLog.entity_id == str(appointment_id),
        )
        .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .limit(limit)
        .offset(offset)
    )
    return list(db.scalars(stmt).unique())
