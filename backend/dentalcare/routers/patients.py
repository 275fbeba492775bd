from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, status
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from dentalcare.db.session import get_db
from dentalcare.deps import get_current_user, require_roles
from dentalcare.models.appointment import Appointment
from dentalcare.models.audit_log import AuditLog
from dentalcare.models.patient import Gender, Patient, PatientStatus
from dentalcare.models.payment import Payment
from dentalcare.models.user import Role, User
from dentalcare.schemas.appointment import AppointmentOut
from dentalcare.schemas.audit_log import AuditLogOut
from dentalcare.schemas.patient import PatientCreate, PatientOut, PatientStatusUpdate, PatientUpdate
from dentalcare.schemas.payment import PaymentOut
from dentalcare.services import storage
from dentalcare.services.audit import log_event, snapshot_model

router = APIRouter(prefix="/patients", tags=["patients"])

# Inclusive age bounds for the list filter; None is open-ended.
AGE_RANGES: dict[str, tuple[int | None, int | None]] = {
    "under18": (None, 17),
    "18to30": (18, 30),
    "31to50": (31, 50),
    "over50": (51, None),
}


def get_patient_or_404(db: Session, patient_id: int) -> Patient:
    patient = db.get(Patient, patient_id)
    if not patient:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Patient not found")
    return patient


def _chart_read_only() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail="Chart is read-only for finalized patient records",
    )


@router.get("", response_model=list[PatientOut])
def list_patients(
    db: Session = Depends(get_db),
    _user: User = Depends(get_current_user),
    q: str | None = Query(default=None),
    status_filter: PatientStatus | None = Query(default=None, alias="status"),
    gender: Gender | None = Query(default=None),
    age_range: str | None = Query(default=None, pattern="^(under18|18to30|31to50|over50)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
):
    stmt = select(Patient).order_by(Patient.created_at.desc(), Patient.id.desc())
    if q:
        like = f"%{q.strip()}%"
        stmt = stmt.where(
            or_(
                Patient.first_name.ilike(like),
                Patient.last_name.ilike(like),
                (Patient.first_name + " " + Patient.last_name).ilike(like),
                Patient.email.ilike(like),
                Patient.phone.ilike(like),
            )
        )
    if status_filter:
        stmt = stmt.where(Patient.status == status_filter)
    if gender:
        stmt = stmt.where(Patient.gender == gender)
    if age_range:
        low, high = AGE_RANGES[age_range]
        if low is not None:
            stmt = stmt.where(Patient.age >= low)
        if high is not None:
            stmt = stmt.where(Patient.age <= high)
    stmt = stmt.limit(limit).offset(offset)
    return list(db.scalars(stmt).unique())


@router.post("", response_model=PatientOut, status_code=status.HTTP_201_CREATED)
def create_patient(
    payload: PatientCreate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    request_id: str | None = Header(default=None),
):
    if payload.status == PatientStatus.archived and payload.dental_chart:
        raise _chart_read_only()
    patient = Patient(
        status=payload.status,
        first_name=payload.first_name,
        last_name=payload.last_name,
        age=payload.age,
        gender=payload.gender,
        occupation=payload.occupation,
        phone=payload.phone,
        address=payload.address,
        email=str(payload.email),
        medical_conditions=payload.medical_conditions.model_dump(),
        pregnancy_trimester=payload.pregnancy_trimester,
        current_medications=list(payload.current_medications),
        vital_signs=payload.vital_signs.model_dump(),
        oral_examination=dict(payload.oral_examination),
        dental_chart=payload.dental_chart,
        treatment_plan=payload.treatment_plan,
        total_cost_cents=payload.total_cost_cents,
        created_by_user_id=user.id,
        updated_by_user_id=user.id,
    )
    db.add(patient)
    db.flush()
    log_event(
        db,
        actor=user,
        action="patient.created",
        entity_type="patient",
        entity_id=str(patient.id),
        before_obj=None,
        after_obj=patient,
        request_id=request_id,
        ip_address=request.client.host if request.client else None,
    )
    db.commit()
    db.refresh(patient)
    return patient


@router.get("/{patient_id}", response_model=PatientOut)
def get_patient(
    patient_id: int,
    db: Session = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    return get_patient_or_404(db, patient_id)


@router.patch("/{patient_id}", response_model=PatientOut)
def update_patient(
    patient_id: int,
    payload: PatientUpdate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    request_id: str | None = Header(default=None),
):
    patient = get_patient_or_404(db, patient_id)
    if patient.is_finalized and payload.dental_chart is not None:
        raise _chart_read_only()
    before_data = snapshot_model(patient)
    for field, value in payload.model_dump(exclude_unset=True).items():
        if value is None and field not in {"pregnancy_trimester", "treatment_plan", "total_cost_cents"}:
            continue
        if field == "email" and value is not None:
            value = str(value)
        setattr(patient, field, value)
    patient.updated_by_user_id = user.id
    db.add(patient)
    log_event(
        db,
        actor=user,
        action="patient.updated",
        entity_type="patient",
        entity_id=str(patient.id),
        before_data=before_data,
        after_obj=patient,
        request_id=request_id,
        ip_address=request.client.host if request.client else None,
    )
    db.commit()
    db.refresh(patient)
    return patient


@router.post("/{patient_id}/status", response_model=PatientOut)
def change_patient_status(
    patient_id: int,
    payload: PatientStatusUpdate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    request_id: str | None = Header(default=None),
):
    patient = get_patient_or_404(db, patient_id)
    if patient.status == payload.status:
        return patient
    before_status = patient.status
    patient.status = payload.status
    patient.updated_by_user_id = user.id
    db.add(patient)
    log_event(
        db,
        actor=user,
        action="patient.status_changed",
        entity_type="patient",
        entity_id=str(patient.id),
        before_data={"status": before_status.value},
        after_data={"status": patient.status.value},
        request_id=request_id,
        ip_address=request.client.host if request.client else None,
    )
    db.commit()
    db.refresh(patient)
    return patient


@router.delete("/{patient_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_patient(
    patient_id: int,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(Role.admin, Role.doctor)),
    request_id: str | None = Header(default=None),
):
    patient = get_patient_or_404(db, patient_id)
    if db.scalar(select(Appointment.id).where(Appointment.patient_id == patient_id).limit(1)):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Patient has appointments and cannot be deleted; archive the record instead",
        )
    before_data = snapshot_model(patient)
    storage_keys = [consent.storage_key for consent in patient.consents if consent.storage_key]
    db.delete(patient)
    log_event(
        db,
        actor=user,
        action="patient.deleted",
        entity_type="patient",
        entity_id=str(patient_id),
        before_data=before_data,
        after_obj=None,
        request_id=request_id,
        ip_address=request.client.host if request.client else None,
    )
    db.commit()
    for key in storage_keys:
        storage.delete_file(key)


@router.get("/{patient_id}/appointments", response_model=list[AppointmentOut])
def patient_appointments(
    patient_id: int,
    db: Session = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    get_patient_or_404(db, patient_id)
    stmt = (
        select(Appointment)
        .where(Appointment.patient_id == patient_id)
        .order_by(Appointment.date.desc(), Appointment.time.desc())
    )
    return list(db.scalars(stmt).unique())


@router.get("/{patient_id}/payments", response_model=list[PaymentOut])
def patient_payments(
    patient_id: int,
    db: Session = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    get_patient_or_404(db, patient_id)
    stmt = (
        select(Payment)
        .where(Payment.patient_id == patient_id)
        .order_by(Payment.payment_date.desc(), Payment.id.desc())
    )
    return list(db.scalars(stmt).unique())


@router.get("/{patient_id}/audit", response_model=list[AuditLogOut])
def patient_audit(
    patient_id: int,
    db: Session = Depends(get_db),
    _user: User = Depends(get_current_user),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
):
    stmt = (
        select(AuditLog)
        .where(AuditLog.entity_type == "patient", AuditLog.entity_id == str(patient_id))
        .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .limit(limit)
        .offset(offset)
    )
    return list(db.scalars(stmt).unique())
