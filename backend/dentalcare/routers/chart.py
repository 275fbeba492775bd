from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, Response, status
from sqlalchemy.orm import Session

from dentalcare.db.session import get_db
from dentalcare.deps import get_current_user
from dentalcare.models.patient import Patient
from dentalcare.models.user import User
from dentalcare.routers.patients import get_patient_or_404
from dentalcare.schemas.chart import (
    ChartOut,
    ConditionToggleOut,
    OdontogramOut,
    ToothOut,
    TreatmentCreate,
    TreatmentOut,
    TreatmentStatusUpdate,
)
from dentalcare.services.audit import log_event
from dentalcare.services.dental_chart import (
    ChartReadOnlyError,
    ConditionKind,
    DentalChart,
    InvalidToothError,
    TreatmentNotFoundError,
    validate_tooth_number,
)
from dentalcare.services.odontogram import Odontogram

router = APIRouter(prefix="/patients/{patient_id}", tags=["chart"])


def load_chart(patient: Patient) -> DentalChart:
    chart = DentalChart.from_json(patient.dental_chart)
    return chart.read_only_view() if patient.is_finalized else chart


def _tooth_or_422(number: int) -> int:
    try:
        return validate_tooth_number(number)
    except InvalidToothError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc


def _read_only_conflict() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail="Chart is read-only for finalized patient records",
    )


def _save_chart(
    db: Session,
    *,
    patient: Patient,
    chart: DentalChart,
    user: User,
    action: str,
    tooth: int,
    after_data: dict,
    request: Request,
    request_id: str | None,
) -> None:
    patient.dental_chart = chart.to_json()
    patient.updated_by_user_id = user.id
    db.add(patient)
    log_event(
        db,
        actor=user,
        action=action,
        entity_type="patient",
        entity_id=str(patient.id),
        after_data={"tooth": tooth, **after_data},
        request_id=request_id,
        ip_address=request.client.host if request.client else None,
    )
    db.commit()


@router.get("/chart", response_model=ChartOut)
def get_chart(
    patient_id: int,
    db: Session = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    patient = get_patient_or_404(db, patient_id)
    return ChartOut.from_chart(patient.id, load_chart(patient))


@router.post("/chart/teeth/{tooth}/conditions/{kind}/toggle", response_model=ConditionToggleOut)
def toggle_condition(
    patient_id: int,
    tooth: int,
    kind: ConditionKind,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    request_id: str | None = Header(default=None),
):
    _tooth_or_422(tooth)
    patient = get_patient_or_404(db, patient_id)
    chart = load_chart(patient)
    try:
        active = chart.toggle_condition(tooth, kind)
    except ChartReadOnlyError as exc:
        raise _read_only_conflict() from exc
    _save_chart(
        db,
        patient=patient,
        chart=chart,
        user=user,
        action="chart.condition_toggled",
        tooth=tooth,
        after_data={"condition": kind.value, "active": active},
        request=request,
        request_id=request_id,
    )
    return ConditionToggleOut(
        tooth=ToothOut.from_tooth(tooth, chart.tooth(tooth)), condition=kind, active=active
    )


@router.post(
    "/chart/teeth/{tooth}/treatments",
    response_model=TreatmentOut,
    status_code=status.HTTP_201_CREATED,
)
def add_treatment(
    patient_id: int,
    tooth: int,
    payload: TreatmentCreate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    request_id: str | None = Header(default=None),
):
    _tooth_or_422(tooth)
    patient = get_patient_or_404(db, patient_id)
    chart = load_chart(patient)
    try:
        treatment = chart.add_treatment(
            tooth,
            type=payload.type,
            date=payload.date,
            status=payload.status,
            description=payload.description,
            cost_cents=payload.cost_cents,
            notes=payload.notes,
        )
    except ChartReadOnlyError as exc:
        raise _read_only_conflict() from exc
    _save_chart(
        db,
        patient=patient,
        chart=chart,
        user=user,
        action="chart.treatment_added",
        tooth=tooth,
        after_data=treatment.to_json(),
        request=request,
        request_id=request_id,
    )
    return treatment


@router.patch("/chart/teeth/{tooth}/treatments/{treatment_id}", response_model=TreatmentOut)
def update_treatment_status(
    patient_id: int,
    tooth: int,
    treatment_id: str,
    payload: TreatmentStatusUpdate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    request_id: str | None = Header(default=None),
):
    _tooth_or_422(tooth)
    patient = get_patient_or_404(db, patient_id)
    chart = load_chart(patient)
    try:
        treatment = chart.set_treatment_status(tooth, treatment_id, payload.status)
    except ChartReadOnlyError as exc:
        raise _read_only_conflict() from exc
    except TreatmentNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Treatment not found") from exc
    _save_chart(
        db,
        patient=patient,
        chart=chart,
        user=user,
        action="chart.treatment_status_changed",
        tooth=tooth,
        after_data={"treatment_id": treatment.id, "status": treatment.status.value},
        request=request,
        request_id=request_id,
    )
    return treatment


@router.get("/odontogram", response_model=OdontogramOut)
def get_odontogram(
    patient_id: int,
    selected: int | None = Query(default=None),
    db: Session = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    if selected is not None:
        _tooth_or_422(selected)
    patient = get_patient_or_404(db, patient_id)
    odontogram = Odontogram(load_chart(patient), selected=selected)
    return OdontogramOut.from_odontogram(patient.id, odontogram)


@router.get("/odontogram.svg")
def get_odontogram_svg(
    patient_id: int,
    selected: int | None = Query(default=None),
    db: Session = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    if selected is not None:
        _tooth_or_422(selected)
    patient = get_patient_or_404(db, patient_id)
    odontogram = Odontogram(load_chart(patient), selected=selected)
    return Response(content=odontogram.to_svg(), media_type="image/svg+xml")
