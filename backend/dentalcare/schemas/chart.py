from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from dentalcare.services.dental_chart import (
    ConditionKind,
    DentalChart,
    ToothCondition,
    TreatmentStatus,
    TreatmentType,
)
from dentalcare.services.odontogram import Odontogram, ToothPanel, ToothView


class TreatmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    type: TreatmentType
    date: date
    status: TreatmentStatus
    description: str = ""
    cost_cents: int = 0
    notes: Optional[str] = None


class TreatmentCreate(BaseModel):
    type: TreatmentType
    date: date
    status: TreatmentStatus = TreatmentStatus.scheduled
    description: str = ""
    cost_cents: int = Field(default=0, ge=0)
    notes: Optional[str] = None


class TreatmentStatusUpdate(BaseModel):
    status: TreatmentStatus


class ToothOut(BaseModel):
    number: int
    conditions: list[ConditionKind]
    treatments: list[TreatmentOut]

    @classmethod
    def from_tooth(cls, number: int, tooth: ToothCondition) -> "ToothOut":
        return cls(
            number=number,
            conditions=tooth.active_conditions(),
            treatments=[TreatmentOut.model_validate(t) for t in tooth.treatments],
        )


class ChartOut(BaseModel):
    patient_id: int
    read_only: bool
    teeth: list[ToothOut]

    @classmethod
    def from_chart(cls, patient_id: int, chart: DentalChart) -> "ChartOut":
        return cls(
            patient_id=patient_id,
            read_only=chart.read_only,
            teeth=[ToothOut.from_tooth(number, chart.tooth(number)) for number in chart],
        )


class ConditionToggleOut(BaseModel):
    tooth: ToothOut
    condition: ConditionKind
    active: bool


class GradientStopOut(BaseModel):
    offset: float
    color: str


class ToothFillOut(BaseModel):
    color: Optional[str] = None
    gradient: list[GradientStopOut] = []


class MarkerOut(BaseModel):
    treatment_id: str
    shape: str
    color: str
    opacity: float


class ToothViewOut(BaseModel):
    number: int
    fill: ToothFillOut
    markers: list[MarkerOut]
    has_treatments: bool
    selected: bool
    tooltip: list[str]

    @classmethod
    def from_view(cls, view: ToothView) -> "ToothViewOut":
        return cls(
            number=view.number,
            fill=ToothFillOut(
                color=view.fill.color,
                gradient=[GradientStopOut(offset=s.offset, color=s.color) for s in view.fill.stops],
            ),
            markers=[
                MarkerOut(
                    treatment_id=m.treatment_id, shape=m.shape, color=m.color, opacity=m.opacity
                )
                for m in view.markers
            ],
            has_treatments=view.has_treatments,
            selected=view.selected,
            tooltip=list(view.tooltip),
        )


class ConditionOptionOut(BaseModel):
    kind: ConditionKind
    label: str
    active: bool


class ToothPanelOut(BaseModel):
    number: int
    conditions: list[ConditionOptionOut]
    history: list[TreatmentOut]

    @classmethod
    def from_panel(cls, panel: ToothPanel) -> "ToothPanelOut":
        return cls(
            number=panel.number,
            conditions=[
                ConditionOptionOut(kind=c.kind, label=c.label, active=c.active)
                for c in panel.conditions
            ],
            history=[TreatmentOut.model_validate(t) for t in panel.history],
        )


class OdontogramOut(BaseModel):
    patient_id: int
    read_only: bool
    selected: Optional[int] = None
    upper: list[ToothViewOut]
    lower: list[ToothViewOut]
    panel: Optional[ToothPanelOut] = None

    @classmethod
    def from_odontogram(cls, patient_id: int, odontogram: Odontogram) -> "OdontogramOut":
        arches = odontogram.arches()
        panel = odontogram.panel()
        return cls(
            patient_id=patient_id,
            read_only=odontogram.read_only,
            selected=odontogram.selected,
            upper=[ToothViewOut.from_view(view) for view in arches["upper"]],
            lower=[ToothViewOut.from_view(view) for view in arches["lower"]],
            panel=ToothPanelOut.from_panel(panel) if panel else None,
        )
