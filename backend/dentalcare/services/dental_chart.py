"""Per-tooth condition flags and treatment history for one patient's chart.

Teeth are addressed by FDI number (quadrant digit + position digit) for the
32 permanent teeth. A tooth with no entry in the chart has no conditions and
no treatments. The chart holds no persistence logic; callers store the value
of :meth:`DentalChart.to_json` on the patient row.
"""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Any, Iterator, Mapping


class ConditionKind(str, enum.Enum):
    missing = "missing"
    cavity = "cavity"
    restoration = "restoration"
    trauma = "trauma"
    pain = "pain"
    malocclusion = "malocclusion"
    extraction = "extraction"
    defective_restoration = "defective_restoration"
    mobility = "mobility"
    fixed_prosthesis = "fixed_prosthesis"
    removable_prosthesis = "removable_prosthesis"
    food_impact = "food_impact"


class TreatmentType(str, enum.Enum):
    restoration = "restoration"
    extraction = "extraction"
    cleaning = "cleaning"
    root_canal = "root-canal"
    crown = "crown"
    bridge = "bridge"
    implant = "implant"
    sealant = "sealant"
    filling = "filling"
    veneer = "veneer"
    whitening = "whitening"
    other = "other"


class TreatmentStatus(str, enum.Enum):
    scheduled = "scheduled"
    in_progress = "in-progress"
    completed = "completed"


PERMANENT_TEETH: frozenset[int] = frozenset(
    quadrant * 10 + position for quadrant in (1, 2, 3, 4) for position in range(1, 9)
)


class InvalidToothError(ValueError):
    pass


class ChartReadOnlyError(RuntimeError):
    pass


class TreatmentNotFoundError(LookupError):
    pass


def validate_tooth_number(number: int) -> int:
    if isinstance(number, bool) or not isinstance(number, int) or number not in PERMANENT_TEETH:
        raise InvalidToothError(f"Not a permanent FDI tooth number: {number!r}")
    return number


@dataclass(frozen=True)
class Treatment:
    id: str
    type: TreatmentType
    date: date
    status: TreatmentStatus = TreatmentStatus.scheduled
    description: str = ""
    cost_cents: int = 0
    notes: str | None = None

    @property
    def is_completed(self) -> bool:
        return self.status == TreatmentStatus.completed

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "date": self.date.isoformat(),
            "status": self.status.value,
            "description": self.description,
            "cost_cents": self.cost_cents,
            "notes": self.notes,
        }

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "Treatment":
        return cls(
            id=str(data["id"]),
            type=TreatmentType(data["type"]),
            date=date.fromisoformat(str(data["date"])),
            status=TreatmentStatus(data.get("status", TreatmentStatus.scheduled.value)),
            description=data.get("description") or "",
            cost_cents=int(data.get("cost_cents") or 0),
            notes=data.get("notes"),
        )


@dataclass
class ToothCondition:
    missing: bool = False
    cavity: bool = False
    restoration: bool = False
    trauma: bool = False
    pain: bool = False
    malocclusion: bool = False
    extraction: bool = False
    defective_restoration: bool = False
    mobility: bool = False
    fixed_prosthesis: bool = False
    removable_prosthesis: bool = False
    food_impact: bool = False
    treatments: list[Treatment] = field(default_factory=list)
    # Active kinds in the order they were switched on; only drives gradient order.
    activation_order: list[ConditionKind] = field(default_factory=list, compare=False, repr=False)

    def is_active(self, kind: ConditionKind) -> bool:
        return bool(getattr(self, ConditionKind(kind).name))

    def toggle(self, kind: ConditionKind) -> bool:
        kind = ConditionKind(kind)
        value = not self.is_active(kind)
        setattr(self, kind.name, value)
        if kind in self.activation_order:
            self.activation_order.remove(kind)
        if value:
            self.activation_order.append(kind)
        return value

    def active_conditions(self) -> list[ConditionKind]:
        ordered = [kind for kind in self.activation_order if self.is_active(kind)]
        ordered.extend(
            kind for kind in ConditionKind if self.is_active(kind) and kind not in ordered
        )
        return ordered

    @property
    def is_empty(self) -> bool:
        return not self.active_conditions() and not self.treatments

    def copy(self) -> "ToothCondition":
        return replace(
            self,
            treatments=list(self.treatments),
            activation_order=list(self.activation_order),
        )

    def to_json(self) -> dict[str, Any]:
        return {
            "conditions": [kind.value for kind in self.active_conditions()],
            "treatments": [treatment.to_json() for treatment in self.treatments],
        }

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "ToothCondition":
        unknown = set(data) - {"conditions", "treatments"}
        if unknown:
            raise ValueError(f"Unknown tooth keys: {sorted(unknown)}")
        tooth = cls()
        for raw in data.get("conditions") or []:
            kind = ConditionKind(raw)
            if not tooth.is_active(kind):
                tooth.toggle(kind)
        tooth.treatments = [Treatment.from_json(item) for item in data.get("treatments") or []]
        return tooth


class DentalChart:
    """Mapping of tooth number to :class:`ToothCondition` for one patient."""

    read_only = False

    def __init__(self, teeth: Mapping[int, ToothCondition] | None = None) -> None:
        self._teeth: dict[int, ToothCondition] = {}
        for number, tooth in (teeth or {}).items():
            self._teeth[validate_tooth_number(number)] = tooth

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DentalChart):
            return NotImplemented
        return self._non_empty() == other._non_empty()

    def __iter__(self) -> Iterator[int]:
        return iter(sorted(self._non_empty()))

    def _non_empty(self) -> dict[int, ToothCondition]:
        return {number: tooth for number, tooth in self._teeth.items() if not tooth.is_empty}

    def _check_writable(self) -> None:
        if self.read_only:
            raise ChartReadOnlyError("Dental chart is read-only")

    def _mutable_tooth(self, number: int) -> ToothCondition:
        self._check_writable()
        validate_tooth_number(number)
        return self._teeth.setdefault(number, ToothCondition())

    def tooth(self, number: int) -> ToothCondition:
        """Return a copy of the tooth's state; absent teeth read as empty."""
        validate_tooth_number(number)
        tooth = self._teeth.get(number)
        return tooth.copy() if tooth is not None else ToothCondition()

    def toggle_condition(self, number: int, kind: ConditionKind | str) -> bool:
        kind = ConditionKind(kind)
        return self._mutable_tooth(number).toggle(kind)

    def active_conditions(self, number: int) -> list[ConditionKind]:
        return self.tooth(number).active_conditions()

    def treatments(self, number: int) -> list[Treatment]:
        return list(self.tooth(number).treatments)

    def add_treatment(
        self,
        number: int,
        *,
        type: TreatmentType | str,
        date: date,
        status: TreatmentStatus | str = TreatmentStatus.scheduled,
        description: str = "",
        cost_cents: int = 0,
        notes: str | None = None,
    ) -> Treatment:
        tooth = self._mutable_tooth(number)
        existing = {treatment.id for treatment in tooth.treatments}
        treatment_id = uuid.uuid4().hex
        while treatment_id in existing:
            treatment_id = uuid.uuid4().hex
        treatment = Treatment(
            id=treatment_id,
            type=TreatmentType(type),
            date=date,
            status=TreatmentStatus(status),
            description=description,
            cost_cents=cost_cents,
            notes=notes,
        )
        tooth.treatments.append(treatment)
        return treatment

    def set_treatment_status(
        self, number: int, treatment_id: str, status: TreatmentStatus | str
    ) -> Treatment:
        tooth = self._mutable_tooth(number)
        for index, treatment in enumerate(tooth.treatments):
            if treatment.id == treatment_id:
                updated = replace(treatment, status=TreatmentStatus(status))
                tooth.treatments[index] = updated
                return updated
        raise TreatmentNotFoundError(f"Treatment {treatment_id} not found on tooth {number}")

    def read_only_view(self) -> "ReadOnlyDentalChart":
        return ReadOnlyDentalChart({number: tooth.copy() for number, tooth in self._teeth.items()})

    def to_json(self) -> dict[str, Any]:
        return {str(number): tooth.to_json() for number, tooth in sorted(self._non_empty().items())}

    @classmethod
    def from_json(cls, data: Mapping[str, Any] | None) -> "DentalChart":
        teeth: dict[int, ToothCondition] = {}
        for key, value in (data or {}).items():
            try:
                number = int(key)
            except (TypeError, ValueError):
                raise InvalidToothError(f"Not a tooth number: {key!r}") from None
            teeth[number] = ToothCondition.from_json(value or {})
        return cls(teeth)


class ReadOnlyDentalChart(DentalChart):
    read_only = True

    def read_only_view(self) -> "ReadOnlyDentalChart":
        return self
