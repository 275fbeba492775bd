from __future__ import annotations

from dataclasses import dataclass
from xml.sax.saxutils import escape, quoteattr

from dentalcare.services.dental_chart import (
    ConditionKind,
    DentalChart,
    ToothCondition,
    Treatment,
    TreatmentStatus,
    TreatmentType,
    validate_tooth_number,
)

UPPER_ARCH: tuple[int, ...] = (18, 17, 16, 15, 14, 13, 12, 11, 21, 22, 23, 24, 25, 26, 27, 28)
LOWER_ARCH: tuple[int, ...] = (48, 47, 46, 45, 44, 43, 42, 41, 31, 32, 33, 34, 35, 36, 37, 38)

DEFAULT_TOOTH_COLOR = "#1F2937"
SELECTED_STROKE = "#4F46E5"
DEFAULT_STROKE = "#666666"
COMPLETED_OPACITY = 1.0
PENDING_OPACITY = 0.5

CONDITION_COLORS: dict[ConditionKind, str] = {
    ConditionKind.missing: "#DC2626",
    ConditionKind.cavity: "#D97706",
    ConditionKind.restoration: "#2563EB",
    ConditionKind.trauma: "#DB2777",
    ConditionKind.pain: "#DC2626",
    ConditionKind.malocclusion: "#7C3AED",
    ConditionKind.extraction: "#B91C1C",
    ConditionKind.defective_restoration: "#9333EA",
    ConditionKind.mobility: "#059669",
    ConditionKind.fixed_prosthesis: "#4F46E5",
    ConditionKind.removable_prosthesis: "#0891B2",
    ConditionKind.food_impact: "#CA8A04",
}

CONDITION_LABELS: dict[ConditionKind, str] = {
    ConditionKind.missing: "Missing",
    ConditionKind.cavity: "Cavity",
    ConditionKind.restoration: "Restoration",
    ConditionKind.trauma: "Trauma",
    ConditionKind.pain: "Pain",
    ConditionKind.malocclusion: "Malocclusion",
    ConditionKind.extraction: "Extraction",
    ConditionKind.defective_restoration: "Defective restoration",
    ConditionKind.mobility: "Mobility",
    ConditionKind.fixed_prosthesis: "Fixed prosthesis",
    ConditionKind.removable_prosthesis: "Removable prosthesis",
    ConditionKind.food_impact: "Food impaction",
}

TREATMENT_COLORS: dict[TreatmentType, str] = {
    TreatmentType.restoration: "#60A5FA",
    TreatmentType.extraction: "#F87171",
    TreatmentType.cleaning: "#34D399",
    TreatmentType.root_canal: "#A78BFA",
    TreatmentType.crown: "#FBBF24",
    TreatmentType.bridge: "#818CF8",
    TreatmentType.implant: "#F472B6",
    TreatmentType.sealant: "#2DD4BF",
    TreatmentType.filling: "#4ADE80",
    TreatmentType.veneer: "#FB923C",
    TreatmentType.whitening: "#E879F9",
    TreatmentType.other: "#9CA3AF",
}

TREATMENT_STATUS_COLORS: dict[TreatmentStatus, str] = {
    TreatmentStatus.completed: "#16A34A",
    TreatmentStatus.in_progress: "#CA8A04",
    TreatmentStatus.scheduled: "#2563EB",
}

MARKER_SHAPES: dict[TreatmentType, str] = {
    TreatmentType.restoration: "square",
    TreatmentType.crown: "crown",
}

TOOTH_PATH = "M50 5 C20 5 10 30 10 60 C10 80 30 95 50 95 C70 95 90 80 90 60 C90 30 80 5 50 5"
_MARKER_SVG = {
    "square": '<rect x="35" y="35" width="30" height="30" fill="{color}" opacity="{opacity}"/>',
    "crown": '<path d="M50 15 L65 25 L65 75 L35 75 L35 25 Z" fill="{color}" opacity="{opacity}"/>',
}


@dataclass(frozen=True)
class GradientStop:
    offset: float
    color: str


@dataclass(frozen=True)
class ToothFill:
    color: str | None = None
    stops: tuple[GradientStop, ...] = ()

    @property
    def is_gradient(self) -> bool:
        return bool(self.stops)


@dataclass(frozen=True)
class TreatmentMarker:
    treatment_id: str
    shape: str
    color: str
    opacity: float


@dataclass(frozen=True)
class ToothView:
    number: int
    fill: ToothFill
    markers: tuple[TreatmentMarker, ...]
    has_treatments: bool
    selected: bool
    tooltip: tuple[str, ...]


@dataclass(frozen=True)
class ConditionToggle:
    kind: ConditionKind
    label: str
    active: bool


@dataclass(frozen=True)
class ToothPanel:
    number: int
    conditions: tuple[ConditionToggle, ...]
    history: tuple[Treatment, ...]


def tooth_fill(tooth: ToothCondition) -> ToothFill:
    active = tooth.active_conditions()
    if not active:
        return ToothFill(color=DEFAULT_TOOTH_COLOR)
    if len(active) == 1:
        return ToothFill(color=CONDITION_COLORS.get(active[0], DEFAULT_TOOTH_COLOR))
    last = len(active) - 1
    return ToothFill(
        stops=tuple(
            GradientStop(
                offset=round(index * 100 / last, 2),
                color=CONDITION_COLORS.get(kind, DEFAULT_TOOTH_COLOR),
            )
            for index, kind in enumerate(active)
        )
    )


def marker_opacity(treatment: Treatment) -> float:
    return COMPLETED_OPACITY if treatment.is_completed else PENDING_OPACITY


def treatment_markers(tooth: ToothCondition) -> list[TreatmentMarker]:
    markers = []
    for treatment in tooth.treatments:
        shape = MARKER_SHAPES.get(treatment.type)
        if shape is None:
            continue
        markers.append(
            TreatmentMarker(
                treatment_id=treatment.id,
                shape=shape,
                color=TREATMENT_COLORS[treatment.type],
                opacity=marker_opacity(treatment),
            )
        )
    return markers


def tooltip_lines(number: int, tooth: ToothCondition) -> list[str]:
    lines = [f"Tooth {number}"]
    active = tooth.active_conditions()
    if active:
        lines.append("Conditions:")
        lines.extend(CONDITION_LABELS[kind] for kind in active)
    if tooth.treatments:
        lines.append("Treatments:")
        lines.extend(
            f"{t.type.value} ({t.date.isoformat()}) - {t.status.value}" for t in tooth.treatments
        )
    if not active and not tooth.treatments:
        lines.append("No conditions or treatments")
    return lines


def render_tooth_svg(number: int, tooth: ToothCondition, *, selected: bool = False, size: int = 40) -> str:
    fill = tooth_fill(tooth)
    parts = [f'<svg viewBox="0 0 100 100" width="{size}" height="{size}">']
    parts.append(f"<title>{escape(chr(10).join(tooltip_lines(number, tooth)))}</title>")
    if fill.is_gradient:
        gradient_id = f"gradient-{number}"
        parts.append(f'<defs><linearGradient id="{gradient_id}" x1="0" y1="0" x2="1" y2="1">')
        for stop in fill.stops:
            parts.append(f'<stop offset="{stop.offset:g}%" stop-color="{stop.color}"/>')
        parts.append("</linearGradient></defs>")
        paint = f"url(#{gradient_id})"
    else:
        paint = fill.color
    stroke = SELECTED_STROKE if selected else DEFAULT_STROKE
    parts.append(f'<path d="{TOOTH_PATH}" fill="{paint}" stroke="{stroke}" stroke-width="2"/>')
    for marker in treatment_markers(tooth):
        parts.append(_MARKER_SVG[marker.shape].format(color=marker.color, opacity=f"{marker.opacity:g}"))
    if tooth.treatments:
        parts.append('<circle cx="92" cy="8" r="6" fill="#3B82F6" stroke="#FFFFFF" stroke-width="2"/>')
    parts.append("</svg>")
    return "".join(parts)


class Odontogram:
    """Selection and toggling over one patient's chart.

    At most one tooth is selected at a time. A read-only chart ignores
    selection, so no edit panel is ever exposed for it.
    """

    def __init__(self, chart: DentalChart, selected: int | None = None) -> None:
        self.chart = chart
        self.selected: int | None = None
        if selected is not None:
            self.select_tooth(selected)

    @property
    def read_only(self) -> bool:
        return self.chart.read_only

    def select_tooth(self, number: int) -> int | None:
        validate_tooth_number(number)
        if self.read_only:
            return self.selected
        self.selected = None if self.selected == number else number
        return self.selected

    def toggle_condition(self, kind: ConditionKind | str) -> bool | None:
        if self.selected is None:
            return None
        return self.chart.toggle_condition(self.selected, kind)

    def tooth_view(self, number: int) -> ToothView:
        tooth = self.chart.tooth(number)
        return ToothView(
            number=number,
            fill=tooth_fill(tooth),
            markers=tuple(treatment_markers(tooth)),
            has_treatments=bool(tooth.treatments),
            selected=self.selected == number,
            tooltip=tuple(tooltip_lines(number, tooth)),
        )

    def arches(self) -> dict[str, list[ToothView]]:
        return {
            "upper": [self.tooth_view(number) for number in UPPER_ARCH],
            "lower": [self.tooth_view(number) for number in LOWER_ARCH],
        }

    def panel(self) -> ToothPanel | None:
        if self.selected is None:
            return None
        tooth = self.chart.tooth(self.selected)
        toggles: tuple[ConditionToggle, ...] = ()
        if not self.read_only:
            toggles = tuple(
                ConditionToggle(kind=kind, label=CONDITION_LABELS[kind], active=tooth.is_active(kind))
                for kind in ConditionKind
            )
        return ToothPanel(number=self.selected, conditions=toggles, history=tuple(tooth.treatments))

    def to_svg(self, *, tooth_size: int = 40, gap: int = 4) -> str:
        cell = tooth_size + gap
        width = cell * len(UPPER_ARCH)
        row_height = tooth_size + 24
        parts = [
            f'<svg xmlns="http://www.w3.org/2000/svg" width="{width}" height="{row_height * 2}" '
            f'viewBox="0 0 {width} {row_height * 2}">'
        ]
        for row, arch in enumerate((UPPER_ARCH, LOWER_ARCH)):
            y = row * row_height
            for column, number in enumerate(arch):
                x = column * cell
                tooth_svg = render_tooth_svg(
                    number,
                    self.chart.tooth(number),
                    selected=self.selected == number,
                    size=tooth_size,
                )
                parts.append(f'<g transform="translate({x},{y})" data-tooth={quoteattr(str(number))}>')
                parts.append(tooth_svg)
                parts.append(
                    f'<text x="{tooth_size / 2:g}" y="{tooth_size + 14}" text-anchor="middle" '
                    f'font-size="10">{number}</text>'
                )
                parts.append("</g>")
        parts.append("</svg>")
        return "".join(parts)
