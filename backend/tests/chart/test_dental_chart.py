from datetime import date

import pytest

from dentalcare.services.dental_chart import (
    ChartReadOnlyError,
    ConditionKind,
    DentalChart,
    InvalidToothError,
    ToothCondition,
    TreatmentNotFoundError,
    TreatmentStatus,
    TreatmentType,
)


def test_new_chart_reads_every_tooth_as_empty():
    chart = DentalChart()
    tooth = chart.tooth(11)
    assert tooth == ToothCondition()
    assert chart.active_conditions(11) == []
    assert chart.treatments(11) == []
    assert list(chart) == []


@pytest.mark.parametrize("kind", list(ConditionKind))
def test_toggle_twice_restores_original_state(kind):
    chart = DentalChart()
    chart.toggle_condition(21, ConditionKind.cavity)
    before = DentalChart.from_json(chart.to_json())

    assert chart.toggle_condition(21, kind) is not before.tooth(21).is_active(kind)
    chart.toggle_condition(21, kind)

    assert chart == before


def test_toggle_only_touches_target_tooth_and_condition():
    chart = DentalChart()
    chart.toggle_condition(36, ConditionKind.pain)
    chart.toggle_condition(11, ConditionKind.trauma)

    chart.toggle_condition(11, ConditionKind.mobility)

    assert chart.active_conditions(36) == [ConditionKind.pain]
    assert chart.active_conditions(11) == [ConditionKind.trauma, ConditionKind.mobility]
    assert chart.active_conditions(12) == []


def test_active_conditions_follow_activation_order():
    chart = DentalChart()
    chart.toggle_condition(16, ConditionKind.restoration)
    chart.toggle_condition(16, ConditionKind.cavity)
    chart.toggle_condition(16, ConditionKind.missing)
    chart.toggle_condition(16, ConditionKind.restoration)
    chart.toggle_condition(16, ConditionKind.restoration)

    assert chart.active_conditions(16) == [
        ConditionKind.cavity,
        ConditionKind.missing,
        ConditionKind.restoration,
    ]


def test_activation_order_does_not_affect_equality():
    first = DentalChart()
    first.toggle_condition(14, ConditionKind.cavity)
    first.toggle_condition(14, ConditionKind.pain)
    second = DentalChart()
    second.toggle_condition(14, ConditionKind.pain)
    second.toggle_condition(14, ConditionKind.cavity)

    assert first == second


def test_condition_key_strings_are_accepted():
    chart = DentalChart()
    assert chart.toggle_condition(45, "food_impact") is True
    assert chart.active_conditions(45) == [ConditionKind.food_impact]


@pytest.mark.parametrize("number", [0, 10, 19, 51, 85, 99, -11])
def test_unknown_tooth_numbers_are_rejected(number):
    chart = DentalChart()
    with pytest.raises(InvalidToothError):
        chart.toggle_condition(number, ConditionKind.cavity)


def test_unknown_condition_is_rejected():
    chart = DentalChart()
    with pytest.raises(ValueError):
        chart.toggle_condition(11, "gingivitis")


def test_treatments_keep_entry_order():
    chart = DentalChart()
    later = chart.add_treatment(26, type=TreatmentType.crown, date=date(2025, 3, 1))
    earlier = chart.add_treatment(
        26, type="root-canal", date=date(2024, 11, 5), status=TreatmentStatus.completed
    )

    assert [t.id for t in chart.treatments(26)] == [later.id, earlier.id]
    assert later.id != earlier.id
    assert chart.treatments(27) == []


def test_set_treatment_status_updates_single_record():
    chart = DentalChart()
    first = chart.add_treatment(31, type=TreatmentType.filling, date=date(2025, 1, 2))
    second = chart.add_treatment(31, type=TreatmentType.sealant, date=date(2025, 1, 3))

    updated = chart.set_treatment_status(31, first.id, "completed")

    assert updated.status == TreatmentStatus.completed
    statuses = {t.id: t.status for t in chart.treatments(31)}
    assert statuses == {first.id: TreatmentStatus.completed, second.id: TreatmentStatus.scheduled}


def test_set_treatment_status_unknown_id():
    chart = DentalChart()
    with pytest.raises(TreatmentNotFoundError):
        chart.set_treatment_status(31, "missing", TreatmentStatus.completed)


def test_read_only_view_rejects_every_mutation():
    chart = DentalChart()
    chart.toggle_condition(11, ConditionKind.cavity)
    view = chart.read_only_view()

    with pytest.raises(ChartReadOnlyError):
        view.toggle_condition(11, ConditionKind.cavity)
    with pytest.raises(ChartReadOnlyError):
        view.add_treatment(11, type=TreatmentType.cleaning, date=date(2025, 1, 1))

    assert view.read_only is True
    assert view.active_conditions(11) == [ConditionKind.cavity]


def test_tooth_returns_a_copy():
    chart = DentalChart()
    chart.tooth(11).toggle(ConditionKind.cavity)
    assert chart.active_conditions(11) == []


def test_json_round_trip_keeps_order_and_treatments():
    chart = DentalChart()
    chart.toggle_condition(18, ConditionKind.mobility)
    chart.toggle_condition(18, ConditionKind.cavity)
    chart.add_treatment(18, type=TreatmentType.extraction, date=date(2025, 5, 20), cost_cents=120000)

    data = chart.to_json()
    restored = DentalChart.from_json(data)

    assert data["18"]["conditions"] == ["mobility", "cavity"]
    assert restored == chart
    assert restored.active_conditions(18) == [ConditionKind.mobility, ConditionKind.cavity]
    assert restored.treatments(18)[0].cost_cents == 120000


def test_from_json_rejects_unknown_keys():
    with pytest.raises(ValueError):
        DentalChart.from_json({"11": {"conditions": [], "colour": "red"}})
