import pytest

from app.modules.alerts.decision import ThresholdDecisionEngine, display_name, validate_threshold
from app.modules.alerts.models import ThresholdRule, ThresholdValidationError
from app.shared.constants import BloodPressureParameter, Severity, ThresholdCondition, VitalType
from tests.modules.alerts.helpers import make_snapshot


def _rule(
    condition: ThresholdCondition,
    value: float,
    secondary_value: float | None = None,
    vital_type: VitalType = VitalType.HEART_RATE,
    parameter: BloodPressureParameter | None = None,
    severity: Severity = Severity.WARNING,
    **extra,
) -> ThresholdRule:
    return ThresholdRule(
        id=f"rule-{condition.value}-{value}",
        vital_type=vital_type,
        parameter=parameter,
        condition=condition,
        value=value,
        secondary_value=secondary_value,
        severity=severity,
        **extra,
    )


@pytest.mark.parametrize(
    ("condition", "value", "secondary", "reading", "expected"),
    [
        (ThresholdCondition.ABOVE, 120, None, 121, True),
        (ThresholdCondition.ABOVE, 120, None, 120, False),
        (ThresholdCondition.BELOW, 50, None, 49.5, True),
        (ThresholdCondition.BELOW, 50, None, 50, False),
        (ThresholdCondition.BETWEEN, 60, 80, 60, True),
        (ThresholdCondition.BETWEEN, 60, 80, 80, True),
        (ThresholdCondition.BETWEEN, 60, 80, 81, False),
        (ThresholdCondition.OUTSIDE, 60, 80, 59, True),
        (ThresholdCondition.OUTSIDE, 60, 80, 81, True),
        (ThresholdCondition.OUTSIDE, 60, 80, 70, False),
    ],
)
def test_condition_boundaries(condition, value, secondary, reading, expected) -> None:
    rule = _rule(condition, value, secondary)

    assert ThresholdDecisionEngine.is_violated(reading, rule) is expected


def test_evaluate_builds_title_and_message_for_above() -> None:
    engine = ThresholdDecisionEngine()
    rule = _rule(ThresholdCondition.ABOVE, 120, severity=Severity.CRITICAL)

    violations = engine.evaluate(make_snapshot(heartRate=145), [rule])

    assert len(violations) == 1
    violation = violations[0]
    assert violation.value == 145
    assert violation.title == "Critical Heart Rate Alert"
    assert violation.message == "Heart Rate of 145 exceeds threshold of 120"


def test_evaluate_range_messages_include_bounds() -> None:
    engine = ThresholdDecisionEngine()
    between = _rule(ThresholdCondition.BETWEEN, 96, 98)
    outside = _rule(ThresholdCondition.OUTSIDE, 36.1, 37.8, vital_type=VitalType.TEMPERATURE)

    violations = engine.evaluate(
        make_snapshot(heartRate=97, temperature=39.2), [between, outside]
    )

    messages = sorted(v.message for v in violations)
    assert messages == [
        "Heart Rate of 97 is within alert range (96-98)",
        "Temperature of 39.2 is outside normal range (36.1-37.8)",
    ]


def test_blood_pressure_rule_compares_selected_parameter() -> None:
    engine = ThresholdDecisionEngine()
    systolic = _rule(
        ThresholdCondition.ABOVE,
        180,
        vital_type=VitalType.BLOOD_PRESSURE,
        parameter=BloodPressureParameter.SYSTOLIC,
    )
    diastolic = _rule(
        ThresholdCondition.ABOVE,
        110,
        vital_type=VitalType.BLOOD_PRESSURE,
        parameter=BloodPressureParameter.DIASTOLIC,
    )
    snapshot = make_snapshot(bloodPressure={"systolic": 185, "diastolic": 95, "deviceId": "cuff-7"})

    violations = engine.evaluate(snapshot, [systolic, diastolic])

    assert len(violations) == 1
    assert violations[0].value == 185
    assert violations[0].title == "Warning Systolic BP Alert"
    assert violations[0].device_id == "cuff-7"


def test_disabled_and_foreign_patient_rules_are_skipped() -> None:
    engine = ThresholdDecisionEngine()
    disabled = _rule(ThresholdCondition.ABOVE, 100, enabled=False)
    other_patient = _rule(ThresholdCondition.ABOVE, 90, patient_id="P002")
    own_patient = _rule(ThresholdCondition.ABOVE, 80, patient_id="P001")

    violations = engine.evaluate(make_snapshot(heartRate=130), [disabled, other_patient, own_patient])

    assert [v.rule.value for v in violations] == [80]


def test_rules_for_missing_vitals_do_not_fire() -> None:
    engine = ThresholdDecisionEngine()
    rule = _rule(ThresholdCondition.BELOW, 90, vital_type=VitalType.OXYGEN_SATURATION)

    assert engine.evaluate(make_snapshot(heartRate=130), [rule]) == []


def test_validate_requires_parameter_for_blood_pressure() -> None:
    rule = _rule(ThresholdCondition.ABOVE, 180, vital_type=VitalType.BLOOD_PRESSURE)

    with pytest.raises(ThresholdValidationError, match="parameter"):
        validate_threshold(rule)


def test_validate_rejects_parameter_on_other_vitals() -> None:
    rule = _rule(ThresholdCondition.ABOVE, 120, parameter=BloodPressureParameter.SYSTOLIC)

    with pytest.raises(ThresholdValidationError):
        validate_threshold(rule)


@pytest.mark.parametrize("secondary", [None, 60, 50])
def test_validate_range_requires_greater_secondary_value(secondary) -> None:
    rule = _rule(ThresholdCondition.BETWEEN, 60, secondary)

    with pytest.raises(ThresholdValidationError, match="secondaryValue"):
        validate_threshold(rule)


@pytest.mark.parametrize("value, secondary", [(float("nan"), None), (60, float("nan")), (float("-inf"), None)])
def test_validate_rejects_non_finite_operands(value, secondary) -> None:
    condition = ThresholdCondition.ABOVE if secondary is None else ThresholdCondition.OUTSIDE
    rule = _rule(condition, 60).model_copy(update={"value": value, "secondary_value": secondary})

    with pytest.raises(ThresholdValidationError, match="finite"):
        validate_threshold(rule)


def test_blank_patient_id_on_rule_is_global() -> None:
    rule = _rule(ThresholdCondition.ABOVE, 120, patient_id="  ")

    assert rule.patient_id is None
    assert rule.applies_to("P001")


def test_display_name_uses_parameter_for_blood_pressure() -> None:
    assert display_name(VitalType.BLOOD_PRESSURE, BloodPressureParameter.DIASTOLIC) == "Diastolic BP"
    assert display_name(VitalType.BLOOD_PRESSURE) == "Blood Pressure"
    assert display_name(VitalType.OXYGEN_SATURATION) == "Oxygen Saturation"
