from __future__ import annotations

import math
from typing import Iterable

from app.modules.alerts.models import ThresholdRule, ThresholdValidationError, ThresholdViolation
from app.modules.alerts.schemas import BloodPressureReading, VitalReading, VitalSignsSnapshot
from app.shared.constants import BloodPressureParameter, ThresholdCondition, VitalType

VITAL_DISPLAY_NAMES: dict[VitalType, str] = {
    VitalType.HEART_RATE: "Heart Rate",
    VitalType.BLOOD_PRESSURE: "Blood Pressure",
    VitalType.TEMPERATURE: "Temperature",
    VitalType.OXYGEN_SATURATION: "Oxygen Saturation",
    VitalType.WEIGHT: "Weight",
    VitalType.RESPIRATORY_RATE: "Respiratory Rate",
}

PARAMETER_DISPLAY_NAMES: dict[BloodPressureParameter, str] = {
    BloodPressureParameter.SYSTOLIC: "Systolic BP",
    BloodPressureParameter.DIASTOLIC: "Diastolic BP",
}


def validate_threshold(rule: ThresholdRule) -> ThresholdRule:
    """Reject rules that would silently never fire."""
    if rule.vital_type == VitalType.BLOOD_PRESSURE:
        if rule.parameter is None:
            raise ThresholdValidationError(
                "bloodPressure thresholds require parameter 'systolic' or 'diastolic'"
            )
    elif rule.parameter is not None:
        raise ThresholdValidationError(
            f"parameter is only supported for bloodPressure, not {rule.vital_type.value}"
        )

    for operand in (rule.value, rule.secondary_value):
        if operand is not None and not math.isfinite(operand):
            raise ThresholdValidationError("threshold values must be finite numbers")

    if rule.condition.is_range:
        if rule.secondary_value is None:
            raise ThresholdValidationError(
                f"'{rule.condition.value}' thresholds require secondaryValue"
            )
        if rule.secondary_value <= rule.value:
            raise ThresholdValidationError("secondaryValue must be greater than value")
    return rule


def display_name(vital_type: VitalType, parameter: BloodPressureParameter | None = None) -> str:
    if vital_type == VitalType.BLOOD_PRESSURE and parameter is not None:
        return PARAMETER_DISPLAY_NAMES[parameter]
    return VITAL_DISPLAY_NAMES[vital_type]


def format_number(value: float) -> str:
    return f"{value:g}"


class ThresholdDecisionEngine:
    """Match a snapshot's readings against threshold rules and describe each violation."""

    def evaluate(
        self, snapshot: VitalSignsSnapshot, rules: Iterable[ThresholdRule]
    ) -> list[ThresholdViolation]:
        effective = self.effective_rules(rules, snapshot.patient_id)
        violations: list[ThresholdViolation] = []
        for vital_type, reading in snapshot.vitals.readings():
            for rule in effective:
                if rule.vital_type != vital_type:
                    continue
                violation = self._check_rule(vital_type, reading, rule)
                if violation:
                    violations.append(violation)
        return violations

    @staticmethod
    def effective_rules(rules: Iterable[ThresholdRule], patient_id: str) -> list[ThresholdRule]:
        return [rule for rule in rules if rule.enabled and rule.applies_to(patient_id)]

    def _check_rule(
        self,
        vital_type: VitalType,
        reading: VitalReading | BloodPressureReading,
        rule: ThresholdRule,
    ) -> ThresholdViolation | None:
        value = self._extract_value(reading, rule)
        if value is None:
            return None
        if not self.is_violated(value, rule):
            return None

        name = display_name(vital_type, rule.parameter)
        return ThresholdViolation(
            rule=rule,
            vital_type=vital_type,
            value=value,
            title=f"{rule.severity.value.capitalize()} {name} Alert",
            message=self._build_message(name, value, rule),
            device_id=reading.device_id,
        )

    @staticmethod
    def is_violated(value: float, rule: ThresholdRule) -> bool:
        if rule.condition == ThresholdCondition.ABOVE:
            return value > rule.value
        if rule.condition == ThresholdCondition.BELOW:
            return value < rule.value
        if rule.secondary_value is None:
            return False
        if rule.condition == ThresholdCondition.BETWEEN:
            return rule.value <= value <= rule.secondary_value
        return value < rule.value or value > rule.secondary_value

    @staticmethod
    def _extract_value(
        reading: VitalReading | BloodPressureReading, rule: ThresholdRule
    ) -> float | None:
        if isinstance(reading, BloodPressureReading):
            if rule.parameter == BloodPressureParameter.SYSTOLIC:
                return reading.systolic
            if rule.parameter == BloodPressureParameter.DIASTOLIC:
                return reading.diastolic
            return None
        return reading.value

    @staticmethod
    def _build_message(name: str, value: float, rule: ThresholdRule) -> str:
        shown = format_number(value)
        low = format_number(rule.value)
        if rule.condition == ThresholdCondition.ABOVE:
            return f"{name} of {shown} exceeds threshold of {low}"
        if rule.condition == ThresholdCondition.BELOW:
            return f"{name} of {shown} is below threshold of {low}"
        high = format_number(rule.secondary_value) if rule.secondary_value is not None else low
        if rule.condition == ThresholdCondition.BETWEEN:
            return f"{name} of {shown} is within alert range ({low}-{high})"
        return f"{name} of {shown} is outside normal range ({low}-{high})"
