import json
from pathlib import Path

import structlog
from pydantic import Field

from app.modules.alerts.decision import validate_threshold
from app.modules.alerts.models import ThresholdRule
from app.shared.constants import (
    BloodPressureParameter,
    Severity,
    ThresholdCondition,
    VitalType,
)
from app.shared.schemas import CamelModel

log = structlog.get_logger()


class AlertRulesConfig(CamelModel):
    version: str = "defaults-v1"
    thresholds: list[ThresholdRule] = Field(default_factory=list)
    patient_names: dict[str, str] = Field(default_factory=dict)


def _default(
    rule_id: str,
    vital_type: VitalType,
    condition: ThresholdCondition,
    value: float,
    severity: Severity,
    description: str,
    parameter: BloodPressureParameter | None = None,
) -> ThresholdRule:
    return ThresholdRule(
        id=rule_id,
        vital_type=vital_type,
        parameter=parameter,
        condition=condition,
        value=value,
        severity=severity,
        description=description,
    )


def default_thresholds() -> list[ThresholdRule]:
    return [
        _default("hr-critical-high", VitalType.HEART_RATE, ThresholdCondition.ABOVE, 120, Severity.CRITICAL, "Critical high heart rate"),
        _default("hr-critical-low", VitalType.HEART_RATE, ThresholdCondition.BELOW, 50, Severity.CRITICAL, "Critical low heart rate"),
        _default("hr-warning-high", VitalType.HEART_RATE, ThresholdCondition.ABOVE, 100, Severity.WARNING, "Warning high heart rate"),
        _default("hr-warning-low", VitalType.HEART_RATE, ThresholdCondition.BELOW, 60, Severity.WARNING, "Warning low heart rate"),
        _default(
            "bp-systolic-critical",
            VitalType.BLOOD_PRESSURE,
            ThresholdCondition.ABOVE,
            180,
            Severity.CRITICAL,
            "Critical high systolic pressure",
            parameter=BloodPressureParameter.SYSTOLIC,
        ),
        _default(
            "bp-diastolic-critical",
            VitalType.BLOOD_PRESSURE,
            ThresholdCondition.ABOVE,
            110,
            Severity.CRITICAL,
            "Critical high diastolic pressure",
            parameter=BloodPressureParameter.DIASTOLIC,
        ),
        _default("temp-fever-warning", VitalType.TEMPERATURE, ThresholdCondition.ABOVE, 100.4, Severity.WARNING, "Fever detected"),
        _default("temp-fever-critical", VitalType.TEMPERATURE, ThresholdCondition.ABOVE, 103.0, Severity.CRITICAL, "High fever - critical"),
        _default("o2-warning", VitalType.OXYGEN_SATURATION, ThresholdCondition.BELOW, 95, Severity.WARNING, "Low oxygen saturation"),
        _default("o2-critical", VitalType.OXYGEN_SATURATION, ThresholdCondition.BELOW, 90, Severity.CRITICAL, "Critical low oxygen saturation"),
    ]


def default_rules() -> AlertRulesConfig:
    return AlertRulesConfig(thresholds=default_thresholds())


def load_rules(path: Path | None, use_defaults: bool = True) -> AlertRulesConfig:
    """Load rules from ``path``; missing or invalid files fall back to the seeded defaults.

    With ``use_defaults`` off the fallback is an empty rule set instead.
    """
    fallback = default_rules if use_defaults else AlertRulesConfig
    if path is None:
        return fallback()
    try:
        payload = json.loads(path.read_text())
        config = AlertRulesConfig.model_validate(payload)
        for rule in config.thresholds:
            validate_threshold(rule)
        return config
    except FileNotFoundError:
        log.info("alert rules file not found", path=str(path), use_defaults=use_defaults)
        return fallback()
    except Exception as exc:
        log.warning("alert rules load failed", path=str(path), use_defaults=use_defaults, error=str(exc))
        return fallback()
