from datetime import datetime, timezone
from typing import Any

from app.modules.alerts.schemas import ThresholdCreate, VitalSignsSnapshot
from app.shared.constants import Severity, ThresholdCondition, VitalType

BASE_TIME = datetime(2024, 3, 1, 8, 0, tzinfo=timezone.utc)


def make_snapshot(
    patient_id: str = "P001",
    timestamp: datetime = BASE_TIME,
    **vitals: Any,
) -> VitalSignsSnapshot:
    """Build a snapshot; numeric kwargs become ``{"value": n}`` readings keyed by camelCase name."""
    readings: dict[str, Any] = {}
    for name, reading in vitals.items():
        readings[name] = {"value": reading} if isinstance(reading, (int, float)) else reading
    return VitalSignsSnapshot.model_validate(
        {"patientId": patient_id, "timestamp": timestamp, "source": "iot", "vitals": readings}
    )


def heart_rate_rule(
    value: float,
    severity: Severity = Severity.CRITICAL,
    condition: ThresholdCondition = ThresholdCondition.ABOVE,
    patient_id: str | None = None,
    secondary_value: float | None = None,
) -> ThresholdCreate:
    return ThresholdCreate(
        patient_id=patient_id,
        vital_type=VitalType.HEART_RATE,
        condition=condition,
        value=value,
        secondary_value=secondary_value,
        severity=severity,
    )
