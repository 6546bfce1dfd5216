from dataclasses import dataclass
from datetime import datetime
from typing import Any

from pydantic import Field, field_validator

from app.shared.constants import (
    AlertAction,
    AlertPriority,
    AlertSource,
    AlertType,
    BloodPressureParameter,
    Severity,
    ThresholdCondition,
    VitalType,
)
from app.shared.schemas import CamelModel, blank_to_none, utc_now


class ThresholdValidationError(ValueError):
    """Raised when a threshold rule could never be evaluated as configured."""


class ThresholdRule(CamelModel):
    """A configured condition over one vital sign; global when ``patient_id`` is unset."""

    id: str
    patient_id: str | None = None
    vital_type: VitalType
    parameter: BloodPressureParameter | None = None
    condition: ThresholdCondition
    value: float = Field(allow_inf_nan=False)
    secondary_value: float | None = Field(default=None, allow_inf_nan=False)
    severity: Severity
    enabled: bool = True
    description: str | None = None
    created_by: str = "System"
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    # A blank patient id means the rule is global
    @field_validator("patient_id", mode="before")
    @classmethod
    def normalize_patient_id(cls, value: object) -> object:
        return blank_to_none(value)

    def applies_to(self, patient_id: str) -> bool:
        return self.patient_id is None or self.patient_id == patient_id


class AlertMetadata(CamelModel):
    device_id: str | None = None
    location: str | None = None
    additional_info: str | None = None


class Alert(CamelModel):
    id: str
    patient_id: str
    patient_name: str
    type: AlertType
    title: str
    message: str
    severity: Severity | None = None
    vital_type: VitalType | None = None
    vital_value: float | None = None
    threshold: float | None = None
    threshold_id: str | None = None
    timestamp: datetime
    acknowledged: bool = False
    acknowledged_by: str | None = None
    acknowledged_at: datetime | None = None
    resolved: bool = False
    resolved_by: str | None = None
    resolved_at: datetime | None = None
    priority: AlertPriority
    source: AlertSource
    escalation_level: int = 0
    metadata: AlertMetadata | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def active(self) -> bool:
        return not self.resolved


class AlertHistoryEntry(CamelModel):
    """One audit-trail record; entries are appended and never edited."""

    id: str
    alert_id: str
    action: AlertAction
    performed_by: str
    timestamp: datetime
    notes: str | None = None
    previous_state: dict[str, Any] | None = None
    new_state: dict[str, Any] | None = None


class AlertSummary(CamelModel):
    total: int = 0
    by_status: dict[str, int] = Field(
        default_factory=lambda: {"active": 0, "acknowledged": 0, "resolved": 0}
    )
    by_type: dict[str, int] = Field(
        default_factory=lambda: {alert_type.value: 0 for alert_type in AlertType}
    )
    by_priority: dict[str, int] = Field(
        default_factory=lambda: {priority.value: 0 for priority in AlertPriority}
    )


@dataclass
class ThresholdViolation:
    rule: ThresholdRule
    vital_type: VitalType
    value: float
    title: str
    message: str
    device_id: str | None = None
