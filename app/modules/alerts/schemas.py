from datetime import datetime, timezone
from typing import Iterator

from pydantic import ConfigDict, Field, field_validator

from app.shared.constants import (
    AlertPriority,
    AlertType,
    BloodPressureParameter,
    ReadingStatus,
    ReadingTrend,
    Severity,
    SnapshotSource,
    ThresholdCondition,
    VitalType,
)
from app.modules.alerts.models import AlertMetadata
from app.shared.schemas import CamelModel, blank_to_none, ensure_utc, utc_now


class VitalReading(CamelModel):
    """A single numeric reading."""

    model_config = ConfigDict(frozen=True)

    value: float = Field(allow_inf_nan=False)
    unit: str | None = None
    status: ReadingStatus = ReadingStatus.UNKNOWN
    trend: ReadingTrend | None = None
    device_id: str | None = None
    accuracy: float | None = None


class BloodPressureReading(CamelModel):
    """Structured representation of a blood pressure reading."""

    model_config = ConfigDict(frozen=True)

    systolic: float = Field(gt=0, allow_inf_nan=False)
    diastolic: float = Field(gt=0, allow_inf_nan=False)
    unit: str | None = "mmHg"
    status: ReadingStatus = ReadingStatus.UNKNOWN
    trend: ReadingTrend | None = None
    device_id: str | None = None
    accuracy: float | None = None

    def as_string(self) -> str:
        return f"{self.systolic:g}/{self.diastolic:g}"


class SnapshotVitals(CamelModel):
    """Readings keyed by vital name; absent vitals are simply not evaluated."""

    model_config = ConfigDict(frozen=True)

    heart_rate: VitalReading | None = None
    blood_pressure: BloodPressureReading | None = None
    temperature: VitalReading | None = None
    oxygen_saturation: VitalReading | None = None
    weight: VitalReading | None = None
    respiratory_rate: VitalReading | None = None

    def readings(self) -> Iterator[tuple[VitalType, VitalReading | BloodPressureReading]]:
        for vital_type in VitalType:
            reading = getattr(self, _VITAL_FIELDS[vital_type])
            if reading is not None:
                yield vital_type, reading


_VITAL_FIELDS: dict[VitalType, str] = {
    VitalType.HEART_RATE: "heart_rate",
    VitalType.BLOOD_PRESSURE: "blood_pressure",
    VitalType.TEMPERATURE: "temperature",
    VitalType.OXYGEN_SATURATION: "oxygen_saturation",
    VitalType.WEIGHT: "weight",
    VitalType.RESPIRATORY_RATE: "respiratory_rate",
}


class VitalSignsSnapshot(CamelModel):
    """One timestamped set of vital-sign readings for a patient."""

    model_config = ConfigDict(frozen=True)

    patient_id: str = Field(min_length=1)
    timestamp: datetime = Field(default_factory=utc_now)
    source: SnapshotSource = SnapshotSource.MANUAL
    recorded_by: str | None = None
    vitals: SnapshotVitals = Field(default_factory=SnapshotVitals)

    # Allow integer/float epoch seconds as timestamp input
    @field_validator("timestamp", mode="before")
    @classmethod
    def parse_epoch_timestamp(cls, value: object) -> object:
        if isinstance(value, (int, float)):
            return datetime.fromtimestamp(value, tz=timezone.utc)
        return value

    @field_validator("timestamp")
    @classmethod
    def normalize_timestamp(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class ThresholdCreate(CamelModel):
    """Inbound payload for a new threshold rule."""

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

    @field_validator("patient_id", mode="before")
    @classmethod
    def normalize_patient_id(cls, value: object) -> object:
        return blank_to_none(value)


class ThresholdUpdate(CamelModel):
    """Partial update for a threshold rule; only fields that are set are merged."""

    patient_id: str | None = None
    vital_type: VitalType | None = None
    parameter: BloodPressureParameter | None = None
    condition: ThresholdCondition | None = None
    value: float | None = Field(default=None, allow_inf_nan=False)
    secondary_value: float | None = Field(default=None, allow_inf_nan=False)
    severity: Severity | None = None
    enabled: bool | None = None
    description: str | None = None

    # Blank clears the patient scope and makes the rule global
    @field_validator("patient_id", mode="before")
    @classmethod
    def normalize_patient_id(cls, value: object) -> object:
        return blank_to_none(value)


class ManualAlertCreate(CamelModel):
    patient_id: str = Field(min_length=1)
    title: str = Field(min_length=1)
    message: str = Field(min_length=1)
    priority: AlertPriority
    created_by: str = Field(min_length=1)
    metadata: AlertMetadata | None = None


class AlertUpdate(CamelModel):
    title: str | None = None
    message: str | None = None
    priority: AlertPriority | None = None
    metadata: AlertMetadata | None = None


class AlertUpdateRequest(AlertUpdate):
    performed_by: str = Field(min_length=1)


class AlertAcknowledgmentRequest(CamelModel):
    """HTTP request body for acknowledging alerts."""

    performed_by: str = Field(min_length=1, description="Name of the acknowledging clinician")
    notes: str | None = Field(None, description="Optional note recorded in the alert history")


class AlertResolutionRequest(CamelModel):
    performed_by: str = Field(min_length=1)
    notes: str | None = None


class AlertEscalationRequest(CamelModel):
    performed_by: str = Field(min_length=1)
    escalation_level: int | None = Field(default=None, ge=1)
    notes: str | None = None


class BulkAlertActionRequest(CamelModel):
    alert_ids: list[str]
    performed_by: str = Field(min_length=1)
    notes: str | None = None

    @field_validator("alert_ids")
    @classmethod
    def ensure_non_empty(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("alertIds cannot be empty")
        return value


class BulkAlertActionResponse(CamelModel):
    updated: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)


class AlertsQueryParams(CamelModel):
    """Query params for listing alerts."""

    patient_id: str | None = Field(default=None, description="Filter by patient")
    type: AlertType | None = Field(default=None, description="Filter by alert type")
    acknowledged: bool | None = None
    resolved: bool | None = None
    priority: AlertPriority | None = None
    limit: int | None = Field(default=None, ge=1, le=1000, description="Maximum items to return")
