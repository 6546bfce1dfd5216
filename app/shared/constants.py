from enum import Enum


class VitalType(str, Enum):
    """Vital sign names as they appear in a snapshot's ``vitals`` mapping."""

    HEART_RATE = "heartRate"
    BLOOD_PRESSURE = "bloodPressure"
    TEMPERATURE = "temperature"
    OXYGEN_SATURATION = "oxygenSaturation"
    WEIGHT = "weight"
    RESPIRATORY_RATE = "respiratoryRate"


class BloodPressureParameter(str, Enum):
    SYSTOLIC = "systolic"
    DIASTOLIC = "diastolic"


class ThresholdCondition(str, Enum):
    ABOVE = "above"
    BELOW = "below"
    BETWEEN = "between"
    OUTSIDE = "outside"

    @property
    def is_range(self) -> bool:
        return self in (ThresholdCondition.BETWEEN, ThresholdCondition.OUTSIDE)


class Severity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {Severity.INFO: 1, Severity.WARNING: 2, Severity.CRITICAL: 3}


class AlertType(str, Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"
    MANUAL = "manual"


class AlertPriority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


SEVERITY_PRIORITY: dict[Severity, AlertPriority] = {
    Severity.CRITICAL: AlertPriority.HIGH,
    Severity.WARNING: AlertPriority.MEDIUM,
    Severity.INFO: AlertPriority.LOW,
}


class AlertSource(str, Enum):
    AUTOMATIC = "automatic"
    MANUAL = "manual"
    SYSTEM = "system"


class AlertAction(str, Enum):
    CREATED = "created"
    ACKNOWLEDGED = "acknowledged"
    RESOLVED = "resolved"
    ESCALATED = "escalated"
    UPDATED = "updated"


class SnapshotSource(str, Enum):
    MANUAL = "manual"
    IOT = "iot"
    DEVICE = "device"


class ReadingStatus(str, Enum):
    NORMAL = "normal"
    WARNING = "warning"
    CRITICAL = "critical"
    UNKNOWN = "unknown"


class ReadingTrend(str, Enum):
    UP = "up"
    DOWN = "down"
    STABLE = "stable"


SYSTEM_ACTOR = "System"
