from __future__ import annotations

import threading
import uuid
from datetime import datetime, timedelta
from typing import Any, Callable, Iterable, Mapping

import structlog

from app.modules.alerts.decision import ThresholdDecisionEngine, validate_threshold
from app.modules.alerts.manager import AlertListener, AlertListenerRegistry
from app.modules.alerts.models import (
    Alert,
    AlertHistoryEntry,
    AlertMetadata,
    AlertSummary,
    ThresholdRule,
    ThresholdValidationError,
    ThresholdViolation,
)
from app.modules.alerts.schemas import AlertUpdate, ThresholdCreate, ThresholdUpdate, VitalSignsSnapshot
from app.shared.constants import (
    SEVERITY_PRIORITY,
    SYSTEM_ACTOR,
    AlertAction,
    AlertPriority,
    AlertSource,
    AlertType,
    VitalType,
)
from app.shared.schemas import ensure_utc, utc_now

log = structlog.get_logger()

DEFAULT_DEDUP_WINDOW = timedelta(minutes=30)


def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex}"


class ThresholdEvaluator:
    """
    Evaluate vital-sign snapshots against threshold rules and own the alert lifecycle.

    The evaluator is the single writer for the rule store, alert store and history
    log. Every read hands back copies so callers cannot mutate stored state.
    """

    def __init__(
        self,
        thresholds: Iterable[ThresholdRule] = (),
        decision_engine: ThresholdDecisionEngine | None = None,
        listeners: AlertListenerRegistry | None = None,
        dedup_window: timedelta = DEFAULT_DEDUP_WINDOW,
        patient_names: Mapping[str, str] | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._decision_engine = decision_engine or ThresholdDecisionEngine()
        self._listeners = listeners or AlertListenerRegistry()
        self._dedup_window = dedup_window
        self._patient_names = dict(patient_names or {})
        self._clock = clock

        self._thresholds: dict[str, ThresholdRule] = {}
        self._alerts: list[Alert] = []
        self._history: list[AlertHistoryEntry] = []

        self._lock = threading.RLock()

        for rule in thresholds:
            validate_threshold(rule)
            self._thresholds[rule.id] = rule.model_copy(deep=True)

    @property
    def dedup_window(self) -> timedelta:
        return self._dedup_window

    # ========== Evaluation ==========

    def evaluate(self, snapshot: VitalSignsSnapshot) -> list[Alert]:
        """Evaluate one snapshot and return the alerts it created (possibly none)."""
        created: list[Alert] = []
        with self._lock:
            violations = self._decision_engine.evaluate(snapshot, self._thresholds.values())
            # De-duplication only looks at alerts that existed before this snapshot
            existing = list(self._alerts)
            for violation in violations:
                open_alerts = self._open_alerts_for(
                    existing, snapshot.patient_id, violation.vital_type, snapshot.timestamp
                )
                if open_alerts and not self._outranks(violation, open_alerts):
                    log.debug(
                        "alert suppressed by open alert",
                        patient_id=snapshot.patient_id,
                        vital_type=violation.vital_type.value,
                        rule_id=violation.rule.id,
                        open_alert_id=open_alerts[0].id,
                    )
                    continue

                alert = self._build_alert(snapshot, violation)
                self._store_alert(alert)
                for superseded in open_alerts:
                    self._append_history(
                        superseded.id,
                        AlertAction.ESCALATED,
                        SYSTEM_ACTOR,
                        notes=f"Superseded by {alert.id} ({violation.rule.severity.value})",
                        previous_state={"severity": superseded.severity.value if superseded.severity else None},
                        new_state={"severity": violation.rule.severity.value, "alertId": alert.id},
                    )
                created.append(alert)

        for alert in created:
            self._listeners.notify(alert)
        return [alert.model_copy(deep=True) for alert in created]

    def _open_alerts_for(
        self,
        alerts: Iterable[Alert],
        patient_id: str,
        vital_type: VitalType,
        at: datetime,
    ) -> list[Alert]:
        return [
            alert
            for alert in alerts
            if alert.patient_id == patient_id
            and alert.vital_type == vital_type
            and not alert.resolved
            and abs(at - alert.timestamp) < self._dedup_window
        ]

    @staticmethod
    def _outranks(violation: ThresholdViolation, open_alerts: list[Alert]) -> bool:
        rank = violation.rule.severity.rank
        return all(alert.severity is not None and rank > alert.severity.rank for alert in open_alerts)

    def _build_alert(self, snapshot: VitalSignsSnapshot, violation: ThresholdViolation) -> Alert:
        rule = violation.rule
        now = self._clock()
        return Alert(
            id=_new_id("alert"),
            patient_id=snapshot.patient_id,
            patient_name=self.patient_name(snapshot.patient_id),
            type=AlertType(rule.severity.value),
            title=violation.title,
            message=violation.message,
            severity=rule.severity,
            vital_type=violation.vital_type,
            vital_value=violation.value,
            threshold=rule.value,
            threshold_id=rule.id,
            timestamp=snapshot.timestamp,
            priority=SEVERITY_PRIORITY[rule.severity],
            source=AlertSource.AUTOMATIC,
            metadata=AlertMetadata(
                device_id=violation.device_id,
                additional_info=rule.description,
            ),
            created_at=now,
            updated_at=now,
        )

    def patient_name(self, patient_id: str) -> str:
        return self._patient_names.get(patient_id) or f"Patient {patient_id}"

    # ========== Lifecycle ==========

    def create_manual(
        self,
        patient_id: str,
        title: str,
        message: str,
        priority: AlertPriority,
        by: str,
        metadata: AlertMetadata | None = None,
    ) -> Alert:
        now = self._clock()
        alert = Alert(
            id=_new_id("manual"),
            patient_id=patient_id,
            patient_name=self.patient_name(patient_id),
            type=AlertType.MANUAL,
            title=title,
            message=message,
            timestamp=now,
            priority=AlertPriority(priority),
            source=AlertSource.MANUAL,
            metadata=metadata.model_copy() if metadata else None,
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            self._store_alert(alert, performed_by=by)
        self._listeners.notify(alert)
        return alert.model_copy(deep=True)

    def acknowledge(self, alert_id: str, by: str, notes: str | None = None) -> bool:
        with self._lock:
            alert = self._find_alert(alert_id)
            if alert is None:
                log.info("acknowledge rejected, alert not found", alert_id=alert_id)
                return False
            if alert.acknowledged:
                log.info("acknowledge rejected, already acknowledged", alert_id=alert_id)
                return False

            now = self._clock()
            alert.acknowledged = True
            alert.acknowledged_by = by
            alert.acknowledged_at = now
            alert.updated_at = now
            self._append_history(alert_id, AlertAction.ACKNOWLEDGED, by, notes=notes)
        log.info("alert acknowledged", alert_id=alert_id, performed_by=by)
        return True

    def resolve(self, alert_id: str, by: str, notes: str | None = None) -> bool:
        with self._lock:
            alert = self._find_alert(alert_id)
            if alert is None:
                log.info("resolve rejected, alert not found", alert_id=alert_id)
                return False
            if alert.resolved:
                log.info("resolve rejected, already resolved", alert_id=alert_id)
                return False

            now = self._clock()
            alert.resolved = True
            alert.resolved_by = by
            alert.resolved_at = now
            alert.updated_at = now
            self._append_history(alert_id, AlertAction.RESOLVED, by, notes=notes)
        log.info("alert resolved", alert_id=alert_id, performed_by=by)
        return True

    def escalate(
        self, alert_id: str, by: str, level: int | None = None, notes: str | None = None
    ) -> bool:
        with self._lock:
            alert = self._find_alert(alert_id)
            if alert is None or alert.resolved:
                return False
            current = alert.escalation_level
            target = current + 1 if level is None else level
            if target <= current:
                return False

            alert.escalation_level = target
            alert.updated_at = self._clock()
            self._append_history(
                alert_id,
                AlertAction.ESCALATED,
                by,
                notes=notes,
                previous_state={"escalationLevel": current},
                new_state={"escalationLevel": target},
            )
        log.info("alert escalated", alert_id=alert_id, escalation_level=target, performed_by=by)
        return True

    def update_alert(self, alert_id: str, patch: AlertUpdate, by: str) -> bool:
        fields = set(AlertUpdate.model_fields)
        changes = patch.model_dump(include=fields, exclude_unset=True, exclude_none=True)
        with self._lock:
            alert = self._find_alert(alert_id)
            if alert is None or alert.resolved:
                return False
            if not changes:
                return True

            previous = alert.model_dump(mode="json", include=set(changes))
            for field in changes:
                setattr(alert, field, getattr(patch, field))
            alert.updated_at = self._clock()
            self._append_history(
                alert_id,
                AlertAction.UPDATED,
                by,
                previous_state=previous,
                new_state=patch.model_dump(
                    mode="json", include=fields, exclude_unset=True, exclude_none=True
                ),
            )
        return True

    def bulk_acknowledge(
        self, alert_ids: Iterable[str], by: str, notes: str | None = None
    ) -> list[str]:
        return [alert_id for alert_id in alert_ids if self.acknowledge(alert_id, by, notes)]

    def bulk_resolve(self, alert_ids: Iterable[str], by: str, notes: str | None = None) -> list[str]:
        return [alert_id for alert_id in alert_ids if self.resolve(alert_id, by, notes)]

    # ========== Queries ==========

    def list_alerts(
        self,
        patient_id: str | None = None,
        type: AlertType | None = None,
        acknowledged: bool | None = None,
        resolved: bool | None = None,
        priority: AlertPriority | None = None,
        limit: int | None = None,
    ) -> list[Alert]:
        with self._lock:
            indexed = [
                (position, alert)
                for position, alert in enumerate(self._alerts)
                if (patient_id is None or alert.patient_id == patient_id)
                and (type is None or alert.type == type)
                and (acknowledged is None or alert.acknowledged == acknowledged)
                and (resolved is None or alert.resolved == resolved)
                and (priority is None or alert.priority == priority)
            ]
            indexed.sort(key=lambda item: (ensure_utc(item[1].timestamp), item[0]), reverse=True)
            if limit is not None:
                indexed = indexed[:limit]
            return [alert.model_copy(deep=True) for _, alert in indexed]

    def get_alert(self, alert_id: str) -> Alert | None:
        with self._lock:
            alert = self._find_alert(alert_id)
            return alert.model_copy(deep=True) if alert else None

    def active_alerts(self) -> list[Alert]:
        return self.list_alerts(resolved=False)

    def critical_alerts(self) -> list[Alert]:
        return self.list_alerts(type=AlertType.CRITICAL, resolved=False)

    def alert_history(self, alert_id: str) -> list[AlertHistoryEntry]:
        with self._lock:
            return [entry.model_copy(deep=True) for entry in self._history if entry.alert_id == alert_id]

    def summary(self, patient_id: str | None = None) -> AlertSummary:
        summary = AlertSummary()
        for alert in self.list_alerts(patient_id=patient_id):
            summary.total += 1
            if alert.resolved:
                summary.by_status["resolved"] += 1
            else:
                summary.by_status["active"] += 1
            if alert.acknowledged:
                summary.by_status["acknowledged"] += 1
            summary.by_type[alert.type.value] += 1
            summary.by_priority[alert.priority.value] += 1
        return summary

    # ========== Threshold CRUD ==========

    def list_thresholds(self, patient_id: str | None = None) -> list[ThresholdRule]:
        with self._lock:
            return [
                rule.model_copy(deep=True)
                for rule in self._thresholds.values()
                if patient_id is None or rule.applies_to(patient_id)
            ]

    def get_threshold(self, threshold_id: str) -> ThresholdRule | None:
        with self._lock:
            rule = self._thresholds.get(threshold_id)
            return rule.model_copy(deep=True) if rule else None

    def add_threshold(self, threshold: ThresholdCreate) -> ThresholdRule:
        now = self._clock()
        rule = ThresholdRule(
            **threshold.model_dump(),
            id=_new_id("threshold"),
            created_at=now,
            updated_at=now,
        )
        validate_threshold(rule)
        with self._lock:
            self._thresholds[rule.id] = rule
        log.info("threshold added", threshold_id=rule.id, vital_type=rule.vital_type.value)
        return rule.model_copy(deep=True)

    def update_threshold(self, threshold_id: str, patch: ThresholdUpdate | Mapping[str, Any]) -> bool:
        if isinstance(patch, ThresholdUpdate):
            changes = patch.model_dump(exclude_unset=True)
        else:
            changes = ThresholdUpdate.model_validate(dict(patch)).model_dump(exclude_unset=True)
        with self._lock:
            current = self._thresholds.get(threshold_id)
            if current is None:
                return False
            merged = ThresholdRule.model_validate(
                {**current.model_dump(), **changes, "updated_at": self._clock()}
            )
            validate_threshold(merged)
            self._thresholds[threshold_id] = merged
        log.info("threshold updated", threshold_id=threshold_id, fields=sorted(changes))
        return True

    def delete_threshold(self, threshold_id: str) -> bool:
        with self._lock:
            if self._thresholds.pop(threshold_id, None) is None:
                return False
        log.info("threshold deleted", threshold_id=threshold_id)
        return True

    # ========== Listeners ==========

    def subscribe(self, listener: AlertListener) -> Callable[[], None]:
        return self._listeners.subscribe(listener)

    @property
    def listeners(self) -> AlertListenerRegistry:
        return self._listeners

    # ========== Internals ==========

    def _store_alert(self, alert: Alert, performed_by: str = SYSTEM_ACTOR) -> None:
        self._alerts.append(alert)
        self._append_history(alert.id, AlertAction.CREATED, performed_by)
        log.info(
            "alert created",
            alert_id=alert.id,
            patient_id=alert.patient_id,
            alert_type=alert.type.value,
            vital_type=alert.vital_type.value if alert.vital_type else None,
        )

    def _find_alert(self, alert_id: str) -> Alert | None:
        for alert in self._alerts:
            if alert.id == alert_id:
                return alert
        return None

    def _append_history(
        self,
        alert_id: str,
        action: AlertAction,
        performed_by: str,
        notes: str | None = None,
        previous_state: dict[str, Any] | None = None,
        new_state: dict[str, Any] | None = None,
    ) -> None:
        self._history.append(
            AlertHistoryEntry(
                id=_new_id("history"),
                alert_id=alert_id,
                action=action,
                performed_by=performed_by,
                timestamp=self._clock(),
                notes=notes,
                previous_state=previous_state,
                new_state=new_state,
            )
        )


__all__ = ["ThresholdEvaluator", "ThresholdValidationError", "DEFAULT_DEDUP_WINDOW"]
