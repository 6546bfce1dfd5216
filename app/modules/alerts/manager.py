import asyncio
import threading
from typing import Any, Callable

import structlog

from app.modules.alerts.models import Alert

log = structlog.get_logger()

AlertListener = Callable[[Alert], None]


class AlertListenerRegistry:
    """Fan newly created alerts out to in-process listeners and SSE queues."""

    def __init__(self) -> None:
        self._listeners: list[AlertListener] = []
        self._lock = threading.Lock()

    def subscribe(self, listener: AlertListener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def subscribe_queue(
        self, queue: asyncio.Queue[dict[str, Any]], patient_id: str | None = None
    ) -> Callable[[], None]:
        """Register an SSE client queue; ``None`` or ``*`` receives every patient's alerts."""
        patient_key = self._normalize_patient_id(patient_id)

        def enqueue(alert: Alert) -> None:
            if patient_key != "*" and alert.patient_id != patient_key:
                return
            try:
                # Non-blocking put; a full queue means the client is not keeping up
                queue.put_nowait(alert.to_json_dict())
            except asyncio.QueueFull:
                log.warning("alert stream queue full, dropping alert", alert_id=alert.id, patient_id=patient_key)

        return self.subscribe(enqueue)

    def notify(self, alert: Alert) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(alert.model_copy(deep=True))
            except Exception:
                log.exception("alert listener failed", alert_id=alert.id)

    @property
    def listener_count(self) -> int:
        with self._lock:
            return len(self._listeners)

    @staticmethod
    def _normalize_patient_id(patient_id: str | None) -> str:
        if not patient_id or patient_id.strip().lower() in {"*", "all"}:
            return "*"
        return patient_id.strip()
