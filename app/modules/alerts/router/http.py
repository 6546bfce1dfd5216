"""HTTP endpoints for evaluating snapshots and driving the alert lifecycle."""

from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.modules.alerts.engine import ThresholdEvaluator
from app.modules.alerts.models import Alert, AlertHistoryEntry, AlertSummary
from app.modules.alerts.schemas import (
    AlertAcknowledgmentRequest,
    AlertEscalationRequest,
    AlertResolutionRequest,
    AlertsQueryParams,
    AlertUpdateRequest,
    BulkAlertActionRequest,
    BulkAlertActionResponse,
    ManualAlertCreate,
    VitalSignsSnapshot,
)
from app.modules.alerts.service import get_alert_service
from app.shared.constants import AlertPriority, AlertType

router = APIRouter()
log = structlog.get_logger()


def _not_found(alert_id: str, reason: str = "not found") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Alert {alert_id} {reason}",
    )


@router.post(
    "/evaluate",
    response_model=List[Alert],
    status_code=status.HTTP_201_CREATED,
    summary="Evaluate a vital-signs snapshot",
)
async def evaluate_snapshot(
    snapshot: VitalSignsSnapshot,
    service: ThresholdEvaluator = Depends(get_alert_service),
) -> List[Alert]:
    """Run the snapshot against the patient's effective rules and return any new alerts."""
    alerts = service.evaluate(snapshot)
    log.info(
        "snapshot evaluated",
        patient_id=snapshot.patient_id,
        source=snapshot.source.value,
        alerts_created=len(alerts),
    )
    return alerts


async def get_alerts_query_params(
    patient_id: Optional[str] = None,
    type: Optional[AlertType] = None,
    acknowledged: Optional[bool] = None,
    resolved: Optional[bool] = None,
    priority: Optional[AlertPriority] = None,
    limit: Optional[int] = Query(default=None, ge=1, le=1000),
) -> AlertsQueryParams:
    """Expose filters as snake_case query params so Swagger lists them individually."""
    return AlertsQueryParams(
        patient_id=patient_id,
        type=type,
        acknowledged=acknowledged,
        resolved=resolved,
        priority=priority,
        limit=limit,
    )


@router.get("/", response_model=List[Alert], summary="List alerts, newest first")
async def list_alerts(
    params: AlertsQueryParams = Depends(get_alerts_query_params),
    service: ThresholdEvaluator = Depends(get_alert_service),
) -> List[Alert]:
    return service.list_alerts(
        patient_id=params.patient_id,
        type=params.type,
        acknowledged=params.acknowledged,
        resolved=params.resolved,
        priority=params.priority,
        limit=params.limit,
    )


@router.get("/active", response_model=List[Alert], summary="List unresolved alerts")
async def list_active_alerts(
    service: ThresholdEvaluator = Depends(get_alert_service),
) -> List[Alert]:
    return service.active_alerts()


@router.get("/critical", response_model=List[Alert], summary="List unresolved critical alerts")
async def list_critical_alerts(
    service: ThresholdEvaluator = Depends(get_alert_service),
) -> List[Alert]:
    return service.critical_alerts()


@router.get("/summary", response_model=AlertSummary, summary="Alert counts by status, type and priority")
async def read_alert_summary(
    patient_id: str | None = None,
    service: ThresholdEvaluator = Depends(get_alert_service),
) -> AlertSummary:
    return service.summary(patient_id=patient_id)


@router.post(
    "/manual",
    response_model=Alert,
    status_code=status.HTTP_201_CREATED,
    summary="Raise a manual alert",
)
async def create_manual_alert(
    alert_in: ManualAlertCreate,
    service: ThresholdEvaluator = Depends(get_alert_service),
) -> Alert:
    return service.create_manual(
        patient_id=alert_in.patient_id,
        title=alert_in.title,
        message=alert_in.message,
        priority=alert_in.priority,
        by=alert_in.created_by,
        metadata=alert_in.metadata,
    )


@router.post("/bulk-acknowledge", response_model=BulkAlertActionResponse)
async def bulk_acknowledge_alerts(
    request_in: BulkAlertActionRequest,
    service: ThresholdEvaluator = Depends(get_alert_service),
) -> BulkAlertActionResponse:
    updated = service.bulk_acknowledge(request_in.alert_ids, request_in.performed_by, request_in.notes)
    return BulkAlertActionResponse(
        updated=updated,
        skipped=[alert_id for alert_id in request_in.alert_ids if alert_id not in updated],
    )


@router.post("/bulk-resolve", response_model=BulkAlertActionResponse)
async def bulk_resolve_alerts(
    request_in: BulkAlertActionRequest,
    service: ThresholdEvaluator = Depends(get_alert_service),
) -> BulkAlertActionResponse:
    updated = service.bulk_resolve(request_in.alert_ids, request_in.performed_by, request_in.notes)
    return BulkAlertActionResponse(
        updated=updated,
        skipped=[alert_id for alert_id in request_in.alert_ids if alert_id not in updated],
    )


@router.get("/{alert_id}", response_model=Alert, summary="Get a single alert")
async def read_alert(
    alert_id: str,
    service: ThresholdEvaluator = Depends(get_alert_service),
) -> Alert:
    alert = service.get_alert(alert_id)
    if alert is None:
        raise _not_found(alert_id)
    return alert


@router.patch("/{alert_id}", response_model=Alert, summary="Edit an unresolved alert")
async def update_alert(
    alert_id: str,
    patch: AlertUpdateRequest,
    service: ThresholdEvaluator = Depends(get_alert_service),
) -> Alert:
    if not service.update_alert(alert_id, patch, by=patch.performed_by):
        raise _not_found(alert_id, "not found or already resolved")
    return service.get_alert(alert_id)


@router.get("/{alert_id}/history", response_model=List[AlertHistoryEntry])
async def read_alert_history(
    alert_id: str,
    service: ThresholdEvaluator = Depends(get_alert_service),
) -> List[AlertHistoryEntry]:
    if service.get_alert(alert_id) is None:
        raise _not_found(alert_id)
    return service.alert_history(alert_id)


@router.post("/{alert_id}/acknowledge", response_model=Alert)
async def acknowledge_alert(
    alert_id: str,
    ack: AlertAcknowledgmentRequest,
    service: ThresholdEvaluator = Depends(get_alert_service),
) -> Alert:
    if not service.acknowledge(alert_id, by=ack.performed_by, notes=ack.notes):
        raise _not_found(alert_id, "not found or already acknowledged")
    return service.get_alert(alert_id)


@router.post("/{alert_id}/resolve", response_model=Alert)
async def resolve_alert(
    alert_id: str,
    resolution: AlertResolutionRequest,
    service: ThresholdEvaluator = Depends(get_alert_service),
) -> Alert:
    if not service.resolve(alert_id, by=resolution.performed_by, notes=resolution.notes):
        raise _not_found(alert_id, "not found or already resolved")
    return service.get_alert(alert_id)


@router.post("/{alert_id}/escalate", response_model=Alert)
async def escalate_alert(
    alert_id: str,
    escalation: AlertEscalationRequest,
    service: ThresholdEvaluator = Depends(get_alert_service),
) -> Alert:
    escalated = service.escalate(
        alert_id,
        by=escalation.performed_by,
        level=escalation.escalation_level,
        notes=escalation.notes,
    )
    if not escalated:
        raise _not_found(alert_id, "not found, resolved, or already at that level")
    return service.get_alert(alert_id)
