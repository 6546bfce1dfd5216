"""HTTP endpoints for managing threshold rules."""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status

from app.modules.alerts.engine import ThresholdEvaluator
from app.modules.alerts.models import ThresholdRule
from app.modules.alerts.schemas import ThresholdCreate, ThresholdUpdate
from app.modules.alerts.service import get_alert_service

router = APIRouter()


def _not_found(threshold_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Threshold {threshold_id} not found",
    )


@router.get("", response_model=List[ThresholdRule], summary="List threshold rules")
async def list_thresholds(
    patient_id: Optional[str] = None,
    service: ThresholdEvaluator = Depends(get_alert_service),
) -> List[ThresholdRule]:
    """List all rules, or only the global and patient-scoped rules that apply to ``patient_id``."""
    return service.list_thresholds(patient_id=patient_id)


@router.post(
    "",
    response_model=ThresholdRule,
    status_code=status.HTTP_201_CREATED,
    summary="Add a threshold rule",
)
async def create_threshold(
    threshold_in: ThresholdCreate,
    service: ThresholdEvaluator = Depends(get_alert_service),
) -> ThresholdRule:
    try:
        return service.add_threshold(threshold_in)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)
        ) from exc


@router.get("/{threshold_id}", response_model=ThresholdRule, summary="Get a threshold rule")
async def read_threshold(
    threshold_id: str,
    service: ThresholdEvaluator = Depends(get_alert_service),
) -> ThresholdRule:
    rule = service.get_threshold(threshold_id)
    if rule is None:
        raise _not_found(threshold_id)
    return rule


@router.patch("/{threshold_id}", response_model=ThresholdRule, summary="Update a threshold rule")
async def update_threshold(
    threshold_id: str,
    patch: ThresholdUpdate,
    service: ThresholdEvaluator = Depends(get_alert_service),
) -> ThresholdRule:
    try:
        updated = service.update_threshold(threshold_id, patch)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)
        ) from exc
    if not updated:
        raise _not_found(threshold_id)
    return service.get_threshold(threshold_id)


@router.delete(
    "/{threshold_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a threshold rule",
)
async def delete_threshold(
    threshold_id: str,
    service: ThresholdEvaluator = Depends(get_alert_service),
) -> Response:
    if not service.delete_threshold(threshold_id):
        raise _not_found(threshold_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
