"""Compose alert HTTP, threshold and stream routers."""

from fastapi import APIRouter

from .http import (
    acknowledge_alert,
    create_manual_alert,
    evaluate_snapshot,
    list_alerts,
    resolve_alert,
    router as http_router,
)
from .stream import router as stream_router
from .thresholds import router as thresholds_router

router = APIRouter()
# Fixed paths first so they are not captured by /{alert_id}
router.include_router(thresholds_router, prefix="/thresholds", tags=["thresholds"])
router.include_router(stream_router)
router.include_router(http_router)

__all__ = [
    "router",
    "acknowledge_alert",
    "create_manual_alert",
    "evaluate_snapshot",
    "list_alerts",
    "resolve_alert",
]
