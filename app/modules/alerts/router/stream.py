"""Server-Sent Events stream of newly created alerts."""

import asyncio
import json
from typing import Any

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from app.core.config import settings
from app.modules.alerts.engine import ThresholdEvaluator
from app.modules.alerts.service import get_alert_service

router = APIRouter()
log = structlog.get_logger()


def format_sse(payload: dict[str, Any]) -> str:
    return f"data: {json.dumps(payload)}\n\n"


@router.get("/stream")
async def stream_alerts(
    request: Request,
    patient_id: str | None = None,
    service: ThresholdEvaluator = Depends(get_alert_service),
) -> StreamingResponse:
    """
    Server-Sent Events (SSE) endpoint for alert notifications.

    Query Parameters:
    - patient_id: Patient to follow; omit (or pass ``*``) to receive every patient's alerts.

    Each new alert is sent as a ``data:`` event; idle periods produce keepalive comments.
    """

    async def event_generator():
        queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue(maxsize=settings.ALERT_STREAM_QUEUE_SIZE)
        unsubscribe = service.listeners.subscribe_queue(queue, patient_id=patient_id)
        log.info("sse alert stream connected", patient_id=patient_id or "*")

        try:
            while True:
                if await request.is_disconnected():
                    log.info("sse client disconnected", patient_id=patient_id or "*")
                    break

                try:
                    alert = await asyncio.wait_for(
                        queue.get(), timeout=settings.ALERT_STREAM_KEEPALIVE_SECONDS
                    )
                    yield format_sse(alert)
                except asyncio.TimeoutError:
                    yield ": keepalive\n\n"
        finally:
            unsubscribe()
            log.info("sse alert stream closed", patient_id=patient_id or "*")

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",  # Disable nginx buffering
        },
    )
