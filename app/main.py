from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.core.logging import setup_logging
from app.core.middleware import StructlogMiddleware
from app.modules.alerts.router import router as alerts_router
from app.modules.alerts.service import build_alert_service

setup_logging()
log = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # State lives for the process lifetime only
    alert_service = build_alert_service(settings)
    app.state.alert_service = alert_service
    log.info(
        "alert service ready",
        thresholds=len(alert_service.list_thresholds()),
        dedup_window_minutes=settings.ALERT_DEDUP_WINDOW_MINUTES,
    )

    yield

    log.info("alert service stopped", alerts=len(alert_service.list_alerts()))


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="""
    ## Vitals Alerting API

    This API provides:
    * **Evaluation**: Submit vital-sign snapshots and receive the alerts they trigger
    * **Alert lifecycle**: Acknowledge, resolve, escalate and annotate alerts with a full audit trail
    * **Thresholds**: Manage global and patient-specific threshold rules
    * **Streaming**: Follow newly created alerts over Server-Sent Events
    """,
    version="0.1.0",
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    lifespan=lifespan,
)

# Set all CORS enabled origins
if settings.BACKEND_CORS_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[str(origin) for origin in settings.BACKEND_CORS_ORIGINS],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.add_middleware(StructlogMiddleware)

app.include_router(alerts_router, prefix=f"{settings.API_V1_STR}/alerts", tags=["alerts"])


@app.get("/health")
def health_check() -> dict[str, str]:
    return {"status": "ok"}
