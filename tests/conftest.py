from typing import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient

from app.main import app
from app.modules.alerts.engine import ThresholdEvaluator
from app.modules.alerts.service import get_alert_service


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def evaluator() -> ThresholdEvaluator:
    """A fresh evaluator with no seeded rules, isolated per test."""
    return ThresholdEvaluator()


@pytest.fixture
async def client(evaluator: ThresholdEvaluator) -> AsyncGenerator[AsyncClient, None]:
    # ASGITransport does not run the lifespan, so inject the evaluator directly
    app.dependency_overrides[get_alert_service] = lambda: evaluator
    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://test") as c:
            yield c
    finally:
        app.dependency_overrides.pop(get_alert_service, None)
