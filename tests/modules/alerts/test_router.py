from datetime import timedelta

import pytest
from httpx import AsyncClient

from app.modules.alerts.engine import ThresholdEvaluator
from app.shared.constants import Severity
from tests.modules.alerts.helpers import BASE_TIME, heart_rate_rule

pytestmark = pytest.mark.asyncio


def _snapshot_payload(heart_rate: float, minutes: int = 0, patient_id: str = "P001") -> dict:
    return {
        "patientId": patient_id,
        "timestamp": (BASE_TIME + timedelta(minutes=minutes)).isoformat(),
        "source": "iot",
        "vitals": {
            "heartRate": {"value": heart_rate, "unit": "bpm", "status": "critical", "trend": "up"},
            "bloodPressure": {"systolic": 120, "diastolic": 80, "unit": "mmHg"},
        },
    }


async def test_health(client: AsyncClient) -> None:
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert "X-Request-ID" in response.headers


async def test_evaluate_returns_created_alerts(client: AsyncClient, evaluator: ThresholdEvaluator) -> None:
    evaluator.add_threshold(heart_rate_rule(120, Severity.CRITICAL))

    response = await client.post("/api/v1/alerts/evaluate", json=_snapshot_payload(145))

    assert response.status_code == 201
    [alert] = response.json()
    assert alert["type"] == "critical"
    assert alert["vitalType"] == "heartRate"
    assert alert["vitalValue"] == 145
    assert alert["threshold"] == 120
    assert alert["priority"] == "high"

    repeat = await client.post("/api/v1/alerts/evaluate", json=_snapshot_payload(150, minutes=5))
    assert repeat.json() == []


async def test_evaluate_rejects_malformed_snapshot(client: AsyncClient) -> None:
    payload = _snapshot_payload(145)
    payload["vitals"]["bloodPressure"] = {"systolic": -1, "diastolic": 80}

    response = await client.post("/api/v1/alerts/evaluate", json=payload)

    assert response.status_code == 422


async def test_list_alerts_filters_and_limit(client: AsyncClient, evaluator: ThresholdEvaluator) -> None:
    evaluator.add_threshold(heart_rate_rule(120, Severity.CRITICAL))
    await client.post("/api/v1/alerts/evaluate", json=_snapshot_payload(145, patient_id="P001"))
    await client.post("/api/v1/alerts/evaluate", json=_snapshot_payload(145, minutes=10, patient_id="P002"))

    response = await client.get("/api/v1/alerts/")
    assert [a["patientId"] for a in response.json()] == ["P002", "P001"]

    filtered = await client.get("/api/v1/alerts/", params={"patient_id": "P001"})
    assert [a["patientId"] for a in filtered.json()] == ["P001"]

    limited = await client.get("/api/v1/alerts/", params={"limit": 1})
    assert len(limited.json()) == 1

    invalid = await client.get("/api/v1/alerts/", params={"limit": 0})
    assert invalid.status_code == 422


async def test_acknowledge_and_resolve_flow(client: AsyncClient, evaluator: ThresholdEvaluator) -> None:
    evaluator.add_threshold(heart_rate_rule(120, Severity.CRITICAL))
    [alert] = (await client.post("/api/v1/alerts/evaluate", json=_snapshot_payload(145))).json()
    alert_id = alert["id"]

    ack = await client.post(
        f"/api/v1/alerts/{alert_id}/acknowledge",
        json={"performedBy": "Nurse Kim", "notes": "on my way"},
    )
    assert ack.status_code == 200
    assert ack.json()["acknowledgedBy"] == "Nurse Kim"

    again = await client.post(f"/api/v1/alerts/{alert_id}/acknowledge", json={"performedBy": "Nurse Kim"})
    assert again.status_code == 404

    resolved = await client.post(f"/api/v1/alerts/{alert_id}/resolve", json={"performedBy": "Dr. Mitchell"})
    assert resolved.status_code == 200
    assert resolved.json()["resolved"] is True

    history = await client.get(f"/api/v1/alerts/{alert_id}/history")
    assert [entry["action"] for entry in history.json()] == ["created", "acknowledged", "resolved"]


async def test_unknown_alert_returns_404(client: AsyncClient) -> None:
    assert (await client.get("/api/v1/alerts/missing")).status_code == 404
    assert (await client.get("/api/v1/alerts/missing/history")).status_code == 404
    response = await client.post("/api/v1/alerts/missing/resolve", json={"performedBy": "x"})
    assert response.status_code == 404


async def test_manual_alert_and_escalation(client: AsyncClient) -> None:
    created = await client.post(
        "/api/v1/alerts/manual",
        json={
            "patientId": "P004",
            "title": "Fall risk",
            "message": "Patient found unsteady",
            "priority": "medium",
            "createdBy": "Nurse Kim",
        },
    )
    assert created.status_code == 201
    alert = created.json()
    assert alert["type"] == "manual"
    assert alert["source"] == "manual"

    escalated = await client.post(
        f"/api/v1/alerts/{alert['id']}/escalate",
        json={"performedBy": "Dr. Mitchell", "escalationLevel": 2},
    )
    assert escalated.status_code == 200
    assert escalated.json()["escalationLevel"] == 2

    edited = await client.patch(
        f"/api/v1/alerts/{alert['id']}",
        json={"performedBy": "Dr. Mitchell", "priority": "high"},
    )
    assert edited.status_code == 200
    assert edited.json()["priority"] == "high"


async def test_bulk_acknowledge_reports_skipped(client: AsyncClient, evaluator: ThresholdEvaluator) -> None:
    evaluator.add_threshold(heart_rate_rule(120, Severity.CRITICAL))
    [alert] = (await client.post("/api/v1/alerts/evaluate", json=_snapshot_payload(145))).json()

    response = await client.post(
        "/api/v1/alerts/bulk-acknowledge",
        json={"alertIds": [alert["id"], "missing"], "performedBy": "Nurse Kim"},
    )

    assert response.json() == {"updated": [alert["id"]], "skipped": ["missing"]}

    resolved = await client.post(
        "/api/v1/alerts/bulk-resolve",
        json={"alertIds": [alert["id"]], "performedBy": "Nurse Kim"},
    )
    assert resolved.json()["updated"] == [alert["id"]]


async def test_active_critical_and_summary(client: AsyncClient, evaluator: ThresholdEvaluator) -> None:
    evaluator.add_threshold(heart_rate_rule(120, Severity.CRITICAL))
    evaluator.add_threshold(heart_rate_rule(100, Severity.WARNING))
    await client.post("/api/v1/alerts/evaluate", json=_snapshot_payload(145))

    active = await client.get("/api/v1/alerts/active")
    critical = await client.get("/api/v1/alerts/critical")
    summary = await client.get("/api/v1/alerts/summary")

    assert len(active.json()) == 2
    assert [a["type"] for a in critical.json()] == ["critical"]
    body = summary.json()
    assert body["total"] == 2
    assert body["byType"]["warning"] == 1
    assert body["byStatus"]["active"] == 2


async def test_threshold_crud(client: AsyncClient) -> None:
    created = await client.post(
        "/api/v1/alerts/thresholds",
        json={
            "vitalType": "bloodPressure",
            "parameter": "systolic",
            "condition": "above",
            "value": 160,
            "severity": "warning",
            "patientId": "P001",
        },
    )
    assert created.status_code == 201
    threshold = created.json()
    threshold_id = threshold["id"]
    assert threshold["patientId"] == "P001"

    listed = await client.get("/api/v1/alerts/thresholds", params={"patient_id": "P002"})
    assert listed.json() == []

    updated = await client.patch(f"/api/v1/alerts/thresholds/{threshold_id}", json={"value": 170})
    assert updated.status_code == 200
    assert updated.json()["value"] == 170

    fetched = await client.get(f"/api/v1/alerts/thresholds/{threshold_id}")
    assert fetched.json()["value"] == 170

    deleted = await client.delete(f"/api/v1/alerts/thresholds/{threshold_id}")
    assert deleted.status_code == 204
    assert (await client.get(f"/api/v1/alerts/thresholds/{threshold_id}")).status_code == 404
    assert (await client.delete(f"/api/v1/alerts/thresholds/{threshold_id}")).status_code == 404


async def test_threshold_validation_errors_return_422(client: AsyncClient) -> None:
    missing_parameter = await client.post(
        "/api/v1/alerts/thresholds",
        json={"vitalType": "bloodPressure", "condition": "above", "value": 160, "severity": "warning"},
    )
    missing_secondary = await client.post(
        "/api/v1/alerts/thresholds",
        json={"vitalType": "heartRate", "condition": "between", "value": 60, "severity": "info"},
    )

    assert missing_parameter.status_code == 422
    assert "parameter" in missing_parameter.json()["detail"]
    assert missing_secondary.status_code == 422
    assert "secondaryValue" in missing_secondary.json()["detail"]


async def test_threshold_blank_patient_id_is_global(client: AsyncClient) -> None:
    created = await client.post(
        "/api/v1/alerts/thresholds",
        json={"vitalType": "heartRate", "condition": "above", "value": 120, "severity": "critical", "patientId": ""},
    )

    assert created.status_code == 201
    assert created.json()["patientId"] is None
    alerts = await client.post("/api/v1/alerts/evaluate", json=_snapshot_payload(145, patient_id="P009"))
    assert len(alerts.json()) == 1
