#!/usr/bin/env python3
"""
Operator CLI for the alerting service.

This script can be used to:
1. Listen to the SSE alert stream
2. Send a vital-signs snapshot for evaluation
3. Raise a manual alert

Usage:
    # Listen to alerts for one patient (omit --patient-id for all)
    python scripts/alert_cli.py listen --patient-id P001

    # Send a snapshot that breaches the default heart-rate thresholds
    python scripts/alert_cli.py send-snapshot --patient-id P001 --heart-rate 145

    # Raise a manual alert
    python scripts/alert_cli.py send-manual --patient-id P001 --title "Fall risk" --message "Patient unsteady"
"""

import asyncio
import json
from datetime import datetime, timezone
from typing import Optional

import httpx
import typer

app = typer.Typer()

DEFAULT_BASE_URL = "http://localhost:8000"


def _alerts_url(base_url: str, path: str = "") -> str:
    return f"{base_url.rstrip('/')}/api/v1/alerts{path}"


def _print_alert(alert: dict) -> None:
    typer.echo(
        f"[{alert.get('type', '?').upper()}] {alert.get('patientId')} "
        f"{alert.get('title')}: {alert.get('message')} (id={alert.get('id')})"
    )


@app.command()
def listen(
    patient_id: Optional[str] = typer.Option(None, help="Patient ID to follow ('*' or omit for all)"),
    base_url: str = typer.Option(DEFAULT_BASE_URL, help="Service base URL"),
):
    """Listen to the SSE alert stream."""
    asyncio.run(_listen(patient_id, base_url))


async def _listen(patient_id: Optional[str], base_url: str) -> None:
    params = {"patient_id": patient_id} if patient_id else {}
    url = _alerts_url(base_url, "/stream")
    typer.echo(f"Connecting to SSE stream: {url}")
    typer.echo("Waiting for alerts... (Press Ctrl+C to stop)\n")

    try:
        async with httpx.AsyncClient(timeout=None) as client:
            async with client.stream("GET", url, params=params) as response:
                if response.status_code != 200:
                    typer.echo(f"Stream failed: {response.status_code}", err=True)
                    raise typer.Exit(1)
                async for line in response.aiter_lines():
                    if line.startswith("data:"):
                        try:
                            _print_alert(json.loads(line[5:].strip()))
                        except json.JSONDecodeError as exc:
                            typer.echo(f"Could not parse alert: {exc}", err=True)
    except httpx.HTTPError as exc:
        typer.echo(f"Connection error: {exc}", err=True)
        raise typer.Exit(1)


@app.command("send-snapshot")
def send_snapshot(
    patient_id: str = typer.Option(..., help="Patient ID"),
    heart_rate: Optional[float] = typer.Option(None, help="Heart rate in bpm"),
    systolic: Optional[float] = typer.Option(None, help="Systolic pressure in mmHg"),
    diastolic: Optional[float] = typer.Option(None, help="Diastolic pressure in mmHg"),
    temperature: Optional[float] = typer.Option(None, help="Temperature in °F"),
    oxygen_saturation: Optional[float] = typer.Option(None, help="SpO2 in %"),
    respiratory_rate: Optional[float] = typer.Option(None, help="Breaths per minute"),
    source: str = typer.Option("manual", help="manual, iot or device"),
    base_url: str = typer.Option(DEFAULT_BASE_URL, help="Service base URL"),
):
    """Send one vital-signs snapshot for evaluation."""
    vitals: dict[str, dict] = {}
    if heart_rate is not None:
        vitals["heartRate"] = {"value": heart_rate, "unit": "bpm"}
    if systolic is not None and diastolic is not None:
        vitals["bloodPressure"] = {"systolic": systolic, "diastolic": diastolic, "unit": "mmHg"}
    if temperature is not None:
        vitals["temperature"] = {"value": temperature, "unit": "°F"}
    if oxygen_saturation is not None:
        vitals["oxygenSaturation"] = {"value": oxygen_saturation, "unit": "%"}
    if respiratory_rate is not None:
        vitals["respiratoryRate"] = {"value": respiratory_rate, "unit": "breaths/min"}
    if not vitals:
        typer.echo("Provide at least one reading", err=True)
        raise typer.Exit(1)

    payload = {
        "patientId": patient_id,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "source": source,
        "vitals": vitals,
    }
    response = httpx.post(_alerts_url(base_url, "/evaluate"), json=payload)
    if response.status_code != 201:
        typer.echo(f"Evaluation failed ({response.status_code}): {response.text}", err=True)
        raise typer.Exit(1)

    alerts = response.json()
    typer.echo(f"{len(alerts)} alert(s) created")
    for alert in alerts:
        _print_alert(alert)


@app.command("send-manual")
def send_manual(
    patient_id: str = typer.Option(..., help="Patient ID"),
    title: str = typer.Option(..., help="Alert title"),
    message: str = typer.Option(..., help="Alert message"),
    priority: str = typer.Option("medium", help="high, medium or low"),
    created_by: str = typer.Option("operator", help="Name recorded in the alert history"),
    base_url: str = typer.Option(DEFAULT_BASE_URL, help="Service base URL"),
):
    """Raise a manual alert."""
    payload = {
        "patientId": patient_id,
        "title": title,
        "message": message,
        "priority": priority,
        "createdBy": created_by,
    }
    response = httpx.post(_alerts_url(base_url, "/manual"), json=payload)
    if response.status_code != 201:
        typer.echo(f"Manual alert failed ({response.status_code}): {response.text}", err=True)
        raise typer.Exit(1)
    _print_alert(response.json())


if __name__ == "__main__":
    app()
