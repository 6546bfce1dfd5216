from datetime import timedelta

from fastapi import Request

from app.core.config import Settings
from app.modules.alerts.config import load_rules
from app.modules.alerts.decision import ThresholdDecisionEngine
from app.modules.alerts.engine import ThresholdEvaluator
from app.modules.alerts.manager import AlertListenerRegistry


def build_alert_service(settings: Settings) -> ThresholdEvaluator:
    """Construct the evaluator explicitly from settings; callers own the instance."""
    rules = load_rules(
        settings.ALERT_THRESHOLDS_PATH,
        use_defaults=settings.ALERT_SEED_DEFAULT_THRESHOLDS,
    )
    return ThresholdEvaluator(
        thresholds=rules.thresholds,
        decision_engine=ThresholdDecisionEngine(),
        listeners=AlertListenerRegistry(),
        dedup_window=timedelta(minutes=settings.ALERT_DEDUP_WINDOW_MINUTES),
        patient_names=rules.patient_names,
    )


def get_alert_service(request: Request) -> ThresholdEvaluator:
    return request.app.state.alert_service
