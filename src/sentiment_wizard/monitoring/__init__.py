"""Monitoring and metrics instrumentation for Sentiment Wizard."""

from sentiment_wizard.monitoring.metrics import (
    classification_fallbacks_total,
    llm_latency_seconds,
    model_pulls_total,
    runtime_phase_transitions_total,
    sentiment_classifications_total,
    start_metrics_server,
)

__all__ = [
    "sentiment_classifications_total",
    "classification_fallbacks_total",
    "llm_latency_seconds",
    "model_pulls_total",
    "runtime_phase_transitions_total",
    "start_metrics_server",
]
