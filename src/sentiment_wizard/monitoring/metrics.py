"""Prometheus metrics for Sentiment Wizard.

Metrics live in the default registry. They are only served over HTTP when
PROMETHEUS_ENABLED is set and METRICS_PORT is configured.
"""

import structlog
from prometheus_client import Counter, Histogram, start_http_server


logger = structlog.get_logger(__name__)

# === Classification Metrics ===

sentiment_classifications_total = Counter(
    "sentiment_classifications_total",
    "Total comments classified by resulting sentiment",
    ["sentiment"],
)
"""
Classified comments by sentiment label.

Labels:
- sentiment: positive, negative, mixed, neutral
"""

classification_fallbacks_total = Counter(
    "classification_fallbacks_total",
    "Comments defaulted to neutral without a keyword match",
    ["reason"],
)
"""
Neutral fallbacks by reason.

Labels:
- reason: empty (blank comment, no request), error (endpoint failure),
  no_match (reply contained no sentiment keyword)

A high error rate usually means the runtime stopped or the model was removed.
"""

# === LLM Performance Metrics ===

llm_latency_seconds = Histogram(
    "llm_latency_seconds",
    "LLM generation latency in seconds",
    ["model", "success"],
    buckets=[0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0, 120.0],
)
"""
Single-shot generation latency.

Labels:
- model: Model name (e.g., gemma3:4b)
- success: true (reply decoded), false (timeout, HTTP or decode error)
"""

# === Runtime Metrics ===

model_pulls_total = Counter(
    "model_pulls_total",
    "Model pulls by outcome",
    ["outcome"],
)
"""
Labels:
- outcome: succeeded, failed, cancelled
"""

runtime_phase_transitions_total = Counter(
    "runtime_phase_transitions_total",
    "Runtime installation phase transitions by target phase",
    ["phase"],
)
"""
Labels:
- phase: target InstallPhase value
"""


def start_metrics_server(port: int, addr: str = "127.0.0.1") -> None:
    """Serve the default registry on addr:port from a daemon thread."""
    start_http_server(port, addr=addr)
    logger.info("Metrics endpoint started", addr=addr, port=port)
