"""Prometheus metrics for window sessions, submissions, cache and back-office calls"""

from prometheus_client import Counter, Histogram

# Session metrics
window_transition_counter = Counter(
    "cambio_window_transitions_total",
    "Teller window state transitions",
    ["transition"],  # open | pause | resume | close | discard
)

# Submission metrics
submission_counter = Counter(
    "cambio_conversion_submissions_total",
    "Conversion submissions by outcome",
    ["outcome"],  # accepted | rejected_input | rejected_window | failed
)

submission_amount_histogram = Histogram(
    "cambio_conversion_source_amount",
    "Source amount of accepted conversions",
    ["operation"],  # COMPRA | VENTA
    buckets=[10, 50, 100, 500, 1_000, 5_000, 10_000, 50_000],
)

# Back-office API metrics
backoffice_latency_histogram = Histogram(
    "backoffice_latency_seconds",
    "Back-office API response time",
    ["operation"],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

backoffice_failure_counter = Counter(
    "backoffice_failures_total",
    "Failed back-office API calls",
    ["operation"],
)

# Cache metrics
cache_lookup_counter = Counter(
    "cambio_cache_lookups_total",
    "Cache lookups by result",
    ["result"],  # hit_memory | hit_durable | miss
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_submission(outcome: str, operation: str | None = None, amount: float | None = None) -> None:
    """Record submission outcome and, when accepted, the amount distribution"""
    submission_counter.labels(outcome=outcome).inc()
    if outcome == "accepted" and operation is not None and amount is not None:
        submission_amount_histogram.labels(operation=operation).observe(amount)
