"""Prometheus metrics for settlements, obligation creation, rescheduling and forecasts"""

from prometheus_client import Counter, Histogram

# Settlement metrics
payment_counter = Counter(
    "paytrack_payment_total",
    "Payment attempts by outcome",
    ["outcome"],  # recorded | overpayment | conflict
)

# Obligation metrics
obligation_created_counter = Counter(
    "paytrack_obligation_created_total",
    "Obligations created",
    ["payment_type"],  # single | installment | recurring
)

status_refresh_counter = Counter(
    "paytrack_status_refresh_changed_total",
    "Obligations whose stored status changed during a refresh",
)

# Schedule metrics
reschedule_counter = Counter(
    "paytrack_reschedule_total",
    "Schedule entries superseded by a reschedule",
)

# Forecast metrics
forecast_duration_histogram = Histogram(
    "paytrack_forecast_duration_seconds",
    "Time to build a cash-flow projection",
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5],
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_payment_outcome(outcome: str) -> None:
    """Count a settlement attempt by outcome"""
    payment_counter.labels(outcome=outcome).inc()


def record_obligations_created(payment_type: str, count: int = 1) -> None:
    obligation_created_counter.labels(payment_type=payment_type).inc(count)
