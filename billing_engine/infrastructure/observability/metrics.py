"""Prometheus metrics for late fees, due-date cascades, record generation and store health"""

from prometheus_client import Counter, Histogram

# Late fee metrics
late_fee_quote_counter = Counter(
    "billing_late_fee_quotes_total",
    "Late fee quotes computed",
    ["outcome"],  # on_time | late
)

late_fee_days_histogram = Histogram(
    "billing_late_fee_days_late",
    "Days late per quote with charges",
    buckets=[1, 3, 7, 15, 30, 60, 90, 180],
)

# Due-date metrics
due_date_update_counter = Counter(
    "billing_due_date_updates_total",
    "Due-date update requests",
    ["outcome"],  # updated | not_found | immutable | store_error | error
)

cascaded_records_counter = Counter(
    "billing_cascaded_records_total",
    "Future records rewritten by due-date cascades",
)

cascade_skipped_counter = Counter(
    "billing_cascade_skipped_total",
    "Cascade candidates left unchanged after a failed update",
)

# Record lifecycle metrics
monthly_records_created_counter = Counter(
    "billing_monthly_records_created_total",
    "Financial records generated for active subscriptions",
)

lifecycle_transition_counter = Counter(
    "billing_record_transitions_total",
    "Financial record state changes",
    ["transition"],  # settle | reopen | adjust_value
)

# Store health
store_failures_counter = Counter(
    "billing_store_failures_total",
    "Failed persistence calls",
    ["operation"],
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_late_fee_quote(days_late: int) -> None:
    """Track on-time vs late quotes and the distribution of lateness"""
    if days_late == 0:
        late_fee_quote_counter.labels(outcome="on_time").inc()
        return

    late_fee_quote_counter.labels(outcome="late").inc()
    late_fee_days_histogram.observe(days_late)


def record_due_date_update(cascaded: int, skipped: int) -> None:
    """Record a successful due-date update and its cascade size"""
    due_date_update_counter.labels(outcome="updated").inc()
    if cascaded:
        cascaded_records_counter.inc(cascaded)
    if skipped:
        cascade_skipped_counter.inc(skipped)
