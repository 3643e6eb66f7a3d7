"""Prometheus metric inventory.

Every metric the service exports is declared here; the modules that own
the behaviour import the metric and increment it at the point of action.
Scraped via GET /metrics.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by the MetricsMiddleware)
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    # Verification calls out to the gateway, so the upper buckets matter
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Checkout metrics
# ---------------------------------------------------------------------------

PAYMENT_INTENTS_CREATED = Counter(
    "payment_intents_created_total",
    "Payment intents successfully created with the gateway",
    ["currency"],
)

PAYMENT_VERIFICATIONS = Counter(
    "payment_verifications_total",
    "Payment verification outcomes",
    ["outcome"],  # succeeded|failed|duplicate|mismatch|error
)

ENROLLMENTS = Counter(
    "enrollments_total",
    "Per-course enrollment attempts by result",
    ["result"],  # enrolled|course_missing|error
)

ENROLLMENT_EMAILS = Counter(
    "enrollment_emails_total",
    "Enrollment confirmation emails by stage and result",
    ["result"],  # queued|queue_failed|sent|send_failed
)

QUEUE_DEPTH = Gauge(
    "task_queue_depth",
    "Number of tasks waiting in a queue",
    ["queue_name"],
)
