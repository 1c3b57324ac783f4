"""
Centralized Prometheus metrics.

All application metrics are defined here to prevent duplication
and ensure consistent labeling across modules.
"""

from prometheus_client import Counter, Histogram


# ── Account Lifecycle Metrics ─────────────────────────────────────────────────

auth_events = Counter(
    "auth_events_total",
    "Account lifecycle events",
    ["event", "outcome"]
)

token_consumption = Counter(
    "single_use_tokens_consumed_total",
    "Single-use token redemption attempts",
    ["purpose", "outcome"]
)


# ── Email Metrics ─────────────────────────────────────────────────────────────

email_delivery = Counter(
    "email_delivery_total",
    "Transactional emails by template and result",
    ["template", "status"]
)

email_latency = Histogram(
    "email_delivery_latency_seconds",
    "SMTP delivery latency",
    ["template"],
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
)


# ── Store Metrics ─────────────────────────────────────────────────────────────

bulk_store_rows = Counter(
    "bulk_store_rows_total",
    "Rows processed by bulk store creation",
    ["status"]
)
