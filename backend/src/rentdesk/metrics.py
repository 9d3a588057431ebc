"""Business metrics for Prometheus monitoring."""
from prometheus_client import Counter, Histogram

# IPN webhook metrics
ipn_notifications_total = Counter(
    "ipn_notifications_total",
    "Total IPN notifications handled",
    labelnames=["outcome"],  # success, failed, rejected, not_configured, malformed, log_write_failed
)

ipn_processing_duration_seconds = Histogram(
    "ipn_processing_duration_seconds",
    "Time from notification receipt to terminal state",
    labelnames=["outcome"],
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

ipn_signature_rejections_total = Counter(
    "ipn_signature_rejections_total",
    "Notifications rejected by signature policy",
    labelnames=["reason"],  # invalid, missing
)

ipn_log_write_failures_total = Counter(
    "ipn_log_write_failures_total",
    "Failures writing the IPN audit log",
    labelnames=["stage"],  # create, transition, finalize
)

# Payment metrics
payments_reconciled_total = Counter(
    "payments_reconciled_total",
    "Payments created or updated from notifications",
    labelnames=["status", "created"],
)

# Retry metrics
ipn_retries_requested_total = Counter(
    "ipn_retries_requested_total",
    "Retries requested for failed notifications",
)

ipn_redeliveries_total = Counter(
    "ipn_redeliveries_total",
    "Notifications re-driven through the pipeline",
    labelnames=["outcome"],
)

ipn_stale_entries_swept_total = Counter(
    "ipn_stale_entries_swept_total",
    "Log entries stuck in processing that were marked failed",
)
