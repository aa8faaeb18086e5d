"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

REQUEST_COUNTER = Counter(
	"gamehub_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"gamehub_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

MOD_SUBMISSIONS_TOTAL = Counter(
	"mod_submissions_total",
	"Submissions accepted by intake",
	["kind"],
)

MOD_DECISIONS_TOTAL = Counter(
	"mod_decisions_total",
	"Review decisions by outcome",
	["kind", "action", "result"],
)

MOD_DECISION_LATENCY_SECONDS = Histogram(
	"mod_decision_latency_seconds",
	"Latency of committing a single review decision",
	buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

MOD_BATCH_ACTIONS_TOTAL = Counter(
	"mod_batch_actions_total",
	"Per-item results of batch review requests",
	["result"],
)

MOD_AUDIT_LATENCY_SECONDS = Histogram(
	"mod_audit_write_latency_seconds",
	"Latency of moderation audit writes",
	buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0),
)

MOD_AUDIT_FAILURES_TOTAL = Counter(
	"mod_audit_write_failures_total",
	"Committed decisions whose audit entry could not be written",
	["kind"],
)

MOD_QUEUE_BUILD_SECONDS = Histogram(
	"mod_queue_build_seconds",
	"Time spent grouping the pending review queue",
	buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5),
)

MOD_APPLICATIONS_TOTAL = Counter(
	"mod_reviewer_applications_total",
	"Reviewer application transitions",
	["stage", "outcome"],
)

MOD_NOTIFICATIONS_TOTAL = Counter(
	"mod_notifications_total",
	"Notification dispatch attempts",
	["channel", "result"],
)


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(elapsed_seconds)
