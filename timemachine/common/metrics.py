"""Prometheus metrics definitions for the time machine.

All metric objects live here as module-level singletons:

    from timemachine.common.metrics import TIMELINE_BUILDS_TOTAL

The /metrics endpoint is mounted in timemachine/main.py via
prometheus_client.make_asgi_app().
"""

from __future__ import annotations

from prometheus_client import Counter, Histogram, Info

# ─── App Info ───

APP_INFO = Info("timemachine_app", "Application metadata")

# ─── HTTP Metrics ───

HTTP_REQUESTS_TOTAL = Counter(
    "timemachine_http_requests_total",
    "Total HTTP requests",
    labelnames=["method", "path", "status_code"],
)

HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "timemachine_http_request_duration_seconds",
    "HTTP request duration in seconds",
    labelnames=["method", "path"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)

# ─── Timeline Metrics ───

TIMELINE_BUILDS_TOTAL = Counter(
    "timeline_builds_total",
    "Timeline build outcomes",
    labelnames=["timeframe", "outcome"],
)

TIMELINE_BUILD_DURATION_SECONDS = Histogram(
    "timeline_build_duration_seconds",
    "Time spent loading and merging a timeline",
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)

SOURCE_FAILURES_TOTAL = Counter(
    "timeline_source_failures_total",
    "Data sources omitted from a merge because they were unavailable",
    labelnames=["source"],
)

RECORDS_DROPPED_TOTAL = Counter(
    "timeline_records_dropped_total",
    "Malformed raw records dropped before aggregation",
    labelnames=["source"],
)

CACHE_LOOKUPS_TOTAL = Counter(
    "timeline_cache_lookups_total",
    "Timeline cache lookups",
    labelnames=["outcome"],
)


def set_app_info(version: str, environment: str) -> None:
    """Set the app info metric values. Called once at startup."""
    APP_INFO.info({"version": version, "environment": environment})
