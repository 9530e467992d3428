"""Prometheus metric definitions for exporter self-instrumentation.

All metrics are module-level singletons registered with the default
prometheus_client registry.  Import them wherever instrumentation is needed.

The exported incident gauges themselves are *not* defined here: they live in
the injected ``MetricStore`` so that publishing can swap them atomically.
"""

from prometheus_client import Counter, Gauge, Histogram, Info

# ---------------------------------------------------------------------------
# Histogram bucket definitions
# ---------------------------------------------------------------------------

COLLECTION_DURATION_BUCKETS = (0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0, 120.0)

# ---------------------------------------------------------------------------
# PagerDuty API metrics
# ---------------------------------------------------------------------------

PAGERDUTY_API_COUNTER = Counter(
    "pagerduty_api_counter",
    "PagerDuty API calls",
    labelnames=["name"],
)

# ---------------------------------------------------------------------------
# Collection cycle metrics
# ---------------------------------------------------------------------------

COLLECTIONS_TOTAL = Counter(
    "pagerduty_exporter_collections_total",
    "Total number of collection cycles",
    labelnames=["collector", "status"],
)

COLLECTION_DURATION = Histogram(
    "pagerduty_exporter_collection_duration_seconds",
    "Duration of a collection cycle in seconds",
    labelnames=["collector"],
    buckets=COLLECTION_DURATION_BUCKETS,
)

LAST_SUCCESS_TIMESTAMP = Gauge(
    "pagerduty_exporter_last_success_timestamp_seconds",
    "Unix time of the last successfully published collection cycle",
    labelnames=["collector"],
)

SKIPPED_INCIDENTS_TOTAL = Counter(
    "pagerduty_exporter_skipped_incidents_total",
    "Incidents skipped because they carried no identifier",
)

# ---------------------------------------------------------------------------
# Build info
# ---------------------------------------------------------------------------

APP_INFO = Info(
    "pagerduty_exporter",
    "PagerDuty exporter build information",
)
