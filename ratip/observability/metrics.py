"""Prometheus metric definitions for the RATIP live-state engine.

All metrics are module-level singletons registered with the default
prometheus_client registry.  Import them wherever instrumentation is needed.
"""

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# Histogram bucket definitions
# ---------------------------------------------------------------------------

FEED_DURATION_BUCKETS = (0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0)
QUERY_DURATION_BUCKETS = (0.5, 1.0, 2.0, 5.0, 10.0, 15.0, 20.0, 30.0, 60.0, 120.0)

# ---------------------------------------------------------------------------
# Backend health
# ---------------------------------------------------------------------------

HEALTH_PROBES_TOTAL = Counter(
    "ratip_health_probes_total",
    "Total number of backend health probes by resulting status",
    labelnames=["trigger", "status"],
)

BACKEND_UP = Gauge(
    "ratip_backend_up",
    "Whether the last settled health probe reported the backend as UP (1=up, 0=not up)",
)

# ---------------------------------------------------------------------------
# Feed refreshes
# ---------------------------------------------------------------------------

FEED_REFRESHES_TOTAL = Counter(
    "ratip_feed_refreshes_total",
    "Total number of feed refreshes",
    labelnames=["feed", "status"],
)

FEED_REFRESH_DURATION = Histogram(
    "ratip_feed_refresh_duration_seconds",
    "Time taken to produce one feed snapshot in seconds",
    labelnames=["feed"],
    buckets=FEED_DURATION_BUCKETS,
)

# ---------------------------------------------------------------------------
# Query channel
# ---------------------------------------------------------------------------

QUERIES_TOTAL = Counter(
    "ratip_queries_total",
    "Total number of natural-language query submissions by outcome",
    labelnames=["status"],
)

QUERY_DURATION = Histogram(
    "ratip_query_duration_seconds",
    "End-to-end query round-trip duration in seconds",
    buckets=QUERY_DURATION_BUCKETS,
)

QUERIES_IN_PROGRESS = Gauge(
    "ratip_queries_in_progress",
    "Number of queries currently awaiting a backend response",
)
