"""Unit tests for engine self-instrumentation."""

import httpx
import respx
from conftest import TEST_BASE_URL
from prometheus_client import REGISTRY

from ratip.client.backend import BackendClient
from ratip.engine.feeds import AlarmFeed, TelemetryFeed
from ratip.engine.health import HealthMonitor
from ratip.engine.query import QueryChannel
from ratip.engine.state import StateStore
from ratip.observability.metrics import (
    BACKEND_UP,
    FEED_REFRESH_DURATION,
    FEED_REFRESHES_TOTAL,
    HEALTH_PROBES_TOTAL,
    QUERIES_IN_PROGRESS,
    QUERIES_TOTAL,
    QUERY_DURATION,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _sample(metric_name: str, labels: dict[str, str] | None = None) -> float:
    """Read current value from the default registry (0.0 when unset)."""
    return REGISTRY.get_sample_value(metric_name, labels or {}) or 0.0


# ---------------------------------------------------------------------------
# Metric definition tests
# ---------------------------------------------------------------------------


class TestMetricDefinitions:
    def test_types(self) -> None:
        assert HEALTH_PROBES_TOTAL._type == "counter"
        assert BACKEND_UP._type == "gauge"
        assert FEED_REFRESHES_TOTAL._type == "counter"
        assert FEED_REFRESH_DURATION._type == "histogram"
        assert QUERIES_TOTAL._type == "counter"
        assert QUERY_DURATION._type == "histogram"
        assert QUERIES_IN_PROGRESS._type == "gauge"


# ---------------------------------------------------------------------------
# Instrumentation tests
# ---------------------------------------------------------------------------


class TestInstrumentation:
    async def test_feed_refresh_counted(self) -> None:
        labels = {"feed": "telemetry", "status": "success"}
        before = _sample("ratip_feed_refreshes_total", labels)
        await TelemetryFeed(StateStore()).refresh()
        assert _sample("ratip_feed_refreshes_total", labels) == before + 1

    async def test_feed_failure_counted(self) -> None:
        class _Broken:
            def fetch_batch(self, size: int) -> list:  # type: ignore[type-arg]
                raise RuntimeError("down")

        labels = {"feed": "alarms", "status": "error"}
        before = _sample("ratip_feed_refreshes_total", labels)
        await AlarmFeed(StateStore(), _Broken()).refresh()
        assert _sample("ratip_feed_refreshes_total", labels) == before + 1

    @respx.mock
    async def test_probe_sets_backend_up(self) -> None:
        respx.get(f"{TEST_BASE_URL}/health").mock(
            side_effect=[
                httpx.Response(200, json={"status": "UP"}),
                httpx.ConnectError("refused"),
            ]
        )
        monitor = HealthMonitor(BackendClient(TEST_BASE_URL), StateStore())

        await monitor.check_now()
        assert _sample("ratip_backend_up") == 1.0
        before = _sample("ratip_health_probes_total", {"trigger": "scheduled", "status": "disconnected"})

        await monitor.probe()
        assert _sample("ratip_backend_up") == 0.0
        after = _sample("ratip_health_probes_total", {"trigger": "scheduled", "status": "disconnected"})
        assert after == before + 1

    @respx.mock
    async def test_query_outcomes_counted(self) -> None:
        respx.post(f"{TEST_BASE_URL}/query").mock(return_value=httpx.Response(500, json={"error": "boom"}))
        channel = QueryChannel(BackendClient(TEST_BASE_URL), StateStore())

        rejected_before = _sample("ratip_queries_total", {"status": "rejected"})
        failed_before = _sample("ratip_queries_total", {"status": "application_error"})

        await channel.submit("   ")
        await channel.submit("why?")

        assert _sample("ratip_queries_total", {"status": "rejected"}) == rejected_before + 1
        assert _sample("ratip_queries_total", {"status": "application_error"}) == failed_before + 1
        assert _sample("ratip_queries_in_progress") == 0.0
