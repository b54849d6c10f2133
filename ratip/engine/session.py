"""Wires the live-state engine together for one dashboard session.

Use as an async context manager: entering starts every poller, leaving
cancels them, including polls that are mid-flight.

    async with DashboardSession() as session:
        await session.query.submit("Which services are throttling?")
        view = session.view()
"""

import logging
from types import TracebackType
from typing import Self

from ratip.client.backend import BackendClient
from ratip.config import Settings, get_settings
from ratip.engine.feeds import AlarmFeed, CorrelationFeed, TelemetryFeed
from ratip.engine.health import HealthMonitor
from ratip.engine.query import QueryChannel
from ratip.engine.scheduler import PollingScheduler
from ratip.engine.sources import AlarmSource, CorrelationSource, TelemetrySource
from ratip.engine.state import StateStore
from ratip.engine.view import DashboardView, ViewState

logger = logging.getLogger(__name__)


class DashboardSession:
    def __init__(
        self,
        settings: Settings | None = None,
        *,
        telemetry_source: TelemetrySource | None = None,
        alarm_source: AlarmSource | None = None,
        correlation_source: CorrelationSource | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        s = self.settings

        self.store = StateStore()
        self.client = BackendClient(
            s.api_base_url,
            health_timeout=s.health_timeout_seconds,
            query_timeout=s.query_timeout_seconds,
        )
        self.health = HealthMonitor(self.client, self.store)
        self.telemetry = TelemetryFeed(self.store, telemetry_source, window_size=s.telemetry_window_size)
        self.alarms = AlarmFeed(self.store, alarm_source, batch_size=s.alarm_batch_size)
        self.correlations = CorrelationFeed(self.store, correlation_source)
        self.query = QueryChannel(self.client, self.store)
        self.view_state = ViewState(self.client.base_url)

        self.scheduler = PollingScheduler()
        self.scheduler.register(self.health.name, self.health.refresh, s.health_interval_seconds)
        self.scheduler.register(self.telemetry.name, self.telemetry.refresh, s.telemetry_interval_seconds)
        self.scheduler.register(self.alarms.name, self.alarms.refresh, s.alarm_interval_seconds)
        self.scheduler.register(self.correlations.name, self.correlations.compute, s.correlation_interval_seconds)

    def view(self) -> DashboardView:
        return self.view_state.compose(self.store.snapshot)

    async def start(self) -> None:
        logger.info("Starting dashboard session against %s", self.client.base_url)
        self.scheduler.start()

    async def close(self) -> None:
        await self.scheduler.stop()
        logger.info("Dashboard session closed")

    async def __aenter__(self) -> Self:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()
