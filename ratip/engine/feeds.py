"""Telemetry, alarm and correlation feeds.

A feed pulls one snapshot from its data source, enforces the snapshot
contract (window size, ordering), and replaces its own slot in the
``StateStore``.  A failing source is logged and counted; the previous
snapshot stays in place until the next tick succeeds.
"""

import logging
import time

from ratip.engine.sources import (
    DEFAULT_ALARM_BATCH_SIZE,
    DEFAULT_WINDOW_SIZE,
    AlarmSource,
    CorrelationSource,
    SyntheticAlarmSource,
    SyntheticCorrelationSource,
    SyntheticTelemetrySource,
    TelemetrySource,
)
from ratip.engine.state import StateStore
from ratip.models import AlarmEvent, CorrelationFinding, TelemetrySample
from ratip.observability.metrics import FEED_REFRESH_DURATION, FEED_REFRESHES_TOTAL

logger = logging.getLogger(__name__)


class FeedContractError(ValueError):
    """A data source returned a snapshot that violates the feed contract."""


def _record(feed: str, status: str, start: float) -> None:
    FEED_REFRESHES_TOTAL.labels(feed=feed, status=status).inc()
    FEED_REFRESH_DURATION.labels(feed=feed).observe(time.monotonic() - start)


class TelemetryFeed:
    """Rolling telemetry window, replaced wholesale on every refresh."""

    name = "telemetry"

    def __init__(
        self,
        store: StateStore,
        source: TelemetrySource | None = None,
        window_size: int = DEFAULT_WINDOW_SIZE,
    ) -> None:
        if window_size < 1:
            raise ValueError(f"window_size must be positive, got {window_size}")
        self._store = store
        self._source: TelemetrySource = source or SyntheticTelemetrySource()
        self.window_size = window_size

    async def refresh(self) -> list[TelemetrySample]:
        start = time.monotonic()
        try:
            window = self._source.fetch_window(self.window_size)
            if len(window) != self.window_size:
                raise FeedContractError(f"expected {self.window_size} samples, got {len(window)}")
        except Exception:
            _record(self.name, "error", start)
            logger.exception("Telemetry refresh failed; keeping previous window")
            return list(self._store.snapshot.telemetry)

        self._store.replace_telemetry(window)
        _record(self.name, "success", start)
        logger.debug("Telemetry window replaced (%d samples)", len(window))
        return window


class AlarmFeed:
    """Latest alarm batch, always sorted newest first."""

    name = "alarms"

    def __init__(
        self,
        store: StateStore,
        source: AlarmSource | None = None,
        batch_size: int = DEFAULT_ALARM_BATCH_SIZE,
    ) -> None:
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self._store = store
        self._source: AlarmSource = source or SyntheticAlarmSource()
        self.batch_size = batch_size

    async def refresh(self) -> list[AlarmEvent]:
        start = time.monotonic()
        try:
            batch = self._source.fetch_batch(self.batch_size)
            if len(batch) != self.batch_size:
                raise FeedContractError(f"expected {self.batch_size} alarms, got {len(batch)}")
        except Exception:
            _record(self.name, "error", start)
            logger.exception("Alarm refresh failed; keeping previous batch")
            return list(self._store.snapshot.alarms)

        # Newest first is part of the rendering contract, not a source concern
        ordered = sorted(batch, key=lambda alarm: alarm.timestamp, reverse=True)
        self._store.replace_alarms(ordered)
        _record(self.name, "success", start)
        logger.debug("Alarm batch replaced (%d events)", len(ordered))
        return ordered


class CorrelationFeed:
    """Derived cross-signal findings; a re-computation fully replaces the set."""

    name = "correlations"

    def __init__(self, store: StateStore, source: CorrelationSource | None = None) -> None:
        self._store = store
        self._source: CorrelationSource = source or SyntheticCorrelationSource()

    async def compute(self) -> list[CorrelationFinding]:
        start = time.monotonic()
        try:
            findings = self._source.fetch_findings()
        except Exception:
            _record(self.name, "error", start)
            logger.exception("Correlation computation failed; keeping previous findings")
            return list(self._store.snapshot.correlations)

        self._store.replace_correlations(findings)
        _record(self.name, "success", start)
        logger.debug("Correlations replaced (%d findings)", len(findings))
        return findings

    refresh = compute
