"""Pluggable data sources behind the telemetry, alarm and correlation feeds.

The synthetic implementations generate placeholder data with the sizes and
value ranges the dashboard expects.  A real ingestion backend only has to
satisfy the matching protocol; the feeds, their cadence and the buffer
replacement logic stay the same.
"""

import random
import time
from datetime import UTC, datetime, timedelta
from typing import Protocol

from ratip.models import AlarmEvent, CorrelationFinding, Severity, TelemetrySample

DEFAULT_WINDOW_SIZE = 20
DEFAULT_ALARM_BATCH_SIZE = 5

SAMPLE_SPACING = timedelta(minutes=1)
ALARM_LOOKBACK = timedelta(hours=1)
CORRELATION_LOOKBACK = timedelta(hours=2)

# (low, high) half-open ranges for the synthetic telemetry fields
API_LATENCY_RANGE_MS = (50.0, 150.0)
LAMBDA_DURATION_RANGE_MS = (200.0, 700.0)
DYNAMO_READ_RANGE = (500.0, 1500.0)
ERROR_COUNT_RANGE = (0, 10)
ALARM_VALUE_RANGE = (0.0, 100.0)
CONFIDENCE_RANGE = (70.0, 100.0)
OCCURRENCE_RANGE = (5, 25)

TIME_LABEL_FORMAT = "%H:%M:%S"
DATETIME_LABEL_FORMAT = "%Y-%m-%d %H:%M:%S"

ALARM_CATALOG: tuple[tuple[str, str, Severity], ...] = (
    ("api-gateway", "High Latency", Severity.WARNING),
    ("lambda-processor", "Error Rate Spike", Severity.CRITICAL),
    ("dynamodb-table", "Throttling", Severity.WARNING),
    ("ecs-service", "CPU Threshold", Severity.INFO),
    ("kinesis-stream", "Shard Saturation", Severity.CRITICAL),
)

CORRELATION_PATTERNS: tuple[str, ...] = (
    "Lambda cold starts correlated with API latency spikes",
    "DynamoDB throttling events preceding error rate increase",
    "ECS memory pressure during peak traffic hours",
    "Kinesis lag causing downstream Lambda timeouts",
)


# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------


class TelemetrySource(Protocol):
    def fetch_window(self, size: int) -> list[TelemetrySample]:
        """Return ``size`` samples ordered oldest to newest."""
        ...


class AlarmSource(Protocol):
    def fetch_batch(self, size: int) -> list[AlarmEvent]:
        """Return ``size`` alarm events (any order)."""
        ...


class CorrelationSource(Protocol):
    def fetch_findings(self) -> list[CorrelationFinding]: ...


# ---------------------------------------------------------------------------
# Synthetic implementations
# ---------------------------------------------------------------------------


def _local_now() -> datetime:
    return datetime.now(UTC).astimezone()


class SyntheticTelemetrySource:
    """Random samples at one-minute spacing, the newest stamped now."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()

    def fetch_window(self, size: int) -> list[TelemetrySample]:
        now = _local_now()
        rng = self._rng
        return [
            TelemetrySample(
                timestamp=(now - (size - 1 - i) * SAMPLE_SPACING).strftime(TIME_LABEL_FORMAT),
                api_latency_ms=rng.uniform(*API_LATENCY_RANGE_MS),
                lambda_duration_ms=rng.uniform(*LAMBDA_DURATION_RANGE_MS),
                dynamo_read_units=rng.uniform(*DYNAMO_READ_RANGE),
                error_count=rng.randrange(*ERROR_COUNT_RANGE),
            )
            for i in range(size)
        ]


class SyntheticAlarmSource:
    """Random alarms from ``ALARM_CATALOG`` stamped within the trailing hour."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()

    def fetch_batch(self, size: int) -> list[AlarmEvent]:
        now = datetime.now(UTC)
        batch_ms = int(time.time() * 1000)
        rng = self._rng
        events: list[AlarmEvent] = []
        for i in range(size):
            service, metric, severity = rng.choice(ALARM_CATALOG)
            # random() is in [0, 1) so the instant never lands exactly on "now - 1h"
            offset = ALARM_LOOKBACK * rng.random()
            events.append(
                AlarmEvent(
                    id=f"alarm-{batch_ms}-{i}",
                    service=service,
                    metric=metric,
                    severity=severity,
                    timestamp=now - offset,
                    value=rng.uniform(*ALARM_VALUE_RANGE),
                )
            )
        return events


class SyntheticCorrelationSource:
    """One finding per entry of ``CORRELATION_PATTERNS`` with random confidence."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()

    def fetch_findings(self) -> list[CorrelationFinding]:
        now = _local_now()
        rng = self._rng
        low, high = CONFIDENCE_RANGE
        return [
            CorrelationFinding(
                id=i,
                pattern=pattern,
                confidence_percent=round(rng.uniform(low, high), 1),
                occurrences=rng.randrange(*OCCURRENCE_RANGE),
                last_seen_display=(now - CORRELATION_LOOKBACK * rng.random()).strftime(DATETIME_LABEL_FORMAT),
            )
            for i, pattern in enumerate(CORRELATION_PATTERNS)
        ]
