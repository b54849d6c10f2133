"""Explicit state holder for the live dashboard.

Each feed owns exactly one slot and replaces it wholesale.  Listeners are
notified with a ``StateChange`` naming the slot so consumers can react to the
part of the snapshot they care about.
"""

import logging
from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict

from ratip.models import (
    AlarmEvent,
    CorrelationFinding,
    HealthStatus,
    QueryExchange,
    Snapshot,
    TelemetrySample,
)

logger = logging.getLogger(__name__)


class Slot(StrEnum):
    HEALTH = "health"
    TELEMETRY = "telemetry"
    ALARMS = "alarms"
    CORRELATIONS = "correlations"
    QUERY = "query"


class StateChange(BaseModel):
    """Notification delivered to listeners after a slot is replaced."""

    model_config = ConfigDict(frozen=True)

    slot: Slot
    snapshot: Snapshot


Listener = Callable[[StateChange], None]


class StateStore:
    """Holds the current ``Snapshot`` and fans out change notifications."""

    def __init__(self) -> None:
        self._snapshot = Snapshot()
        self._listeners: list[Listener] = []

    @property
    def snapshot(self) -> Snapshot:
        return self._snapshot

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # --- slot writers ---

    def set_health(self, status: HealthStatus) -> None:
        self._replace(Slot.HEALTH, health=status, health_checked_at=datetime.now(UTC))

    def replace_telemetry(self, samples: Sequence[TelemetrySample]) -> None:
        self._replace(Slot.TELEMETRY, telemetry=tuple(samples))

    def replace_alarms(self, alarms: Sequence[AlarmEvent]) -> None:
        self._replace(Slot.ALARMS, alarms=tuple(alarms))

    def replace_correlations(self, findings: Sequence[CorrelationFinding]) -> None:
        self._replace(Slot.CORRELATIONS, correlations=tuple(findings))

    def set_query(self, exchange: QueryExchange) -> None:
        self._replace(Slot.QUERY, query=exchange)

    # --- internals ---

    def _replace(self, slot: Slot, **update: object) -> None:
        self._snapshot = self._snapshot.model_copy(update=update)
        change = StateChange(slot=slot, snapshot=self._snapshot)
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                logger.exception("State listener failed handling %s change", slot)
