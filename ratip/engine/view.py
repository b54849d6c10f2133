"""Presentation-side composition of the engine state.

``ViewState`` only remembers what the user picked (tab, query text).  All
panels are derived by ``compose`` from a ``Snapshot``; switching tabs never
touches the feeds.
"""

from datetime import datetime
from statistics import fmean

from pydantic import BaseModel, ConfigDict

from ratip.engine.query import EXAMPLE_QUERIES
from ratip.models import (
    AlarmEvent,
    CorrelationFinding,
    HealthStatus,
    QueryExchange,
    Severity,
    SeverityWeight,
    Snapshot,
    Tab,
    TelemetrySample,
)

ALARM_DISPLAY_FORMAT = "%Y-%m-%d %H:%M:%S"

# status -> (badge label, colour)
STATUS_BADGES: dict[HealthStatus, tuple[str, str]] = {
    HealthStatus.CONNECTED: ("Connected", "green"),
    HealthStatus.DISCONNECTED: ("Disconnected", "red"),
    HealthStatus.CHECKING: ("Checking...", "yellow"),
    HealthStatus.ERROR: ("Error", "red"),
}

SEVERITY_COLOURS: dict[Severity, str] = {
    Severity.CRITICAL: "red",
    Severity.WARNING: "yellow",
    Severity.INFO: "blue",
}


# --- Derived view models ---


class _ViewModel(BaseModel):
    model_config = ConfigDict(frozen=True)


class StatusBadge(_ViewModel):
    status: HealthStatus
    label: str
    colour: str
    checked_at: str


class SummaryCards(_ViewModel):
    active_alarms: int
    critical_alarms: int
    correlations: int
    monitored_services: int
    avg_api_latency_ms: float | None


class AlarmRow(_ViewModel):
    alarm: AlarmEvent
    weight: SeverityWeight
    colour: str
    display_time: str


class DashboardView(_ViewModel):
    active_tab: Tab
    tabs: tuple[Tab, ...]
    badge: StatusBadge
    base_url: str
    advisory: str | None
    summary: SummaryCards
    telemetry: tuple[TelemetrySample, ...]
    alarms: tuple[AlarmRow, ...]
    correlations: tuple[CorrelationFinding, ...]
    query_text: str
    query: QueryExchange
    examples: tuple[str, ...]


# --- Derivations ---


def connectivity_advisory(status: HealthStatus, base_url: str) -> str | None:
    """Advisory shown in the query panel whenever the backend is not known-good."""
    if status is HealthStatus.CONNECTED:
        return None
    return (
        f"The RATIP backend at {base_url} is not responding. "
        "Please start the backend service to enable AI queries."
    )


def alarm_row(alarm: AlarmEvent) -> AlarmRow:
    return AlarmRow(
        alarm=alarm,
        weight=SeverityWeight[alarm.severity.name],
        colour=SEVERITY_COLOURS[alarm.severity],
        display_time=alarm.timestamp.astimezone().strftime(ALARM_DISPLAY_FORMAT),
    )


def summarize(snapshot: Snapshot) -> SummaryCards:
    latencies = [sample.api_latency_ms for sample in snapshot.telemetry]
    return SummaryCards(
        active_alarms=len(snapshot.alarms),
        critical_alarms=sum(1 for a in snapshot.alarms if a.severity is Severity.CRITICAL),
        correlations=len(snapshot.correlations),
        monitored_services=len({a.service for a in snapshot.alarms}),
        avg_api_latency_ms=fmean(latencies) if latencies else None,
    )


class ViewState:
    def __init__(self, base_url: str, active_tab: Tab = Tab.DASHBOARD) -> None:
        self.base_url = base_url
        self.active_tab = active_tab
        self.query_text = ""

    def select_tab(self, tab: Tab | str) -> Tab:
        self.active_tab = Tab(tab)
        return self.active_tab

    def set_query_text(self, text: str) -> None:
        self.query_text = text

    def use_example(self, index: int) -> str:
        self.query_text = EXAMPLE_QUERIES[index]
        return self.query_text

    def compose(self, snapshot: Snapshot) -> DashboardView:
        label, colour = STATUS_BADGES[snapshot.health]
        return DashboardView(
            active_tab=self.active_tab,
            tabs=tuple(Tab),
            badge=StatusBadge(
                status=snapshot.health,
                label=label,
                colour=colour,
                checked_at=format_checked_at(snapshot.health_checked_at),
            ),
            base_url=self.base_url,
            advisory=connectivity_advisory(snapshot.health, self.base_url),
            summary=summarize(snapshot),
            telemetry=snapshot.telemetry,
            alarms=tuple(alarm_row(a) for a in snapshot.alarms),
            correlations=snapshot.correlations,
            query_text=self.query_text,
            query=snapshot.query,
            examples=EXAMPLE_QUERIES,
        )


def format_checked_at(checked_at: datetime | None) -> str:
    if checked_at is None:
        return "never"
    return checked_at.astimezone().strftime("%H:%M:%S")
