"""Data model shared by the feeds, the query channel and the view layer.

Snapshots are frozen pydantic models so a consumer holding a reference can
never observe a half-updated window or batch.
"""

from datetime import datetime
from enum import IntEnum, StrEnum

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class HealthStatus(StrEnum):
    """Backend availability as seen by the client."""

    CHECKING = "checking"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    ERROR = "error"


class Severity(StrEnum):
    INFO = "INFO"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"


class SeverityWeight(IntEnum):
    """Display weight per severity. Used for styling only, never for filtering."""

    INFO = 1
    WARNING = 2
    CRITICAL = 3


class Tab(StrEnum):
    DASHBOARD = "dashboard"
    AI_QUERY = "ai-query"
    ALARMS = "alarms"
    CORRELATIONS = "correlations"

    @property
    def label(self) -> str:
        return " ".join(word.capitalize() for word in self.value.split("-"))


class QueryOutcome(StrEnum):
    NONE = "none"
    PENDING = "pending"
    ANSWERED = "answered"
    APPLICATION_ERROR = "application_error"
    CONNECTIVITY_ERROR = "connectivity_error"


# ---------------------------------------------------------------------------
# Feed records
# ---------------------------------------------------------------------------

_SNAPSHOT_CONFIG = ConfigDict(frozen=True, populate_by_name=True)


class TelemetrySample(BaseModel):
    """One point of the rolling telemetry window."""

    model_config = _SNAPSHOT_CONFIG

    timestamp: str
    api_latency_ms: float = Field(alias="apiLatencyMs")
    lambda_duration_ms: float = Field(alias="lambdaDurationMs")
    dynamo_read_units: float = Field(alias="dynamoReadUnits")
    error_count: int = Field(alias="errorCount", ge=0)


class AlarmEvent(BaseModel):
    model_config = _SNAPSHOT_CONFIG

    id: str
    service: str
    metric: str
    severity: Severity
    timestamp: datetime
    value: float


class CorrelationFinding(BaseModel):
    model_config = _SNAPSHOT_CONFIG

    id: int
    pattern: str
    confidence_percent: float = Field(alias="confidencePercent", ge=70.0, le=100.0)
    occurrences: int = Field(ge=0)
    last_seen_display: str = Field(alias="lastSeenDisplay")


class QueryExchange(BaseModel):
    """State of the single natural-language query slot."""

    model_config = _SNAPSHOT_CONFIG

    query_text: str = ""
    is_processing: bool = False
    response_text: str = ""
    outcome: QueryOutcome = QueryOutcome.NONE
    completed_at: datetime | None = None


# ---------------------------------------------------------------------------
# Aggregate snapshot
# ---------------------------------------------------------------------------


class Snapshot(BaseModel):
    """Latest value of every state slot, as handed to the view layer."""

    model_config = ConfigDict(frozen=True)

    health: HealthStatus = HealthStatus.CHECKING
    health_checked_at: datetime | None = None
    telemetry: tuple[TelemetrySample, ...] = ()
    alarms: tuple[AlarmEvent, ...] = ()
    correlations: tuple[CorrelationFinding, ...] = ()
    query: QueryExchange = QueryExchange()
