"""Audit input schema.

Defines the payload that enters the auditor: the already-materialized
telemetry of one application's instances plus the deployment statuses that
an external classifier produced. This is the contract between the
time-series query layer and the audit core.

Every series is a plain list of floats on the grid declared once by
AuditInput (from_ts, step); `null` marks a missing sample. The auditor turns
these lists into immutable TimeSeries before any audit runs (see
auditor/instance.py).
"""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field

SeriesValues = list[float | None]


class ClusterRole(str, Enum):
    """Cluster role of a database instance at the end of the audit window."""

    PRIMARY = "primary"
    REPLICA = "replica"
    UNKNOWN = "unknown"


class ConnectionSeries(BaseModel):
    """Number of client connections sharing one (db, user, state, query, wait event)."""

    db: str = ""
    user: str = ""
    state: str
    query: str = ""
    wait_event_type: str = ""
    values: SeriesValues


class QueryStats(BaseModel):
    """Per-query timing, in query-seconds per second."""

    query: str
    total_time: SeriesValues = []
    io_time: SeriesValues = []


class LockingQuery(BaseModel):
    """A query holding a lock and how many queries are waiting on it."""

    query: str
    awaiting: SeriesValues


class LogPattern(BaseModel):
    """A log pattern already grouped by the log pipeline.

    Attributes:
        level: Severity of the pattern ("error", "critical", ...).
        sample: One representative message. Used as the display label.
        values: Messages per second matching the pattern.
    """

    level: str
    sample: str
    values: SeriesValues


class PostgresMetrics(BaseModel):
    """Postgres telemetry of one instance.

    Attributes:
        up: 1 while the exporter reaches the server, 0 or null otherwise.
        avg, p50, p95, p99: Query latency in seconds.
        queries_by_db: Queries per second, keyed by database name.
        connections: Connection counts by state and wait event.
        settings: Numeric server settings over time, keyed by setting name
            (e.g. "max_connections", "superuser_reserved_connections").
        wal_current_lsn: Current write-ahead log position, in bytes. Only
            meaningful on the primary.
        wal_replay_lsn: Replayed write-ahead log position, in bytes. Only
            meaningful on replicas.
    """

    up: SeriesValues = []
    version: str = ""
    avg: SeriesValues = []
    p50: SeriesValues = []
    p95: SeriesValues = []
    p99: SeriesValues = []
    queries_by_db: dict[str, SeriesValues] = {}
    connections: list[ConnectionSeries] = []
    settings: dict[str, SeriesValues] = {}
    wal_current_lsn: SeriesValues | None = None
    wal_replay_lsn: SeriesValues | None = None
    queries: list[QueryStats] = []
    locking_queries: list[LockingQuery] = []


class InstanceInput(BaseModel):
    """One monitored instance of the application."""

    name: str
    role: ClusterRole = ClusterRole.UNKNOWN
    obsolete: bool = False
    postgres: PostgresMetrics | None = None
    log_messages_by_level: dict[str, SeriesValues] = {}
    log_patterns: list[LogPattern] = []


class DeploymentState(str, Enum):
    """Lifecycle state assigned to a deployment by the external classifier."""

    IN_PROGRESS = "in_progress"
    STUCK = "stuck"
    CANCELLED = "cancelled"
    DEPLOYED = "deployed"
    SUMMARY = "summary"


Status = Literal["ok", "warning", "critical", "unknown"]


class DeploymentSummary(BaseModel):
    """One notable change observed after a deployment."""

    report: str = "instances"
    ok: bool
    message: str
    time: int | None = None


class DeploymentStatusInput(BaseModel):
    """A classified deployment. Times are unix seconds, durations seconds."""

    id: str
    version: str
    started_at: int
    lifetime: int = 0
    state: DeploymentState
    status: Status = "ok"
    message: str = ""
    summary: list[DeploymentSummary] = []


class AuditInput(BaseModel):
    """Everything one audit pass needs.

    Attributes:
        application: Name of the audited application.
        from_ts: Time of the first sample of every series (unix seconds).
        step: Sampling step shared by every series, in seconds.
        now: Wall-clock "now" for age calculations. Defaults to the
            current time when omitted.
        instances: Monitored instances, in display order.
        deployments: Deployment statuses, oldest first.
    """

    application: str
    from_ts: int
    step: int = Field(gt=0)
    now: int | None = None
    instances: list[InstanceInput] = []
    deployments: list[DeploymentStatusInput] = []
