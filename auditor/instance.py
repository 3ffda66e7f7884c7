"""Instance model used by the audits.

The input schema carries raw value lists; the audits work on immutable
TimeSeries. load_instances() converts one into the other once, up front, so
every audit sees the same read-only series and never touches the payload.

These are dataclasses rather than Pydantic models because they are internal
audit objects — never serialized, never validated from external input.
"""

from dataclasses import dataclass, field

from auditor.connections import ConnectionKey
from schemas.instance import AuditInput, ClusterRole, InstanceInput, PostgresMetrics, SeriesValues
from timeseries.aggregate import Aggregate, nan_sum
from timeseries.series import TimeSeries

LOG_LEVEL_ERROR = "error"
LOG_LEVEL_CRITICAL = "critical"


@dataclass
class LogPatternSeries:
    level: str
    sample: str
    sum: TimeSeries


@dataclass
class Postgres:
    """Postgres telemetry of one instance, as TimeSeries."""

    up: TimeSeries
    version: str
    avg: TimeSeries
    p50: TimeSeries
    p95: TimeSeries
    p99: TimeSeries
    queries_by_db: dict[str, TimeSeries]
    connections: dict[ConnectionKey, TimeSeries]
    settings: dict[str, TimeSeries]
    wal_current_lsn: TimeSeries | None
    wal_replay_lsn: TimeSeries | None
    total_time_by_query: dict[str, TimeSeries]
    io_time_by_query: dict[str, TimeSeries]
    awaiting_by_locking_query: dict[str, TimeSeries]

    def is_up(self) -> bool:
        """True if the exporter reached the server at the end of the window."""
        return self.up.final() > 0


@dataclass
class Instance:
    name: str
    role: ClusterRole = ClusterRole.UNKNOWN
    obsolete: bool = False
    postgres: Postgres | None = None
    log_messages_by_level: dict[str, TimeSeries] = field(default_factory=dict)
    log_patterns: list[LogPatternSeries] = field(default_factory=list)


class _Loader:
    """Builds TimeSeries on the audit's shared grid."""

    def __init__(self, from_ts: int, step: int) -> None:
        self._from = from_ts
        self._step = step

    def series(self, values: SeriesValues | None) -> TimeSeries | None:
        if values is None:
            return None
        return TimeSeries(self._from, self._step, values)

    def keyed(self, pairs) -> dict:
        """Build a key → series dict, NanSum-merging entries that share a key."""
        merged: dict = {}
        for key, values in pairs:
            ts = self.series(values)
            if key in merged:
                ts = Aggregate(nan_sum).add(merged[key], ts).get()
            merged[key] = ts
        return merged

    def postgres(self, pg: PostgresMetrics) -> Postgres:
        return Postgres(
            up=self.series(pg.up),
            version=pg.version,
            avg=self.series(pg.avg),
            p50=self.series(pg.p50),
            p95=self.series(pg.p95),
            p99=self.series(pg.p99),
            queries_by_db=self.keyed(pg.queries_by_db.items()),
            connections=self.keyed(
                (ConnectionKey(c.db, c.user, c.state, c.query, c.wait_event_type), c.values)
                for c in pg.connections
            ),
            settings=self.keyed(pg.settings.items()),
            wal_current_lsn=self.series(pg.wal_current_lsn),
            wal_replay_lsn=self.series(pg.wal_replay_lsn),
            total_time_by_query=self.keyed((q.query, q.total_time) for q in pg.queries),
            io_time_by_query=self.keyed((q.query, q.io_time) for q in pg.queries),
            awaiting_by_locking_query=self.keyed((q.query, q.awaiting) for q in pg.locking_queries),
        )

    def instance(self, raw: InstanceInput) -> Instance:
        return Instance(
            name=raw.name,
            role=raw.role,
            obsolete=raw.obsolete,
            postgres=self.postgres(raw.postgres) if raw.postgres is not None else None,
            log_messages_by_level=self.keyed(raw.log_messages_by_level.items()),
            log_patterns=[
                LogPatternSeries(level=p.level, sample=p.sample, sum=self.series(p.values))
                for p in raw.log_patterns
            ],
        )


def load_instances(audit: AuditInput) -> list[Instance]:
    """Convert every instance of the payload into the audit model."""
    loader = _Loader(audit.from_ts, audit.step)
    return [loader.instance(raw) for raw in audit.instances]
