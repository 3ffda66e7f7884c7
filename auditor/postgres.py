"""Postgres audit.

Walks every Postgres instance of an application and produces the
"postgres" report:

- latency, error, availability, connection and replication-lag checks
- overview and per-instance charts (latency, queries, errors, connections,
  locks, top queries)
- one table row per live instance

The audit only reads its inputs. Every figure that needs more than a
lookup is delegated to the primitives in timeseries/ and to the connection
and replication modules.
"""

import logging
import math

from auditor.connections import STATE_COLORS, ConnectionStateAggregator, ConnectionStates
from auditor.instance import LOG_LEVEL_CRITICAL, LOG_LEVEL_ERROR, Instance
from auditor.replication import (
    ReplicationLagEstimator,
    ReplicationLagResult,
    primary_position,
    replication_lag_series,
)
from auditor.report import ReportBuilder
from checks import catalog as checks
from checks.catalog import CheckCatalog
from schemas.instance import ClusterRole
from schemas.report import AuditReport, TableCell
from timeseries.aggregate import Aggregate, nan_sum
from timeseries.series import TimeSeries
from timeseries.top import top
from utils.format import format_bytes, format_duration, format_float

logger = logging.getLogger(__name__)

LATENCY_CHART = "Postgres query latency <selector>, seconds"
ERRORS_CHART = "Errors <selector>"
OVERVIEW = "overview"

ROLE_ICONS = {
    ClusterRole.PRIMARY: "mdi-database-edit-outline",
    ClusterRole.REPLICA: "mdi-database-import-outline",
}


class PostgresAuditor:
    """Builds the postgres report for a list of instances."""

    name = "postgres"
    TOP_K = 5  # series kept in every "top N" drill-down chart

    def __init__(self, catalog: CheckCatalog, top_k: int = TOP_K) -> None:
        self._catalog = catalog
        self._top_k = top_k
        self._connections = ConnectionStateAggregator(top_k)
        self._replication = ReplicationLagEstimator()

    def audit(self, instances: list[Instance]) -> AuditReport | None:
        """Run the audit. Returns None if no instance runs Postgres."""
        pg_instances = [i for i in instances if i.postgres is not None]
        if not pg_instances:
            return None

        report = ReportBuilder(self.name, self._catalog)
        availability_check = report.create_check(checks.POSTGRES_AVAILABILITY)
        latency_check = report.create_check(checks.POSTGRES_LATENCY)
        errors_check = report.create_check(checks.POSTGRES_ERRORS)
        replication_check = report.create_check(checks.POSTGRES_REPLICATION_LAG)
        connections_check = report.create_check(checks.POSTGRES_CONNECTIONS)

        primary = primary_position(instances)

        for instance in pg_instances:
            pg = instance.postgres

            report.chart(LATENCY_CHART, OVERVIEW, featured=True).add_series(instance.name, pg.avg)
            if pg.avg.last() > latency_check.threshold:
                latency_check.add_item(instance.name)
            (
                report.chart(LATENCY_CHART, instance.name)
                .add_series("avg", pg.avg)
                .add_series("p50", pg.p50)
                .add_series("p95", pg.p95)
                .add_series("p99", pg.p99)
            )

            qps = sum_queries(pg.queries_by_db)
            report.chart("Queries per second").add_series(instance.name, qps)

            errors = Aggregate(nan_sum).add(
                instance.log_messages_by_level.get(LOG_LEVEL_ERROR),
                instance.log_messages_by_level.get(LOG_LEVEL_CRITICAL),
            ).get()

            self._queries(report, instance)

            report.chart(ERRORS_CHART, OVERVIEW, column=True, featured=True).add_series(instance.name, errors)
            report.chart(ERRORS_CHART, instance.name, column=True).add_many(
                top(errors_by_pattern(instance), self._top_k)
            )

            states = self._connections.aggregate(instance.name, pg.connections, pg.settings, connections_check)
            self._connection_charts(report, instance, states)
            self._locks(report, instance)

            lag = replication_lag_series(primary, pg.wal_replay_lsn)
            report.chart("Replication lag, bytes").add_series(instance.name, lag)

            if instance.obsolete:
                continue

            role_cell = TableCell(value=instance.role.value)
            if instance.role in ROLE_ICONS:
                role_cell.icon = ROLE_ICONS[instance.role]

            status = TableCell(value="up", status="ok")
            if not pg.is_up():
                availability_check.add_item(instance.name)
                status = TableCell(value="down (no metrics)", status="warning")

            errors_cell = TableCell()
            total = errors.reduce(nan_sum)
            if not math.isnan(total):
                errors_check.inc(int(total))
                errors_cell.value = f"{total:.0f}"

            result = self._replication.check(
                instance.name, primary, pg.wal_replay_lsn, instance.role, replication_check,
            )

            name_cell = TableCell(value=instance.name)
            if pg.version:
                name_cell.tags.append(f"version: {pg.version}")

            report.table(
                "Instance", "Role", "Status", "Queries", "Latency", "Errors", "Replication lag",
            ).add_row(
                name_cell,
                role_cell,
                status,
                TableCell(value=format_float(qps.last()), unit="/s"),
                TableCell(value=format_float(pg.avg.last() * 1000), unit="ms"),
                errors_cell,
                replication_lag_cell(result),
                row_id=instance.name,
            )

        logger.debug("postgres audit: %d instances", len(pg_instances))
        return report.build()

    # ── Private ───────────────────────────────────────────────────────────────

    def _connection_charts(self, report: ReportBuilder, instance: Instance, states: ConnectionStates) -> None:
        chart = report.chart("Postgres connections <selector>", instance.name, stacked=True)
        chart.set_threshold("max_connections", states.max_connections)
        for state, ts in states.buckets.items():
            chart.add_series(state, ts, STATE_COLORS.get(state))

        report.chart("Idle transactions on <selector>", instance.name, stacked=True).add_many(
            states.idle_in_transaction
        )
        report.chart("Locked queries on <selector>", instance.name, stacked=True).add_many(states.locked)

    def _locks(self, report: ReportBuilder, instance: Instance) -> None:
        report.chart(
            "Blocking queries by the number of awaiting queries on <selector>", instance.name, stacked=True,
        ).add_many(top(instance.postgres.awaiting_by_locking_query, self._top_k))

    def _queries(self, report: ReportBuilder, instance: Instance) -> None:
        pg = instance.postgres
        report.chart(
            "Queries by total time on <selector>, query seconds/second", instance.name, stacked=True, sorted=True,
        ).add_many(top(pg.total_time_by_query, self._top_k))
        report.chart(
            "Queries by I/O time on <selector>, query seconds/second", instance.name, stacked=True, sorted=True,
        ).add_many(top(pg.io_time_by_query, self._top_k))


def sum_queries(by_db: dict[str, TimeSeries]) -> TimeSeries:
    """Total queries per second across databases."""
    return Aggregate(nan_sum).add(*by_db.values()).get()


def errors_by_pattern(instance: Instance) -> dict[str, TimeSeries]:
    """Error and critical log patterns keyed by their sample message."""
    return {
        p.sample: p.sum
        for p in instance.log_patterns
        if p.level in (LOG_LEVEL_ERROR, LOG_LEVEL_CRITICAL)
    }


def replication_lag_cell(result: ReplicationLagResult | None) -> TableCell:
    """Render a lag as "<bytes> <unit>" with a duration tag.

    The tag is prefixed with ">" when the estimate is only a lower bound
    (always shown, even ">0s"), and omitted when the replica is fully
    caught up.
    """
    cell = TableCell()
    if result is None:
        return cell
    cell.value, cell.unit = format_bytes(result.byte_lag)
    if result.lower_bound_only:
        cell.tags.append(f">{format_duration(result.time_lag)}")
    elif result.time_lag > 0:
        cell.tags.append(format_duration(result.time_lag))
    return cell
