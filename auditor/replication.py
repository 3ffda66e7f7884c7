"""Replication lag estimation.

A replica's lag is naturally measured in bytes: how far its replayed WAL
position trails the primary's current one. Bytes are not comparable across
workloads, though — 100 MB is seconds behind on a busy primary and hours
behind on a quiet one. Operators need the lag as elapsed time.

The primary's position history answers that. If the replica has replayed up
to position R, it is as far behind as the time since the primary was at R.
So the estimator walks the primary's history back from the latest sample
until it finds the most recent moment the primary's position was at or
below R.

The position counter only grows, except when a failover or a full cluster
redeploy resets it to a lower value. A search must never cross such a
reset: positions on the far side belong to a different epoch and would
produce a meaningless (or negative) lag. If the current epoch, or the
retained window, does not reach back far enough, the estimate is the span
that is covered and is flagged as a lower bound.
"""

import logging
import math
from dataclasses import dataclass

import numpy as np

from auditor.instance import Instance
from checks.check import Check
from schemas.instance import ClusterRole
from timeseries.aggregate import Aggregate, aggregate2, nan_max
from timeseries.series import Duration, Time, TimeSeries

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReplicationLagResult:
    """Lag of one replica behind the primary.

    Attributes:
        byte_lag: Replayed-position lag in bytes. Never negative.
        time_lag: Estimated lag in seconds.
        lower_bound_only: True when the retained history did not reach back
            far enough; the real lag is at least time_lag.
    """

    byte_lag: float
    time_lag: Duration
    lower_bound_only: bool


def primary_position(instances: list[Instance]) -> TimeSeries:
    """Current WAL position of the cluster: the max over every instance.

    Only the primary advances its current position, so the max is the
    primary's position even across a switchover within the window.
    """
    agg = Aggregate(nan_max)
    for instance in instances:
        if instance.postgres is not None:
            agg.add(instance.postgres.wal_current_lsn)
    return agg.get()


def replication_lag_series(primary: TimeSeries, replay: TimeSeries | None) -> TimeSeries:
    """Pointwise byte lag, floored at zero. Used for the lag chart."""
    return aggregate2(primary, replay, lambda p, r: np.maximum(p - r, 0))


class ReplicationLagEstimator:
    """Converts a replica's byte lag into an estimated time lag."""

    def estimate(
        self,
        primary: TimeSeries,
        replay: TimeSeries | None,
        role: ClusterRole,
    ) -> ReplicationLagResult | None:
        """Estimate the lag of a replica.

        Args:
            primary: Primary position history (see primary_position()).
            replay: The replica's replayed-position series.
            role: Role of the instance. Only replicas have a lag.

        Returns:
            ReplicationLagResult, or None when there is nothing to estimate:
            the instance is not a replica, the primary history is empty, or
            the replica has no replayed position at the end of the window.
        """
        if role is not ClusterRole.REPLICA or primary.is_empty() or replay is None:
            return None

        t_now, v_now = primary.last_not_null()
        # a replica that stopped reporting has no current position
        diff = v_now - replay.final()
        if math.isnan(diff):
            return None
        # transient skew between scrapes can put the replica "ahead"
        byte_lag = max(0.0, diff)

        t_past, t_oldest = self._find_position_time(primary, t_now, v_now, v_now - byte_lag)
        if t_past is None:
            return ReplicationLagResult(byte_lag=byte_lag, time_lag=t_now - t_oldest, lower_bound_only=True)
        return ReplicationLagResult(byte_lag=byte_lag, time_lag=t_now - t_past, lower_bound_only=False)

    def check(
        self,
        instance_name: str,
        primary: TimeSeries,
        replay: TimeSeries | None,
        role: ClusterRole,
        check: Check,
    ) -> ReplicationLagResult | None:
        """Estimate the lag and record the instance on check if it exceeds the threshold (seconds)."""
        result = self.estimate(primary, replay, role)
        if result is not None and result.time_lag > check.threshold:
            logger.debug(
                "%s: replication lag %ds (%s bytes)%s",
                instance_name, result.time_lag, result.byte_lag,
                " or more" if result.lower_bound_only else "",
            )
            check.add_item(instance_name)
        return result

    # ── Private ───────────────────────────────────────────────────────────────

    def _find_position_time(
        self,
        primary: TimeSeries,
        t_now: Time,
        v_now: float,
        target: float,
    ) -> tuple[Time | None, Time]:
        """Find the most recent time the primary's position was <= target.

        Walks the history newest → oldest, starting at t_now and staying in
        the current epoch: the walk stops at the first sample that is higher
        than the one after it, since only a counter reset can lower the
        position. Samples with a position above v_now are on the far side of
        a reset by definition and are never chosen. NaN samples are ignored.

        Returns:
            (t_past, t_oldest): t_past is None when no sample in the epoch
            qualifies; t_oldest is the oldest defined sample of the epoch.
        """
        history = [(t, v) for t, v in primary.iter() if t <= t_now and not math.isnan(v)]
        newer = v_now
        t_oldest = t_now
        for t, v in reversed(history):
            if v > newer:
                break
            if v <= target:
                return t, t_oldest
            newer = v
            t_oldest = t
        return None, t_oldest
