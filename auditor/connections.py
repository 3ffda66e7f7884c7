"""Connection-state aggregation.

Postgres reports connections at a fine granularity — one series per
(db, user, state, query, wait event). Operators need two views of that:

- a coarse one, for the saturation check and the overview chart: every
  connection lands in exactly one canonical state bucket, plus a synthetic
  "reserved" bucket for the superuser slots the server holds back;
- a fine one, for drill-down: the top idle-in-transaction and lock-waiting
  connections, keyed by their full identity.

Same input always produces the same output.
"""

import logging
import math
from dataclasses import dataclass
from collections.abc import Mapping

from checks.check import Check
from timeseries.aggregate import Aggregate, nan_sum
from timeseries.series import TimeSeries
from timeseries.top import top

logger = logging.getLogger(__name__)

ACTIVE_STATE = "active"
ACTIVE_LOCKED_STATE = "active (locked)"
IDLE_IN_TRANSACTION_STATE = "idle in transaction"
RESERVED_STATE = "reserved"
LOCK_WAIT_EVENT = "Lock"

MAX_CONNECTIONS_SETTING = "max_connections"
RESERVED_SETTINGS = (
    "superuser_reserved_connections",
    "rds.rds_superuser_reserved_connections",
)

STATE_COLORS = {
    "idle": "grey-lighten2",
    ACTIVE_LOCKED_STATE: "red-lighten2",
    ACTIVE_STATE: "green",
    IDLE_IN_TRANSACTION_STATE: "lime",
    RESERVED_STATE: "blue-lighten3",
}


@dataclass(frozen=True)
class ConnectionKey:
    """Identity of one group of client connections."""

    db: str
    user: str
    state: str
    query: str = ""
    wait_event_type: str = ""

    def __str__(self) -> str:
        if self.query:
            return f"{self.user}@{self.db}: {self.query}"
        return f"{self.user}@{self.db}"

    def is_lock_waiting(self) -> bool:
        return self.state == ACTIVE_STATE and self.wait_event_type == LOCK_WAIT_EVENT

    def bucket(self) -> str:
        """Canonical state bucket this connection is counted in."""
        if self.is_lock_waiting():
            return ACTIVE_LOCKED_STATE
        return self.state


@dataclass
class ConnectionStates:
    """Result of aggregating one instance's connections.

    Attributes:
        buckets: Canonical state → summed series, "reserved" always last.
        max_connections: The max_connections setting series, if reported.
        total: Connections in use at the latest sample, reserved included.
            NaN when no bucket has data.
        saturation: total / max_connections * 100, or None when either side
            is missing or zero.
        idle_in_transaction: Top idle-in-transaction connections by identity.
        locked: Top lock-waiting connections by identity.
    """

    buckets: dict[str, TimeSeries]
    max_connections: TimeSeries | None
    total: float
    saturation: float | None
    idle_in_transaction: list[tuple[str, TimeSeries]]
    locked: list[tuple[str, TimeSeries]]


class ConnectionStateAggregator:
    """Buckets connections into canonical states and checks saturation."""

    TOP_K = 5  # entries in each drill-down breakdown

    def __init__(self, top_k: int = TOP_K) -> None:
        self.top_k = top_k

    def aggregate(
        self,
        instance_name: str,
        connections: Mapping[ConnectionKey, TimeSeries],
        settings: Mapping[str, TimeSeries],
        check: Check | None = None,
    ) -> ConnectionStates:
        """Aggregate connections and record the instance on check if saturated.

        Args:
            instance_name: Name recorded on the check.
            connections: Per-connection-group series.
            settings: Server settings series; max_connections and the
                reserved-connection settings are read from here.
            check: Connections check. Skipped when None.

        Returns:
            ConnectionStates with the coarse buckets and fine breakdowns.
        """
        by_state: dict[str, Aggregate] = {}
        for key, ts in connections.items():
            by_state.setdefault(key.bucket(), Aggregate(nan_sum)).add(ts)

        # Every reserved setting that is present is counted; providers that
        # expose more than one keep them disjoint.
        reserved = Aggregate(nan_sum)
        for setting in RESERVED_SETTINGS:
            reserved.add(settings.get(setting))
        by_state[RESERVED_STATE] = reserved

        buckets = {state: agg.get() for state, agg in by_state.items()}

        # a bucket with no sample at the latest instant is gone, not stale
        total = math.nan
        for ts in buckets.values():
            current = ts.final()
            if not math.isnan(current):
                total = current if math.isnan(total) else total + current

        max_connections = settings.get(MAX_CONNECTIONS_SETTING)
        saturation = self._saturation(total, max_connections)
        if saturation is not None and check is not None and saturation > check.threshold:
            logger.debug("%s: connections at %.1f%% of max_connections", instance_name, saturation)
            check.add_item(instance_name)

        idle_in_transaction: dict[str, TimeSeries] = {}
        locked: dict[str, TimeSeries] = {}
        for key, ts in connections.items():
            if key.state == IDLE_IN_TRANSACTION_STATE:
                idle_in_transaction[str(key)] = ts
            elif key.is_lock_waiting():
                locked[str(key)] = ts

        return ConnectionStates(
            buckets=buckets,
            max_connections=max_connections,
            total=total,
            saturation=saturation,
            idle_in_transaction=top(idle_in_transaction, self.top_k),
            locked=top(locked, self.top_k),
        )

    # ── Private ───────────────────────────────────────────────────────────────

    def _saturation(self, total: float, max_connections: TimeSeries | None) -> float | None:
        if max_connections is None:
            return None
        limit = max_connections.last()
        # NaN compares false, so missing data falls through here too
        if not limit > 0 or not total > 0:
            return None
        return total / limit * 100
