"""Threshold checks.

A Check is a recording sink for one catalog entry during one audit pass.
The audit compares its measurements against `check.threshold` and records
what violated; the Check itself never evaluates anything on the way in.

What gets recorded depends on the check's mode, fixed by the catalog:

    ITEM_SET    add_item(name)   — violating entities, deduplicated, in order
    COUNTER     inc(delta)       — running total (e.g. error count)
    LAST_VALUE  set_value(v)     — last write wins (e.g. seconds stuck)

Using an operation that does not belong to the check's mode is a
programming error and raises ValueError.
"""

import math
import threading
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict


class CheckMode(str, Enum):
    ITEM_SET = "item_set"
    COUNTER = "counter"
    LAST_VALUE = "last_value"


class CheckConfig(BaseModel):
    """Static definition of a check, as held by the CheckCatalog.

    Attributes:
        id: Catalog key (e.g. "postgres_latency").
        title: Short human-readable name shown in the report.
        threshold: Static limit the audit compares against.
        unit: Unit of the threshold ("seconds", "percent", ...). Display only.
        mode: Which recording operation the check accepts.
        message: Template rendered when the check fires. May reference
            {items}, {count}, {value} and {threshold}.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    threshold: float
    unit: str = ""
    mode: CheckMode = CheckMode.ITEM_SET
    message: str = ""


class CheckResult(BaseModel):
    """Final state of a check after an audit pass. Handed to the report."""

    id: str
    title: str
    threshold: float
    unit: str
    status: Literal["ok", "warning"]
    message: str = ""
    items: list[str] = []
    count: float | None = None
    value: float | None = None


class Check:
    """Mutable sink for one check during one audit pass.

    Recording operations are guarded by a lock so a single Check can be
    shared by a loop that visits instances concurrently.
    """

    def __init__(self, config: CheckConfig) -> None:
        self.config = config
        self._lock = threading.Lock()
        self._items: dict[str, None] = {}
        self._count = 0.0
        self._value = math.nan

    @property
    def id(self) -> str:
        return self.config.id

    @property
    def threshold(self) -> float:
        return self.config.threshold

    @property
    def mode(self) -> CheckMode:
        return self.config.mode

    # ── Recording ─────────────────────────────────────────────────────────────

    def add_item(self, name: str) -> None:
        """Record a violating entity. Recording the same name twice is a no-op."""
        self._require(CheckMode.ITEM_SET, "add_item")
        with self._lock:
            self._items.setdefault(name, None)

    def inc(self, delta: float) -> None:
        """Add delta to the running counter."""
        self._require(CheckMode.COUNTER, "inc")
        with self._lock:
            self._count += delta

    def set_value(self, value: float) -> None:
        """Overwrite the recorded value."""
        self._require(CheckMode.LAST_VALUE, "set_value")
        with self._lock:
            self._value = value

    # ── Reading ───────────────────────────────────────────────────────────────

    @property
    def items(self) -> list[str]:
        return list(self._items)

    @property
    def count(self) -> float:
        return self._count

    @property
    def value(self) -> float:
        return self._value

    def fired(self) -> bool:
        """True if what was recorded amounts to a violation."""
        if self.mode is CheckMode.ITEM_SET:
            return bool(self._items)
        if self.mode is CheckMode.COUNTER:
            return self._count > self.threshold
        return not math.isnan(self._value) and self._value > self.threshold

    def result(self) -> CheckResult:
        """Snapshot the check into a serializable CheckResult."""
        fired = self.fired()
        message = ""
        if fired and self.config.message:
            message = self.config.message.format(
                items=len(self._items),
                count=f"{self._count:.0f}",
                value=f"{self._value:.0f}",
                threshold=f"{self.threshold:g}",
            )
        return CheckResult(
            id=self.id,
            title=self.config.title,
            threshold=self.threshold,
            unit=self.config.unit,
            status="warning" if fired else "ok",
            message=message,
            items=self.items,
            count=self._count if self.mode is CheckMode.COUNTER else None,
            value=(
                self._value
                if self.mode is CheckMode.LAST_VALUE and not math.isnan(self._value)
                else None
            ),
        )

    # ── Private ───────────────────────────────────────────────────────────────

    def _require(self, mode: CheckMode, op: str) -> None:
        if self.mode is not mode:
            raise ValueError(
                f"Check '{self.id}' is a {self.mode.value} check; "
                f"{op}() is only valid for {mode.value} checks."
            )
