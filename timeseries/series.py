"""Fixed-step time series.

A TimeSeries is the unit every audit works with: an immutable run of float
samples on a regular grid that starts at `from_ts` and advances by `step`
seconds per sample. NaN marks "no data" and is never conflated with zero —
a missing scrape and an observed zero mean different things to an operator.

Series are produced by the storage layer (or loaded from an audit payload)
and are read-only from then on. The backing numpy array is flagged
non-writeable so that no audit can mutate an input it shares with another.
"""

import functools
import math
from collections.abc import Callable, Iterator, Sequence

import numpy as np

Time = int      # unix seconds
Duration = int  # seconds

# A binary NaN-aware combinator. Works elementwise on arrays and on scalars.
Combinator = Callable[[np.ndarray, np.ndarray], np.ndarray]


class TimeSeries:
    """Immutable sequence of samples over [from_ts, to_ts) with a fixed step.

    Attributes:
        from_ts: Time of the first sample (unix seconds).
        step: Sampling step in seconds. Shared by every series that is
            combined with this one.
    """

    __slots__ = ("_from", "_step", "_values")

    def __init__(self, from_ts: Time, step: Duration, values: Sequence[float | None] | np.ndarray) -> None:
        if step <= 0:
            raise ValueError(f"step must be positive, got {step}")
        data = np.array(values, dtype=float)  # copies; None becomes NaN
        data.flags.writeable = False
        self._from = from_ts
        self._step = step
        self._values = data

    @property
    def from_ts(self) -> Time:
        return self._from

    @property
    def step(self) -> Duration:
        return self._step

    @property
    def to_ts(self) -> Time:
        return self._from + len(self._values) * self._step

    @property
    def values(self) -> np.ndarray:
        """Read-only view of the samples."""
        return self._values

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"TimeSeries(from_ts={self._from}, step={self._step}, len={len(self)})"

    def same_grid(self, other: "TimeSeries") -> bool:
        """True if both series cover the same [from, to) range with the same step."""
        return (
            self._from == other._from
            and self._step == other._step
            and len(self._values) == len(other._values)
        )

    def is_empty(self) -> bool:
        """True if the series holds no defined (non-NaN) sample at all."""
        return not np.any(~np.isnan(self._values))

    def last_not_null(self) -> tuple[Time, float]:
        """Return (time, value) of the latest defined sample, or (0, NaN)."""
        defined = np.flatnonzero(~np.isnan(self._values))
        if defined.size == 0:
            return 0, math.nan
        i = int(defined[-1])
        return self._from + i * self._step, float(self._values[i])

    def last(self) -> float:
        """Return the latest defined value, NaN if there is none."""
        return self.last_not_null()[1]

    def final(self) -> float:
        """Return the sample at the end of the window, NaN if it is missing.

        Unlike last(), a series whose source went away reads as "no data"
        here instead of repeating its stale value.
        """
        if len(self._values) == 0:
            return math.nan
        return float(self._values[-1])

    def iter(self) -> Iterator[tuple[Time, float]]:
        """Yield (time, value) pairs oldest → newest, NaN samples included."""
        for i, v in enumerate(self._values):
            yield self._from + i * self._step, float(v)

    def reduce(self, fn: Combinator) -> float:
        """Fold the defined samples with a binary combinator.

        Returns NaN when the series has no defined sample, so "no data"
        stays distinguishable from a reduction that came out as zero.
        """
        defined = self._values[~np.isnan(self._values)]
        if defined.size == 0:
            return math.nan
        return float(functools.reduce(fn, defined))

    def to_list(self) -> list[float | None]:
        """Return the samples as plain floats with NaN mapped to None (JSON-safe)."""
        return [None if math.isnan(v) else float(v) for v in self._values]


EMPTY = TimeSeries(0, 1, [])
