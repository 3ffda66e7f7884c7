"""NaN-aware series combination.

An Aggregate folds any number of input series into one, pointwise, with a
binary combinator. Two combinators cover every audit:

    nan_sum  — sum of the defined inputs; NaN only where no input is defined
    nan_max  — max of the defined inputs; NaN only where no input is defined

Inputs are read, never written. Missing inputs (None, or a series with no
samples) are skipped so callers can add optional metrics unconditionally.
"""

import logging
from collections.abc import Callable

import numpy as np

from timeseries.series import EMPTY, Combinator, TimeSeries

logger = logging.getLogger(__name__)


def nan_sum(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Add a and b treating NaN as absent; NaN only where both are NaN."""
    return np.where(np.isnan(a), b, np.where(np.isnan(b), a, a + b))


def nan_max(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Larger of a and b ignoring NaN; NaN only where both are NaN."""
    return np.fmax(a, b)


class Aggregate:
    """Accumulates input series and combines them with one combinator.

    Usage:
        total = Aggregate(nan_sum).add(errors, critical).get()

    get() is terminal: the result is computed once and cached, and adding
    further inputs after it raises ValueError.
    """

    def __init__(self, fn: Combinator) -> None:
        self._fn = fn
        self._inputs: list[TimeSeries] = []
        self._result: TimeSeries | None = None

    def add(self, *series: TimeSeries | None) -> "Aggregate":
        """Append one or more inputs. Returns self so calls can be chained."""
        if self._result is not None:
            raise ValueError("Aggregate is already finalized; add() after get() is not supported.")
        for ts in series:
            if ts is None or len(ts) == 0:
                continue
            if self._inputs and not ts.same_grid(self._inputs[0]):
                logger.warning(
                    "Aggregate: skipping %r, grid differs from %r", ts, self._inputs[0],
                )
                continue
            self._inputs.append(ts)
        return self

    def is_empty(self) -> bool:
        return not self._inputs

    def get(self) -> TimeSeries:
        """Return the combined series (empty series when nothing was added)."""
        if self._result is not None:
            return self._result
        if not self._inputs:
            self._result = EMPTY
            return self._result

        first = self._inputs[0]
        acc = first.values
        for ts in self._inputs[1:]:
            acc = self._fn(acc, ts.values)
        self._result = TimeSeries(first.from_ts, first.step, acc)
        return self._result


def aggregate2(
    a: TimeSeries | None,
    b: TimeSeries | None,
    fn: Callable[[np.ndarray, np.ndarray], np.ndarray],
) -> TimeSeries:
    """Combine two series pointwise with an arbitrary vectorized function.

    Returns the empty series if either side is missing or the grids differ.
    """
    if a is None or b is None or len(a) == 0 or len(b) == 0:
        return EMPTY
    if not a.same_grid(b):
        logger.warning("aggregate2: grids differ (%r vs %r)", a, b)
        return EMPTY
    return TimeSeries(a.from_ts, a.step, fn(a.values, b.values))
