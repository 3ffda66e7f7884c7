"""Top-K selection over a named set of series."""

import math
from collections.abc import Mapping

from timeseries.aggregate import Aggregate, nan_sum
from timeseries.series import Combinator, TimeSeries


def top(
    series_set: Mapping[str, TimeSeries],
    k: int,
    reduce: Combinator = nan_sum,
    other: str | None = None,
) -> list[tuple[str, TimeSeries]]:
    """Return the k series with the largest reduced value.

    Each series is reduced to a scalar with `reduce` (a series with no data
    scores zero). Results are sorted by score descending; equal scores are
    ordered by label so the output is deterministic regardless of dict order.

    Args:
        series_set: Label → series. Labels are unique by construction.
        k: Maximum number of entries to return.
        reduce: Binary combinator used to fold each series into a score.
        other: If set and some entries were discarded, their NanSum is
            appended under this label so stacked charts keep their total.
            Selection never depends on this fold.

    Returns:
        List of (label, series) pairs, at most k long (k + 1 with `other`).
    """
    scored: list[tuple[float, str, TimeSeries]] = []
    for label, ts in series_set.items():
        score = ts.reduce(reduce)
        if math.isnan(score):
            score = 0.0
        scored.append((score, label, ts))

    scored.sort(key=lambda e: (-e[0], e[1]))

    k = max(k, 0)
    selected = [(label, ts) for _, label, ts in scored[:k]]

    if other is not None and len(scored) > k:
        rest = Aggregate(nan_sum).add(*(ts for _, _, ts in scored[k:])).get()
        if not rest.is_empty():
            selected.append((other, rest))

    return selected
