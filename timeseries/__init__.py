"""Time-series primitives: the series type, NaN-aware aggregation, top-K."""

from timeseries.aggregate import Aggregate, aggregate2, nan_max, nan_sum
from timeseries.series import EMPTY, Duration, Time, TimeSeries
from timeseries.top import top

__all__ = [
    "TimeSeries",
    "Time",
    "Duration",
    "EMPTY",
    "Aggregate",
    "aggregate2",
    "nan_sum",
    "nan_max",
    "top",
]
