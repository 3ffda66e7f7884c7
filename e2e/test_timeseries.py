"""Time-series primitive tests.

Covers TimeSeries, Aggregate (nan_sum / nan_max), aggregate2 and top().
All deterministic, no I/O.

TestTimeSeries  — immutability, last / last_not_null / final, reduce, iter
TestAggregate   — NaN semantics of both combinators, finalize, grid guard
TestAggregate2  — pointwise combination, missing sides
TestTop         — ordering, ties, k larger than the set, "other" fold
"""

import math

import numpy as np
import pytest

from timeseries.aggregate import Aggregate, aggregate2, nan_max, nan_sum
from timeseries.series import TimeSeries
from timeseries.top import top

NaN = float("nan")
T0 = 1_700_000_000
STEP = 60


# ── Helpers ───────────────────────────────────────────────────────────────────

def ts(*values) -> TimeSeries:
    return TimeSeries(T0, STEP, list(values))

def as_list(series: TimeSeries) -> list:
    return series.to_list()

def labels(result) -> list[str]:
    return [label for label, _ in result]


# ── TimeSeries ────────────────────────────────────────────────────────────────

class TestTimeSeries:
    def test_none_becomes_nan(self):
        s = ts(1, None, 3)
        assert math.isnan(s.values[1])
        assert as_list(s) == [1.0, None, 3.0]

    def test_values_are_read_only(self):
        s = ts(1, 2, 3)
        with pytest.raises(ValueError):
            s.values[0] = 10

    def test_constructor_copies_input(self):
        source = np.array([1.0, 2.0])
        s = TimeSeries(T0, STEP, source)
        source[0] = 99.0
        assert s.values[0] == 1.0

    def test_non_positive_step_rejected(self):
        with pytest.raises(ValueError):
            TimeSeries(T0, 0, [1])

    def test_to_ts_covers_half_open_range(self):
        assert ts(1, 2, 3).to_ts == T0 + 3 * STEP

    def test_last_skips_trailing_nan(self):
        s = ts(1, 2, NaN, NaN)
        assert s.last() == 2.0
        assert s.last_not_null() == (T0 + STEP, 2.0)

    def test_last_of_all_nan_is_nan(self):
        t, v = ts(NaN, NaN).last_not_null()
        assert t == 0
        assert math.isnan(v)

    def test_is_empty_means_no_defined_sample(self):
        assert ts().is_empty()
        assert ts(NaN, NaN).is_empty()
        assert not ts(NaN, 0).is_empty()

    def test_reduce_ignores_nan(self):
        assert ts(1, NaN, 2).reduce(nan_sum) == pytest.approx(3.0)
        assert ts(1, NaN, 5, 2).reduce(nan_max) == pytest.approx(5.0)

    def test_reduce_of_no_data_is_nan_not_zero(self):
        assert math.isnan(ts(NaN, NaN).reduce(nan_sum))

    def test_iter_yields_times_in_order(self):
        assert [t for t, _ in ts(1, NaN, 3).iter()] == [T0, T0 + STEP, T0 + 2 * STEP]

    def test_final_does_not_repeat_stale_values(self):
        assert ts(1, 2, 3).final() == 3.0
        assert math.isnan(ts(1, 2, NaN).final())
        assert math.isnan(ts().final())


# ── Aggregate ─────────────────────────────────────────────────────────────────

class TestAggregate:
    def test_empty_aggregate(self):
        agg = Aggregate(nan_sum)
        assert agg.is_empty()
        assert len(agg.get()) == 0

    def test_nan_sum_adds_defined_inputs(self):
        result = Aggregate(nan_sum).add(ts(1, 2, NaN), ts(10, NaN, 5)).get()
        assert as_list(result) == [11.0, 2.0, 5.0]

    def test_nan_sum_is_nan_only_where_every_input_is_nan(self):
        result = Aggregate(nan_sum).add(ts(NaN, 0), ts(NaN, NaN), ts(NaN, 0)).get()
        assert math.isnan(result.values[0])
        # zero is data: the sum of two observed zeros is zero, not "no data"
        assert result.values[1] == 0.0

    def test_nan_max_takes_largest_defined_input(self):
        result = Aggregate(nan_max).add(ts(1, NaN, NaN), ts(3, 2, NaN), ts(2, NaN, NaN)).get()
        assert result.values[0] == 3.0
        assert result.values[1] == 2.0
        assert math.isnan(result.values[2])

    def test_add_is_chainable_and_skips_missing_inputs(self):
        agg = Aggregate(nan_sum).add(None).add(ts(1, 1)).add(TimeSeries(T0, STEP, []))
        assert as_list(agg.get()) == [1.0, 1.0]

    def test_single_input_passes_through(self):
        assert as_list(Aggregate(nan_sum).add(ts(1, NaN)).get()) == [1.0, None]

    def test_inputs_are_not_mutated(self):
        a, b = ts(1, 2), ts(3, 4)
        Aggregate(nan_sum).add(a, b).get()
        assert as_list(a) == [1.0, 2.0]
        assert as_list(b) == [3.0, 4.0]

    def test_get_is_cached(self):
        agg = Aggregate(nan_sum).add(ts(1))
        assert agg.get() is agg.get()

    def test_add_after_get_rejected(self):
        agg = Aggregate(nan_sum).add(ts(1))
        agg.get()
        with pytest.raises(ValueError):
            agg.add(ts(2))

    def test_mismatched_grid_is_left_out(self):
        shifted = TimeSeries(T0 + STEP, STEP, [100, 100])
        result = Aggregate(nan_sum).add(ts(1, 2), shifted).get()
        assert as_list(result) == [1.0, 2.0]


# ── aggregate2 ────────────────────────────────────────────────────────────────

class TestAggregate2:
    def test_pointwise_function(self):
        result = aggregate2(ts(10, 20, NaN), ts(3, 25, 1), lambda a, b: np.maximum(a - b, 0))
        assert result.to_list() == [7.0, 0.0, None]

    def test_missing_side_gives_empty_series(self):
        assert len(aggregate2(ts(1), None, np.subtract)) == 0
        assert len(aggregate2(None, ts(1), np.subtract)) == 0

    def test_mismatched_grid_gives_empty_series(self):
        assert len(aggregate2(ts(1, 2), ts(1), np.subtract)) == 0


# ── top ───────────────────────────────────────────────────────────────────────

class TestTop:
    def test_returns_k_largest_descending(self):
        series = {"q1": ts(50), "q2": ts(80), "q3": ts(10)}
        assert labels(top(series, 2)) == ["q2", "q1"]

    def test_ties_broken_by_label(self):
        series = {"b": ts(5), "c": ts(5), "a": ts(5), "z": ts(9)}
        assert labels(top(series, 3)) == ["z", "a", "b"]

    def test_fewer_entries_than_k_returns_all_in_order(self):
        series = {"x": ts(1, 1), "y": ts(2, 2)}
        assert labels(top(series, 5)) == ["y", "x"]

    def test_nan_counts_as_zero(self):
        series = {"no-data": ts(NaN, NaN), "neg": ts(-1), "pos": ts(1)}
        assert labels(top(series, 3)) == ["pos", "no-data", "neg"]

    def test_result_is_subset_of_input(self):
        series = {f"q{i}": ts(i, i) for i in range(10)}
        result = top(series, 4)
        assert len(result) == 4
        assert set(labels(result)) <= set(series)
        # the selected series are the input objects, untouched
        assert all(s is series[label] for label, s in result)

    def test_zero_k_selects_nothing(self):
        assert top({"a": ts(1)}, 0) == []

    def test_other_folds_discarded_entries(self):
        series = {"a": ts(5, 5), "b": ts(1, NaN), "c": ts(2, 3)}
        result = top(series, 1, other="other")
        assert labels(result) == ["a", "other"]
        assert result[1][1].to_list() == [3.0, 3.0]

    def test_other_absent_when_nothing_discarded(self):
        assert labels(top({"a": ts(1)}, 3, other="other")) == ["a"]

    def test_selection_reduces_with_sum_over_whole_range(self):
        # "spiky" has the highest single point, "steady" the larger total
        series = {"spiky": ts(0, 0, 10), "steady": ts(4, 4, 4)}
        assert labels(top(series, 1)) == ["steady"]
        assert labels(top(series, 1, reduce=nan_max)) == ["spiky"]
