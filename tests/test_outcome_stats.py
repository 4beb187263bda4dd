import numpy as np
import pytest

from portfolio_forecast.metrics.outcome_stats import (
    ConfidenceBound,
    StatisticalAnalyzer,
    StatisticalSummary,
    percentile_index,
)
from portfolio_forecast.simulation.errors import ComputationError
from portfolio_forecast.simulation.paths import SimulationResultSet
from tests.conftest import make_result_set


def test_compute_returns_summary(random_result_set):
    summary = StatisticalAnalyzer.compute(random_result_set)
    assert isinstance(summary, StatisticalSummary)
    assert summary.total_simulations == 500


def test_nearest_rank_convention():
    result_set = make_result_set([float(v) for v in range(10, 0, -1)])
    stats = StatisticalAnalyzer.compute(result_set).final_value
    assert stats.percentiles == {5: 1.0, 25: 3.0, 50: 6.0, 75: 8.0, 95: 10.0}
    assert stats.median == 6.0
    assert stats.median == stats.percentiles[50]


def test_percentile_index_clamped():
    assert percentile_index(99, 10) == 9
    assert percentile_index(5, 1) == 0
    assert percentile_index(50, 4) == 2


def test_single_outcome():
    stats = StatisticalAnalyzer.compute(make_result_set([250.0])).final_value
    assert stats.mean == stats.median == 250.0
    assert stats.std == 0.0
    assert set(stats.percentiles.values()) == {250.0}


def test_population_std():
    stats = StatisticalAnalyzer.compute(make_result_set([2, 4, 4, 4, 5, 5, 7, 9])).final_value
    assert stats.mean == pytest.approx(5.0)
    assert stats.std == pytest.approx(2.0)


def test_percentiles_monotonic(random_result_set):
    summary = StatisticalAnalyzer.compute(random_result_set)
    for dist in (summary.final_value, summary.total_return):
        values = list(dist.percentiles.values())
        assert values == sorted(values)
        assert dist.min <= values[0] and values[-1] <= dist.max


def test_success_rate_counts_strictly_positive():
    # initial 100: returns -0.5, 0, 0, +0.5
    summary = StatisticalAnalyzer.compute(make_result_set([50.0, 100.0, 100.0, 150.0]))
    assert summary.success_count == 1
    assert summary.success_rate == 0.25


def test_success_rate_bounded(random_result_set):
    summary = StatisticalAnalyzer.compute(random_result_set)
    assert 0.0 <= summary.success_rate <= 1.0
    assert summary.success_rate == pytest.approx(
        np.mean(random_result_set.total_returns() > 0)
    )


def test_total_return_stats():
    summary = StatisticalAnalyzer.compute(make_result_set([110.0, 130.0, 90.0]))
    assert summary.mean_return == pytest.approx(0.1)
    assert summary.median_return == pytest.approx(0.1)
    assert summary.median_final_value == 110.0


def test_custom_ranks(random_result_set):
    summary = StatisticalAnalyzer.compute(random_result_set, percentiles=(90, 10))
    assert list(summary.final_value.percentiles) == [10, 90]


def test_non_finite_raises():
    with pytest.raises(ComputationError, match="not finite"):
        StatisticalAnalyzer.compute(make_result_set([100.0, float("inf")]))


def test_empty_raises():
    empty = SimulationResultSet(paths=(), initial_balance=0.0, time_horizon_years=1)
    with pytest.raises(ComputationError):
        StatisticalAnalyzer.compute(empty)


def test_confidence_intervals(random_result_set):
    summary = StatisticalAnalyzer.compute(random_result_set)
    intervals = StatisticalAnalyzer.confidence_intervals(summary)
    assert list(intervals) == [5, 25, 50, 75, 95]
    assert isinstance(intervals[50], ConfidenceBound)
    assert intervals[50].final_value == summary.final_value.median
    assert intervals[50].total_return == summary.total_return.percentiles[50]


def test_yearly_percentiles(random_result_set):
    bands = StatisticalAnalyzer.yearly_percentiles(random_result_set)
    assert bands.index.name == "Year"
    assert list(bands.columns) == ["P5", "P25", "P50", "P75", "P95"]
    assert bands.shape == (2, 5)
    np.testing.assert_allclose(bands.loc[0].values, 100.0)
    assert np.all(np.diff(bands.values, axis=1) >= 0)
    summary = StatisticalAnalyzer.compute(random_result_set)
    assert bands.loc[1, "P50"] == summary.final_value.median
