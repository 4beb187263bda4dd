"""
Outcome statistics over a complete set of simulated paths.
Pure numpy aggregation, with pandas for the per-year percentile bands.

Percentile convention (nearest rank, floor index):
    sorted ascending, value = sorted[min(floor(rank / 100 * N), N - 1)]
The median uses the same rule, so median == P50 for every result set.
"""

import math
from dataclasses import dataclass, field

import numpy as np
import pandas as pd

from portfolio_forecast.simulation.errors import ComputationError
from portfolio_forecast.simulation.paths import SimulationResultSet

DEFAULT_PERCENTILES = (5, 25, 50, 75, 95)


@dataclass(frozen=True)
class DistributionStats:
    """Descriptive statistics for one outcome variable."""
    mean: float = 0.0
    median: float = 0.0
    std: float = 0.0          # population (ddof=0)
    min: float = 0.0
    max: float = 0.0
    percentiles: dict[int, float] = field(default_factory=dict)


@dataclass(frozen=True)
class StatisticalSummary:
    final_value: DistributionStats
    total_return: DistributionStats
    success_rate: float       # share of paths with total_return > 0
    success_count: int
    total_simulations: int

    @property
    def mean_final_value(self) -> float:
        return self.final_value.mean

    @property
    def median_final_value(self) -> float:
        return self.final_value.median

    @property
    def mean_return(self) -> float:
        return self.total_return.mean

    @property
    def median_return(self) -> float:
        return self.total_return.median

    @property
    def standard_deviation(self) -> float:
        return self.final_value.std


@dataclass(frozen=True)
class ConfidenceBound:
    final_value: float
    total_return: float


def percentile_index(rank: float, n: int) -> int:
    return min(int(math.floor(rank / 100.0 * n)), n - 1)


def nearest_rank(sorted_values: np.ndarray, rank: float) -> float:
    return float(sorted_values[percentile_index(rank, len(sorted_values))])


class StatisticalAnalyzer:
    """Reduces a SimulationResultSet to a StatisticalSummary."""

    @staticmethod
    def describe(
        values: np.ndarray,
        percentiles: tuple[int, ...] = DEFAULT_PERCENTILES,
    ) -> DistributionStats:
        if len(values) == 0:
            raise ComputationError("Cannot describe an empty set of outcomes")
        if not np.all(np.isfinite(values)):
            bad = int(np.sum(~np.isfinite(values)))
            raise ComputationError(f"{bad} simulated outcome(s) are not finite")

        ordered = np.sort(values)
        return DistributionStats(
            mean=float(np.mean(ordered)),
            median=nearest_rank(ordered, 50),
            std=float(np.std(ordered)),
            min=float(ordered[0]),
            max=float(ordered[-1]),
            percentiles={int(p): nearest_rank(ordered, p) for p in sorted(percentiles)},
        )

    @staticmethod
    def compute(
        result_set: SimulationResultSet,
        percentiles: tuple[int, ...] = DEFAULT_PERCENTILES,
    ) -> StatisticalSummary:
        final_values = result_set.final_values()
        total_returns = result_set.total_returns()

        final_stats = StatisticalAnalyzer.describe(final_values, percentiles)
        return_stats = StatisticalAnalyzer.describe(total_returns, percentiles)

        success_count = int(np.sum(total_returns > 0))
        n = len(total_returns)

        return StatisticalSummary(
            final_value=final_stats,
            total_return=return_stats,
            success_rate=success_count / n,
            success_count=success_count,
            total_simulations=n,
        )

    @staticmethod
    def confidence_intervals(summary: StatisticalSummary) -> dict[int, ConfidenceBound]:
        return {
            rank: ConfidenceBound(
                final_value=value,
                total_return=summary.total_return.percentiles[rank],
            )
            for rank, value in summary.final_value.percentiles.items()
        }

    @staticmethod
    def yearly_percentiles(
        result_set: SimulationResultSet,
        percentiles: tuple[int, ...] = DEFAULT_PERCENTILES,
    ) -> pd.DataFrame:
        """Per-year percentile bands (fan data): index Year, columns P5..P95."""
        matrix = np.sort(result_set.yearly_matrix(), axis=0)
        n = matrix.shape[0]
        if n == 0:
            raise ComputationError("Cannot compute percentile bands without paths")

        bands = {
            f"P{p}": matrix[percentile_index(p, n), :] for p in sorted(percentiles)
        }
        df = pd.DataFrame(bands)
        df.index.name = "Year"
        return df
