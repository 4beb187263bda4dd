"""
Single-path portfolio evolution and the immutable set of simulated paths.

Each simulated year applies, in order:
  1. one random annual return per asset class (multiplicative)
  2. the year's contribution, split by target weight
  3. rebalancing to target weights (ANNUAL policy only)
"""

from dataclasses import dataclass
from typing import Iterator

import numpy as np
import pandas as pd

from portfolio_forecast.simulation.config import (
    FinancialInputs,
    RebalancingPolicy,
    SimulationConfiguration,
)
from portfolio_forecast.simulation.market import MarketParameters
from portfolio_forecast.simulation.random_variates import RandomVariateGenerator


@dataclass(frozen=True)
class SimulatedPath:
    yearly_values: tuple[float, ...]   # length time_horizon_years + 1, [0] = initial balance
    final_value: float
    total_return: float                # 0.0 when the initial balance is 0
    time_horizon_years: int


@dataclass(frozen=True)
class SimulationResultSet:
    paths: tuple[SimulatedPath, ...]
    initial_balance: float
    time_horizon_years: int

    def __len__(self) -> int:
        return len(self.paths)

    def __iter__(self) -> Iterator[SimulatedPath]:
        return iter(self.paths)

    def __getitem__(self, idx: int) -> SimulatedPath:
        return self.paths[idx]

    def final_values(self) -> np.ndarray:
        return np.array([p.final_value for p in self.paths], dtype=float)

    def total_returns(self) -> np.ndarray:
        return np.array([p.total_return for p in self.paths], dtype=float)

    def yearly_matrix(self) -> np.ndarray:
        """(n_paths, time_horizon_years + 1) array of yearly portfolio values."""
        if not self.paths:
            return np.empty((0, self.time_horizon_years + 1))
        return np.array([p.yearly_values for p in self.paths], dtype=float)

    def to_frame(self) -> pd.DataFrame:
        df = pd.DataFrame(
            self.yearly_matrix(),
            columns=range(self.time_horizon_years + 1),
        )
        df.index.name = "path"
        df.columns.name = "year"
        return df


class PathSimulator:
    """Evolves one multi-year trajectory of a two-asset-class portfolio."""

    def __init__(
        self,
        market: MarketParameters,
        config: SimulationConfiguration,
        inputs: FinancialInputs,
    ):
        self.market = market
        self.years = config.time_horizon_years
        self.rebalancing = RebalancingPolicy(config.rebalancing)
        self.initial_balance = float(inputs.initial_balance)
        self.annual_contribution = float(inputs.annual_contribution)

        # Weights follow market order; classes absent from the allocation hold 0
        self.weights = [
            float(config.asset_allocation.get(name, 0.0)) for name in market.names
        ]
        self._means = [ac.expected_return for ac in market.asset_classes]
        self._vols = [ac.volatility for ac in market.asset_classes]

        # Factored once per simulator; |rho| == 1 is singular and handled per draw
        self._factor = None
        if market.apply_correlation and abs(market.correlation) < 1.0:
            self._factor = np.linalg.cholesky(market.correlation_matrix())

    def draw_returns(self, generator: RandomVariateGenerator) -> list[float]:
        """One year of returns, one per asset class in market order."""
        if self.market.apply_correlation:
            z1, z2 = generator.correlated_pair(self.market.correlation, self._factor)
            return [
                self._means[0] + z1 * self._vols[0],
                self._means[1] + z2 * self._vols[1],
            ]
        return [
            generator.normal(mean, vol) for mean, vol in zip(self._means, self._vols)
        ]

    def simulate(self, generator: RandomVariateGenerator) -> SimulatedPath:
        balances = [self.initial_balance * w for w in self.weights]
        yearly_values = [self.initial_balance]

        for _ in range(self.years):
            returns = self.draw_returns(generator)
            for i, weight in enumerate(self.weights):
                balances[i] *= 1.0 + returns[i]
                balances[i] += self.annual_contribution * weight

            total = sum(balances)
            if self.rebalancing is RebalancingPolicy.ANNUAL:
                balances = [total * w for w in self.weights]
            yearly_values.append(total)

        final_value = yearly_values[-1]
        if self.initial_balance > 0:
            total_return = (final_value - self.initial_balance) / self.initial_balance
        else:
            total_return = 0.0

        return SimulatedPath(
            yearly_values=tuple(yearly_values),
            final_value=final_value,
            total_return=total_return,
            time_horizon_years=self.years,
        )
