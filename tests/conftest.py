import numpy as np
import pytest

from portfolio_forecast.simulation.config import FinancialInputs, SimulationConfiguration
from portfolio_forecast.simulation.engine import SimulationBatchRunner
from portfolio_forecast.simulation.market import AssetClassParameters, MarketParameters
from portfolio_forecast.simulation.paths import SimulatedPath, SimulationResultSet


class FixedUniforms:
    """Stands in for a numpy Generator, replaying preset uniforms."""

    def __init__(self, values):
        self._values = iter(values)

    def random(self):
        return next(self._values)


def make_result_set(final_values, initial_balance=100.0):
    """Single-year result set with the given final values."""
    paths = []
    for fv in final_values:
        total_return = (fv - initial_balance) / initial_balance if initial_balance > 0 else 0.0
        paths.append(SimulatedPath(
            yearly_values=(initial_balance, fv),
            final_value=fv,
            total_return=total_return,
            time_horizon_years=1,
        ))
    return SimulationResultSet(
        paths=tuple(paths), initial_balance=initial_balance, time_horizon_years=1,
    )


@pytest.fixture
def scenario_a_config():
    return SimulationConfiguration(
        simulation_count=100,
        time_horizon_years=10,
        asset_allocation={"stocks": 0.7, "bonds": 0.3},
        rebalancing="annual",
        seed=42,
    )


@pytest.fixture
def scenario_a_inputs():
    return FinancialInputs(initial_balance=10_000, monthly_contribution=200)


@pytest.fixture
def runner():
    return SimulationBatchRunner()


@pytest.fixture
def deterministic_market():
    """Zero-volatility market: every draw equals the expected return."""
    return MarketParameters(asset_classes=(
        AssetClassParameters("stocks", 0.10, 0.0),
        AssetClassParameters("bonds", 0.0, 0.0),
    ))


@pytest.fixture
def random_result_set():
    rng = np.random.default_rng(3)
    return make_result_set(rng.normal(120.0, 30.0, 500))
