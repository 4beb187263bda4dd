"""Tests for single-path portfolio evolution."""
import math

import numpy as np
import pytest

from portfolio_forecast.simulation.config import (
    FinancialInputs,
    RebalancingPolicy,
    SimulationConfiguration,
)
from portfolio_forecast.simulation.market import MarketParameters
from portfolio_forecast.simulation.paths import PathSimulator
from portfolio_forecast.simulation.random_variates import RandomVariateGenerator


def _simulate(market, config, inputs, seed=0):
    return PathSimulator(market, config, inputs).simulate(RandomVariateGenerator.from_seed(seed))


def test_path_length_and_start(scenario_a_config, scenario_a_inputs):
    path = _simulate(MarketParameters(), scenario_a_config, scenario_a_inputs)
    assert len(path.yearly_values) == 11
    assert path.yearly_values[0] == 10_000
    assert path.final_value == path.yearly_values[-1]
    assert path.time_horizon_years == 10


def test_total_return_definition(scenario_a_config, scenario_a_inputs):
    path = _simulate(MarketParameters(), scenario_a_config, scenario_a_inputs)
    assert path.total_return == pytest.approx((path.final_value - 10_000) / 10_000)


def test_seed_determinism(scenario_a_config, scenario_a_inputs):
    p1 = _simulate(MarketParameters(), scenario_a_config, scenario_a_inputs, seed=99)
    p2 = _simulate(MarketParameters(), scenario_a_config, scenario_a_inputs, seed=99)
    assert p1.yearly_values == p2.yearly_values


def test_zero_balance_zero_contribution():
    config = SimulationConfiguration(time_horizon_years=20)
    path = _simulate(MarketParameters(), config, FinancialInputs(0.0, 0.0))
    assert path.yearly_values == tuple([0.0] * 21)
    assert path.total_return == 0.0


def test_zero_balance_with_contributions_has_zero_return():
    config = SimulationConfiguration(time_horizon_years=5)
    path = _simulate(MarketParameters(), config, FinancialInputs(0.0, 500.0))
    assert path.final_value > 0
    assert path.total_return == 0.0
    assert not math.isnan(path.total_return)


def test_return_then_contribute_then_rebalance(deterministic_market):
    # stocks +10%, bonds 0%, 50/50, 1200/yr contributed
    config = SimulationConfiguration(
        time_horizon_years=2,
        asset_allocation={"stocks": 0.5, "bonds": 0.5},
        rebalancing=RebalancingPolicy.ANNUAL,
    )
    path = _simulate(deterministic_market, config, FinancialInputs(1000.0, 100.0))
    # y1: 550 + 600, 500 + 600 -> 2250, rebalanced to 1125 / 1125
    # y2: 1237.5 + 600, 1125 + 600 -> 3562.5
    assert path.yearly_values == pytest.approx((1000.0, 2250.0, 3562.5))


def test_no_rebalancing_keeps_drift(deterministic_market):
    config = SimulationConfiguration(
        time_horizon_years=2,
        asset_allocation={"stocks": 0.5, "bonds": 0.5},
        rebalancing="none",
    )
    path = _simulate(deterministic_market, config, FinancialInputs(1000.0, 100.0))
    # y2: 1150 * 1.1 + 600 = 1865, 1100 + 600 = 1700
    assert path.yearly_values == pytest.approx((1000.0, 2250.0, 3565.0))


def test_allocation_may_omit_a_class(deterministic_market):
    config = SimulationConfiguration(time_horizon_years=3, asset_allocation={"stocks": 1.0})
    path = _simulate(deterministic_market, config, FinancialInputs(1000.0, 0.0))
    np.testing.assert_allclose(path.yearly_values, [1000.0, 1100.0, 1210.0, 1331.0])


def test_correlated_market_path(scenario_a_config, scenario_a_inputs):
    market = MarketParameters(correlation=0.5, apply_correlation=True)
    p1 = _simulate(market, scenario_a_config, scenario_a_inputs, seed=5)
    p2 = _simulate(market, scenario_a_config, scenario_a_inputs, seed=5)
    assert len(p1.yearly_values) == 11
    assert p1.yearly_values == p2.yearly_values
    assert all(math.isfinite(v) for v in p1.yearly_values)


def test_draw_returns_one_per_class(scenario_a_config, scenario_a_inputs):
    sim = PathSimulator(MarketParameters(), scenario_a_config, scenario_a_inputs)
    returns = sim.draw_returns(RandomVariateGenerator.from_seed(0))
    assert len(returns) == 2


def test_correlated_draws_use_market_matrix(scenario_a_config, scenario_a_inputs):
    market = MarketParameters(correlation=0.5, apply_correlation=True)
    simulator = PathSimulator(market, scenario_a_config, scenario_a_inputs)
    np.testing.assert_allclose(
        simulator._factor @ simulator._factor.T, market.correlation_matrix(),
    )
    returns = simulator.draw_returns(RandomVariateGenerator.from_seed(5))
    z1, z2 = RandomVariateGenerator.from_seed(5).correlated_pair(0.5)
    assert returns == pytest.approx([0.07 + z1 * 0.15, 0.04 + z2 * 0.05])
