"""
CLI runner for portfolio Monte Carlo projections.

Usage:
    python -m portfolio_forecast.simulation --n-paths 1000 --years 30 \
        --initial-balance 10000 --monthly-contribution 200

    # 90/10 allocation, no rebalancing, correlated stock/bond draws
    python -m portfolio_forecast.simulation --stocks 0.9 --bonds 0.1 \
        --rebalancing none --correlated --correlation 0.3

    # Side-by-side scenarios
    python -m portfolio_forecast.simulation --initial-balance 50000 \
        --scenario aggressive:stocks=0.9,bonds=0.1 \
        --scenario saver:monthly_contribution=1000

    # Export yearly percentile bands
    python -m portfolio_forecast.simulation --csv bands.csv
"""

import argparse
import logging
import sys

from portfolio_forecast.config import EngineConfig
from portfolio_forecast.metrics.outcome_stats import StatisticalAnalyzer
from portfolio_forecast.simulation.config import FinancialInputs, SimulationConfiguration
from portfolio_forecast.simulation.engine import SimulationBatchRunner, SimulationReport
from portfolio_forecast.simulation.errors import ConfigurationError
from portfolio_forecast.simulation.market import MarketParameters


def _parse_value(raw: str):
    for cast in (int, float):
        try:
            return cast(raw)
        except ValueError:
            pass
    return raw


def parse_scenario(spec: str) -> tuple[str, dict]:
    """'name:key=value,key=value' -> (name, {key: value})."""
    name, sep, body = spec.partition(":")
    if not sep or not name:
        raise ConfigurationError(f"Scenario must look like NAME:key=value[,key=value], got {spec!r}")
    overrides = {}
    for item in filter(None, body.split(",")):
        key, eq, value = item.partition("=")
        if not eq:
            raise ConfigurationError(f"Scenario override must be key=value, got {item!r}")
        overrides[key.strip()] = _parse_value(value.strip())
    return name, overrides


def print_report(report: SimulationReport, title: str = "PORTFOLIO MONTE CARLO SIMULATION"):
    stats = report.statistical_analysis
    summary = report.summary
    alloc = ", ".join(f"{k} {v:.0%}" for k, v in summary["asset_allocation"].items())

    print("\n" + "=" * 60)
    print(f"  {title}")
    print("=" * 60)
    print(f"  Paths:          {summary['simulation_count']:,}")
    print(f"  Horizon:        {summary['time_horizon_years']} years")
    print(f"  Allocation:     {alloc}")
    print(f"  Rebalancing:    {summary['rebalancing']}")
    print("  " + "-" * 56)
    print(f"  Median Final:   ${stats.median_final_value:>14,.2f}")
    print(f"  Mean Final:     ${stats.mean_final_value:>14,.2f}")
    print(f"  Std Dev:        ${stats.standard_deviation:>14,.2f}")
    print(f"  Min Final:      ${stats.final_value.min:>14,.2f}")
    print(f"  Max Final:      ${stats.final_value.max:>14,.2f}")
    print("  " + "-" * 56)
    for rank, bound in report.confidence_intervals.items():
        key = f"P{rank}"
        print(f"  {key:>14}:   ${bound.final_value:>14,.2f}  {bound.total_return:>+9.1%}")
    print("  " + "-" * 56)
    print(f"  Median Return:      {summary['median_return'] * 100:>+8.1f}%")
    print(f"  Success Rate:       {summary['success_rate'] * 100:>8.1f}%")
    print(f"  Overall Risk:       {report.risk_assessment.overall_risk:>8}")
    print("=" * 60)
    for insight in report.insights:
        print(f"  [{insight.type}] {insight.title}: {insight.metric}")


def run(args=None):
    parser = argparse.ArgumentParser(
        description="Monte Carlo projection of a stock/bond portfolio"
    )
    parser.add_argument("--n-paths", type=int, default=None,
                        help="Number of simulated paths (default: 1000)")
    parser.add_argument("--years", type=int, default=None,
                        help="Time horizon in years, 1-50 (default: 30)")
    parser.add_argument("--initial-balance", type=float, default=10_000.0)
    parser.add_argument("--monthly-contribution", type=float, default=500.0)
    parser.add_argument("--stocks", type=float, default=0.7,
                        help="Stock weight (default: 0.7)")
    parser.add_argument("--bonds", type=float, default=0.3,
                        help="Bond weight (default: 0.3)")
    parser.add_argument("--rebalancing", choices=["none", "annual"], default="annual")
    parser.add_argument("--seed", type=int, default=42,
                        help="Random seed (default: 42, use -1 for random)")
    parser.add_argument("--correlated", action="store_true",
                        help="Draw correlated stock/bond returns")
    parser.add_argument("--correlation", type=float, default=0.3,
                        help="Stock/bond correlation (default: 0.3)")
    parser.add_argument("--workers", type=int, default=None,
                        help="Process pool size (default: 1, sequential)")
    parser.add_argument("--percentiles", default=None,
                        help="Comma-separated ranks (default: 5,25,50,75,95)")
    parser.add_argument("--scenario", action="append", default=[],
                        metavar="NAME:key=value[,key=value]",
                        help="Named variant to compare against the base case")
    parser.add_argument("--csv", default=None,
                        help="Write yearly percentile bands of the base case to CSV")
    parser.add_argument("--verbose", action="store_true")

    parsed = parser.parse_args(args)
    logging.basicConfig(
        level=logging.INFO if parsed.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    engine_config = EngineConfig.from_env()
    percentiles = None
    if parsed.percentiles:
        try:
            percentiles = tuple(int(p) for p in parsed.percentiles.split(","))
        except ValueError:
            parser.error(f"--percentiles expects comma-separated integers, got {parsed.percentiles!r}")

    config = SimulationConfiguration(
        simulation_count=(
            parsed.n_paths if parsed.n_paths is not None
            else engine_config.default_simulation_count
        ),
        time_horizon_years=(
            parsed.years if parsed.years is not None
            else engine_config.default_time_horizon
        ),
        seed=parsed.seed if parsed.seed >= 0 else None,
        asset_allocation={"stocks": parsed.stocks, "bonds": parsed.bonds},
        rebalancing=parsed.rebalancing,
        percentiles=percentiles,
    )
    inputs = FinancialInputs(
        initial_balance=parsed.initial_balance,
        monthly_contribution=parsed.monthly_contribution,
    )
    market = MarketParameters(
        correlation=parsed.correlation,
        apply_correlation=parsed.correlated,
    )
    runner = SimulationBatchRunner(
        market=market, engine_config=engine_config, max_workers=parsed.workers,
    )

    try:
        if parsed.scenario:
            scenarios = dict(parse_scenario(s) for s in parsed.scenario)
            comparison = runner.run_scenario_comparison(config, inputs, scenarios)
            base = comparison.base
        else:
            comparison = None
            base = runner.run_simulation(config, inputs)
    except ConfigurationError as e:
        print(f"Invalid input: {e}", file=sys.stderr)
        raise SystemExit(2)

    print_report(base)

    if comparison is not None:
        for name, report in comparison.scenarios.items():
            print_report(report, title=f"SCENARIO: {name}")
        print("\n" + "=" * 60)
        print("  SCENARIO COMPARISON")
        print("=" * 60)
        print(comparison.to_frame().to_string(float_format=lambda v: f"{v:,.2f}"))
        print(f"\n  Best median:  {comparison.comparison['best_scenario']}")
        print(f"  Worst median: {comparison.comparison['worst_scenario']}")

    if parsed.csv:
        bands = StatisticalAnalyzer.yearly_percentiles(
            base.simulation_results, runner.resolve_percentiles(config),
        )
        bands.to_csv(parsed.csv)
        print(f"\nWrote yearly percentile bands to {parsed.csv}")

    return comparison if comparison is not None else base


def main():
    run()


if __name__ == "__main__":
    main()
