"""
Batch Monte Carlo engine for multi-year portfolio projections.

Validates a SimulationConfiguration + FinancialInputs, runs N independent
PathSimulator trajectories and reduces them to statistics, confidence
intervals and advisory insights.

Each path owns a generator spawned from SeedSequence(seed), so results are
index-stable for a fixed seed whether paths run sequentially or on a
process pool.
"""

import logging
import math
import threading
from collections.abc import Mapping
from concurrent.futures import ProcessPoolExecutor, as_completed
from dataclasses import asdict, dataclass, fields, replace
from datetime import datetime, timezone

import numpy as np
import pandas as pd

from portfolio_forecast.analyzers.insights import Insight, InsightDeriver, RiskAssessment
from portfolio_forecast.config import EngineConfig
from portfolio_forecast.metrics.outcome_stats import (
    ConfidenceBound,
    StatisticalAnalyzer,
    StatisticalSummary,
)
from portfolio_forecast.simulation.config import (
    FinancialInputs,
    RebalancingPolicy,
    SimulationConfiguration,
)
from portfolio_forecast.simulation.errors import ConfigurationError, SimulationCancelled
from portfolio_forecast.simulation.market import MarketParameters
from portfolio_forecast.simulation.paths import (
    PathSimulator,
    SimulatedPath,
    SimulationResultSet,
)
from portfolio_forecast.simulation.random_variates import RandomVariateGenerator

logger = logging.getLogger(__name__)

CONFIG_FIELDS = {f.name for f in fields(SimulationConfiguration)}
INPUT_FIELDS = {f.name for f in fields(FinancialInputs)}
BASE_SCENARIO = "base"


@dataclass
class SimulationReport:
    simulation_results: SimulationResultSet
    statistical_analysis: StatisticalSummary
    confidence_intervals: dict[int, ConfidenceBound]
    insights: list[Insight]
    risk_assessment: RiskAssessment
    summary: dict
    timestamp: str
    version: str

    def to_dict(self, include_paths: bool = False) -> dict:
        out = {
            "statistical_analysis": asdict(self.statistical_analysis),
            "confidence_intervals": {
                rank: asdict(bound) for rank, bound in self.confidence_intervals.items()
            },
            "insights": [asdict(i) for i in self.insights],
            "risk_assessment": asdict(self.risk_assessment),
            "summary": dict(self.summary),
            "timestamp": self.timestamp,
            "version": self.version,
        }
        if include_paths:
            out["simulation_results"] = [asdict(p) for p in self.simulation_results]
        return out


@dataclass
class ScenarioComparison:
    base: SimulationReport
    scenarios: dict[str, SimulationReport]
    comparison: dict

    def to_frame(self) -> pd.DataFrame:
        """One row per run (base first): headline figures side by side."""
        rows = []
        for name, report in {BASE_SCENARIO: self.base, **self.scenarios}.items():
            stats = report.statistical_analysis
            rows.append({
                "scenario": name,
                "median_final_value": stats.final_value.median,
                "mean_final_value": stats.final_value.mean,
                "success_rate": stats.success_rate,
                "worst_case": report.summary["worst_case"],
                "best_case": report.summary["best_case"],
                "overall_risk": report.risk_assessment.overall_risk,
            })
        return pd.DataFrame(rows).set_index("scenario")


def _simulate_chunk(
    simulator: PathSimulator,
    seeds: list[np.random.SeedSequence],
) -> list[SimulatedPath]:
    return [simulator.simulate(RandomVariateGenerator.from_seed(s)) for s in seeds]


def _check_amount(label: str, value) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float, np.number)):
        raise ConfigurationError(f"{label} must be a number, got {value!r}")
    if not math.isfinite(value):
        raise ConfigurationError(f"{label} must be finite, got {value}")
    if value < 0:
        raise ConfigurationError(f"{label} cannot be negative")


def _is_int(value) -> bool:
    return not isinstance(value, bool) and isinstance(value, (int, np.integer))


class SimulationBatchRunner:
    """Runs validated batches of independent portfolio paths."""

    def __init__(
        self,
        market: MarketParameters | None = None,
        engine_config: EngineConfig | None = None,
        max_workers: int | None = None,
    ):
        self.market = market or MarketParameters()
        self.engine_config = engine_config or EngineConfig()
        workers = max_workers if max_workers is not None else self.engine_config.max_workers
        self.max_workers = max(1, int(workers))

    # ── Validation ──

    def resolve_percentiles(self, config: SimulationConfiguration) -> tuple[int, ...]:
        ranks = config.percentiles or self.engine_config.percentiles
        return tuple(sorted(set(ranks)))

    def validate(self, config: SimulationConfiguration, inputs: FinancialInputs) -> None:
        """Raise ConfigurationError naming the first violated constraint."""
        ec = self.engine_config
        self.market.validate()

        count = config.simulation_count
        if not _is_int(count):
            raise ConfigurationError(f"Simulation count must be an integer, got {count!r}")
        if count < 1:
            raise ConfigurationError("Simulation count must be at least 1")
        if count > ec.max_simulation_count:
            raise ConfigurationError(
                f"Simulation count cannot exceed {ec.max_simulation_count}"
            )

        years = config.time_horizon_years
        if not _is_int(years) or not ec.min_time_horizon <= years <= ec.max_time_horizon:
            raise ConfigurationError(
                f"Time horizon must be between {ec.min_time_horizon} "
                f"and {ec.max_time_horizon} years"
            )

        _check_amount("Initial balance", inputs.initial_balance)
        _check_amount("Monthly contribution", inputs.monthly_contribution)

        self._validate_allocation(config.asset_allocation)

        try:
            RebalancingPolicy(config.rebalancing)
        except ValueError:
            choices = ", ".join(p.value for p in RebalancingPolicy)
            raise ConfigurationError(
                f"Unknown rebalancing policy {config.rebalancing!r}, expected one of: {choices}"
            ) from None

        ranks = config.percentiles or ec.percentiles
        if not isinstance(ranks, (tuple, list)):
            raise ConfigurationError(
                f"Percentile ranks must be a sequence of integers, got {ranks!r}"
            )
        if not ranks:
            raise ConfigurationError("At least one percentile rank is required")
        for rank in ranks:
            if not _is_int(rank) or not 0 < rank < 100:
                raise ConfigurationError(
                    f"Percentile ranks must be integers between 1 and 99, got {rank!r}"
                )

        if config.seed is not None and (not _is_int(config.seed) or config.seed < 0):
            raise ConfigurationError(
                f"Seed must be a non-negative integer or None, got {config.seed!r}"
            )

    def _validate_allocation(self, allocation) -> None:
        if not isinstance(allocation, Mapping) or not allocation:
            raise ConfigurationError("Asset allocation must be a non-empty mapping")

        unknown = sorted(set(allocation) - set(self.market.names))
        if unknown:
            raise ConfigurationError(
                f"Unknown asset class(es) {unknown}, expected among {self.market.names}"
            )

        for name, weight in allocation.items():
            _check_amount(f"Allocation weight for '{name}'", weight)

        total = float(sum(allocation.values()))
        if abs(total - 1.0) > self.engine_config.allocation_tolerance:
            raise ConfigurationError(
                f"Asset allocation weights must sum to 1, got {total:.6f}"
            )

    # ── Simulation ──

    def simulate_paths(
        self,
        config: SimulationConfiguration,
        inputs: FinancialInputs,
        cancel: threading.Event | None = None,
    ) -> SimulationResultSet:
        """Run config.simulation_count paths. Assumes validated inputs."""
        n = config.simulation_count
        simulator = PathSimulator(self.market, config, inputs)
        seeds = np.random.SeedSequence(config.seed).spawn(n)
        paths: list[SimulatedPath | None] = [None] * n

        if self.max_workers > 1 and n > 1:
            self._simulate_parallel(simulator, seeds, paths, cancel)
        else:
            for idx, seed in enumerate(seeds):
                if cancel is not None and cancel.is_set():
                    raise SimulationCancelled(f"Cancelled after {idx} of {n} paths")
                paths[idx] = simulator.simulate(RandomVariateGenerator.from_seed(seed))

        return SimulationResultSet(
            paths=tuple(paths),
            initial_balance=float(inputs.initial_balance),
            time_horizon_years=config.time_horizon_years,
        )

    def _simulate_parallel(self, simulator, seeds, paths, cancel) -> None:
        n = len(seeds)
        if cancel is not None and cancel.is_set():
            raise SimulationCancelled(f"Cancelled after 0 of {n} paths")
        n_chunks = min(self.max_workers * 4, n)
        bounds = np.linspace(0, n, n_chunks + 1, dtype=int)

        with ProcessPoolExecutor(max_workers=self.max_workers) as executor:
            futures = {}
            for lo, hi in zip(bounds[:-1], bounds[1:]):
                if hi > lo:
                    future = executor.submit(_simulate_chunk, simulator, seeds[lo:hi])
                    futures[future] = int(lo)
            logger.debug("Dispatched %d chunks to %d workers", len(futures), self.max_workers)

            done = 0
            for future in as_completed(futures):
                if cancel is not None and cancel.is_set():
                    for pending in futures:
                        pending.cancel()
                    raise SimulationCancelled(f"Cancelled after {done} of {n} paths")
                lo = futures[future]
                chunk = future.result()
                paths[lo:lo + len(chunk)] = chunk
                done += len(chunk)

    def run_simulation(
        self,
        config: SimulationConfiguration,
        inputs: FinancialInputs,
        cancel: threading.Event | None = None,
    ) -> SimulationReport:
        self.validate(config, inputs)
        percentiles = self.resolve_percentiles(config)

        logger.info(
            "Simulating %d paths x %d years (workers=%d, seed=%s)",
            config.simulation_count, config.time_horizon_years,
            self.max_workers, config.seed,
        )
        result_set = self.simulate_paths(config, inputs, cancel)

        stats = StatisticalAnalyzer.compute(result_set, percentiles)
        intervals = StatisticalAnalyzer.confidence_intervals(stats)
        insights = InsightDeriver.derive(stats, inputs, config.time_horizon_years)
        risk = InsightDeriver.assess_risk(stats)

        summary = {
            "simulation_count": config.simulation_count,
            "time_horizon_years": config.time_horizon_years,
            "asset_allocation": dict(config.asset_allocation),
            "rebalancing": RebalancingPolicy(config.rebalancing).value,
            "success_rate": stats.success_rate,
            "median_return": stats.total_return.median,
            "worst_case": intervals[percentiles[0]].final_value,
            "best_case": intervals[percentiles[-1]].final_value,
        }
        logger.info(
            "Finished: median final %.2f, success rate %.1f%%",
            stats.final_value.median, stats.success_rate * 100,
        )

        return SimulationReport(
            simulation_results=result_set,
            statistical_analysis=stats,
            confidence_intervals=intervals,
            insights=insights,
            risk_assessment=risk,
            summary=summary,
            timestamp=datetime.now(timezone.utc).isoformat(),
            version=self.engine_config.version,
        )

    # ── Scenarios ──

    def apply_overrides(
        self,
        config: SimulationConfiguration,
        inputs: FinancialInputs,
        overrides: Mapping[str, object],
    ) -> tuple[SimulationConfiguration, FinancialInputs]:
        """
        Merge partial overrides into copies of config and inputs.

        Keys may name a SimulationConfiguration field, a FinancialInputs
        field, or an asset class (which replaces that class's weight).
        """
        if not isinstance(overrides, Mapping):
            raise ConfigurationError(f"Scenario overrides must be a mapping, got {overrides!r}")
        class_weights = {k: v for k, v in overrides.items() if k in self.market.names}
        unknown = sorted(set(overrides) - CONFIG_FIELDS - INPUT_FIELDS - set(class_weights))
        if unknown:
            raise ConfigurationError(f"Unknown scenario override(s): {unknown}")

        config_changes = {k: v for k, v in overrides.items() if k in CONFIG_FIELDS}
        input_changes = {k: v for k, v in overrides.items() if k in INPUT_FIELDS}
        if class_weights:
            allocation = config_changes.get("asset_allocation", config.asset_allocation)
            if not isinstance(allocation, Mapping):
                raise ConfigurationError(
                    f"Asset allocation must be a mapping, got {allocation!r}"
                )
            allocation = dict(allocation)
            allocation.update(class_weights)
            config_changes["asset_allocation"] = allocation

        return replace(config, **config_changes), replace(inputs, **input_changes)

    def run_scenario_comparison(
        self,
        config: SimulationConfiguration,
        inputs: FinancialInputs,
        scenarios: Mapping[str, Mapping[str, object]],
    ) -> ScenarioComparison:
        """Run the base case plus each named variant. All are validated first."""
        if BASE_SCENARIO in scenarios:
            raise ConfigurationError(f"Scenario name '{BASE_SCENARIO}' is reserved")

        self.validate(config, inputs)
        variants = {}
        for name, overrides in scenarios.items():
            try:
                variant = self.apply_overrides(config, inputs, overrides)
                self.validate(*variant)
            except ConfigurationError as e:
                raise ConfigurationError(f"Scenario '{name}': {e}") from e
            variants[name] = variant

        base = self.run_simulation(config, inputs)
        reports = {
            name: self.run_simulation(variant_config, variant_inputs)
            for name, (variant_config, variant_inputs) in variants.items()
        }
        return ScenarioComparison(
            base=base,
            scenarios=reports,
            comparison=compare_reports({BASE_SCENARIO: base, **reports}),
        )


def compare_reports(reports: Mapping[str, SimulationReport]) -> dict:
    medians = {
        name: r.statistical_analysis.final_value.median for name, r in reports.items()
    }
    rates = {name: r.statistical_analysis.success_rate for name, r in reports.items()}

    best = max(medians, key=medians.get)
    worst = min(medians, key=medians.get)
    return {
        "best_scenario": best,
        "best_median_final_value": medians[best],
        "worst_scenario": worst,
        "worst_median_final_value": medians[worst],
        "average_median_final_value": float(np.mean(list(medians.values()))),
        "highest_success_rate_scenario": max(rates, key=rates.get),
        "lowest_success_rate_scenario": min(rates, key=rates.get),
    }


def run_simulation(
    config: SimulationConfiguration,
    inputs: FinancialInputs,
    market: MarketParameters | None = None,
) -> SimulationReport:
    return SimulationBatchRunner(market=market).run_simulation(config, inputs)


def run_scenario_comparison(
    config: SimulationConfiguration,
    inputs: FinancialInputs,
    scenarios: Mapping[str, Mapping[str, object]],
    market: MarketParameters | None = None,
) -> ScenarioComparison:
    return SimulationBatchRunner(market=market).run_scenario_comparison(
        config, inputs, scenarios
    )
