"""Per-call inputs for the portfolio Monte Carlo simulation."""

from dataclasses import dataclass, field
from enum import Enum


class RebalancingPolicy(Enum):
    NONE = "none"
    ANNUAL = "annual"


def _default_allocation() -> dict[str, float]:
    return {"stocks": 0.7, "bonds": 0.3}


@dataclass
class SimulationConfiguration:
    # Simulation
    simulation_count: int = 1000
    time_horizon_years: int = 30
    seed: int | None = None

    # Portfolio
    asset_allocation: dict[str, float] = field(default_factory=_default_allocation)
    rebalancing: RebalancingPolicy | str = RebalancingPolicy.ANNUAL

    # Statistics (None = engine default ranks)
    percentiles: tuple[int, ...] | None = None


@dataclass
class FinancialInputs:
    initial_balance: float = 0.0
    monthly_contribution: float = 0.0

    @property
    def annual_contribution(self) -> float:
        return self.monthly_contribution * 12
