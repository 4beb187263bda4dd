"""
Capital market assumptions for the two simulated asset classes.

Returns are drawn each year as Normal(expected_return, volatility^2).
The stock/bond correlation is only applied when apply_correlation is set;
otherwise the classes are drawn independently.
"""

import math
from dataclasses import dataclass, field

import numpy as np

from portfolio_forecast.simulation.errors import ConfigurationError


@dataclass(frozen=True)
class AssetClassParameters:
    name: str
    expected_return: float   # annual, decimal
    volatility: float        # annual standard deviation, decimal


def _default_asset_classes() -> tuple[AssetClassParameters, ...]:
    return (
        AssetClassParameters("stocks", 0.07, 0.15),
        AssetClassParameters("bonds", 0.04, 0.05),
    )


@dataclass(frozen=True)
class MarketParameters:
    asset_classes: tuple[AssetClassParameters, ...] = field(
        default_factory=_default_asset_classes
    )
    correlation: float = 0.3
    apply_correlation: bool = False

    @property
    def names(self) -> list[str]:
        return [ac.name for ac in self.asset_classes]

    def get(self, name: str) -> AssetClassParameters:
        for ac in self.asset_classes:
            if ac.name == name:
                return ac
        raise KeyError(name)

    def validate(self) -> None:
        """Raise ConfigurationError if the assumptions are unusable."""
        if not self.asset_classes:
            raise ConfigurationError("Market parameters must define at least one asset class")
        if len(self.asset_classes) > 2:
            raise ConfigurationError(
                f"At most two asset classes are supported, got {len(self.asset_classes)}"
            )
        if len(set(self.names)) != len(self.names):
            raise ConfigurationError(f"Duplicate asset class names: {self.names}")

        for ac in self.asset_classes:
            if not (math.isfinite(ac.expected_return) and math.isfinite(ac.volatility)):
                raise ConfigurationError(f"Parameters for '{ac.name}' must be finite")
            if ac.volatility < 0:
                raise ConfigurationError(
                    f"Volatility for '{ac.name}' cannot be negative: {ac.volatility}"
                )

        if not -1.0 <= self.correlation <= 1.0:
            raise ConfigurationError(
                f"Correlation must be between -1 and 1, got {self.correlation}"
            )
        if self.apply_correlation and len(self.asset_classes) != 2:
            raise ConfigurationError("Correlated draws require exactly two asset classes")

    def correlation_matrix(self) -> np.ndarray:
        rho = self.correlation
        return np.array([[1.0, rho], [rho, 1.0]])

