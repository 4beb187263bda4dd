"""
Engine-wide defaults, with optional overrides from the environment.

Usage:
    from portfolio_forecast.config import EngineConfig
    engine_config = EngineConfig.from_env()
"""

import os
import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)

ENV_PREFIX = "PORTFOLIO_FORECAST_"


@dataclass
class EngineConfig:
    """Limits and defaults shared by every simulation call."""

    # Simulation bounds
    max_simulation_count: int = 10_000
    default_simulation_count: int = 1000
    default_time_horizon: int = 30
    min_time_horizon: int = 1
    max_time_horizon: int = 50

    # Statistics
    percentiles: tuple[int, ...] = (5, 25, 50, 75, 95)
    allocation_tolerance: float = 1e-6

    # Fan-out (1 = sequential)
    max_workers: int = 1

    version: str = "0.1.0"

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """
        Build a config from defaults overridden by env vars.

        Recognized:
          PORTFOLIO_FORECAST_MAX_SIMULATIONS  integer ceiling on paths
          PORTFOLIO_FORECAST_PERCENTILES      comma list, e.g. "10,50,90"
          PORTFOLIO_FORECAST_WORKERS          process pool size
        """
        config = cls()

        max_sims = _env_int("MAX_SIMULATIONS")
        if max_sims is not None and max_sims < 1:
            logger.warning(
                "Ignoring %sMAX_SIMULATIONS=%d, expected a positive integer",
                ENV_PREFIX, max_sims,
            )
        elif max_sims is not None:
            config.max_simulation_count = max_sims

        workers = _env_int("WORKERS")
        if workers is not None:
            config.max_workers = max(1, workers)

        raw = os.getenv(ENV_PREFIX + "PERCENTILES", "")
        if raw:
            try:
                config.percentiles = tuple(int(p) for p in raw.split(",") if p.strip())
                logger.info("Using percentiles %s from environment", config.percentiles)
            except ValueError:
                logger.warning(
                    "Ignoring %sPERCENTILES=%r, expected comma-separated integers",
                    ENV_PREFIX, raw,
                )

        return config


def _env_int(name: str) -> int | None:
    raw = os.getenv(ENV_PREFIX + name, "")
    if not raw:
        return None
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Ignoring %s%s=%r, expected an integer", ENV_PREFIX, name, raw)
        return None
    logger.info("Using %s%s=%d from environment", ENV_PREFIX, name, value)
    return value
