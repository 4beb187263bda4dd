"""Monte Carlo projection of multi-year portfolio outcomes."""
from .config import SimulationConfiguration, FinancialInputs, RebalancingPolicy
from .errors import SimulationError, ConfigurationError, ComputationError, SimulationCancelled
from .market import MarketParameters, AssetClassParameters
from .random_variates import RandomVariateGenerator
from .paths import PathSimulator, SimulatedPath, SimulationResultSet
