"""Exceptions raised by the Monte Carlo engine."""


class SimulationError(Exception):
    """Base class for all engine errors."""


class ConfigurationError(SimulationError, ValueError):
    """Invalid simulation configuration or financial inputs.

    Raised before any path is simulated.
    """


class ComputationError(SimulationError, ArithmeticError):
    """Arithmetic produced a non-finite outcome. Indicates a defect."""


class SimulationCancelled(SimulationError):
    """The caller's cancel event fired while paths were running."""
