"""
Normal variates via the Box-Muller transform.

    z = sqrt(-2 ln u1) * cos(2 pi u2),   u1, u2 ~ U(0, 1)
    x = mean + z * volatility
"""

import math

import numpy as np

# Smallest positive double; stands in for u1 == 0 where ln is undefined
_U1_FLOOR = float(np.finfo(float).tiny)


class RandomVariateGenerator:
    """Draws normal samples from an injected numpy Generator."""

    def __init__(self, rng: np.random.Generator | None = None):
        self.rng = rng if rng is not None else np.random.default_rng()

    @classmethod
    def from_seed(cls, seed=None) -> "RandomVariateGenerator":
        """Accepts an int, a SeedSequence, or None (OS entropy)."""
        return cls(np.random.default_rng(seed))

    def standard_normal(self) -> float:
        u1 = float(self.rng.random())
        u2 = float(self.rng.random())
        if u1 <= 0.0:
            u1 = _U1_FLOOR
        return math.sqrt(-2.0 * math.log(u1)) * math.cos(2.0 * math.pi * u2)

    def normal(self, mean: float, volatility: float) -> float:
        return mean + self.standard_normal() * volatility

    def correlated_pair(
        self, correlation: float, factor: np.ndarray | None = None,
    ) -> tuple[float, float]:
        """
        Two standard normals with the given correlation.

        factor, when given, is the lower Cholesky factor of the 2x2
        correlation matrix and is used as is.
        """
        if abs(correlation) >= 1.0:
            # Singular matrix: the second draw is a copy (or mirror) of the first
            z1 = self.standard_normal()
            self.standard_normal()
            return z1, math.copysign(1.0, correlation) * z1

        if factor is None:
            factor = np.linalg.cholesky(np.array([[1.0, correlation], [correlation, 1.0]]))
        z = np.array([self.standard_normal(), self.standard_normal()])
        z1, z2 = factor @ z
        return float(z1), float(z2)
