"""
Numeric lookup tables.

The zero-truncated Poisson COI prior and the multinomial genotype prior both
need log-factorials of small integers on every move. They are tabulated once
per run, before any chain starts, and shared read-only by every chain.

Table layout:
    log_gamma[n] = log(Gamma(n))   for n in [0, max_coi + 1]

so that log(x!) = log_gamma[x + 1] for every count 0 <= x <= max_coi.
log_gamma[0] is +inf (the pole of Gamma at 0).
"""

from dataclasses import dataclass

import numpy as np
import jax.numpy as jnp

from .error_handling import ConfigurationError


@dataclass(frozen=True)
class NumericLookup:
    """Immutable log-gamma table for integer arguments up to max_coi + 1."""
    max_coi: int
    log_gamma: np.ndarray

    @classmethod
    def build(cls, max_coi: int) -> 'NumericLookup':
        """
        Tabulate log(Gamma(n)) for n = 0 .. max_coi + 1.

        Raises:
            ConfigurationError: If max_coi is negative
        """
        if max_coi < 0:
            raise ConfigurationError(f"max_coi must be >= 0, got {max_coi}")

        size = max_coi + 2
        table = np.empty(size, dtype=np.float64)
        table[0] = np.inf
        # log Gamma(n) = sum_{k=1}^{n-1} log k
        table[1:] = np.concatenate(([0.0], np.cumsum(np.log(np.arange(1, size - 1, dtype=np.float64)))))
        table.flags.writeable = False

        return cls(max_coi=max_coi, log_gamma=table)

    def log_factorial(self, x):
        """log(x!) for integer x in [0, max_coi] (host-side)."""
        return self.log_gamma[np.asarray(x) + 1]

    def as_jax(self, dtype=None) -> jnp.ndarray:
        """Device copy of the table for use inside jitted kernels."""
        return jnp.asarray(self.log_gamma, dtype=dtype)
