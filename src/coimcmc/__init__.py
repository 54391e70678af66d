"""
coimcmc - Bayesian COI and allele frequency estimation by MCMC

Estimates per-sample complexity of infection (COI), population allele
frequencies and genotyping error rates from multi-locus presence/absence
data.

Public API:
    Entry point:
        run_mcmc - Build dataset, lookup and engine from raw input and run

    Data:
        GenotypingDataset - Immutable padded genotype tensor with missingness
        NumericLookup - Log-gamma table shared by all chains

    Sampling:
        MCMCEngine - Chains, burn-in/sampling phases and traces
        ChainState - Per-chain parameter values
        ChainPhase - Chain lifecycle enum
        MoveType - Moves in sweep order

    Settings:
        SettingSlot - IntEnum for move setting indices

    Output:
        save_results - Save traces to a compressed .npz
        load_results - Load traces saved by save_results

    Errors:
        GenotypingDataError, ConfigurationError, DensityDomainError

Example:
    from coimcmc import run_mcmc

    results = run_mcmc({
        'data': [[[1, 0], [1, 1]], [[0, 1, 0], [1, 0, 1]]],
        'num_chains': 2,
        'burnin': 500,
        'samples': 1000,
    })
    coi_means = results['coi_store'].mean(axis=(0, 1))
"""
# CRITICAL: Import jax_config FIRST to set environment variables before JAX loads
from . import jax_config  # noqa: F401

from .error_handling import GenotypingDataError, ConfigurationError, DensityDomainError
from .settings import SettingSlot
from .lookup import NumericLookup
from .data import GenotypingDataset
from .state import ChainState
from .moves import MoveType
from .mcmc import MCMCEngine, ChainPhase
from .mcmc_backend import run_mcmc
from .output_management import save_results, load_results

__all__ = [
    'run_mcmc',
    'GenotypingDataset',
    'NumericLookup',
    'MCMCEngine',
    'ChainState',
    'ChainPhase',
    'MoveType',
    'SettingSlot',
    'save_results',
    'load_results',
    'GenotypingDataError',
    'ConfigurationError',
    'DensityDomainError',
]
