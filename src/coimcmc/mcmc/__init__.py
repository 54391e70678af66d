"""
MCMC Subpackage - Chain management for the COI sampler.

This package contains the sampling loop:
- engine: MCMCEngine (chains, phases, traces)
- config: Configuration defaults, precision and random keys
- diagnostics: Acceptance rate reporting
- sampling: Per-chain and vmapped sweeps
- scan: JAX scan body and jitted chunk runners
- types: Core data structures (RunParams, ChainPhase)
"""

# Import types first (needed by other modules)
from .types import ChainPhase, RunParams, build_run_params

from .config import (
    clean_config,
    configure_precision,
    gen_rng_keys,
    gen_chain_keys,
)
from .diagnostics import acceptance_rates, print_acceptance_summary
from .engine import MCMCEngine

__all__ = [
    'MCMCEngine',
    # Types
    'ChainPhase',
    'RunParams',
    'build_run_params',
    # Config
    'clean_config',
    'configure_precision',
    'gen_rng_keys',
    'gen_chain_keys',
    # Diagnostics
    'acceptance_rates',
    'print_acceptance_summary',
]
