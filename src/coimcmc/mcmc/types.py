"""
MCMC Data Structures and Type Definitions.

This module contains the core data structures used by the engine:
- RunParams: Immutable run parameters for JAX static arguments
- ChainPhase: Lifecycle phase of a chain
- build_run_params: Factory function for RunParams
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Dict


class ChainPhase(IntEnum):
    """
    Lifecycle of a chain.

    UNINITIALIZED -> BURNING_IN -> SAMPLING -> COMPLETE

    A chain enters BURNING_IN as soon as its starting state is drawn. Phases
    only move forward; any other transition is a programming error.
    """
    UNINITIALIZED = 0
    BURNING_IN = 1
    SAMPLING = 2
    COMPLETE = 3


@dataclass(frozen=True)
class RunParams:
    """
    Immutable run parameters for JAX static argument compatibility.

    This frozen dataclass is passed as a static argument to the jitted chunk
    runners, so the sweep kernel is traced once per distinct configuration.
    """
    NUM_CHAINS: int
    BURNIN: int
    SAMPLES: int
    THIN: int
    MAX_COI: int
    CHUNK_SIZE: int
    COI_PROPOSAL: str = 'geometric'
    ALLELE_FREQ_PROPOSAL: str = 'dirichlet'

    @property
    def burnin_records(self) -> int:
        return self.BURNIN // self.THIN

    @property
    def sample_records(self) -> int:
        return self.SAMPLES // self.THIN


def build_run_params(mcmc_config: Dict[str, Any]) -> RunParams:
    """Build RunParams from a cleaned config dict."""
    return RunParams(
        NUM_CHAINS=int(mcmc_config['num_chains']),
        BURNIN=int(mcmc_config['burnin']),
        SAMPLES=int(mcmc_config['samples']),
        THIN=int(mcmc_config['thin']),
        MAX_COI=int(mcmc_config['max_coi']),
        CHUNK_SIZE=int(mcmc_config['chunk_size']),
        COI_PROPOSAL=mcmc_config['coi_proposal'],
        ALLELE_FREQ_PROPOSAL=mcmc_config['allele_freq_proposal'],
    )
