"""
MCMC Configuration and Initialization.

This module handles setting up the run configuration:
- clean_config: Fill in defaults for every config key
- configure_precision: Switch JAX between float32 and float64
- gen_rng_keys: Generate the master and initialization keys
- gen_chain_keys: Split one independent random stream per chain

All config keys use lowercase with underscores (e.g., 'num_chains', 'eps_pos_var').
"""

from typing import Any, Dict, Tuple

import jax
import jax.numpy as jnp
import jax.random as random

from ..settings import SETTING_DEFAULTS, setting_key


def clean_config(mcmc_config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Cleans the config dict and sets defaults.
    All config keys use lowercase with underscores.
    """
    mcmc_config.setdefault('num_chains', 1)
    mcmc_config.setdefault('burnin', 0)
    mcmc_config.setdefault('samples', 0)
    mcmc_config.setdefault('thin', 1)
    mcmc_config.setdefault('max_coi', 25)
    mcmc_config.setdefault('rng_seed', 42)
    mcmc_config.setdefault('use_double', True)
    mcmc_config.setdefault('chunk_size', 100)
    mcmc_config.setdefault('coi_proposal', 'geometric')
    mcmc_config.setdefault('allele_freq_proposal', 'dirichlet')
    mcmc_config.setdefault('verbose', True)

    # Proposal tuning and prior hyper-parameters
    for slot, default in SETTING_DEFAULTS.items():
        mcmc_config.setdefault(setting_key(slot), default)

    return mcmc_config


def configure_precision(use_double: bool):
    """
    Configure JAX precision.

    Returns:
        (float_dtype, int_dtype)
    """
    if use_double:
        jax.config.update("jax_enable_x64", True)
        return jnp.float64, jnp.int64
    jax.config.update("jax_enable_x64", False)
    return jnp.float32, jnp.int32


def gen_rng_keys(rng_seed: int) -> Tuple[Any, Any]:
    """Generate JAX random keys from seed.

    Returns:
        (master_key, init_key): Tuple of JAX PRNGKeys
    """
    mkey = jax.random.PRNGKey(rng_seed)
    master_key, init_key = random.split(mkey, 2)
    return master_key, init_key


def gen_chain_keys(key, num_chains: int):
    """One independent key per chain, shape (num_chains, 2)."""
    return random.split(key, num_chains)
