"""
Pytest configuration and shared fixtures for coimcmc tests.
"""

import jax
jax.config.update("jax_enable_x64", True)

import pytest
import numpy as np
import jax.numpy as jnp

from coimcmc.data import GenotypingDataset
from coimcmc.lookup import NumericLookup
from coimcmc.mcmc.config import clean_config
from coimcmc.settings import build_settings_vector
from coimcmc.state import build_model_context, initialize_chain_state


@pytest.fixture
def rng_seed():
    """Default RNG seed for reproducible tests."""
    return 42


@pytest.fixture
def nested_data():
    """
    Two loci, three samples; locus 0 has 2 alleles, locus 1 has 3.

    Sample 2 carries three alleles at locus 1.
    """
    return [
        [[1, 0], [1, 1], [0, 1]],
        [[0, 1, 0], [1, 0, 0], [1, 1, 1]],
    ]


@pytest.fixture
def nested_missing():
    return [
        [False, False, True],
        [False, False, False],
    ]


@pytest.fixture
def small_dataset(nested_data, nested_missing):
    return GenotypingDataset.from_nested(nested_data, nested_missing)


@pytest.fixture
def lookup():
    return NumericLookup.build(10)


@pytest.fixture
def base_config():
    """Quiet, short run configuration."""
    return {
        'num_chains': 2,
        'burnin': 0,
        'samples': 0,
        'thin': 1,
        'max_coi': 10,
        'rng_seed': 42,
        'chunk_size': 50,
        'verbose': False,
    }


def make_context(dataset, lookup, **overrides):
    """ModelContext with default settings plus overrides."""
    config = clean_config(dict(overrides))
    return build_model_context(dataset, lookup, build_settings_vector(config, jnp.float64), jnp.float64)


def make_state(dataset, lookup, seed=0, **overrides):
    """(state, ctx) for one freshly initialized chain."""
    ctx = make_context(dataset, lookup, **overrides)
    return initialize_chain_state(jax.random.PRNGKey(seed), ctx), ctx


@pytest.fixture
def model_context(small_dataset, lookup):
    return make_context(small_dataset, lookup)


@pytest.fixture
def chain_state(small_dataset, lookup):
    state, _ = make_state(small_dataset, lookup)
    return state


def assert_valid_state(state, dataset, max_coi):
    """Invariants every chain state must satisfy."""
    coi = np.asarray(state.coi)
    counts = np.asarray(state.latent_counts)
    freqs = np.asarray(state.allele_freqs)
    mask = np.asarray(dataset.allele_mask)

    assert np.all(coi >= 1)
    assert np.all(coi <= max_coi)
    np.testing.assert_allclose(freqs.sum(axis=1), 1.0, atol=1e-9)
    assert np.all(freqs[~mask] == 0.0)
    assert np.all(freqs >= 0.0)
    np.testing.assert_array_equal(counts.sum(axis=2), np.broadcast_to(coi, counts.shape[:2]))
    assert np.all(counts[~np.broadcast_to(mask[:, None, :], counts.shape)] == 0)
    assert 0.0 < float(state.eps_pos) < 1.0
    assert 0.0 < float(state.eps_neg) < 1.0
    assert float(state.mean_coi) > 0.0
    assert np.isfinite(float(state.log_likelihood))
