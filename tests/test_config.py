"""
Tests for run configuration, settings and validation.

Run with: pytest tests/test_config.py -v
"""

import numpy as np
import jax.numpy as jnp
import pytest

from coimcmc.error_handling import (
    ConfigurationError,
    diagnose_traces,
    validate_mcmc_config,
)
from coimcmc.mcmc.config import clean_config, gen_chain_keys, gen_rng_keys
from coimcmc.mcmc.types import ChainPhase, build_run_params
from coimcmc.settings import (
    MAX_SETTINGS,
    SETTING_DEFAULTS,
    SettingSlot,
    build_settings_vector,
    setting_key,
)


# ============================================================================
# CONFIG DEFAULTS
# ============================================================================

class TestCleanConfig:
    """Default filling."""

    def test_defaults(self):
        cfg = clean_config({})
        assert cfg['num_chains'] == 1
        assert cfg['burnin'] == 0
        assert cfg['samples'] == 0
        assert cfg['thin'] == 1
        assert cfg['max_coi'] == 25
        assert cfg['rng_seed'] == 42
        assert cfg['use_double'] is True
        assert cfg['coi_proposal'] == 'geometric'
        assert cfg['allele_freq_proposal'] == 'dirichlet'
        assert cfg['allele_freq_alpha'] == 1000.0
        assert cfg['eps_pos_var'] == 0.005
        assert cfg['mean_coi_shape'] == 0.1
        assert cfg['mean_coi_scale'] == 10.0

    def test_user_values_kept(self):
        cfg = clean_config({'num_chains': 8, 'eps_neg_var': 0.01})
        assert cfg['num_chains'] == 8
        assert cfg['eps_neg_var'] == 0.01

    def test_defaults_pass_validation(self):
        validate_mcmc_config(clean_config({}))


class TestValidateConfig:
    """Aggregated configuration errors."""

    @pytest.mark.parametrize("key,value,fragment", [
        ('num_chains', 0, 'num_chains'),
        ('burnin', -1, 'burnin'),
        ('samples', -5, 'samples'),
        ('thin', 0, 'thin'),
        ('chunk_size', 0, 'chunk_size'),
        ('max_coi', 0, 'max_coi'),
        ('coi_proposal', 'huge', 'coi_proposal'),
        ('allele_freq_proposal', 'gaussian', 'allele_freq_proposal'),
        ('eps_pos_var', 0.0, 'eps_pos_var'),
        ('mean_coi_scale', -1.0, 'mean_coi_scale'),
        ('allele_freq_concentration', 0.0, 'allele_freq_concentration'),
    ])
    def test_invalid_values(self, key, value, fragment):
        cfg = clean_config({key: value})
        with pytest.raises(ConfigurationError, match=fragment):
            validate_mcmc_config(cfg)

    def test_all_errors_reported(self):
        cfg = clean_config({'num_chains': 0, 'thin': 0, 'eps_neg_beta': -1.0})
        with pytest.raises(ConfigurationError) as exc_info:
            validate_mcmc_config(cfg)
        message = str(exc_info.value)
        assert 'num_chains' in message
        assert 'thin' in message
        assert 'eps_neg_beta' in message

    def test_is_value_error(self):
        with pytest.raises(ValueError):
            validate_mcmc_config({'num_chains': -1})


# ============================================================================
# SETTINGS VECTOR
# ============================================================================

class TestSettingsVector:
    """SettingSlot layout."""

    def test_defaults_fill_vector(self):
        vec = np.asarray(build_settings_vector({}))
        assert vec.shape == (MAX_SETTINGS,)
        for slot, default in SETTING_DEFAULTS.items():
            assert vec[slot] == pytest.approx(default)

    def test_config_overrides(self):
        vec = build_settings_vector({'eps_pos_var': 0.25, 'allele_freq_alpha': 50})
        assert float(vec[SettingSlot.EPS_POS_VAR]) == 0.25
        assert float(vec[SettingSlot.ALLELE_FREQ_ALPHA]) == 50.0

    def test_setting_key(self):
        assert setting_key(SettingSlot.MEAN_COI_VAR) == 'mean_coi_var'

    def test_every_slot_has_default(self):
        assert set(SETTING_DEFAULTS) == set(SettingSlot)

    def test_dtype(self):
        assert build_settings_vector({}, jnp.float32).dtype == jnp.float32


# ============================================================================
# RUN PARAMS AND KEYS
# ============================================================================

class TestRunParams:
    """Static run parameters."""

    def test_record_counts(self):
        params = build_run_params(clean_config({'burnin': 7, 'samples': 10, 'thin': 3}))
        assert params.burnin_records == 2
        assert params.sample_records == 3

    def test_hashable(self):
        a = build_run_params(clean_config({}))
        b = build_run_params(clean_config({}))
        assert a == b
        assert hash(a) == hash(b)

    def test_phase_order(self):
        assert list(ChainPhase) == [ChainPhase.UNINITIALIZED, ChainPhase.BURNING_IN,
                                    ChainPhase.SAMPLING, ChainPhase.COMPLETE]


class TestKeys:
    """Per-chain random streams."""

    def test_chain_keys_distinct(self):
        master_key, _ = gen_rng_keys(0)
        keys = np.asarray(gen_chain_keys(master_key, 4))
        assert keys.shape[0] == 4
        assert len({tuple(k.ravel()) for k in keys}) == 4

    def test_seed_reproducible(self):
        a, _ = gen_rng_keys(123)
        b, _ = gen_rng_keys(123)
        np.testing.assert_array_equal(np.asarray(a), np.asarray(b))

    def test_master_and_init_differ(self):
        master_key, init_key = gen_rng_keys(5)
        assert not np.array_equal(np.asarray(master_key), np.asarray(init_key))


# ============================================================================
# TRACE DIAGNOSTICS
# ============================================================================

class TestDiagnoseTraces:
    """Post-run scan of traces."""

    def _results(self):
        return {
            'loglike_burnin': np.zeros((2, 3)),
            'loglike_sample': np.zeros((2, 4)),
            'coi_store': np.ones((2, 4, 5), dtype=np.int32),
            'allele_freq_store': np.full((2, 4, 1, 2), 0.5),
            'eps_pos_store': np.full((2, 4), 0.1),
            'eps_neg_store': np.full((2, 4), 0.1),
            'mean_coi_store': np.ones((2, 4)),
        }

    def test_clean_traces(self):
        diagnostics = diagnose_traces(self._results(), {})
        assert diagnostics['issues'] == []
        assert "Number of chains: 2" in diagnostics['info']

    def test_non_finite_flagged(self):
        results = self._results()
        results['loglike_sample'][0, 1] = np.nan
        diagnostics = diagnose_traces(results, {})
        assert any('loglike_sample' in issue for issue in diagnostics['issues'])

    def test_low_coi_flagged(self):
        results = self._results()
        results['coi_store'][1, 0, 0] = 0
        diagnostics = diagnose_traces(results, {})
        assert any('coi_store' in issue for issue in diagnostics['issues'])
