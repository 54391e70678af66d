"""
Error Handling and Validation Utilities for the COI sampler

This module provides the exception types raised at setup time, config
validation, and post-run trace diagnostics.

Only setup problems are surfaced as exceptions. Inside the sampling loop an
unfavourable or numerically broken proposal is simply rejected by the
Metropolis-Hastings step.
"""

from typing import Any, Dict

import numpy as np

import logging
logger = logging.getLogger('coimcmc')


class GenotypingDataError(ValueError):
    """Malformed genotype tensor or missingness mask."""


class ConfigurationError(ValueError):
    """Invalid run parameters."""


class DensityDomainError(ValueError):
    """A density was evaluated outside its support (programming/config error)."""


VALID_COI_PROPOSALS = ('unit', 'geometric')
VALID_ALLELE_FREQ_PROPOSALS = ('dirichlet', 'logit_normal')


def validate_mcmc_config(mcmc_config: Dict[str, Any]) -> None:
    """
    Validates that the run configuration is sensible.

    Args:
        mcmc_config: Configuration dictionary (after clean_config)

    Raises:
        ConfigurationError: If configuration is invalid
    """
    errors = []

    if mcmc_config.get('num_chains', 1) < 1:
        errors.append("num_chains must be >= 1")

    for key in ('burnin', 'samples'):
        if mcmc_config.get(key, 0) < 0:
            errors.append(f"{key} must be >= 0")

    if mcmc_config.get('thin', 1) < 1:
        errors.append("thin must be >= 1")

    if mcmc_config.get('chunk_size', 1) < 1:
        errors.append("chunk_size must be >= 1")

    if 'max_coi' in mcmc_config and mcmc_config['max_coi'] < 1:
        errors.append(f"max_coi must be >= 1, got {mcmc_config['max_coi']}")

    coi_proposal = mcmc_config.get('coi_proposal', 'geometric')
    if coi_proposal not in VALID_COI_PROPOSALS:
        errors.append(f"coi_proposal must be one of {VALID_COI_PROPOSALS}, got '{coi_proposal}'")

    af_proposal = mcmc_config.get('allele_freq_proposal', 'dirichlet')
    if af_proposal not in VALID_ALLELE_FREQ_PROPOSALS:
        errors.append(
            f"allele_freq_proposal must be one of {VALID_ALLELE_FREQ_PROPOSALS}, got '{af_proposal}'"
        )

    # Proposal scales and prior hyper-parameters must be strictly positive
    positive_keys = [
        'coi_prop_mean', 'allele_freq_alpha', 'allele_freq_var',
        'eps_pos_var', 'eps_neg_var', 'mean_coi_var',
        'mean_coi_shape', 'mean_coi_scale',
        'eps_pos_alpha', 'eps_pos_beta', 'eps_neg_alpha', 'eps_neg_beta',
        'allele_freq_concentration',
    ]
    for key in positive_keys:
        if key in mcmc_config and not mcmc_config[key] > 0:
            errors.append(f"{key} must be > 0, got {mcmc_config[key]}")

    if errors:
        raise ConfigurationError("Invalid MCMC configuration:\n  " + "\n  ".join(errors))


def diagnose_traces(results: Dict[str, Any], diagnostics: Dict[str, Any]) -> Dict[str, Any]:
    """
    Scans recorded traces for numerical problems.

    Args:
        results: Results dict with trace arrays (see MCMCEngine.results)
        diagnostics: Existing diagnostics dict to extend

    Returns:
        diagnostics: Dictionary with issues, warnings, and info
    """
    diagnostics = diagnostics | {
        'issues': [],
        'warnings': [],
        'info': []
    }

    trace_keys = ['loglike_burnin', 'loglike_sample', 'allele_freq_store',
                  'eps_pos_store', 'eps_neg_store', 'mean_coi_store']
    for key in trace_keys:
        trace = results.get(key)
        if trace is None or trace.size == 0:
            continue
        if not np.all(np.isfinite(trace)):
            diagnostics['issues'].append(
                f"'{key}' contains NaN or Inf values - sampler became unstable"
            )

    coi_store = results.get('coi_store')
    if coi_store is not None and coi_store.size > 0 and np.any(coi_store < 1):
        diagnostics['issues'].append("'coi_store' contains COI values below 1")

    n_chains = results['loglike_sample'].shape[0]
    diagnostics['info'].append(f"Number of chains: {n_chains}")
    diagnostics['info'].append(f"Burn-in records per chain: {results['loglike_burnin'].shape[1]}")
    diagnostics['info'].append(f"Sample records per chain: {results['loglike_sample'].shape[1]}")

    return diagnostics


def print_diagnostics(diagnostics: Dict[str, Any]) -> None:
    """Pretty-print diagnostics from diagnose_traces."""
    if diagnostics['issues']:
        logger.error("\n[ERROR] ISSUES:")
        for issue in diagnostics['issues']:
            logger.error(f"  - {issue}")

    if diagnostics['warnings']:
        logger.warning("\n[WARN] WARNINGS:")
        for warning in diagnostics['warnings']:
            logger.warning(f"  - {warning}")

    if diagnostics['info']:
        logger.info("\n[INFO] INFO:")
        for info in diagnostics['info']:
            logger.info(f"  - {info}")

    if not diagnostics['issues'] and not diagnostics['warnings']:
        logger.info("\n[OK] No issues detected")
