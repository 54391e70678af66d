"""
Trace file I/O.

Saves the raw traces returned by run_mcmc / MCMCEngine.results to a
compressed .npz file and loads them back. Nested dicts (acceptance rates,
diagnostics, config) are stored as pickled object arrays.
"""

from pathlib import Path
from typing import Any, Dict

import numpy as np

import logging
logger = logging.getLogger('coimcmc')


TRACE_KEYS = (
    'loglike_burnin',
    'loglike_sample',
    'coi_store',
    'allele_freq_store',
    'eps_pos_store',
    'eps_neg_store',
    'mean_coi_store',
)

# Nested entries stored as 0-d object arrays
METADATA_KEYS = ('acceptance_rates', 'diagnostics', 'config')


def save_results(filepath: str, results: Dict[str, Any]) -> Path:
    """
    Save sampler results to disk.

    Args:
        filepath: Destination (.npz is appended by NumPy if missing)
        results: Dict with at least the TRACE_KEYS arrays

    Returns:
        Path actually written
    """
    missing = [key for key in TRACE_KEYS if key not in results]
    if missing:
        raise KeyError(f"results is missing trace(s): {', '.join(missing)}")

    payload = {key: np.asarray(results[key]) for key in TRACE_KEYS}
    for key in METADATA_KEYS:
        if key in results:
            payload[key] = np.array(results[key], dtype=object)

    filepath = Path(filepath)
    if filepath.suffix != '.npz':
        filepath = filepath.with_name(filepath.name + '.npz')
    np.savez_compressed(filepath, **payload)
    logger.info(f"Results saved to {filepath}")
    return filepath


def load_results(filepath: str) -> Dict[str, Any]:
    """
    Load results written by save_results.

    Raises:
        FileNotFoundError: If the file does not exist
    """
    filepath = Path(filepath)
    if not filepath.exists():
        raise FileNotFoundError(f"Results file not found: {filepath}")

    # Copy arrays so the NpzFile can be closed
    with np.load(filepath, allow_pickle=True) as data:
        results = {key: data[key].copy() for key in TRACE_KEYS}
        for key in METADATA_KEYS:
            if key in data:
                results[key] = data[key].item()

    return results
