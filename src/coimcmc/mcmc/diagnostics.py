"""
Acceptance Rate Reporting.

- acceptance_rates: Turn accepted-unit counts into per-chain rates per move
- print_acceptance_summary: Log summary statistics for a phase
"""

from typing import Dict, List

import numpy as np

import logging
logger = logging.getLogger('coimcmc')


# Moves accepting less often than this are flagged in the summary
LOW_ACCEPTANCE = 0.10


def acceptance_rates(accept_counts: np.ndarray, unit_counts: List[int], n_sweeps: int,
                     move_names: List[str]) -> Dict[str, np.ndarray]:
    """
    Per-chain acceptance rates for each move.

    Args:
        accept_counts: Accepted units (n_chains, n_moves), on host
        unit_counts: Units one move updates per chain per sweep
        n_sweeps: Sweeps run in the phase
        move_names: Label per move

    Returns:
        Dict move name -> (n_chains,) rate array (NaN when no sweeps ran)
    """
    rates = {}
    for i, name in enumerate(move_names):
        attempts = unit_counts[i] * n_sweeps
        if attempts == 0:
            rates[name] = np.full(accept_counts.shape[0], np.nan)
        else:
            rates[name] = np.asarray(accept_counts[:, i], dtype=np.float64) / attempts
    return rates


def print_acceptance_summary(phase: str, rates: Dict[str, np.ndarray]) -> None:
    """
    Log summary statistics for MH acceptance rates.

    Args:
        phase: 'burnin' or 'sample'
        rates: Output of acceptance_rates
    """
    if not rates or all(np.all(np.isnan(r)) for r in rates.values()):
        return

    logger.info(f"\n--- MH Acceptance Rates ({phase}, {len(rates)} moves) ---")
    low_labels = []
    for name, chain_rates in rates.items():
        logger.info(f"  {name:<12} Mean: {np.mean(chain_rates):.1%}  "
                    f"Min: {np.min(chain_rates):.1%}  Max: {np.max(chain_rates):.1%}")
        if np.mean(chain_rates) < LOW_ACCEPTANCE:
            low_labels.append(name)

    if low_labels:
        logger.warning(f"  WARNING: {len(low_labels)} move(s) have acceptance rate < 10%: "
                       f"{', '.join(low_labels)}")
