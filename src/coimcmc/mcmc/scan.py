"""
MCMC Scan Body and Chunk Runners.

A record is `thin` sweeps followed by a snapshot of every chain. The chunk
runners scan a fixed number of records so a phase of any length is executed
as a sequence of identically shaped, compiled chunks.

- snapshot: What is recorded per chain for a phase
- record_step: Scan body (thin sweeps, then snapshot)
- run_record_chunk: Jitted scan over n_records records
- run_unrecorded: Jitted run of sweeps that produce no record

The carry is (keys, states, accept_counts):
    keys: (n_chains, 2) one random stream per chain
    states: stacked ChainState
    accept_counts: (n_chains, n_moves) accepted units per chain and move
"""

import jax
from functools import partial

from ..moves import build_moves
from .sampling import run_sweeps


def snapshot(states, record_params):
    """
    Per-chain values recorded after a record's sweeps.

    Burn-in records only the log-likelihood; sampling also records the
    parameters.
    """
    record = {'log_likelihood': states.log_likelihood}
    if record_params:
        record['coi'] = states.coi
        record['allele_freqs'] = states.allele_freqs
        record['eps_pos'] = states.eps_pos
        record['eps_neg'] = states.eps_neg
        record['mean_coi'] = states.mean_coi
    return record


def record_step(carry, _, ctx, moves, thin, record_params):
    keys, states, accept_counts = carry
    keys, states, accept_counts = run_sweeps(keys, states, accept_counts, ctx, moves, thin)
    return (keys, states, accept_counts), snapshot(states, record_params)


@partial(jax.jit, static_argnames=('run_params', 'n_records', 'record_params'))
def run_record_chunk(carry, ctx, run_params, n_records, record_params):
    """
    Run n_records records for all chains.

    Moves are rebuilt from run_params inside the trace, so only the proposal
    kinds this run uses are compiled.

    Returns:
        carry: Updated (keys, states, accept_counts)
        records: Dict of arrays with leading axes (n_records, n_chains)
    """
    moves = build_moves(run_params)
    body = partial(record_step, ctx=ctx, moves=moves, thin=run_params.THIN,
                   record_params=record_params)
    return jax.lax.scan(body, carry, None, length=n_records)


@partial(jax.jit, static_argnames=('run_params',))
def run_unrecorded(carry, ctx, run_params, n_sweeps):
    """Run n_sweeps sweeps for all chains without recording anything."""
    moves = build_moves(run_params)
    keys, states, accept_counts = carry
    return run_sweeps(keys, states, accept_counts, ctx, moves, n_sweeps)
