"""
MCMC Sampling Functions.

Core sampling functions for the engine:
- full_chain_sweep: Apply every move once to a single chain
- parallel_sweep: Vmapped version for all chains
- run_sweeps: Repeat parallel_sweep a fixed number of times
"""

import jax
import jax.numpy as jnp
import numpy as np
from functools import partial

from ..moves import metropolis_step


def full_chain_sweep(key, state, ctx, moves):
    """
    Run one full sweep of MH moves over a single chain.

    Args:
        key: This chain's random key
        state: ChainState of this chain
        ctx: ModelContext (shared by all chains)
        moves: Tuple of Move in sweep order (static)

    Returns:
        state: Updated ChainState
        key: Advanced random key
        accepted: Units accepted per move (n_moves,)
    """
    accepted = []
    for move in moves:
        state, key, n_accepted, _ = metropolis_step(move, key, state, ctx)
        accepted.append(n_accepted)
    return state, key, jnp.stack(accepted)


def parallel_sweep(keys, states, ctx, moves):
    """
    Run one sweep for all chains in parallel.

    Args:
        keys: Random keys for each chain (n_chains, 2)
        states: Stacked ChainState, leading axis n_chains
        ctx: ModelContext - shared across chains
        moves: Tuple of Move (static)

    Returns:
        states, keys, accepted units per chain and move (n_chains, n_moves)
    """
    sweep = partial(full_chain_sweep, ctx=ctx, moves=moves)
    return jax.vmap(sweep)(keys, states)


def run_sweeps(keys, states, accept_counts, ctx, moves, n_sweeps):
    """Apply n_sweeps parallel sweeps without recording; accumulates acceptance counts."""
    def body(_, carry):
        keys, states, accept_counts = carry
        states, keys, accepted = parallel_sweep(keys, states, ctx, moves)
        return keys, states, accept_counts + accepted

    return jax.lax.fori_loop(0, n_sweeps, body, (keys, states, accept_counts))


def move_unit_counts(moves, state, ctx):
    """Number of units each move updates per chain per sweep (host ints)."""
    counts = []
    for move in moves:
        _, log_hastings = jax.eval_shape(move.propose, jax.random.PRNGKey(0), state, ctx)
        counts.append(int(np.prod(log_hastings.shape)))
    return counts
