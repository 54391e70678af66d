"""
Shared Metropolis-Hastings machinery for all moves.

A move is described by three pure functions bundled in a Move namedtuple:

    propose(key, state, ctx) -> (proposed_state, log_hastings)
        Draws a candidate state. log_hastings is log q(x | x') - log q(x' | x)
        per update unit (0 for symmetric walks).

    log_target(state, ctx) -> per-unit log target
        Unnormalized log posterior restricted to the terms that change when
        the move's units change. Returns -inf outside the support.

    commit(accept, proposed, current) -> state
        Keeps the proposed value of every accepted unit and the current value
        of every rejected one.

A "unit" is whatever the move updates independently: a sample for the COI
move, a (locus, sample) pair for the genotype move, a locus for the allele
frequency move, and the whole chain for scalar parameters. Acceptance is
decided elementwise across units, so one call performs many independent MH
steps at once.
"""

from collections import namedtuple

import jax.numpy as jnp
import jax.random as random

from ..likelihood import total_log_likelihood
from ..variates import log_uniform


Move = namedtuple('Move', ['name', 'propose', 'log_target', 'commit'])


def _safe_log_prob(lp):
    return jnp.nan_to_num(lp, nan=-jnp.inf, posinf=-jnp.inf, neginf=-jnp.inf)


def metropolis_step(move, key, state, ctx):
    """
    Perform one Metropolis-Hastings update for a move.

    Args:
        move: Move namedtuple
        key: This chain's random key
        state: Current ChainState
        ctx: ModelContext

    Returns:
        next_state, new_key, n_accepted (number of units accepted), n_units (static int)
    """
    new_key, proposal_key, accept_key = random.split(key, 3)

    proposed, log_hastings = move.propose(proposal_key, state, ctx)

    safe_lp_current = _safe_log_prob(move.log_target(state, ctx))
    safe_lp_proposed = _safe_log_prob(move.log_target(proposed, ctx))

    raw_ratio = log_hastings + safe_lp_proposed - safe_lp_current
    # Both sides -inf gives NaN; a NaN ratio is a rejection
    safe_ratio = jnp.nan_to_num(raw_ratio, nan=-jnp.inf)

    log_u = log_uniform(accept_key, jnp.shape(safe_ratio))
    accept = log_u < safe_ratio

    next_state = move.commit(accept, proposed, state)
    next_state = next_state._replace(log_likelihood=total_log_likelihood(next_state, ctx))

    return next_state, new_key, jnp.sum(accept.astype(next_state.log_likelihood.dtype)), accept.size
