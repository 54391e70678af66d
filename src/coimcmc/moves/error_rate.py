"""
Error rate moves (eps_pos, eps_neg).

Each rate takes a symmetric normal random-walk step on [0, 1],

    eps' = eps + N(0, var)

and is scored against the total observation likelihood plus its Beta prior.
Steps that leave the open unit interval are rejected.

Settings used:
    EPS_POS_VAR, EPS_POS_ALPHA, EPS_POS_BETA
    EPS_NEG_VAR, EPS_NEG_ALPHA, EPS_NEG_BETA
"""

import jax.numpy as jnp

from ..likelihood import get_epsilon_log_prior, observation_log_likelihood
from ..settings import SettingSlot
from ..variates import normal_step
from .common import Move


# field name -> (variance slot, prior alpha slot, prior beta slot)
_ERROR_RATE_SLOTS = {
    'eps_pos': (SettingSlot.EPS_POS_VAR, SettingSlot.EPS_POS_ALPHA, SettingSlot.EPS_POS_BETA),
    'eps_neg': (SettingSlot.EPS_NEG_VAR, SettingSlot.EPS_NEG_ALPHA, SettingSlot.EPS_NEG_BETA),
}


def make_error_rate_move(field):
    """Build the random-walk move for 'eps_pos' or 'eps_neg'."""
    var_slot, alpha_slot, beta_slot = _ERROR_RATE_SLOTS[field]

    def propose(key, state, ctx):
        current = getattr(state, field)
        step = normal_step(key, ctx.settings[var_slot], dtype=current.dtype)
        return state._replace(**{field: current + step}), jnp.zeros((), dtype=current.dtype)

    def log_target(state, ctx):
        eps = getattr(state, field)
        inside = (eps > 0) & (eps < 1)
        safe_state = state._replace(**{field: jnp.where(inside, eps, 0.5)})
        obs = observation_log_likelihood(
            safe_state.latent_counts, safe_state.eps_pos, safe_state.eps_neg, ctx.data
        )
        prior = get_epsilon_log_prior(eps, ctx.settings[alpha_slot], ctx.settings[beta_slot])
        return jnp.where(inside, jnp.sum(obs) + prior, -jnp.inf)

    def commit(accept, proposed, current):
        return current._replace(
            **{field: jnp.where(accept, getattr(proposed, field), getattr(current, field))}
        )

    return Move(name=field, propose=propose, log_target=log_target, commit=commit)
