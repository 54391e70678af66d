"""
COI prior mean move.

Normal random walk on the zero-truncated Poisson mean shared by all samples,
scored against sum_s log ZTPois(coi[s] | mean) plus its Gamma prior.
Non-positive proposals are rejected.
"""

import jax.numpy as jnp

from ..likelihood import get_coi_log_prob, get_coi_mean_log_prior
from ..settings import SettingSlot
from ..variates import normal_step
from .common import Move


def _propose(key, state, ctx):
    step = normal_step(key, ctx.settings[SettingSlot.MEAN_COI_VAR], dtype=state.mean_coi.dtype)
    return state._replace(mean_coi=state.mean_coi + step), jnp.zeros((), dtype=state.mean_coi.dtype)


def _log_target(state, ctx):
    positive = state.mean_coi > 0
    mean_coi = jnp.where(positive, state.mean_coi, 1.0)
    coi_lp = jnp.sum(get_coi_log_prob(state.coi, mean_coi, ctx.log_gamma))
    return jnp.where(positive, coi_lp + get_coi_mean_log_prior(state.mean_coi, ctx.settings), -jnp.inf)


def _commit(accept, proposed, current):
    return current._replace(mean_coi=jnp.where(accept, proposed.mean_coi, current.mean_coi))


def make_mean_coi_move():
    return Move(name='mean_coi', propose=_propose, log_target=_log_target, commit=_commit)
