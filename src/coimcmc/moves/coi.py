"""
COI Move

Updates the complexity of infection of every sample independently.

Step size:
    'unit'       delta = +/-1 with equal probability
    'geometric'  delta = sign * G, G ~ Geometric(1 / (1 + coi_prop_mean))
                 counting failures (so delta may be 0),
                 sign = +/-1 with equal probability

The latent genotype is updated relative to the current strain-allele counts,
so loci that already explain the observed calls keep doing so:

    delta = +k   k new strains per locus, drawn from Multinomial(k, p[l])
    delta = -k   k of the coi existing strains per locus, removed uniformly
                 without replacement (multivariate hypergeometric)

The step distribution is symmetric in delta, and adding is the reverse of
removing, so the Hastings term per locus is

    +k:  log H(added | counts', k) - log M(added | k, p)
    -k:  log M(removed | k, p) - log H(removed | counts, k)

summed over loci. Proposals with coi' < 1 or coi' > max_coi are rejected
through the target.

Settings used:
    COI_PROP_MEAN - Mean |delta| of the geometric proposal (default 1.0)
"""

import jax.numpy as jnp
import jax.random as random

from ..likelihood import genotype_log_prob, get_coi_log_prob, observation_log_likelihood
from ..settings import SettingSlot
from ..variates import (
    bernoulli,
    geometric,
    log_density_hypergeometric,
    log_density_multinomial,
    multinomial_counts,
    remove_strains,
)
from .common import Move


def _propose(key, state, ctx, step_kind):
    sign_key, step_key, add_key, remove_key = random.split(key, 4)
    num_samples = state.coi.shape[0]

    sign = 2 * bernoulli(sign_key, 0.5, (num_samples,)) - 1
    if step_kind == 'geometric':
        success_prob = 1.0 / (1.0 + ctx.settings[SettingSlot.COI_PROP_MEAN])
        magnitude = geometric(step_key, success_prob, (num_samples,))
    else:
        magnitude = jnp.ones(num_samples, dtype=jnp.int32)

    proposed_coi = state.coi + sign * magnitude
    # Out-of-range values are rejected by the target; move the counts by a legal step
    step = jnp.clip(proposed_coi, 1, ctx.max_coi) - state.coi
    growing = step > 0
    k = jnp.abs(step)

    log_p = jnp.log(state.allele_freqs)[:, None, :]
    added = multinomial_counts(
        add_key, jnp.where(growing, k, 0)[None, :], state.allele_freqs[:, None, :], ctx.max_coi
    )
    removed = remove_strains(remove_key, state.latent_counts, jnp.where(growing, 0, k)[None, :], ctx.max_coi)
    proposed_counts = state.latent_counts + added - removed

    changed = added + removed
    larger = jnp.where(growing[None, :, None], proposed_counts, state.latent_counts)
    log_add = log_density_multinomial(changed, k[None, :], log_p, ctx.log_gamma)
    log_remove = log_density_hypergeometric(changed, larger, ctx.log_gamma)
    log_hastings = jnp.sum(jnp.where(growing[None, :], log_remove - log_add, log_add - log_remove), axis=0)

    proposed = state._replace(coi=proposed_coi, latent_counts=proposed_counts)
    return proposed, log_hastings


def _log_target(state, ctx):
    """Per-sample log target: COI prior + genotype prior + observations, summed over loci."""
    in_range = (state.coi >= 1) & (state.coi <= ctx.max_coi)
    coi = jnp.clip(state.coi, 1, ctx.max_coi)

    obs = observation_log_likelihood(state.latent_counts, state.eps_pos, state.eps_neg, ctx.data)
    geno = genotype_log_prob(state.latent_counts, coi, state.allele_freqs, ctx.log_gamma)
    prior = get_coi_log_prob(coi, state.mean_coi, ctx.log_gamma)

    return jnp.where(in_range, prior + jnp.sum(obs + geno, axis=0), -jnp.inf)


def _commit(accept, proposed, current):
    return current._replace(
        coi=jnp.where(accept, proposed.coi, current.coi),
        latent_counts=jnp.where(accept[None, :, None], proposed.latent_counts, current.latent_counts),
    )


def make_coi_move(step_kind='geometric'):
    """Build the COI move for a step kind ('unit' or 'geometric')."""
    return Move(
        name='coi',
        propose=lambda key, state, ctx: _propose(key, state, ctx, step_kind),
        log_target=_log_target,
        commit=_commit,
    )
