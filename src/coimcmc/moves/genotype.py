"""
Latent genotype move.

For every (locus, sample) pair independently, draws a fresh set of strain
alleles from the current allele frequencies,

    counts'[l, s] ~ Multinomial(coi[s], p[l])

This is an independence proposal from the genotype prior, so the prior and
proposal terms cancel and acceptance depends only on the observation
likelihood ratio. Missing pairs have a flat likelihood and always accept.
"""

import jax.numpy as jnp

from ..likelihood import genotype_log_prob, observation_log_likelihood
from ..variates import multinomial_counts
from .common import Move


def _propose(key, state, ctx):
    proposed_counts = multinomial_counts(
        key, state.coi[None, :], state.allele_freqs[:, None, :], ctx.max_coi
    )
    lp_fwd = genotype_log_prob(proposed_counts, state.coi, state.allele_freqs, ctx.log_gamma)
    lp_rev = genotype_log_prob(state.latent_counts, state.coi, state.allele_freqs, ctx.log_gamma)
    return state._replace(latent_counts=proposed_counts), lp_rev - lp_fwd


def _log_target(state, ctx):
    """Per (locus, sample): genotype prior + observation likelihood."""
    obs = observation_log_likelihood(state.latent_counts, state.eps_pos, state.eps_neg, ctx.data)
    geno = genotype_log_prob(state.latent_counts, state.coi, state.allele_freqs, ctx.log_gamma)
    return obs + geno


def _commit(accept, proposed, current):
    return current._replace(
        latent_counts=jnp.where(accept[..., None], proposed.latent_counts, current.latent_counts),
    )


def make_genotype_move():
    return Move(name='genotype', propose=_propose, log_target=_log_target, commit=_commit)
