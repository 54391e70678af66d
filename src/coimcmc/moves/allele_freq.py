"""
Allele Frequency Move

Updates the allele frequency simplex of every locus independently.

Proposal kinds:
    'dirichlet'     p' ~ Dirichlet(alpha * p)
                    Hastings: log Dir(p | alpha * p') - log Dir(p' | alpha * p)
    'logit_normal'  log-ratios to the last allele perturbed by N(0, var)
                    Hastings: sum_k log p'_k - sum_k log p_k
                    (Jacobian of the additive log-ratio map)

Target per locus:
    sum_s log Multinomial(counts[l, s] | coi[s], p[l]) + log Dir(p[l] | concentration)

Only the genotype prior depends on p, so the observation term is left out.

Settings used:
    ALLELE_FREQ_ALPHA - Dirichlet step concentration (default 1000; larger = smaller steps)
    ALLELE_FREQ_VAR   - Logit-normal step variance (default 0.1)
    ALLELE_FREQ_CONCENTRATION - Symmetric Dirichlet prior (default 1.0)
"""

import jax
import jax.numpy as jnp
import jax.random as random

from ..likelihood import allele_freq_log_prior, genotype_log_prob
from ..settings import SettingSlot
from ..variates import log_density_dirichlet, rdirichlet, rlogit_norm
from .common import Move


def _propose_dirichlet(key, state, ctx):
    mask = ctx.data.allele_mask
    p = state.allele_freqs
    alpha = ctx.settings[SettingSlot.ALLELE_FREQ_ALPHA]

    proposed = rdirichlet(key, alpha * p, mask)
    log_hastings = (log_density_dirichlet(p, alpha * proposed, mask)
                    - log_density_dirichlet(proposed, alpha * p, mask))
    return state._replace(allele_freqs=proposed), log_hastings


def _propose_logit_normal(key, state, ctx):
    mask = ctx.data.allele_mask
    p = state.allele_freqs
    variance = ctx.settings[SettingSlot.ALLELE_FREQ_VAR]

    keys = random.split(key, p.shape[0])
    proposed = jax.vmap(rlogit_norm, in_axes=(0, 0, None, 0))(keys, p, variance, mask)

    log_p = jnp.log(jnp.where(mask, p, 1.0))
    log_p_prop = jnp.log(jnp.where(mask, proposed, 1.0))
    log_hastings = jnp.sum(log_p_prop - log_p, axis=-1)
    return state._replace(allele_freqs=proposed), log_hastings


ALLELE_FREQ_PROPOSALS = {
    'dirichlet': _propose_dirichlet,
    'logit_normal': _propose_logit_normal,
}


def _log_target(state, ctx):
    geno = genotype_log_prob(state.latent_counts, state.coi, state.allele_freqs, ctx.log_gamma)
    prior = allele_freq_log_prior(state.allele_freqs, ctx.data.allele_mask, ctx.settings)
    return jnp.sum(geno, axis=1) + prior


def _commit(accept, proposed, current):
    return current._replace(
        allele_freqs=jnp.where(accept[:, None], proposed.allele_freqs, current.allele_freqs),
    )


def make_allele_freq_move(kind='dirichlet'):
    """Build the allele frequency move for a proposal kind."""
    return Move(
        name='allele_freq',
        propose=ALLELE_FREQ_PROPOSALS[kind],
        log_target=_log_target,
        commit=_commit,
    )
