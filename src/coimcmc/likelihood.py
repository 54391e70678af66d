"""
Model log-probability terms.

Generative model, per chain:

    mean_coi            ~ Gamma(shape, scale)
    coi[s]              ~ ZeroTruncatedPoisson(mean_coi)
    p[l]                ~ Dirichlet(concentration, ..., concentration)
    counts[l, s]        ~ Multinomial(coi[s], p[l])          (latent strain alleles)
    present[l, s, k]    = counts[l, s, k] > 0
    obs[l, s, k] | present = 1  ~ Bernoulli(1 - eps_neg)
    obs[l, s, k] | present = 0  ~ Bernoulli(eps_pos)
    eps_pos, eps_neg    ~ Beta(alpha, beta)

Missing (locus, sample) calls contribute nothing to the observation term.
All functions are pure jnp code, safe to call inside jit/vmap.
"""

import jax.numpy as jnp

from .settings import SettingSlot
from .variates import (
    dztpois,
    log_density_beta,
    log_density_dirichlet,
    log_density_gamma,
    log_density_multinomial,
)


def observation_log_likelihood(latent_counts, eps_pos, eps_neg, data):
    """
    log P(observed calls | latent genotype, error rates) per (locus, sample).

    Returns:
        (num_loci, num_samples) array; zero where the call is missing
    """
    present = latent_counts > 0
    observed = data.observed

    log_true_pos = jnp.log1p(-eps_neg)
    log_false_neg = jnp.log(eps_neg)
    log_false_pos = jnp.log(eps_pos)
    log_true_neg = jnp.log1p(-eps_pos)

    per_allele = jnp.where(
        present,
        jnp.where(observed, log_true_pos, log_false_neg),
        jnp.where(observed, log_false_pos, log_true_neg),
    )
    per_allele = jnp.where(data.allele_mask[:, None, :], per_allele, 0.0)
    return jnp.where(data.missing_mask, 0.0, jnp.sum(per_allele, axis=-1))


def genotype_log_prob(latent_counts, coi, allele_freqs, log_gamma):
    """
    log P(latent strain-allele counts | COI, allele frequencies).

    Returns:
        (num_loci, num_samples) array
    """
    log_p = jnp.log(allele_freqs)[:, None, :]
    return log_density_multinomial(latent_counts, coi[None, :], log_p, log_gamma)


def get_coi_log_prob(coi, mean_coi, log_gamma):
    """Zero-truncated Poisson log-prior of each sample's COI."""
    return dztpois(coi, mean_coi, log_gamma)


def get_coi_mean_log_prior(mean_coi, settings):
    """Gamma(shape, scale) log-prior on the COI Poisson mean."""
    return log_density_gamma(
        mean_coi,
        settings[SettingSlot.MEAN_COI_SHAPE],
        settings[SettingSlot.MEAN_COI_SCALE],
    )


def get_epsilon_log_prior(eps, alpha, beta):
    """Beta log-prior on an error rate."""
    return log_density_beta(eps, alpha, beta)


def allele_freq_log_prior(allele_freqs, allele_mask, settings):
    """Symmetric Dirichlet log-prior per locus."""
    concentration = jnp.full(allele_freqs.shape, settings[SettingSlot.ALLELE_FREQ_CONCENTRATION])
    return log_density_dirichlet(allele_freqs, concentration, allele_mask)


def total_log_likelihood(state, ctx):
    """
    Complete-data log-likelihood of one chain state.

    Sum of the observation term, the latent genotype term and the COI term.
    Hyper-priors (Dirichlet, Beta, Gamma) are not included.
    """
    obs = observation_log_likelihood(state.latent_counts, state.eps_pos, state.eps_neg, ctx.data)
    geno = genotype_log_prob(state.latent_counts, state.coi, state.allele_freqs, ctx.log_gamma)
    coi = get_coi_log_prob(state.coi, state.mean_coi, ctx.log_gamma)
    return jnp.sum(obs) + jnp.sum(geno) + jnp.sum(coi)
