"""
Per-chain sampler state and the model context shared by every chain.

ChainState is a NamedTuple, so it is a JAX pytree out of the box: the engine
stacks one state per chain along a leading axis and vmaps the sweep over it.

The latent genotype of a (locus, sample) pair is kept as multinomial counts
of how many of the sample's coi strains carry each allele. The set of alleles
present is `latent_counts > 0` (exposed as ChainState.latent_genotype), and
its size never exceeds coi.
"""

from typing import NamedTuple

import jax.numpy as jnp
import jax.random as random

from .likelihood import total_log_likelihood
from .settings import SettingSlot
from .variates import multinomial_counts, rdirichlet, rgamma


class ChainState(NamedTuple):
    """
    Current parameter values of one chain.

    Fields:
        coi: Complexity of infection per sample (num_samples,) int32, 1 <= coi <= max_coi
        mean_coi: Poisson mean of the COI prior (scalar)
        allele_freqs: Per-locus simplex, padded (num_loci, max_alleles)
        eps_pos: False-positive rate (scalar)
        eps_neg: False-negative rate (scalar)
        latent_counts: Strain-allele counts (num_loci, num_samples, max_alleles) int32
        log_likelihood: Complete-data log-likelihood of this state (scalar)
    """
    coi: jnp.ndarray
    mean_coi: jnp.ndarray
    allele_freqs: jnp.ndarray
    eps_pos: jnp.ndarray
    eps_neg: jnp.ndarray
    latent_counts: jnp.ndarray
    log_likelihood: jnp.ndarray

    @property
    def latent_genotype(self):
        """Present/absent alleles per (locus, sample)."""
        return self.latent_counts > 0


class ModelContext(NamedTuple):
    """
    Read-only inputs every move needs.

    Fields:
        data: GenotypingDataset
        log_gamma: Lookup table as a JAX array (see NumericLookup)
        settings: Settings vector indexed by SettingSlot
    """
    data: object
    log_gamma: jnp.ndarray
    settings: jnp.ndarray

    @property
    def max_coi(self):
        # Static under tracing: derived from the table's shape, not its values
        return self.log_gamma.shape[0] - 2


def build_model_context(dataset, lookup, settings, dtype=None):
    """Bundle dataset, lookup table and settings vector for the sweep kernels."""
    return ModelContext(data=dataset, log_gamma=lookup.as_jax(dtype), settings=settings)


def initialize_chain_state(key, ctx):
    """
    Draw a starting state for one chain.

    - coi: the observed allele count of each sample, clipped to [1, max_coi]
    - mean_coi: 1 + Gamma(shape, scale) draw
    - allele_freqs: a draw from the symmetric Dirichlet prior per locus
    - eps_pos, eps_neg: their Beta prior means
    - latent_counts: one strain on each observed allele (up to coi), the
      remaining strains drawn from allele_freqs over the observed alleles
      (over all alleles where nothing is observed)

    Args:
        key: This chain's initialization key
        ctx: ModelContext

    Returns:
        ChainState
    """
    settings = ctx.settings
    data = ctx.data
    mean_key, freq_key, geno_key = random.split(key, 3)

    coi = jnp.clip(jnp.asarray(data.observed_coi, dtype=jnp.int32), 1, ctx.max_coi)

    shape = settings[SettingSlot.MEAN_COI_SHAPE]
    scale = settings[SettingSlot.MEAN_COI_SCALE]
    mean_coi = rgamma(mean_key, shape) * scale + 1.0

    concentration = jnp.full(data.allele_mask.shape, settings[SettingSlot.ALLELE_FREQ_CONCENTRATION])
    allele_freqs = rdirichlet(freq_key, concentration, data.allele_mask)

    eps_pos = settings[SettingSlot.EPS_POS_ALPHA] / (
        settings[SettingSlot.EPS_POS_ALPHA] + settings[SettingSlot.EPS_POS_BETA])
    eps_neg = settings[SettingSlot.EPS_NEG_ALPHA] / (
        settings[SettingSlot.EPS_NEG_ALPHA] + settings[SettingSlot.EPS_NEG_BETA])

    latent_counts = _seed_latent_counts(geno_key, coi, allele_freqs, ctx)

    state = ChainState(
        coi=coi,
        mean_coi=mean_coi,
        allele_freqs=allele_freqs,
        eps_pos=eps_pos,
        eps_neg=eps_neg,
        latent_counts=latent_counts,
        log_likelihood=jnp.zeros((), dtype=allele_freqs.dtype),
    )
    return state._replace(log_likelihood=total_log_likelihood(state, ctx))


def _seed_latent_counts(key, coi, allele_freqs, ctx):
    """Starting strain-allele counts that carry every observed allele the COI allows."""
    data = ctx.data
    present = jnp.asarray(data.observed) & ~jnp.asarray(data.missing_mask)[:, :, None]
    rank = jnp.cumsum(present, axis=-1)
    seeded = (present & (rank <= coi[None, :, None])).astype(jnp.int32)
    n_seeded = jnp.sum(seeded, axis=-1)

    freqs = allele_freqs[:, None, :]
    fill_probs = jnp.where((n_seeded > 0)[..., None], freqs * seeded, freqs)
    fill_probs = fill_probs / jnp.sum(fill_probs, axis=-1, keepdims=True)
    extra = multinomial_counts(key, coi[None, :] - n_seeded, fill_probs, ctx.max_coi)
    return seeded + extra
