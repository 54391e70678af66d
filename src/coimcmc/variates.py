"""
Random variates and log-densities used by the sampler.

Every chain owns exactly one random stream: a JAX PRNG key split from the
run's master key (see mcmc.config.gen_chain_keys). The draw functions here
are pure - each takes the key to consume and never keeps state - so a chain
threads its own key through the sweep and no two chains ever touch the same
stream. Moves split the chain key before every draw.

Draws:
    uniform, log_uniform, bernoulli, geometric, normal_step, rgamma,
    rdirichlet, rlogit_norm, multinomial_counts, multinomial_support,
    remove_strains

Log-densities:
    log_density_beta, log_density_gamma, log_density_dirichlet,
    log_density_multinomial, log_density_hypergeometric, dztpois (kernel form) and
    log_density_dpois_zero_truncated (validated host form)

Numeric safety:
    Gamma draws are clamped to [UNDERFLOW, OVERFLOW] (narrowed to the float
    dtype's own range) so a Dirichlet component can never be exactly zero and
    a normalizing sum can never be infinite. Logit-normal log-ratios are
    clamped to the logs of the same bounds.
"""

import numpy as np
import jax
import jax.numpy as jnp
import jax.random as random
import jax.scipy.stats as stats
from jax.scipy.special import gammaln

from .error_handling import DensityDomainError


# Clamp bounds for gamma draws and exponentiated log-ratios
UNDERFLOW = 1e-100
OVERFLOW = 1e100


def _float_dtype():
    return jnp.zeros(()).dtype


def safe_bounds(dtype=None):
    """(low, high) clamp bounds representable in dtype."""
    info = jnp.finfo(dtype if dtype is not None else _float_dtype())
    return max(UNDERFLOW, float(info.tiny)), min(OVERFLOW, float(info.max))


# ============================================================================
# DRAWS
# ============================================================================

def uniform(key, shape=()):
    """Uniform draw on the open interval (0, 1)."""
    dtype = _float_dtype()
    return random.uniform(key, shape, dtype=dtype, minval=jnp.finfo(dtype).tiny, maxval=1.0)


def log_uniform(key, shape=()):
    """
    log(U) for U ~ Uniform(0, 1), always <= 0.

    Drawn directly as -Exponential(1) so tiny uniforms never underflow to
    log(0).
    """
    return -random.exponential(key, shape, dtype=_float_dtype())


def bernoulli(key, p=0.5, shape=()):
    """Bernoulli draw as an int32 in {0, 1}."""
    return random.bernoulli(key, p, shape).astype(jnp.int32)


def geometric(key, success_prob, shape=()):
    """Number of failures before the first success (support 0, 1, 2, ...)."""
    return random.geometric(key, success_prob, shape).astype(jnp.int32) - 1


def normal_step(key, variance, shape=(), dtype=None):
    """Zero-mean normal random-walk step with the given variance."""
    dtype = dtype if dtype is not None else _float_dtype()
    return random.normal(key, shape, dtype=dtype) * jnp.sqrt(variance)


def rgamma(key, shape_param, rate=1.0):
    """Gamma(shape, rate) draw clamped to the safe numeric range."""
    shape_param = jnp.asarray(shape_param, dtype=_float_dtype())
    low, high = safe_bounds(shape_param.dtype)
    x = random.gamma(key, shape_param, dtype=shape_param.dtype) / rate
    return jnp.clip(x, low, high)


def rdirichlet(key, concentration, mask=None):
    """
    Dirichlet draw via independent gamma draws normalized by their sum.

    Args:
        key: JAX random key
        concentration: Positive shape vector (..., K)
        mask: Optional (..., K) validity mask; masked slots get probability 0

    Returns:
        Simplex of the same shape as concentration
    """
    concentration = jnp.asarray(concentration, dtype=_float_dtype())
    if mask is None:
        mask = jnp.ones(concentration.shape, dtype=bool)
    g = rgamma(key, jnp.where(mask, concentration, 1.0))
    g = jnp.where(mask, g, 0.0)
    return g / jnp.sum(g, axis=-1, keepdims=True)


def rlogit_norm(key, p, variance, mask=None):
    """
    Logit-normal random-walk step on a simplex.

    The log-ratio of every valid category to the last valid category is
    perturbed by an independent N(0, variance) draw, exponentiated, and the
    vector renormalized. The reference category keeps log-ratio 0.

    Args:
        key: JAX random key
        p: Current simplex (K,)
        variance: Normal step variance
        mask: Optional (K,) validity mask

    Returns:
        Proposed simplex (K,)
    """
    p = jnp.asarray(p)
    n = p.shape[-1]
    if mask is None:
        mask = jnp.ones(n, dtype=bool)
    low, high = safe_bounds(p.dtype)

    idx = jnp.arange(n)
    ref = jnp.max(jnp.where(mask, idx, -1))
    safe_p = jnp.where(mask, p, 1.0)
    log_ratio = jnp.log(safe_p) - jnp.log(safe_p[ref])

    step = normal_step(key, variance, (n,), p.dtype)
    proposed = jnp.where(idx == ref, 0.0, log_ratio + step)
    proposed = jnp.clip(proposed, jnp.log(low), jnp.log(high))

    unnormalized = jnp.where(mask, jnp.exp(proposed), 0.0)
    return unnormalized / jnp.sum(unnormalized)


def multinomial_counts(key, n, probs, max_trials):
    """
    Multinomial(n, probs) counts with a static trial ceiling.

    max_trials categorical draws are taken and only the first n are counted,
    so n may vary across the batch while shapes stay fixed.

    Args:
        key: JAX random key
        n: Trial counts, broadcastable against probs.shape[:-1], n <= max_trials
        probs: Category probabilities (..., K); zero entries are never drawn
        max_trials: Static upper bound on n

    Returns:
        int32 counts of shape broadcast(probs.shape[:-1], n.shape) + (K,)
    """
    probs = jnp.asarray(probs)
    n = jnp.asarray(n)
    n_categories = probs.shape[-1]
    batch_shape = jnp.broadcast_shapes(probs.shape[:-1], n.shape)

    logits = jnp.where(probs > 0, jnp.log(jnp.where(probs > 0, probs, 1.0)), -jnp.inf)
    draws = random.categorical(key, logits[..., None, :], shape=batch_shape + (max_trials,))
    active = jnp.arange(max_trials) < n[..., None]
    one_hot = jax.nn.one_hot(draws, n_categories, dtype=jnp.int32) * active[..., None]
    return jnp.sum(one_hot, axis=-2, dtype=jnp.int32)


def multinomial_support(key, n, probs, max_trials):
    """Set of categories drawn at least once in Multinomial(n, probs), as a bool mask."""
    return multinomial_counts(key, n, probs, max_trials) > 0


def remove_strains(key, counts, k, max_removals):
    """
    Remove k of the strains tallied in counts, uniformly without replacement.

    Strains are taken one at a time, each with probability proportional to
    the remaining count of its category, so the removed tally follows a
    multivariate hypergeometric distribution.

    Args:
        key: JAX random key
        counts: int counts (..., K)
        k: Strains to remove, broadcastable against counts.shape[:-1];
           must be <= the total count
        max_removals: Static upper bound on k

    Returns:
        int32 tally of removed strains, same shape as counts
    """
    counts = jnp.asarray(counts, dtype=jnp.int32)
    n_categories = counts.shape[-1]
    k = jnp.broadcast_to(jnp.asarray(k), counts.shape[:-1])
    log_dtype = _float_dtype()

    def body(i, removed):
        remaining = counts - removed
        has_any = remaining > 0
        logits = jnp.where(has_any, jnp.log(jnp.where(has_any, remaining, 1).astype(log_dtype)), -jnp.inf)
        draw = random.categorical(random.fold_in(key, i), logits)
        active = (i < k)[..., None]
        return removed + jax.nn.one_hot(draw, n_categories, dtype=jnp.int32) * active

    return jax.lax.fori_loop(0, max_removals, body, jnp.zeros_like(counts))


# ============================================================================
# LOG-DENSITIES
# ============================================================================

def log_density_beta(x, alpha, beta):
    """Beta log-density, -inf outside the open unit interval."""
    inside = (x > 0) & (x < 1)
    safe_x = jnp.where(inside, x, 0.5)
    return jnp.where(inside, stats.beta.logpdf(safe_x, alpha, beta), -jnp.inf)


def log_density_gamma(x, shape_param, scale):
    """Gamma(shape, scale) log-density, -inf for x <= 0."""
    positive = x > 0
    safe_x = jnp.where(positive, x, 1.0)
    return jnp.where(positive, stats.gamma.logpdf(safe_x, shape_param, scale=scale), -jnp.inf)


def log_density_dirichlet(p, concentration, mask=None):
    """Dirichlet log-density over the valid slots of p (last axis)."""
    if mask is None:
        mask = jnp.ones(p.shape, dtype=bool)
    a = jnp.where(mask, concentration, 0.0)
    log_p = jnp.log(jnp.where(mask, p, 1.0))
    log_norm = gammaln(jnp.sum(a, axis=-1)) - jnp.sum(jnp.where(mask, gammaln(jnp.where(mask, a, 1.0)), 0.0), axis=-1)
    return log_norm + jnp.sum(jnp.where(mask, (a - 1.0) * log_p, 0.0), axis=-1)


def log_density_multinomial(counts, n, log_p, log_gamma):
    """
    Multinomial log-pmf with factorials taken from the lookup table.

    Args:
        counts: int counts (..., K), each <= max_coi
        n: Total trials (...,)
        log_p: log category probabilities (..., K)
        log_gamma: NumericLookup table (log Gamma(i))
    """
    log_coef = log_gamma[n + 1] - jnp.sum(log_gamma[counts + 1], axis=-1)
    return log_coef + jnp.sum(jnp.where(counts > 0, counts * log_p, 0.0), axis=-1)


def log_density_hypergeometric(removed, counts, log_gamma):
    """
    Multivariate hypergeometric log-pmf of drawing the tally `removed` out of
    `counts` without replacement (the density of remove_strains).

    Binomial coefficients come from the lookup table, so every count must be
    <= max_coi.
    """
    def log_choose(n, r):
        return log_gamma[n + 1] - log_gamma[r + 1] - log_gamma[n - r + 1]

    n = jnp.sum(counts, axis=-1)
    k = jnp.sum(removed, axis=-1)
    return jnp.sum(log_choose(counts, removed), axis=-1) - log_choose(n, k)


def dztpois(x, lam, log_gamma):
    """
    Zero-truncated Poisson log-pmf for use inside kernels.

    x*log(lam) - log(exp(lam) - 1) - log(x!), with log(exp(lam) - 1) written
    as lam + log1p(-exp(-lam)) so large lam does not overflow. No domain
    checks: callers mask invalid x themselves.
    """
    return x * jnp.log(lam) - (lam + jnp.log1p(-jnp.exp(-lam))) - log_gamma[x + 1]


def log_density_dpois_zero_truncated(x, lam, log_gamma):
    """
    Zero-truncated Poisson log-pmf with precondition checks.

    Host-side entry point; inside jitted code use dztpois.

    Raises:
        DensityDomainError: If lam <= 0, x < 0, or x is beyond the table
    """
    x_host = np.asarray(x)
    lam_host = np.asarray(lam)
    table = np.asarray(log_gamma)
    if np.any(lam_host <= 0):
        raise DensityDomainError(f"zero-truncated Poisson requires lambda > 0, got {lam_host}")
    if np.any(x_host < 0):
        raise DensityDomainError(f"zero-truncated Poisson requires x >= 0, got {x_host}")
    if np.any(x_host + 1 >= table.shape[0]):
        raise DensityDomainError(
            f"x={x_host} exceeds the lookup table bound (max_coi={table.shape[0] - 2})"
        )
    return dztpois(jnp.asarray(x_host), jnp.asarray(lam_host), jnp.asarray(table))
