"""
Unit Tests for Random Variates and Log-Densities

Run with: pytest tests/test_variates.py -v
"""

import numpy as np
import jax
import jax.numpy as jnp
import jax.random
import pytest
from scipy import stats as scipy_stats

from coimcmc.error_handling import DensityDomainError
from coimcmc.lookup import NumericLookup
from coimcmc import variates


@pytest.fixture
def log_gamma():
    return jnp.asarray(NumericLookup.build(10).log_gamma)


# ============================================================================
# DRAWS
# ============================================================================

class TestScalarDraws:
    """Uniform, log-uniform, Bernoulli and geometric draws."""

    def test_uniform_open_interval(self):
        u = variates.uniform(jax.random.PRNGKey(0), (10000,))
        assert float(u.min()) > 0.0
        assert float(u.max()) < 1.0

    def test_log_uniform_non_positive(self):
        for seed in range(5):
            lu = variates.log_uniform(jax.random.PRNGKey(seed), (10000,))
            assert np.all(np.asarray(lu) <= 0.0)
            assert np.all(np.isfinite(np.asarray(lu)))

    def test_log_uniform_distribution(self):
        lu = np.asarray(variates.log_uniform(jax.random.PRNGKey(1), (20000,)))
        # exp(log U) ~ Uniform(0, 1)
        assert abs(np.mean(np.exp(lu)) - 0.5) < 0.01

    def test_bernoulli(self):
        b = np.asarray(variates.bernoulli(jax.random.PRNGKey(2), 0.5, (20000,)))
        assert set(np.unique(b)) <= {0, 1}
        assert abs(b.mean() - 0.5) < 0.02

    def test_geometric_non_negative(self):
        g = np.asarray(variates.geometric(jax.random.PRNGKey(3), 0.5, (20000,)))
        assert g.min() == 0
        # Failures before first success: mean (1 - p) / p
        assert abs(g.mean() - 1.0) < 0.05

    def test_normal_step(self):
        step = np.asarray(variates.normal_step(jax.random.PRNGKey(3), 0.25, (20000,)))
        assert abs(step.mean()) < 0.02
        assert abs(step.std() - 0.5) < 0.01

    def test_same_key_same_draw(self):
        key = jax.random.PRNGKey(7)
        np.testing.assert_array_equal(variates.uniform(key, (5,)), variates.uniform(key, (5,)))


class TestGammaDirichlet:
    """Clamped gamma and Dirichlet draws."""

    def test_gamma_clamped_below(self):
        g = np.asarray(variates.rgamma(jax.random.PRNGKey(0), jnp.full(1000, 1e-4)))
        assert np.all(g >= variates.UNDERFLOW)
        assert np.all(np.isfinite(g))

    def test_gamma_mean(self):
        g = np.asarray(variates.rgamma(jax.random.PRNGKey(1), jnp.full(20000, 3.0), rate=2.0))
        assert abs(g.mean() - 1.5) < 0.05

    def test_safe_bounds_float32(self):
        low, high = variates.safe_bounds(jnp.float32)
        assert low == pytest.approx(float(np.finfo(np.float32).tiny))
        assert high == pytest.approx(float(np.finfo(np.float32).max))

    @pytest.mark.parametrize("concentration", [
        [1.0, 1.0],
        [0.01, 0.01, 0.01],
        [100.0, 1.0, 0.5, 3.0],
    ])
    def test_dirichlet_is_simplex(self, concentration):
        keys = jax.random.split(jax.random.PRNGKey(0), 200)
        draws = np.asarray(jax.vmap(lambda k: variates.rdirichlet(k, jnp.asarray(concentration)))(keys))
        assert np.all(draws >= 0.0)
        np.testing.assert_allclose(draws.sum(axis=1), 1.0, atol=1e-9)

    def test_dirichlet_mask(self):
        mask = jnp.array([True, True, False])
        p = np.asarray(variates.rdirichlet(jax.random.PRNGKey(4), jnp.ones(3), mask))
        assert p[2] == 0.0
        assert p.sum() == pytest.approx(1.0, abs=1e-12)

    def test_dirichlet_mean(self):
        keys = jax.random.split(jax.random.PRNGKey(5), 5000)
        draws = np.asarray(jax.vmap(lambda k: variates.rdirichlet(k, jnp.array([2.0, 6.0])))(keys))
        assert abs(draws[:, 0].mean() - 0.25) < 0.01


class TestLogitNormal:
    """Logit-normal simplex steps."""

    def test_output_is_simplex(self):
        p = jnp.array([0.2, 0.3, 0.5])
        for seed in range(20):
            q = np.asarray(variates.rlogit_norm(jax.random.PRNGKey(seed), p, 0.5))
            assert np.all(q > 0.0)
            assert q.sum() == pytest.approx(1.0, abs=1e-12)

    def test_respects_mask(self):
        p = jnp.array([0.4, 0.6, 0.0])
        mask = jnp.array([True, True, False])
        q = np.asarray(variates.rlogit_norm(jax.random.PRNGKey(0), p, 0.1, mask))
        assert q[2] == 0.0
        assert q.sum() == pytest.approx(1.0, abs=1e-12)

    def test_zero_variance_is_identity(self):
        p = jnp.array([0.1, 0.2, 0.7])
        q = variates.rlogit_norm(jax.random.PRNGKey(0), p, 0.0)
        np.testing.assert_allclose(q, p, rtol=1e-12)

    def test_single_allele(self):
        q = variates.rlogit_norm(jax.random.PRNGKey(0), jnp.array([1.0]), 0.5)
        np.testing.assert_allclose(q, [1.0])


class TestMultinomial:
    """Multinomial counts with a static trial ceiling."""

    def test_counts_sum_to_n(self):
        n = jnp.array([1, 3, 5, 0])
        probs = jnp.broadcast_to(jnp.array([0.2, 0.3, 0.5]), (4, 3))
        counts = np.asarray(variates.multinomial_counts(jax.random.PRNGKey(0), n, probs, 6))
        np.testing.assert_array_equal(counts.sum(axis=1), [1, 3, 5, 0])
        assert counts.dtype == np.int32

    def test_zero_probability_never_drawn(self):
        probs = jnp.array([0.5, 0.0, 0.5])
        counts = np.asarray(variates.multinomial_counts(jax.random.PRNGKey(1), jnp.full(500, 4), probs, 4))
        assert np.all(counts[:, 1] == 0)

    def test_support_size_bounded_by_n(self):
        probs = jnp.full(5, 0.2)
        support = np.asarray(variates.multinomial_support(jax.random.PRNGKey(2), jnp.full(200, 2), probs, 3))
        assert np.all(support.sum(axis=1) >= 1)
        assert np.all(support.sum(axis=1) <= 2)

    def test_frequencies(self):
        probs = jnp.array([0.1, 0.9])
        counts = np.asarray(variates.multinomial_counts(jax.random.PRNGKey(3), jnp.full(5000, 1), probs, 1))
        assert abs(counts[:, 0].mean() - 0.1) < 0.015


class TestStrainRemoval:
    """Uniform removal of strains without replacement."""

    def test_removes_exactly_k(self):
        counts = jnp.array([[3, 0, 2], [1, 1, 0], [0, 0, 4]])
        removed = np.asarray(variates.remove_strains(jax.random.PRNGKey(0), counts, jnp.array([2, 1, 4]), 5))
        np.testing.assert_array_equal(removed.sum(axis=1), [2, 1, 4])
        assert np.all(removed <= np.asarray(counts))
        assert removed.dtype == np.int32

    def test_zero_removals(self):
        counts = jnp.array([2, 1])
        removed = variates.remove_strains(jax.random.PRNGKey(1), counts, 0, 3)
        np.testing.assert_array_equal(removed, [0, 0])

    def test_removal_frequencies(self):
        counts = jnp.broadcast_to(jnp.array([3, 1]), (20000, 2))
        removed = np.asarray(variates.remove_strains(jax.random.PRNGKey(2), counts, 2, 4))
        # Hypergeometric: both strains from the first category with probability 3/6
        assert abs(np.mean(removed[:, 0] == 2) - 0.5) < 0.015


# ============================================================================
# LOG-DENSITIES
# ============================================================================

class TestLogDensities:
    """Densities against scipy references."""

    def test_beta(self):
        x = jnp.array([0.01, 0.3, 0.9])
        np.testing.assert_allclose(
            variates.log_density_beta(x, 2.0, 5.0), scipy_stats.beta.logpdf(np.asarray(x), 2.0, 5.0), rtol=1e-10
        )

    def test_beta_outside_support(self):
        for x in (-0.1, 0.0, 1.0, 1.5):
            assert float(variates.log_density_beta(jnp.asarray(x), 1.0, 1.0)) == -np.inf

    def test_gamma_shape_scale(self):
        x = jnp.array([0.5, 2.0, 10.0])
        np.testing.assert_allclose(
            variates.log_density_gamma(x, 0.1, 10.0),
            scipy_stats.gamma.logpdf(np.asarray(x), 0.1, scale=10.0),
            rtol=1e-10,
        )
        assert float(variates.log_density_gamma(jnp.asarray(-1.0), 2.0, 1.0)) == -np.inf

    def test_dirichlet(self):
        p = np.array([0.2, 0.5, 0.3])
        a = np.array([1.5, 2.0, 3.0])
        np.testing.assert_allclose(
            variates.log_density_dirichlet(jnp.asarray(p), jnp.asarray(a)),
            scipy_stats.dirichlet.logpdf(p, a),
            rtol=1e-10,
        )

    def test_dirichlet_masked(self):
        p = jnp.array([0.4, 0.6, 0.0])
        a = jnp.array([2.0, 3.0, 99.0])
        mask = jnp.array([True, True, False])
        np.testing.assert_allclose(
            variates.log_density_dirichlet(p, a, mask),
            scipy_stats.dirichlet.logpdf([0.4, 0.6], [2.0, 3.0]),
            rtol=1e-10,
        )

    def test_multinomial(self, log_gamma):
        counts = jnp.array([2, 0, 1])
        p = np.array([0.5, 0.2, 0.3])
        np.testing.assert_allclose(
            variates.log_density_multinomial(counts, 3, jnp.log(jnp.asarray(p)), log_gamma),
            scipy_stats.multinomial.logpmf([2, 0, 1], 3, p),
            rtol=1e-10,
        )

    def test_multinomial_zero_probability_unused(self, log_gamma):
        counts = jnp.array([1, 0])
        log_p = jnp.log(jnp.array([1.0, 0.0]))
        assert float(variates.log_density_multinomial(counts, 1, log_p, log_gamma)) == pytest.approx(0.0)

    def test_hypergeometric(self, log_gamma):
        np.testing.assert_allclose(
            variates.log_density_hypergeometric(jnp.array([1, 0, 2]), jnp.array([2, 3, 4]), log_gamma),
            scipy_stats.multivariate_hypergeom.logpmf([1, 0, 2], [2, 3, 4], 3),
            rtol=1e-10,
        )

    def test_hypergeometric_nothing_removed(self, log_gamma):
        assert float(variates.log_density_hypergeometric(jnp.array([0, 0]), jnp.array([2, 1]), log_gamma)) == 0.0


class TestZeroTruncatedPoisson:
    """Zero-truncated Poisson log-pmf."""

    def test_reference_value(self, log_gamma):
        value = float(variates.log_density_dpois_zero_truncated(1, 1.0, log_gamma))
        assert value == pytest.approx(-np.log(np.e - 1.0), abs=1e-12)
        assert value == pytest.approx(-0.5413, abs=1e-4)

    @pytest.mark.parametrize("lam", [0.3, 1.0, 4.5, 60.0])
    def test_matches_truncated_poisson(self, log_gamma, lam):
        x = np.arange(1, 10)
        expected = scipy_stats.poisson.logpmf(x, lam) - np.log1p(-np.exp(-lam))
        np.testing.assert_allclose(variates.dztpois(jnp.asarray(x), lam, log_gamma), expected, rtol=1e-9)

    def test_sums_to_one(self):
        table = jnp.asarray(NumericLookup.build(200).log_gamma)
        x = jnp.arange(1, 201)
        total = float(jnp.sum(jnp.exp(variates.dztpois(x, 2.5, table))))
        assert total == pytest.approx(1.0, abs=1e-10)

    def test_rejects_non_positive_lambda(self, log_gamma):
        with pytest.raises(DensityDomainError, match="lambda"):
            variates.log_density_dpois_zero_truncated(1, 0.0, log_gamma)

    def test_rejects_negative_count(self, log_gamma):
        with pytest.raises(DensityDomainError, match="x >= 0"):
            variates.log_density_dpois_zero_truncated(-1, 1.0, log_gamma)

    def test_rejects_count_beyond_table(self, log_gamma):
        with pytest.raises(DensityDomainError, match="lookup table"):
            variates.log_density_dpois_zero_truncated(11, 1.0, log_gamma)
