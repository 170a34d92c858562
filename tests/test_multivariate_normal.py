"""
Tests for the multivariate normal distribution.

Tests that:
- logpdf, cdf and moments match scipy.stats
- The closed-form density gradient matches finite differences
- Survival by central symmetry matches inclusion-exclusion
- rvs() produces samples with the correct covariance structure
- Marginals, copula and MLE are consistent
"""

import numpy as np
import pytest
from scipy import stats

from copulix import (
    DimensionMismatchError,
    InvalidParameterError,
    MultivariateNormal,
    NormalCopula,
)
from copulix.base import Distribution


# ============================================================
# Shared test parameters
# ============================================================

def get_2d_params():
    return {
        'mu': np.array([0.1, -0.2]),
        'sigma': np.array([[1.0, 0.5], [0.5, 1.5]]),
    }


def get_3d_params():
    """3D test parameters with non-trivial correlation structure."""
    return {
        'mu': np.array([0.0, 0.1, -0.1]),
        'sigma': np.array([
            [1.0, 0.3, -0.2],
            [0.3, 2.0, 0.4],
            [-0.2, 0.4, 0.5],
        ]),
    }


@pytest.fixture
def dist_2d():
    return MultivariateNormal.from_classical_params(**get_2d_params())


@pytest.fixture
def dist_3d():
    return MultivariateNormal.from_classical_params(**get_3d_params())


# ============================================================
# Construction
# ============================================================

class TestConstruction:

    def test_scalar_variance(self):
        dist = MultivariateNormal(0.0, 4.0)
        assert dist.d == 1
        np.testing.assert_allclose(dist.std(), [2.0])

    def test_diagonal_from_vector(self):
        dist = MultivariateNormal(np.zeros(2), np.array([1.0, 4.0]))
        np.testing.assert_allclose(dist.cov(), np.diag([1.0, 4.0]))

    def test_shape_mismatch(self):
        with pytest.raises(InvalidParameterError, match="doesn't match"):
            MultivariateNormal(np.zeros(3), np.eye(2))

    def test_not_symmetric(self):
        with pytest.raises(InvalidParameterError, match="symmetric"):
            MultivariateNormal(np.zeros(2), np.array([[1.0, 0.5], [0.2, 1.0]]))

    def test_not_positive_definite(self):
        with pytest.raises(InvalidParameterError, match="positive definite"):
            MultivariateNormal(np.zeros(2), np.array([[1.0, 2.0], [2.0, 1.0]]))

    def test_not_finite(self):
        with pytest.raises(InvalidParameterError):
            MultivariateNormal(np.array([0.0, np.nan]), np.eye(2))

    def test_cholesky_reconstructs_sigma(self, dist_3d):
        L = dist_3d._L
        assert np.allclose(L, np.tril(L))
        np.testing.assert_allclose(L @ L.T, get_3d_params()['sigma'], rtol=1e-12)

    def test_log_det_sigma(self, dist_3d):
        expected = np.linalg.slogdet(get_3d_params()['sigma'])[1]
        np.testing.assert_allclose(dist_3d.log_det_Sigma, expected, rtol=1e-12)

    def test_scipy_round_trip(self, dist_2d):
        rebuilt = MultivariateNormal.from_scipy(dist_2d.to_scipy())
        np.testing.assert_allclose(rebuilt.cov(), dist_2d.cov())
        np.testing.assert_allclose(rebuilt.mean(), dist_2d.mean())

    def test_repr(self, dist_2d):
        assert repr(dist_2d) == "MultivariateNormal(μ=[0.1000, -0.2000], d=2)"
        assert repr(MultivariateNormal(0.0, 4.0)) == "MultivariateNormal(μ=0.0000, σ²=4.0000)"


# ============================================================
# Density
# ============================================================

class TestDensity:

    def test_logpdf_vs_scipy(self, dist_3d):
        p = get_3d_params()
        x = np.random.default_rng(42).normal(size=(20, 3))
        expected = stats.multivariate_normal(p['mu'], p['sigma']).logpdf(x)
        np.testing.assert_allclose(dist_3d.logpdf(x), expected, rtol=1e-10)

    def test_pdf_single_point(self, dist_2d):
        x = np.array([0.3, 0.1])
        expected = dist_2d.to_scipy().pdf(x)
        assert isinstance(dist_2d.pdf(x), float)
        np.testing.assert_allclose(dist_2d.pdf(x), expected, rtol=1e-12)

    def test_ddf_vs_finite_difference(self, dist_3d):
        x = np.array([[0.2, -0.4, 0.3], [1.0, 0.5, -0.5]])
        np.testing.assert_allclose(dist_3d.ddf(x), Distribution.ddf(dist_3d, x), atol=1e-8)

    def test_ddf_vanishes_at_mean(self, dist_3d):
        np.testing.assert_allclose(dist_3d.ddf(dist_3d.mean()), np.zeros(3), atol=1e-15)

    def test_wrong_dimension(self, dist_3d):
        with pytest.raises(DimensionMismatchError):
            dist_3d.logpdf(np.zeros(2))

    def test_entropy_vs_scipy(self, dist_3d):
        np.testing.assert_allclose(dist_3d.entropy(), dist_3d.to_scipy().entropy(), rtol=1e-12)


# ============================================================
# CDF, survival and quantiles
# ============================================================

class TestCdf:

    def test_cdf_1d(self):
        dist = MultivariateNormal(1.0, 4.0)
        np.testing.assert_allclose(dist.cdf(2.0), stats.norm(1.0, 2.0).cdf(2.0), rtol=1e-14)

    def test_cdf_vs_scipy_2d(self, dist_2d):
        x = np.array([[0.0, 0.0], [1.0, -0.5], [-1.0, 2.0]])
        expected = np.array([dist_2d.to_scipy().cdf(row) for row in x])
        np.testing.assert_allclose(dist_2d.cdf(x), expected, atol=2e-5)

    def test_cdf_vs_scipy_3d(self, dist_3d):
        x = np.array([0.5, 0.2, 0.1])
        np.testing.assert_allclose(dist_3d.cdf(x), dist_3d.to_scipy().cdf(x), atol=2e-5)

    def test_cdf_infinite_coordinates(self, dist_3d):
        x = np.array([0.5, np.inf, np.inf])
        expected = stats.norm(0.0, 1.0).cdf(0.5)
        np.testing.assert_allclose(dist_3d.cdf(x), expected, rtol=1e-14)
        assert dist_3d.cdf([0.5, -np.inf, 0.0]) == 0.0

    def test_sf_reflection_matches_inclusion_exclusion(self, dist_3d):
        x = np.array([[0.2, -0.4, 0.3], [1.0, 0.5, -0.5]])
        np.testing.assert_allclose(dist_3d.sf(x), Distribution.sf(dist_3d, x), atol=1e-8)

    def test_sf_plus_cdf_1d(self):
        dist = MultivariateNormal(0.5, 2.0)
        np.testing.assert_allclose(dist.sf(1.2) + dist.cdf(1.2), 1.0, rtol=1e-12)

    @pytest.mark.parametrize("p", [0.05, 0.5, 0.95])
    def test_ppf_round_trip(self, dist_3d, p):
        x = dist_3d.ppf(p)
        np.testing.assert_allclose(dist_3d.cdf(x), p, atol=1e-6)

    def test_ppf_common_marginal_level(self, dist_3d):
        x = dist_3d.ppf(0.5)
        levels = stats.norm.cdf((x - dist_3d.mean()) / dist_3d.std())
        np.testing.assert_allclose(levels, np.full(3, levels[0]), atol=1e-12)

    def test_isf_round_trip(self, dist_2d):
        x = dist_2d.isf(0.95)
        np.testing.assert_allclose(dist_2d.sf(x), 0.95, atol=1e-8)

    def test_ppf_1d_vs_scipy(self):
        dist = MultivariateNormal(1.0, 4.0)
        np.testing.assert_allclose(dist.ppf(0.975), [stats.norm(1.0, 2.0).ppf(0.975)], rtol=1e-12)
        np.testing.assert_allclose(dist.isf(0.975), [stats.norm(1.0, 2.0).isf(0.975)], rtol=1e-12)

    def test_probability_of_box(self, dist_2d):
        from copulix import Interval
        box = Interval([-1.0, -1.0], [1.0, 0.5])
        F = dist_2d.cdf
        expected = F([1.0, 0.5]) - F([-1.0, 0.5]) - F([1.0, -1.0]) + F([-1.0, -1.0])
        np.testing.assert_allclose(dist_2d.probability(box), expected, atol=1e-14)


# ============================================================
# Sampling
# ============================================================

class TestSampling:

    def test_single_realization(self, dist_3d):
        assert dist_3d.rvs(random_state=0).shape == (3,)

    def test_small_sample_reproducible(self, dist_3d):
        a = dist_3d.rvs(10, random_state=42)
        b = dist_3d.rvs(10, random_state=42)
        assert a.shape == (10, 3)
        np.testing.assert_array_equal(a, b)

    def test_sample_covariance(self, dist_3d):
        """Sample covariance should match Sigma (rtol ~5% for n=50000)."""
        sample = dist_3d.rvs(50000, random_state=42)
        np.testing.assert_allclose(sample.mean(axis=0), dist_3d.mean(), atol=0.03)
        np.testing.assert_allclose(np.cov(sample, rowvar=False), dist_3d.cov(), atol=0.05)

    def test_logpdf_consistency(self, dist_3d):
        """Samples should score better under their own distribution than under a shifted one."""
        sample = dist_3d.rvs(5000, random_state=42)
        shifted = MultivariateNormal(dist_3d.mean() + 1.0, dist_3d.cov())
        assert np.mean(dist_3d.logpdf(sample)) > np.mean(shifted.logpdf(sample))


# ============================================================
# Moments, dependence and structure
# ============================================================

class TestStructure:

    def test_moments(self, dist_3d):
        p = get_3d_params()
        np.testing.assert_array_equal(dist_3d.mean(), p['mu'])
        np.testing.assert_allclose(dist_3d.cov(), p['sigma'], rtol=1e-12)
        np.testing.assert_allclose(dist_3d.var(), np.diag(p['sigma']), rtol=1e-12)

    def test_correlation(self, dist_3d):
        sigma = get_3d_params()['sigma']
        s = np.sqrt(np.diag(sigma))
        np.testing.assert_allclose(dist_3d.correlation(), sigma / np.outer(s, s), rtol=1e-12)

    def test_rank_correlations_match_copula(self, dist_3d):
        copula = dist_3d.copula()
        assert isinstance(copula, NormalCopula)
        np.testing.assert_allclose(dist_3d.spearman_correlation(), copula.spearman_correlation())
        np.testing.assert_allclose(dist_3d.kendall_tau(), copula.kendall_tau())

    def test_cdf_through_copula(self, dist_2d):
        x = np.array([0.4, -0.3])
        u = stats.norm.cdf((x - dist_2d.mean()) / dist_2d.std())
        np.testing.assert_allclose(dist_2d.cdf(x), dist_2d.copula().cdf(u), atol=1e-12)

    def test_predicates(self, dist_3d):
        assert dist_3d.is_elliptical()
        assert dist_3d.has_elliptical_copula()
        assert not dist_3d.has_independent_copula()
        assert MultivariateNormal(np.zeros(2), np.diag([1.0, 3.0])).has_independent_copula()

    def test_marginal_order(self, dist_3d):
        m = dist_3d.marginal([2, 0])
        sigma = get_3d_params()['sigma']
        np.testing.assert_array_equal(m.mean(), [-0.1, 0.0])
        np.testing.assert_allclose(m.cov(), [[sigma[2, 2], sigma[2, 0]], [sigma[0, 2], sigma[0, 0]]])

    def test_1d_marginal(self, dist_3d):
        m = dist_3d.marginal(1)
        np.testing.assert_allclose(m.cdf(0.1), 0.5, rtol=1e-12)
        np.testing.assert_allclose(m.ppf(0.5), [0.1], atol=1e-12)

    def test_from_sample(self, dist_3d):
        sample = dist_3d.rvs(20000, random_state=7)
        fitted = MultivariateNormal.from_sample(sample)
        np.testing.assert_allclose(fitted.mean(), dist_3d.mean(), atol=0.05)
        np.testing.assert_allclose(fitted.cov(), dist_3d.cov(), atol=0.08)

    def test_from_sample_1d(self):
        data = np.random.default_rng(0).normal(2.0, 3.0, size=5000)
        fitted = MultivariateNormal.from_sample(data)
        assert fitted.d == 1
        np.testing.assert_allclose(fitted.mean(), [2.0], atol=0.15)
