"""
Tests for the rank-correlation conversions and estimators.
"""

import numpy as np
import pytest
from scipy import stats

from copulix import InvalidArgumentError, InvalidParameterError
from copulix.dependence import (
    correlation_from_kendall,
    correlation_from_spearman,
    empirical_kendall,
    empirical_spearman,
    kendall_from_correlation,
    nearest_correlation,
    spearman_from_correlation,
    validate_correlation_matrix,
)


def get_spearman_3d():
    S = np.eye(3)
    S[0, 1] = S[1, 0] = 0.25
    S[1, 2] = S[2, 1] = 0.25
    return S


class TestValidateCorrelationMatrix:

    def test_valid(self):
        R = validate_correlation_matrix(get_spearman_3d())
        np.testing.assert_array_equal(R, get_spearman_3d())

    def test_returns_copy(self):
        S = get_spearman_3d()
        R = validate_correlation_matrix(S)
        R[0, 1] = 0.0
        assert S[0, 1] == 0.25

    def test_scalar(self):
        np.testing.assert_array_equal(validate_correlation_matrix(1.0), [[1.0]])

    @pytest.mark.parametrize("R, match", [
        (np.ones((2, 3)), "square"),
        (np.zeros((0, 0)), "square"),
        (np.array([[1.0, np.nan], [np.nan, 1.0]]), "finite"),
        (np.array([[1.0, 0.3], [0.2, 1.0]]), "symmetric"),
        (np.array([[1.0, 0.3], [0.3, 0.9]]), "unit diagonal"),
        (np.array([[1.0, -1.2], [-1.2, 1.0]]), r"\[-1, 1\]"),
    ])
    def test_invalid(self, R, match):
        with pytest.raises(InvalidParameterError, match=match):
            validate_correlation_matrix(R)


class TestConversions:

    def test_spearman_to_correlation_values(self):
        R = correlation_from_spearman(get_spearman_3d())
        np.testing.assert_allclose(R[0, 1], 0.26105238444010315, rtol=1e-14)
        np.testing.assert_allclose(R[1, 2], R[0, 1])
        assert R[0, 2] == 0.0
        np.testing.assert_array_equal(np.diag(R), np.ones(3))

    def test_spearman_round_trip(self):
        S = get_spearman_3d()
        np.testing.assert_allclose(spearman_from_correlation(correlation_from_spearman(S)), S, atol=1e-15)

    def test_kendall_round_trip(self):
        R = np.array([[1.0, -0.4], [-0.4, 1.0]])
        np.testing.assert_allclose(correlation_from_kendall(kendall_from_correlation(R)), R, atol=1e-15)

    def test_extremes(self):
        R = np.array([[1.0, 1.0], [1.0, 1.0]])
        np.testing.assert_allclose(spearman_from_correlation(R), R, atol=1e-15)
        np.testing.assert_allclose(kendall_from_correlation(R), R, atol=1e-15)

    def test_spearman_below_correlation(self):
        rho = np.linspace(0.05, 0.95, 10)
        for r in rho:
            s = spearman_from_correlation(np.array([[1.0, r], [r, 1.0]]))[0, 1]
            assert 0.0 < s < r

    def test_invalid_input(self):
        with pytest.raises(InvalidParameterError):
            correlation_from_spearman(np.array([[1.0, 0.5], [0.4, 1.0]]))


class TestEmpirical:

    @pytest.fixture
    def sample(self):
        rng = np.random.default_rng(0)
        return rng.multivariate_normal(np.zeros(3), [[1.0, 0.5, 0.0], [0.5, 1.0, -0.3], [0.0, -0.3, 1.0]], size=300)

    def test_spearman_vs_scipy(self, sample):
        expected = stats.spearmanr(sample).statistic
        np.testing.assert_allclose(empirical_spearman(sample), expected, atol=1e-12)

    def test_kendall_vs_scipy(self, sample):
        T = empirical_kendall(sample)
        np.testing.assert_allclose(T[0, 2], stats.kendalltau(sample[:, 0], sample[:, 2]).statistic)
        np.testing.assert_allclose(T, T.T)
        np.testing.assert_array_equal(np.diag(T), np.ones(3))

    def test_single_column(self):
        np.testing.assert_array_equal(empirical_spearman(np.arange(5.0)), [[1.0]])

    def test_too_small(self):
        with pytest.raises(InvalidArgumentError):
            empirical_spearman(np.ones((1, 3)))


class TestNearestCorrelation:

    def test_positive_definite_unchanged(self):
        S = get_spearman_3d()
        np.testing.assert_array_equal(nearest_correlation(S), S)

    def test_repairs_indefinite(self):
        R = np.array([[1.0, 0.9, -0.9], [0.9, 1.0, 0.9], [-0.9, 0.9, 1.0]])
        fixed = nearest_correlation(R)
        assert np.all(np.linalg.eigvalsh(fixed) > 0)
        np.testing.assert_allclose(np.diag(fixed), np.ones(3))
        np.testing.assert_allclose(fixed, fixed.T)
        assert np.all(np.sign(fixed) == np.sign(R))
