"""
Tests for the numerical settings container.
"""

import dataclasses

import numpy as np
import pytest

from copulix import InvalidParameterError, NormalCopula
from copulix.config import DEFAULT_SETTINGS, NumericalSettings, resolve_settings


class TestNumericalSettings:

    def test_defaults(self):
        s = NumericalSettings()
        assert s.quantile_max_iterations == 100
        assert s.cdf_absolute_error == 1e-6
        assert s.ddf_step == 1e-5
        assert s.quantile_rtol == 4 * np.finfo(float).eps

    def test_frozen(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            DEFAULT_SETTINGS.ddf_step = 1e-3

    def test_slots(self):
        assert not hasattr(DEFAULT_SETTINGS, "__dict__")

    def test_replace(self):
        s = DEFAULT_SETTINGS.replace(cdf_seed=7)
        assert s.cdf_seed == 7
        assert DEFAULT_SETTINGS.cdf_seed == 1234

    @pytest.mark.parametrize("field, value", [
        ("ddf_step", 0.0),
        ("quantile_xtol", -1e-12),
        ("cdf_absolute_error", np.inf),
        ("quantile_max_iterations", 0),
        ("level_set_sample_size", -5),
    ])
    def test_invalid_values(self, field, value):
        with pytest.raises(InvalidParameterError, match=field):
            DEFAULT_SETTINGS.replace(**{field: value})

    @pytest.mark.parametrize("field", ["cdf_seed", "level_set_seed"])
    def test_zero_seed_allowed(self, field):
        s = DEFAULT_SETTINGS.replace(**{field: 0})
        assert getattr(s, field) == 0

    @pytest.mark.parametrize("field", ["cdf_seed", "level_set_seed"])
    def test_negative_seed(self, field):
        with pytest.raises(InvalidParameterError, match="non-negative seed"):
            DEFAULT_SETTINGS.replace(**{field: -1})

    def test_cdf_max_points_positive(self):
        with pytest.raises(InvalidParameterError, match="cdf_max_points"):
            NumericalSettings(cdf_max_points=0)


class TestResolveSettings:

    def test_none_gives_defaults(self):
        assert resolve_settings(None) is DEFAULT_SETTINGS

    def test_instance_passes_through(self):
        s = NumericalSettings(ddf_step=1e-4)
        assert resolve_settings(s) is s

    def test_wrong_type(self):
        with pytest.raises(InvalidParameterError):
            resolve_settings({"ddf_step": 1e-4})

    def test_distribution_keeps_settings(self):
        s = NumericalSettings(quantile_xtol=1e-10)
        assert NormalCopula(np.eye(2), settings=s).settings is s
