"""
Tests for the autocorrelation diagnostic.
"""

import numpy as np
import pytest

from drav.autocorrelation import acf_confidence_bound, compute_acf, default_nlags
from drav.exceptions import DataError


class TestAutocorrelation:

    def test_default_nlags(self):
        assert default_nlags(100) == 20
        assert default_nlags(10) == 9
        with pytest.raises(ValueError):
            default_nlags(1)

    def test_lag_zero_is_one(self):
        np.random.seed(42)
        rho = compute_acf(np.random.randn(50))
        assert rho.iloc[0] == pytest.approx(1.0)
        assert len(rho) == default_nlags(50) + 1
        assert rho.index.name == 'lag'

    def test_explicit_nlags(self):
        np.random.seed(0)
        rho = compute_acf(np.random.randn(40), nlags=5)
        assert list(rho.index) == [0, 1, 2, 3, 4, 5]

    def test_ar_series_positive_lag_one(self):
        np.random.seed(1)
        x = np.zeros(500)
        for t in range(1, 500):
            x[t] = 0.8 * x[t - 1] + np.random.randn()
        rho = compute_acf(x)
        assert rho.iloc[1] > 0.6
        assert rho.iloc[1] > rho.iloc[5]

    def test_missing_values_raise(self):
        x = np.arange(20, dtype=float)
        x[3] = np.nan
        with pytest.raises(DataError):
            compute_acf(x)

    def test_confidence_bound(self):
        assert acf_confidence_bound(100) == pytest.approx(0.196)
