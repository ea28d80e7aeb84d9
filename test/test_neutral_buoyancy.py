"""
Tests for the neutral-buoyancy air volume calculator.
"""

import numpy as np
import pytest

from drav.exceptions import DomainError
from drav.neutral_buoyancy import depth_colors, neutral_buoyancy_curves, required_air_volume

CONSTANTS = dict(g=9.81, water_density=1025.0, mass=300.0, air_density=1.23)


class TestRequiredAirVolume:

    def test_reference_value(self):
        value = required_air_volume(1035.0, 20.0, **CONSTANTS)
        pressure = 1 + 0.1 * 20.0
        pressure_term = (1025.0 - 1.23 * pressure) / pressure
        expected = (300.0 * (1 - 1025.0 / 1035.0)) / pressure_term
        assert isinstance(value, float)
        assert np.isfinite(value)
        assert value == pytest.approx(expected, rel=1e-12)
        assert value == pytest.approx(0.0085140, abs=1e-6)

    def test_deterministic(self):
        a = required_air_volume(1035.0, 20.0, **CONSTANTS)
        b = required_air_volume(1035.0, 20.0, **CONSTANTS)
        assert a == b

    def test_denser_than_water_needs_air(self):
        assert required_air_volume(1050.0, 10.0, **CONSTANTS) > 0
        assert required_air_volume(1000.0, 10.0, **CONSTANTS) < 0
        assert required_air_volume(1025.0, 10.0, **CONSTANTS) == 0

    def test_more_air_needed_at_depth(self):
        shallow = required_air_volume(1040.0, 10.0, **CONSTANTS)
        deep = required_air_volume(1040.0, 100.0, **CONSTANTS)
        assert deep > shallow

    def test_vectorised(self):
        densities = np.array([1030.0, 1040.0, 1050.0])
        values = required_air_volume(densities, 50.0, **CONSTANTS)
        assert values.shape == (3,)
        assert values[1] == pytest.approx(required_air_volume(1040.0, 50.0, **CONSTANTS))

    def test_zero_tissue_density(self):
        with pytest.raises(DomainError):
            required_air_volume(0.0, 20.0, **CONSTANTS)

    def test_zero_pressure_factor(self):
        with pytest.raises(DomainError):
            required_air_volume(1035.0, -10.0, **CONSTANTS)

    def test_zero_pressure_term(self):
        with pytest.raises(DomainError):
            required_air_volume(1035.0, 20.0, g=9.81, water_density=1.23 * 3.0,
                                mass=300.0, air_density=1.23)

    def test_non_finite_input(self):
        with pytest.raises(DomainError):
            required_air_volume(np.nan, 20.0, **CONSTANTS)


class TestCurves:

    def test_long_format(self):
        curves = neutral_buoyancy_curves([10, 50], (1020, 1060), n_points=5)
        assert list(curves.columns) == ['depth', 'BD', 'Vair_required']
        assert len(curves) == 10
        assert sorted(curves['depth'].unique()) == [10.0, 50.0]

    def test_depth_colors(self):
        colors = depth_colors([10, 25, 50, 100], depth_range=(0, 200))
        assert set(colors) == {10.0, 25.0, 50.0, 100.0}
        assert colors[10.0] != colors[100.0]
        assert all(len(c) == 4 for c in colors.values())
