"""
Basic tests for DRAV figures: each plot is written to <output>/figures.
"""

import os

import matplotlib
matplotlib.use('Agg')

import numpy as np
import pandas as pd
import pytest

from drav.neutral_buoyancy import neutral_buoyancy_curves
from drav.visualizer import DRAVVisualizer, volume_per_mass_ml


def fake_band(data, focal, slope):
    x = np.linspace(data[focal].min(), data[focal].max(), 10)
    y = 100 + slope * (x - x.mean())
    return pd.DataFrame({focal: x, 'predicted': y, 'ci_lower': y - 1, 'ci_upper': y + 1})


class TestDRAVVisualizer:

    def test_marginal_effects(self, glides, tmp_path):
        bands = {
            'max_depth': fake_band(glides, 'max_depth', -0.05),
            'BD': fake_band(glides, 'BD', 0.1),
        }
        visualizer = DRAVVisualizer()
        path = visualizer.plot_marginal_effects(glides, bands, str(tmp_path))
        assert os.path.exists(path)
        assert os.path.dirname(path) == str(tmp_path / 'figures')

    def test_neutral_buoyancy(self, glides, tmp_path):
        curves = neutral_buoyancy_curves([10, 50], n_points=20)
        path = DRAVVisualizer().plot_neutral_buoyancy(glides, curves, str(tmp_path))
        assert os.path.exists(path)

    def test_diagnostics_and_acf(self, glides, reml_fit, tmp_path):
        visualizer = DRAVVisualizer()
        visualizer.plot_model_diagnostics(reml_fit, str(tmp_path))
        visualizer.plot_response_acf(glides, str(tmp_path))
        assert len(visualizer.figure_paths) == 2
        assert all(os.path.exists(p) for p in visualizer.figure_paths)

    def test_volume_per_mass(self):
        assert volume_per_mass_ml(0.003, mass=300.0) == pytest.approx(10.0)
