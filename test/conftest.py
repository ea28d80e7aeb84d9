"""
Shared synthetic glide data for the DRAV tests.

Six individuals with twenty glides each; the response follows
Vair = 2 - 0.05 * max_depth + 0.1 * BD + u_i + e_it with AR(1) residuals.
All rows satisfy the inclusion criteria.
"""

import numpy as np
import pandas as pd
import pytest

N_INDIVIDUALS = 6
N_GLIDES = 20


def make_glides(seed: int = 42, n_individuals: int = N_INDIVIDUALS,
                n_glides: int = N_GLIDES, phi: float = 0.5,
                noise_sd: float = 0.5, intercept_sd: float = 0.5) -> pd.DataFrame:
    """Synthetic glide table with known fixed effects."""
    rng = np.random.RandomState(seed)
    frames = []
    for i in range(n_individuals):
        e = np.zeros(n_glides)
        e[0] = rng.randn() * noise_sd
        for t in range(1, n_glides):
            e[t] = phi * e[t - 1] + rng.randn() * noise_sd * np.sqrt(1 - phi ** 2)
        max_depth = rng.uniform(20, 150, n_glides)
        bd = rng.uniform(1020, 1060, n_glides)
        u = rng.randn() * intercept_sd
        frames.append(pd.DataFrame({
            'individual': f'ind{i + 1:02d}',
            'glide_start': np.arange(n_glides) * 60.0,
            'Vair': 2 - 0.05 * max_depth + 0.1 * bd + u + e,
            'max_depth': max_depth,
            'BD': bd,
            'avg_pitch': rng.uniform(-85, -65, n_glides),
            'glide_duration': rng.uniform(12, 30, n_glides),
            'initial_depth': rng.uniform(5, 25, n_glides),
            'cvar_pitch': rng.uniform(0.0, 0.08, n_glides),
            'cvar_roll': rng.uniform(0.0, 0.08, n_glides),
            'depth_NB': np.nan,
        }))
    data = pd.concat(frames, ignore_index=True)
    data['individual'] = data['individual'].astype('category')
    return data


@pytest.fixture(scope='module')
def glides():
    return make_glides()


@pytest.fixture(scope='module')
def reml_fit(glides):
    from drav.ar1_lme import AR1MixedModel
    return AR1MixedModel('Vair ~ center(max_depth) + center(BD)', glides, method='REML').fit()
