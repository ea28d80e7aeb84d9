"""
Tests for the drag-coefficient sensitivity harness.
"""

import numpy as np
import pytest

from drav.sensitivity_analyzer import SensitivityAnalyzer

FORMULA = 'Vair ~ center(max_depth) + center(BD)'
DRAG_COEFFICIENTS = [0.06, 0.09, 0.12, 0.15]


def make_variants(glides):
    """Same glides with a small, coefficient-dependent perturbation of Vair."""
    rng = np.random.RandomState(3)
    variants = {}
    for k, cd in enumerate(DRAG_COEFFICIENTS):
        data = glides.copy()
        data['Vair'] = data['Vair'] + rng.randn(len(data)) * 0.02 * (k + 1)
        variants[cd] = data
    return variants


@pytest.fixture(scope='module')
def analyzer(glides):
    sens = SensitivityAnalyzer(make_variants(glides), FORMULA)
    sens.run()
    return sens


class TestSensitivityAnalyzer:

    def test_all_variants_fitted(self, analyzer):
        assert sorted(analyzer.models) == DRAG_COEFFICIENTS
        assert analyzer.n_skipped == 0

    def test_results_table(self, analyzer):
        results = analyzer.results
        assert len(results) == 4 * 3
        assert results.columns[0] == 'drag_coefficient'
        assert set(results['term']) == {'Intercept', 'center(max_depth)', 'center(BD)'}

    def test_fit_summary(self, analyzer):
        summary = analyzer.fit_summary
        assert len(summary) == 4
        for col in ['n_obs', 'aic', 'r2_marginal', 'r2_conditional', 'phi']:
            assert col in summary.columns

    def test_intervals_overlap(self, analyzer):
        agreement = analyzer.check_agreement()
        assert set(agreement['term']) == {'center(max_depth)', 'center(BD)'}
        assert agreement['all_overlap'].all()
        assert (agreement['n_variants'] == 4).all()

    def test_failed_variant_skipped(self, glides):
        variants = make_variants(glides)
        variants[0.15].loc[7, 'Vair'] = np.nan
        sens = SensitivityAnalyzer(variants, FORMULA)
        results = sens.run()
        assert sens.n_skipped == 1
        assert 0.15 in sens.failures
        assert sorted(results['drag_coefficient'].unique()) == DRAG_COEFFICIENTS[:3]

    def test_refilter_flag(self, glides):
        variants = make_variants(glides)
        variants[0.06].loc[0, 'Vair'] = -1.0
        refiltered = SensitivityAnalyzer(variants, FORMULA, refilter=True)
        refiltered.run()
        assert refiltered.models[0.06].n_obs == len(glides) - 1

        raw = SensitivityAnalyzer(variants, FORMULA, refilter=False)
        raw.run()
        assert raw.models[0.06].n_obs == len(glides)

    def test_check_before_run(self, glides):
        with pytest.raises(ValueError):
            SensitivityAnalyzer(make_variants(glides), FORMULA).check_agreement()

    def test_export(self, analyzer, tmp_path):
        paths = analyzer.export_results(str(tmp_path))
        assert set(paths) == {'coefficients', 'fit_summary'}
