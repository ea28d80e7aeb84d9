"""
Tests for dredge-style model selection.
"""

import numpy as np
import pytest

import config
from drav.ar1_lme import AR1MixedModel
from drav.exceptions import ComparabilityError, DataError
from drav.model_selector import (
    INTERCEPT_ONLY,
    ModelSelector,
    akaike_weights,
    check_comparable,
    compare_fits,
    enumerate_submodels,
    model_name,
    term_requirements,
)

MAIN_EFFECTS = 'center(max_depth) + center(BD)'


@pytest.fixture(scope='module')
def selector(glides):
    sel = ModelSelector(glides, 'Vair', config.FULL_MODEL_TERMS)
    sel.dredge()
    return sel


class TestSubmodelEnumeration:

    def test_requirements(self):
        req = term_requirements(['a', 'b', 'a:b'])
        assert req['a'] == frozenset()
        assert req['a:b'] == frozenset({'a', 'b'})

    def test_interaction_without_main_effect(self):
        with pytest.raises(ValueError):
            term_requirements(['a', 'a:b'])

    def test_marginality(self):
        models = enumerate_submodels(['a', 'b', 'a:b'])
        assert len(models) == 5
        assert [] in models
        assert ['a', 'b', 'a:b'] in models
        for terms in models:
            if 'a:b' in terms:
                assert 'a' in terms and 'b' in terms

    def test_all_subsets_without_interactions(self):
        assert len(enumerate_submodels(['a', 'b', 'c'])) == 8

    def test_model_name(self):
        assert model_name([]) == INTERCEPT_ONLY
        assert model_name(['a', 'b']) == 'a + b'


class TestAkaikeWeights:

    def test_sum_to_one(self):
        w = akaike_weights([100.0, 102.0, 110.0])
        assert w.sum() == pytest.approx(1.0)
        assert w[0] > w[1] > w[2]

    def test_shift_invariant(self):
        aic = np.array([250.3, 251.0, 260.7])
        assert np.allclose(akaike_weights(aic), akaike_weights(aic + 1000))


class TestDredge:

    def test_table_structure(self, selector):
        table = selector.table
        assert len(table) == 5
        assert table['aic'].is_monotonic_increasing
        assert table['delta_aic'].iloc[0] == pytest.approx(0.0)
        assert table['weight'].sum() == pytest.approx(1.0)
        for term in config.FULL_MODEL_TERMS:
            assert table[term].dtype == bool

    def test_all_fits_maximum_likelihood(self, selector):
        assert {res.method for res in selector.results.values()} == {'ML'}

    def test_both_predictors_beat_intercept_only(self, selector):
        assert selector.aic_difference(MAIN_EFFECTS, INTERCEPT_ONLY) < 0

    def test_predictor_importance(self, selector):
        importance = selector.variable_importance()
        assert importance['center(max_depth)'] > 0.9
        assert importance['center(BD)'] > 0.9

    def test_pairwise_differences(self, selector):
        diffs = selector.pairwise_aic_differences()
        assert diffs.shape == (5, 5)
        assert np.allclose(np.diag(diffs.to_numpy()), 0.0)
        assert np.allclose(diffs.to_numpy(), -diffs.to_numpy().T)

    def test_unknown_model(self, selector):
        with pytest.raises(KeyError):
            selector.aic_difference('swim_speed', INTERCEPT_ONLY)

    def test_requires_dredge(self, glides):
        with pytest.raises(ValueError):
            ModelSelector(glides).variable_importance()


class TestSelectModel:

    def test_min_aic(self, selector):
        terms = selector.select_model(policy='min_aic')
        assert model_name(terms) == selector.table.iloc[0]['model']

    def test_simplest_within_delta_keeps_main_effects(self, selector):
        terms = selector.select_model(policy='simplest_within_delta', delta_aic=10)
        assert 'center(max_depth)' in terms
        assert 'center(BD)' in terms

    def test_fallback_when_nothing_qualifies(self, selector):
        terms = selector.select_model(policy='simplest_within_delta', importance_threshold=1.01)
        assert model_name(terms) == selector.table.iloc[0]['model']

    def test_unknown_policy(self, selector):
        with pytest.raises(ValueError):
            selector.select_model(policy='bic')

    def test_export(self, selector, tmp_path):
        paths = selector.export_results(str(tmp_path))
        assert set(paths) == {'model_selection', 'variable_importance'}


class TestComparability:

    def test_different_rows_rejected(self, glides):
        a = AR1MixedModel('Vair ~ center(max_depth)', glides, method='ML').fit()
        b = AR1MixedModel('Vair ~ center(max_depth)', glides.iloc[:100], method='ML').fit()
        with pytest.raises(ComparabilityError):
            compare_fits(a, b)

    def test_mixed_methods_rejected(self, glides):
        a = AR1MixedModel('Vair ~ center(max_depth)', glides, method='ML').fit()
        b = AR1MixedModel('Vair ~ center(max_depth)', glides, method='REML').fit()
        with pytest.raises(ComparabilityError):
            check_comparable([a, b])

    def test_reml_different_fixed_effects_rejected(self, glides, reml_fit):
        other = AR1MixedModel('Vair ~ center(max_depth)', glides, method='REML').fit()
        with pytest.raises(ComparabilityError):
            compare_fits(reml_fit, other)

    def test_ml_same_rows_accepted(self, selector):
        a = selector.results[MAIN_EFFECTS]
        b = selector.results[INTERCEPT_ONLY]
        assert compare_fits(a, b) == pytest.approx(a.aic - b.aic)

    def test_drop_policy_uses_full_model_rows(self, glides):
        data = glides.copy()
        data.loc[4, 'BD'] = np.nan
        selector = ModelSelector(data, 'Vair', ['max_depth', 'BD'], na_action='drop')
        selector.dredge()
        assert len(selector.data) == len(glides) - 1
        assert {res.n_obs for res in selector.results.values()} == {len(glides) - 1}
        assert all(4 not in res.row_labels for res in selector.results.values())

    def test_raise_policy_rejects_missing(self, glides):
        data = glides.copy()
        data.loc[4, 'BD'] = np.nan
        with pytest.raises(DataError):
            ModelSelector(data, 'Vair', ['max_depth', 'BD'], na_action='raise').dredge()
