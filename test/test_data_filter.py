"""
Tests for the glide inclusion filter.
"""

import numpy as np
import pandas as pd
import pytest

import config
from drav.data_filter import check_criteria, criterion_mask, filter_glides
from drav.exceptions import DataError


@pytest.fixture
def mixed_glides(glides):
    """Glides where a known subset fails one criterion each."""
    data = glides.copy()
    data.loc[0, 'avg_pitch'] = -30        # shallow pitch
    data.loc[1, 'glide_duration'] = 5     # too short
    data.loc[2, 'initial_depth'] = 45     # starts too deep
    data.loc[3, 'cvar_pitch'] = 0.1       # boundary is exclusive
    data.loc[4, 'cvar_roll'] = 0.5
    data.loc[5, 'Vair'] = -1.0
    data.loc[6, 'avg_pitch'] = -60        # boundary is inclusive, passes
    return data


class TestFilterGlides:

    def test_all_valid_rows_retained(self, glides):
        filtered = filter_glides(glides)
        assert len(filtered) == len(glides)

    def test_each_criterion_excludes(self, mixed_glides):
        filtered = filter_glides(mixed_glides)
        assert set(range(6)).isdisjoint(filtered.index)
        assert 6 in filtered.index
        assert len(filtered) == len(mixed_glides) - 6

    def test_result_satisfies_invariant(self, mixed_glides):
        filtered = filter_glides(mixed_glides)
        assert (filtered['Vair'] > 0).all()
        assert (filtered['avg_pitch'] <= -60).all()
        assert (filtered['glide_duration'] >= 10).all()
        assert (filtered['initial_depth'] <= 30).all()
        assert (filtered['cvar_pitch'] < 0.1).all()
        assert (filtered['cvar_roll'] < 0.1).all()

    def test_order_of_criteria_irrelevant(self, mixed_glides):
        forward = filter_glides(mixed_glides, config.FILTER_CRITERIA)
        backward = filter_glides(mixed_glides, list(reversed(config.FILTER_CRITERIA)))
        pd.testing.assert_frame_equal(forward, backward)

    def test_idempotent(self, mixed_glides):
        once = filter_glides(mixed_glides)
        twice = filter_glides(once)
        pd.testing.assert_frame_equal(once, twice)

    def test_row_order_preserved(self, mixed_glides):
        filtered = filter_glides(mixed_glides)
        assert filtered.index.is_monotonic_increasing

    def test_missing_non_model_value_fails_criterion(self, glides):
        data = glides.copy()
        data.loc[10, 'cvar_roll'] = np.nan
        data.loc[11, 'avg_pitch'] = np.nan
        filtered = filter_glides(data, na_action='raise')
        assert 10 not in filtered.index
        assert 11 not in filtered.index
        assert len(filtered) == len(data) - 2

    def test_missing_response_raises(self, glides):
        data = glides.copy()
        data.loc[10, 'Vair'] = np.nan
        with pytest.raises(DataError) as excinfo:
            filter_glides(data, na_action='raise')
        assert excinfo.value.columns == ['Vair']

    def test_missing_response_dropped(self, glides):
        data = glides.copy()
        data.loc[10, 'Vair'] = np.nan
        filtered = filter_glides(data, na_action='drop')
        assert 10 not in filtered.index

    def test_non_numeric_response_raises(self, glides):
        data = glides.copy()
        data['Vair'] = data['Vair'].astype(object)
        data.loc[3, 'Vair'] = 'bad'
        with pytest.raises(DataError) as excinfo:
            filter_glides(data, na_action='drop')
        assert excinfo.value.columns == ['Vair']

    def test_non_numeric_criteria_value_raises(self, glides):
        data = glides.copy()
        data['cvar_pitch'] = data['cvar_pitch'].astype(object)
        data.loc[3, 'cvar_pitch'] = 'n/a'
        with pytest.raises(DataError):
            filter_glides(data)

    def test_missing_values_dropped(self, glides):
        data = glides.copy()
        data.loc[10, 'cvar_roll'] = np.nan
        filtered = filter_glides(data, na_action='drop')
        assert 10 not in filtered.index
        assert len(filtered) == len(data) - 1

    def test_missing_column_raises(self, glides):
        with pytest.raises(DataError):
            filter_glides(glides.drop(columns=['cvar_pitch']))

    def test_invalid_na_action(self, glides):
        with pytest.raises(ValueError):
            filter_glides(glides, na_action='impute')


class TestCriteriaHelpers:

    def test_check_criteria_tolerates_missing(self, glides):
        data = glides.copy()
        data.loc[0, 'cvar_roll'] = np.nan
        counts = check_criteria(data).set_index('criterion')
        assert counts.loc['cvar_roll < 0.1', 'n_fail'] == 1

    def test_unknown_operator(self, glides):
        with pytest.raises(ValueError):
            criterion_mask(glides, ('Vair', '!=', 0))

    def test_check_criteria_counts(self, mixed_glides):
        counts = check_criteria(mixed_glides)
        assert len(counts) == len(config.FILTER_CRITERIA)
        assert (counts['n_pass'] + counts['n_fail'] == len(mixed_glides)).all()
        assert counts.set_index('criterion').loc['Vair > 0', 'n_fail'] == 1
