"""
Tests for coefficient formatting and the text report.
"""

import os

import pandas as pd

from drav.reporter import (
    coefficient_table,
    format_coefficient,
    format_p_value,
    generate_report,
    publication_table,
    save_publication_table,
    significance_stars,
)


class TestFormatting:

    def test_p_values(self):
        assert format_p_value(0.0004) == '< .001'
        assert format_p_value(0.0234) == '.023'
        assert format_p_value(float('nan')) == 'NA'

    def test_stars(self):
        assert significance_stars(0.0001) == '***'
        assert significance_stars(0.005) == '**'
        assert significance_stars(0.03) == '*'
        assert significance_stars(0.2) == ''

    def test_format_coefficient(self, reml_fit):
        row = reml_fit.coefficient_table().iloc[1]
        text = format_coefficient(row)
        assert text.startswith('center(max_depth): β = ')
        assert 't(112)' in text
        assert 'p < .001' in text


class TestTables:

    def test_coefficient_table(self, reml_fit):
        table = coefficient_table(reml_fit)
        assert list(table['term']) == ['Intercept', 'center(max_depth)', 'center(BD)']

    def test_publication_table(self, reml_fit):
        table = publication_table(reml_fit)
        assert list(table.columns) == ['Term', 'Estimate ± SE', '95% CI', 't (df)', 'p']
        assert table['Term'].iloc[1] == 'Maximum depth (centred)'

    def test_custom_labels(self, reml_fit):
        table = publication_table(reml_fit, term_labels={'center(BD)': 'BD'})
        assert table['Term'].iloc[2] == 'BD'

    def test_save_publication_table(self, reml_fit, tmp_path):
        paths = save_publication_table(publication_table(reml_fit), str(tmp_path / 'table.csv'))
        assert os.path.exists(paths['csv'])
        assert os.path.exists(paths['txt'])
        assert len(pd.read_csv(paths['csv'])) == 3


class TestReport:

    def test_generate_report(self, reml_fit, tmp_path):
        selection = pd.DataFrame({
            'model': ['a + b', '(Intercept only)'],
            'k_params': [6, 4],
            'loglik': [-80.0, -200.0],
            'aic': [172.0, 408.0],
            'delta_aic': [0.0, 236.0],
            'weight': [1.0, 0.0],
        })
        path = generate_report(
            reml_fit,
            str(tmp_path),
            selection_table=selection,
            importance=pd.Series({'a': 1.0, 'b': 1.0}),
            selection_policy='min_aic',
            filter_counts={'retained': 120, 'total': 130},
            bootstrap_summary={'n_requested': 10, 'n_successful': 9, 'n_failed': 1}
        )
        with open(path, encoding='utf-8') as f:
            text = f.read()
        assert 'LME ANALYSIS REPORT' in text
        assert 'MODEL SELECTION' in text
        assert '120/130' in text
        assert 'AR(1)' in text
        assert 'Skipped (no convergence): 1' in text
