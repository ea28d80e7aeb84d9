# -*- coding: utf-8 -*-
"""
DRAV Drag-Coefficient Sensitivity Module

Refits the selected model on dataset variants generated under different
assumed hydrodynamic drag coefficients, to check that the inferred effects of
depth and tissue density do not hinge on that assumption. Variants are fitted
independently; this is an iteration wrapper, not a joint model.
"""

import itertools
import logging
import os
from typing import Dict, List, Optional

import pandas as pd

import config
from drav.ar1_lme import AR1MixedModel, AR1MixedResult, build_formula
from drav.data_filter import filter_glides
from drav.exceptions import ConvergenceError, DataError

logger = logging.getLogger(__name__)


class SensitivityAnalyzer:
    """
    Fits one model formula to every drag-coefficient variant.

    Attributes:
        variants (Dict[float, pd.DataFrame]): Raw tables keyed by drag coefficient
        formula (str): Fixed-effect formula of the selected model
        refilter (bool): Apply the inclusion criteria to each variant
        models (Dict[float, AR1MixedResult]): Successful fits
        failures (Dict[float, str]): Failed variants and their error message
        results (pd.DataFrame): Coefficient table of all successful variants
        fit_summary (pd.DataFrame): Per-variant n, AIC and R²

    Example:
        >>> analyzer = SensitivityAnalyzer(variants, 'Vair ~ center(max_depth) + center(BD)')
        >>> coefs = analyzer.run()
        >>> analyzer.check_agreement()
    """

    def __init__(
        self,
        variants: Dict[float, pd.DataFrame],
        formula: Optional[str] = None,
        refilter: bool = config.SENSITIVITY_REFILTER,
        method: str = 'REML',
        group_col: str = config.GROUP_COLUMN,
        na_action: str = config.NA_ACTION,
        criteria: Optional[list] = None
    ):
        self.variants = variants
        self.formula = formula or build_formula(config.RESPONSE_COLUMN, config.SENSITIVITY_TERMS)
        self.refilter = refilter
        self.method = method
        self.group_col = group_col
        self.na_action = na_action
        self.criteria = criteria

        self.models: Dict[float, AR1MixedResult] = {}
        self.failures: Dict[float, str] = {}
        self.results: Optional[pd.DataFrame] = None
        self.fit_summary: Optional[pd.DataFrame] = None

        logger.info(f"Initialized SensitivityAnalyzer with {len(variants)} variants "
                    f"(refilter={refilter})")

    @property
    def n_skipped(self) -> int:
        return len(self.failures)

    def fit_variant(self, drag_coefficient: float, data: pd.DataFrame) -> AR1MixedResult:
        """Filter (optionally) and fit one variant."""
        label = f"Cd={drag_coefficient}"
        if self.refilter:
            data = filter_glides(data, self.criteria, na_action=self.na_action, label=label)
        return AR1MixedModel(
            self.formula,
            data,
            group_col=self.group_col,
            method=self.method,
            na_action=self.na_action,
            label=label
        ).fit()

    def run(self) -> pd.DataFrame:
        """
        Fit every variant; failed variants are logged, skipped and counted.

        Returns:
            pd.DataFrame: columns drag_coefficient, term, estimate, std_error,
                df, t_value, p_value, ci_lower, ci_upper
        """
        logger.info(f"Running sensitivity analysis: {self.formula}")
        self.models = {}
        self.failures = {}
        tables = []
        summaries = []

        for i, cd in enumerate(sorted(self.variants), 1):
            logger.info(f"  [{i}/{len(self.variants)}] Drag coefficient {cd}")
            try:
                result = self.fit_variant(cd, self.variants[cd])
            except (DataError, ConvergenceError) as e:
                logger.warning(f"    ✗ Variant Cd={cd} skipped: {e}")
                self.failures[cd] = str(e)
                continue

            self.models[cd] = result
            table = result.coefficient_table()
            table.insert(0, 'drag_coefficient', cd)
            tables.append(table)
            summaries.append({
                'drag_coefficient': cd,
                'n_obs': result.n_obs,
                'n_groups': result.n_groups,
                'aic': result.aic,
                **result.variance_components(),
                **result.r_squared(),
            })
            logger.info(f"    ✓ n = {result.n_obs}, R²m = {summaries[-1]['r2_marginal']:.3f}, "
                        f"R²c = {summaries[-1]['r2_conditional']:.3f}")

        if self.failures:
            logger.warning(f"  {self.n_skipped}/{len(self.variants)} variants skipped")

        self.results = pd.concat(tables, ignore_index=True) if tables else pd.DataFrame()
        self.fit_summary = pd.DataFrame(summaries)
        return self.results

    def check_agreement(self, terms: Optional[List[str]] = None) -> pd.DataFrame:
        """
        Whether coefficient confidence intervals overlap across all variant pairs.

        Returns:
            pd.DataFrame: columns term, n_variants, min_estimate, max_estimate,
                all_overlap
        """
        if self.results is None or len(self.results) == 0:
            raise ValueError("No results available. Run run() first.")
        terms = [t for t in self.results['term'].unique() if t != 'Intercept'] if terms is None else terms

        rows = []
        for term in terms:
            sub = self.results[self.results['term'] == term]
            overlaps = all(
                a.ci_lower <= b.ci_upper and b.ci_lower <= a.ci_upper
                for a, b in itertools.combinations(sub.itertuples(), 2)
            )
            rows.append({
                'term': term,
                'n_variants': len(sub),
                'min_estimate': sub['estimate'].min(),
                'max_estimate': sub['estimate'].max(),
                'all_overlap': overlaps,
            })
        return pd.DataFrame(rows)

    def export_results(self, output_dir: str) -> Dict[str, str]:
        if self.results is None:
            raise ValueError("No results to export. Run run() first.")
        os.makedirs(output_dir, exist_ok=True)
        paths = {
            'coefficients': os.path.join(output_dir, 'sensitivity_coefficients.csv'),
            'fit_summary': os.path.join(output_dir, 'sensitivity_fit_summary.csv'),
        }
        self.results.to_csv(paths['coefficients'], index=False)
        self.fit_summary.to_csv(paths['fit_summary'], index=False)
        if self.failures:
            paths['failures'] = os.path.join(output_dir, 'sensitivity_failures.csv')
            pd.DataFrame(
                [{'drag_coefficient': cd, 'error': msg} for cd, msg in self.failures.items()]
            ).to_csv(paths['failures'], index=False)
        logger.info(f"Exported sensitivity results to: {output_dir}")
        return paths
