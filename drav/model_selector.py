# -*- coding: utf-8 -*-
"""
DRAV Model Selection Module

Dredge-style exhaustive comparison of fixed-effect sub-models by AIC.

Every sub-model respecting marginality is fitted by maximum likelihood on the
same rows; Akaike weights, per-term summed weights ("variable importance") and
pairwise AIC differences are reported. The final choice is advisory: an
explicit policy parameter decides between the minimum-AIC model and the
simplest model within a ΔAIC window.
"""

import itertools
import logging
import os
from typing import Dict, FrozenSet, List, Optional, Sequence

import numpy as np
import pandas as pd

import config
from drav.ar1_lme import AR1MixedModel, AR1MixedResult, build_formula
from drav.exceptions import ComparabilityError

logger = logging.getLogger(__name__)

INTERCEPT_ONLY = '(Intercept only)'


def term_requirements(terms: Sequence[str]) -> Dict[str, FrozenSet[str]]:
    """
    "Requires" relation over fixed-effect terms.

    An interaction 'a:b' requires its main effects 'a' and 'b'; main effects
    require nothing.

    Raises:
        ValueError: If an interaction's main effect is not among the terms
    """
    terms = list(terms)
    requires = {}
    for term in terms:
        parts = term.split(':')
        if len(parts) == 1:
            requires[term] = frozenset()
            continue
        missing = [p for p in parts if p not in terms]
        if missing:
            raise ValueError(f"Interaction '{term}' requires main effects {missing} in the term list")
        requires[term] = frozenset(parts)
    return requires


def enumerate_submodels(terms: Sequence[str]) -> List[List[str]]:
    """
    All term subsets closed under the "requires" relation.

    Includes the intercept-only model (empty subset). Subsets keep the order of
    the input term list and are returned by increasing size.
    """
    terms = list(terms)
    requires = term_requirements(terms)
    submodels = []
    for size in range(len(terms) + 1):
        for subset in itertools.combinations(terms, size):
            chosen = set(subset)
            if all(requires[t] <= chosen for t in subset):
                submodels.append(list(subset))
    return submodels


def model_name(terms: Sequence[str]) -> str:
    return ' + '.join(terms) if terms else INTERCEPT_ONLY


def akaike_weights(aic) -> np.ndarray:
    """
    Akaike weights w_m = exp(-Δ_m / 2) / Σ exp(-Δ_m' / 2), Δ_m = AIC_m - min AIC.

    Invariant to adding a constant to every AIC.
    """
    aic = np.asarray(aic, dtype=float)
    delta = aic - np.min(aic)
    rel = np.exp(-0.5 * delta)
    return rel / rel.sum()


def check_comparable(results: Sequence[AR1MixedResult]) -> None:
    """
    Reject information-criterion comparisons between non-comparable fits.

    All fits must share identical input rows; REML fits are only comparable
    when their fixed-effect structure is identical.

    Raises:
        ComparabilityError
    """
    if len(results) < 2:
        return
    reference = results[0]
    for res in results[1:]:
        if not reference.row_labels.equals(res.row_labels):
            raise ComparabilityError(
                f"Fits use different rows: '{reference.formula}' ({reference.n_obs} rows) vs "
                f"'{res.formula}' ({res.n_obs} rows)"
            )
    methods = {res.method for res in results}
    if len(methods) > 1:
        raise ComparabilityError(f"Fits mix estimation methods: {sorted(methods)}")
    if 'REML' in methods:
        designs = {tuple(res.params.index) for res in results}
        if len(designs) > 1:
            raise ComparabilityError(
                "REML fits with different fixed effects are not comparable; refit with method='ML'"
            )


def compare_fits(a: AR1MixedResult, b: AR1MixedResult) -> float:
    """AIC(a) - AIC(b) after checking comparability."""
    check_comparable([a, b])
    return a.aic - b.aic


class ModelSelector:
    """
    Exhaustive fixed-effect sub-model comparison by AIC.

    Attributes:
        data (pd.DataFrame): Filtered sample
        response (str): Response column
        terms (List[str]): Full model fixed-effect terms
        results (Dict[str, AR1MixedResult]): ML fits keyed by model name
        table (pd.DataFrame): Ranked model-selection table

    Example:
        >>> selector = ModelSelector(data, 'Vair', config.FULL_MODEL_TERMS)
        >>> table = selector.dredge()
        >>> selector.variable_importance()
        >>> best = selector.select_model(policy='simplest_within_delta')
    """

    def __init__(
        self,
        data: pd.DataFrame,
        response: str = config.RESPONSE_COLUMN,
        terms: Optional[List[str]] = None,
        group_col: str = config.GROUP_COLUMN,
        na_action: str = config.NA_ACTION,
        label: Optional[str] = None
    ):
        self.response = response
        self.terms = list(config.FULL_MODEL_TERMS if terms is None else terms)
        self.group_col = group_col
        self.data = data
        if na_action == 'drop':
            # Every candidate is fitted on the complete rows of the full model
            full = AR1MixedModel(build_formula(response, self.terms), data,
                                 group_col=group_col, na_action='drop', label=label)
            self.data = data.loc[full.row_labels]
            n_dropped = len(data) - len(self.data)
            if n_dropped:
                logger.warning(f"Dropped {n_dropped} rows with missing values in the full model")
        self.na_action = na_action
        self.label = label
        self.submodels = enumerate_submodels(self.terms)
        self.results: Dict[str, AR1MixedResult] = {}
        self.table: Optional[pd.DataFrame] = None

        logger.info(f"Initialized ModelSelector with {len(self.terms)} terms, "
                    f"{len(self.submodels)} candidate models")

    def dredge(self) -> pd.DataFrame:
        """
        Fit every candidate by ML and rank by AIC.

        Returns:
            pd.DataFrame: one row per model with columns model, formula,
                n_terms, k_params, loglik, aic, delta_aic, weight, and one
                indicator column per term; sorted by ascending AIC

        Raises:
            ConvergenceError / DataError: A candidate fit failed. Partial
                candidate sets would change every weight, so nothing is skipped.
        """
        logger.info("Fitting candidate models (ML)...")
        self.results = {}
        for i, subset in enumerate(self.submodels, 1):
            name = model_name(subset)
            formula = build_formula(self.response, subset)
            logger.info(f"  [{i}/{len(self.submodels)}] {name}")
            self.results[name] = AR1MixedModel(
                formula,
                self.data,
                group_col=self.group_col,
                method='ML',
                na_action=self.na_action,
                label=self.label
            ).fit()

        check_comparable(list(self.results.values()))

        rows = []
        for subset in self.submodels:
            name = model_name(subset)
            res = self.results[name]
            row = {
                'model': name,
                'formula': res.formula,
                'n_terms': len(subset),
                'k_params': res.k_params,
                'loglik': res.llf,
                'aic': res.aic,
            }
            for term in self.terms:
                row[term] = term in subset
            rows.append(row)

        table = pd.DataFrame(rows)
        table['delta_aic'] = table['aic'] - table['aic'].min()
        table['weight'] = akaike_weights(table['aic'].to_numpy())
        table = table.sort_values('aic', kind='mergesort').reset_index(drop=True)
        column_order = (['model', 'formula', 'n_terms', 'k_params', 'loglik', 'aic',
                         'delta_aic', 'weight'] + self.terms)
        self.table = table[column_order]

        best = self.table.iloc[0]
        logger.info(f"  Lowest AIC: {best['model']} (AIC = {best['aic']:.2f}, w = {best['weight']:.3f})")
        return self.table

    def _require_table(self) -> pd.DataFrame:
        if self.table is None:
            raise ValueError("No model-selection table. Run dredge() first.")
        return self.table

    def variable_importance(self) -> pd.Series:
        """Summed Akaike weight of the models containing each term."""
        table = self._require_table()
        importance = {term: float(table.loc[table[term], 'weight'].sum()) for term in self.terms}
        return pd.Series(importance, name='summed_weight')

    def aic_difference(self, model_a: str, model_b: str) -> float:
        """AIC(model_a) - AIC(model_b) for two named candidates."""
        self._require_table()
        for name in (model_a, model_b):
            if name not in self.results:
                raise KeyError(f"Unknown candidate model '{name}'")
        return compare_fits(self.results[model_a], self.results[model_b])

    def pairwise_aic_differences(self, models: Optional[List[str]] = None) -> pd.DataFrame:
        """
        Matrix of AIC differences (row minus column) between named candidates.

        Args:
            models: Candidate names (default: all, in ranked order)
        """
        table = self._require_table()
        models = list(table['model']) if models is None else list(models)
        diffs = pd.DataFrame(index=models, columns=models, dtype=float)
        for a in models:
            for b in models:
                diffs.loc[a, b] = self.aic_difference(a, b)
        return diffs

    def select_model(
        self,
        policy: str = config.SELECTION_POLICY,
        delta_aic: float = config.DELTA_AIC,
        importance_threshold: float = config.IMPORTANCE_THRESHOLD
    ) -> List[str]:
        """
        Advisory model choice.

        Policies:
            'min_aic': the lowest-AIC candidate.
            'simplest_within_delta': among candidates within `delta_aic` of the
                minimum whose terms all have summed weight >= importance_threshold,
                the one with fewest terms (ties broken by AIC). Falls back to the
                lowest-AIC candidate, with a warning, when none qualifies.

        Returns:
            List of fixed-effect terms of the chosen model
        """
        table = self._require_table()
        by_name = {model_name(s): s for s in self.submodels}

        if policy == 'min_aic':
            chosen = table.iloc[0]['model']
        elif policy == 'simplest_within_delta':
            importance = self.variable_importance()
            window = table[table['delta_aic'] <= delta_aic]
            qualifying = [
                name for name in window['model']
                if all(importance[t] >= importance_threshold for t in by_name[name])
            ]
            if qualifying:
                window = window[window['model'].isin(qualifying)]
                chosen = window.sort_values(['n_terms', 'aic'], kind='mergesort').iloc[0]['model']
            else:
                chosen = table.iloc[0]['model']
                logger.warning(f"  No model within ΔAIC {delta_aic} has all terms with summed "
                               f"weight >= {importance_threshold}; using lowest AIC")
        else:
            raise ValueError(f"Unknown selection policy '{policy}'")

        logger.info(f"Selected model ({policy}): {chosen}")
        return list(by_name[chosen])

    def export_results(self, output_dir: str) -> Dict[str, str]:
        """Write the selection table and variable importance to CSV."""
        table = self._require_table()
        os.makedirs(output_dir, exist_ok=True)
        paths = {
            'model_selection': os.path.join(output_dir, 'model_selection.csv'),
            'variable_importance': os.path.join(output_dir, 'variable_importance.csv'),
        }
        table.to_csv(paths['model_selection'], index=False)
        self.variable_importance().rename_axis('term').reset_index().to_csv(
            paths['variable_importance'], index=False)
        logger.info(f"Exported model selection results to: {output_dir}")
        return paths
