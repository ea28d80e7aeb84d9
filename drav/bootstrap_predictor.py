# -*- coding: utf-8 -*-
"""
DRAV Bootstrap Prediction Module

Bootstrap prediction intervals for population-level (fixed-effect-only)
marginal-effect curves of a fitted AR(1) mixed model.

Each iteration resamples the rows of the fitting data with replacement, refits
the same formula and structure, and predicts on the prediction grid. The
iterations are independent tasks with their own seeded random streams
(numpy SeedSequence children) run through joblib, followed by a percentile
reduction, so results do not depend on the number of workers.
"""

import logging
from typing import Dict, List, Optional, Union

import numpy as np
import pandas as pd
from joblib import Parallel, delayed

import config
from drav.ar1_lme import AR1MixedModel, AR1MixedResult
from drav.exceptions import ConvergenceError, DataError, DRAVAnalysisError

logger = logging.getLogger(__name__)


def make_prediction_grid(
    data: pd.DataFrame,
    focal: str,
    predictors: Optional[List[str]] = None,
    n_points: int = config.PREDICTION_GRID_POINTS,
    group_col: str = config.GROUP_COLUMN
) -> pd.DataFrame:
    """
    Grid varying one predictor over its observed range, others at their mean.

    The grouping column is filled with the first individual of the sample so
    that the grid carries the model's random-effect structure; population-level
    predictions ignore it.

    Args:
        data: Filtered sample
        focal: Predictor that varies
        predictors: All model predictors (default: config.PREDICTOR_COLUMNS)
        n_points: Number of grid rows
        group_col: Grouping column

    Returns:
        pd.DataFrame with one column per predictor plus the grouping column
    """
    predictors = list(config.PREDICTOR_COLUMNS if predictors is None else predictors)
    if focal not in predictors:
        predictors.append(focal)
    missing = [p for p in predictors if p not in data.columns]
    if missing:
        raise DataError(f"Prediction grid columns not found: {missing}", columns=missing)

    values = data[focal].dropna()
    grid = pd.DataFrame({focal: np.linspace(values.min(), values.max(), n_points)})
    for predictor in predictors:
        if predictor != focal:
            grid[predictor] = data[predictor].mean()
    grid[group_col] = data[group_col].iloc[0]
    return grid[predictors + [group_col]]


def _bootstrap_task(
    model_kwargs: Dict,
    data: pd.DataFrame,
    grids: Dict[str, pd.DataFrame],
    seed_seq: np.random.SeedSequence,
    iteration: int
) -> Union[Dict[str, np.ndarray], DRAVAnalysisError]:
    """
    One resample-refit iteration predicting on every grid.

    Returns the refit's predictions per grid name, or the exception when the
    resample cannot be refitted (non-convergence or a degenerate resample).
    """
    rng = np.random.default_rng(seed_seq)
    # Sorted positions keep the within-individual time order of the drawn rows
    positions = np.sort(rng.integers(0, len(data), size=len(data)))
    resample = data.iloc[positions].reset_index(drop=True)
    try:
        refit = AR1MixedModel(data=resample, label=f"bootstrap {iteration}", **model_kwargs).fit()
    except (ConvergenceError, DataError) as e:
        logger.debug(f"  Bootstrap iteration {iteration} failed: {e}")
        return e
    return {name: refit.predict(grid, level=0).to_numpy() for name, grid in grids.items()}


class BootstrapPredictor:
    """
    Bootstrap confidence bands for fixed-effect predictions.

    All grids passed to one predict_grids() call share the same refits, so
    every band and the failure count describe the same set of iterations.

    Failure policy (on_failure):
        'skip'  - iterations whose refit fails (no convergence, or a resample
                  the model cannot be built on) are discarded and counted in
                  n_failed; intervals use the remaining iterations.
        'raise' - the first failed iteration aborts the bootstrap with its
                  original exception.

    Attributes:
        result (AR1MixedResult): Model fitted on the full, non-resampled data
        n_boot (int): Number of bootstrap iterations (R)
        seed (int): Seed of the root SeedSequence
        n_failed (int): Failed iterations of the last bootstrap run
        predictions (dict): grid name -> (n_successful, n_grid) bootstrap predictions

    Example:
        >>> predictor = BootstrapPredictor(final_fit, data, n_boot=1000, seed=42)
        >>> bands = predictor.predict_grids({
        ...     'max_depth': make_prediction_grid(data, 'max_depth'),
        ...     'BD': make_prediction_grid(data, 'BD'),
        ... })
    """

    def __init__(
        self,
        result: AR1MixedResult,
        data: pd.DataFrame,
        n_boot: int = config.N_BOOTSTRAP,
        seed: Optional[int] = config.BOOTSTRAP_SEED,
        on_failure: str = config.BOOTSTRAP_ON_FAILURE,
        n_jobs: int = config.N_JOBS,
        ci_level: float = config.CONFIDENCE_LEVEL
    ):
        if on_failure not in ('skip', 'raise'):
            raise ValueError(f"on_failure must be 'skip' or 'raise', got '{on_failure}'")
        if n_boot < 1:
            raise ValueError("n_boot must be positive")

        self.result = result
        self.data = data.loc[result.row_labels]
        self.n_boot = int(n_boot)
        self.seed = seed
        self.on_failure = on_failure
        self.n_jobs = n_jobs
        self.ci_level = ci_level
        self.n_failed = 0
        self.predictions: Dict[str, np.ndarray] = {}

    def _run(self, grids: Dict[str, pd.DataFrame]) -> List:
        # patsy design objects do not pickle, so workers rebuild the model from its settings
        model_kwargs = self.result.model_settings()
        children = np.random.SeedSequence(self.seed).spawn(self.n_boot)
        return Parallel(n_jobs=self.n_jobs)(
            delayed(_bootstrap_task)(model_kwargs, self.data, grids, child, i)
            for i, child in enumerate(children)
        )

    def _band(self, name: str, grid: pd.DataFrame, predictions: np.ndarray) -> pd.DataFrame:
        point = self.result.predict(grid, level=0).to_numpy()
        alpha = (1 - self.ci_level) / 2
        lower = np.percentile(predictions, 100 * alpha, axis=0)
        upper = np.percentile(predictions, 100 * (1 - alpha), axis=0)

        outside = int(np.sum((point < lower) | (point > upper)))
        if outside:
            logger.warning(f"  {name}: point estimate outside the bootstrap percentile "
                           f"interval at {outside}/{len(grid)} grid points")

        band = grid.copy()
        band['predicted'] = point
        band['pct_lower'] = lower
        band['pct_upper'] = upper
        # Reported bounds are widened to enclose the original-fit estimate
        band['ci_lower'] = np.minimum(lower, point)
        band['ci_upper'] = np.maximum(upper, point)
        band['n_boot'] = len(predictions)
        return band

    def predict_grids(self, grids: Dict[str, pd.DataFrame]) -> Dict[str, pd.DataFrame]:
        """
        Point estimates and percentile bounds on several grids from one bootstrap run.

        Args:
            grids: Mapping of name -> prediction grid

        Returns:
            dict: name -> the grid plus columns predicted, pct_lower, pct_upper
                (raw bootstrap percentiles), ci_lower, ci_upper (percentiles
                widened to enclose predicted), n_boot (successful iterations)

        Raises:
            ConvergenceError: When no iteration succeeds
            ConvergenceError, DataError: With on_failure='raise', the error of
                the first failed iteration
        """
        if not grids:
            raise ValueError("At least one prediction grid is required")
        logger.info(f"Running bootstrap ({self.n_boot} iterations, n_jobs={self.n_jobs})...")
        outputs = self._run(grids)

        failed = [out for out in outputs if isinstance(out, Exception)]
        self.n_failed = len(failed)
        if failed and self.on_failure == 'raise':
            raise failed[0]
        successful = [out for out in outputs if not isinstance(out, Exception)]
        if not successful:
            raise ConvergenceError("No bootstrap iteration converged", formula=self.result.formula)
        if self.n_failed:
            logger.warning(f"  Skipped {self.n_failed}/{self.n_boot} failed iterations")

        bands = {}
        for name, grid in grids.items():
            self.predictions[name] = np.vstack([out[name] for out in successful])
            bands[name] = self._band(name, grid, self.predictions[name])

        logger.info(f"  Bootstrap complete: {len(successful)} successful iterations")
        return bands

    def predict(self, grid: pd.DataFrame) -> pd.DataFrame:
        """Bootstrap band on a single grid; see predict_grids()."""
        return self.predict_grids({'grid': grid})['grid']

    def summary(self) -> Dict[str, int]:
        return {
            'n_requested': self.n_boot,
            'n_successful': self.n_boot - self.n_failed,
            'n_failed': self.n_failed,
        }
