# -*- coding: utf-8 -*-
"""
Autocorrelation diagnostic for the DRAV response and for model residuals.

Used for visual inspection only; the AR(1) residual structure is adopted by
the researcher regardless of the outcome.
"""

import logging
from typing import Optional

import numpy as np
import pandas as pd
from statsmodels.tsa.stattools import acf
from statsmodels.tools.sm_exceptions import MissingDataError

from drav.exceptions import DataError

logger = logging.getLogger(__name__)


def default_nlags(n: int) -> int:
    """Library-standard number of lags: min(10 * log10(n), n - 1)."""
    if n < 2:
        raise ValueError("At least two observations are required for an ACF")
    return int(min(int(10 * np.log10(n)), n - 1))


def compute_acf(values, nlags: Optional[int] = None) -> pd.Series:
    """
    Sample autocorrelation at lags 0..nlags, in the stored row order.

    Args:
        values: Numeric sequence (array-like or pd.Series)
        nlags: Maximum lag (default: default_nlags(n))

    Returns:
        pd.Series indexed by lag
    """
    x = np.asarray(values, dtype=float)
    nlags = default_nlags(len(x)) if nlags is None else int(nlags)
    try:
        rho = acf(x, nlags=nlags, fft=False, missing='raise')
    except MissingDataError as e:
        raise DataError(f"Missing values in autocorrelation input: {e}") from e
    return pd.Series(rho, index=pd.RangeIndex(len(rho), name='lag'), name='acf')


def acf_confidence_bound(n: int, z: float = 1.96) -> float:
    """Approximate white-noise band ±z/sqrt(n) drawn on ACF plots."""
    return z / np.sqrt(n)
