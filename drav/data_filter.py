# -*- coding: utf-8 -*-
"""
DRAV Glide Filter Module

Applies the fixed glide inclusion criteria to raw observations, producing the
analysis-ready sample used by every downstream fit.
"""

import logging
import operator
from typing import List, Optional, Tuple

import numpy as np
import pandas as pd

import config
from drav.exceptions import DataError

logger = logging.getLogger(__name__)

Criterion = Tuple[str, str, float]

_OPERATORS = {
    '<': operator.lt,
    '<=': operator.le,
    '>': operator.gt,
    '>=': operator.ge,
}


def criterion_mask(data: pd.DataFrame, criterion: Criterion) -> pd.Series:
    """Boolean mask of rows satisfying a single (column, op, threshold) criterion."""
    column, op, threshold = criterion
    if op not in _OPERATORS:
        raise ValueError(f"Unknown comparison operator '{op}' for column '{column}'")
    if column not in data.columns:
        raise DataError(f"Filter column '{column}' not found in data", columns=[column])
    values = pd.to_numeric(data[column], errors='coerce')
    invalid = values.isna() & data[column].notna()
    if invalid.any():
        raise DataError(
            f"Non-numeric values in filter column '{column}': "
            f"{data.loc[invalid, column].unique()[:5].tolist()}",
            columns=[column]
        )
    # NaN comparisons are False, so rows with missing criteria never pass
    return pd.Series(_OPERATORS[op](values.to_numpy(), threshold), index=data.index)


def filter_glides(
    data: pd.DataFrame,
    criteria: Optional[List[Criterion]] = None,
    na_action: str = config.NA_ACTION,
    label: Optional[str] = None,
    model_columns: Optional[List[str]] = None
) -> pd.DataFrame:
    """
    Return the glides satisfying every inclusion criterion.

    The criteria are combined by conjunction, so the result does not depend on
    their order, and filtering an already filtered table returns it unchanged.

    Args:
        data: Observation table
        criteria: List of (column, operator, threshold)
            (default: config.FILTER_CRITERIA)
        na_action: 'raise' to reject missing values in criteria columns that
            are also model variables, 'drop' to exclude those rows. Missing
            values in any other criteria column make that criterion false.
        label: Optional dataset label for log messages
        model_columns: Model variables (default: response and predictors)

    Returns:
        pd.DataFrame: Filtered sample (original row order kept)

    Raises:
        DataError: Missing criteria column, non-numeric criteria values, or
            missing model-variable values with na_action='raise'
    """
    criteria = config.FILTER_CRITERIA if criteria is None else criteria
    if na_action not in ('raise', 'drop'):
        raise ValueError(f"na_action must be 'raise' or 'drop', got '{na_action}'")

    columns = [col for col, _, _ in criteria]
    missing_cols = [col for col in columns if col not in data.columns]
    if missing_cols:
        raise DataError(f"Filter columns not found in data: {missing_cols}",
                        columns=missing_cols)

    if model_columns is None:
        model_columns = [config.RESPONSE_COLUMN] + list(config.PREDICTOR_COLUMNS)
    checked = [col for col in dict.fromkeys(columns) if col in model_columns]
    if na_action == 'raise' and checked:
        na_counts = data[checked].isna().sum()
        na_counts = na_counts[na_counts > 0]
        if len(na_counts) > 0:
            raise DataError(
                f"Missing values in model columns used as filters: {na_counts.to_dict()}",
                columns=list(na_counts.index)
            )

    mask = np.ones(len(data), dtype=bool)
    for criterion in criteria:
        mask &= criterion_mask(data, criterion).to_numpy()

    filtered = data.loc[mask].copy()

    prefix = f"[{label}] " if label else ""
    logger.info(f"{prefix}Filtered glides: {len(filtered)}/{len(data)} rows retained")
    return filtered


def check_criteria(data: pd.DataFrame, criteria: Optional[List[Criterion]] = None) -> pd.DataFrame:
    """
    Per-criterion pass counts, useful for reporting why glides were excluded.

    Returns:
        pd.DataFrame: columns criterion, n_pass, n_fail
    """
    criteria = config.FILTER_CRITERIA if criteria is None else criteria
    rows = []
    for criterion in criteria:
        mask = criterion_mask(data, criterion)
        column, op, threshold = criterion
        rows.append({
            'criterion': f"{column} {op} {threshold}",
            'n_pass': int(mask.sum()),
            'n_fail': int((~mask).sum()),
        })
    return pd.DataFrame(rows)
