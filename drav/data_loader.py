# -*- coding: utf-8 -*-
"""
DRAV Data Loader Module

This module loads glide-phase observation tables from CSV files and prepares
them for mixed-effects modeling: required columns are checked, the grouping
column is cast to categorical and rows are ordered in time within each
individual (required by the AR(1) residual structure).
"""

import os
import logging
from typing import Dict, List, Optional

import pandas as pd

import config
from drav.exceptions import DataError

logger = logging.getLogger(__name__)


def validate_columns(data: pd.DataFrame, required: Optional[List[str]] = None) -> None:
    """
    Check that all required columns are present.

    Args:
        data: Observation table
        required: Column names (default: config.REQUIRED_COLUMNS)

    Raises:
        DataError: If any column is missing
    """
    required = config.REQUIRED_COLUMNS if required is None else required
    missing = [col for col in required if col not in data.columns]
    if missing:
        raise DataError(f"Missing required columns: {missing}", columns=missing)


def order_within_individual(
    data: pd.DataFrame,
    group_col: str = config.GROUP_COLUMN,
    sequence_col: Optional[str] = config.SEQUENCE_COLUMN
) -> pd.DataFrame:
    """
    Order rows by time of occurrence within each individual.

    Uses a stable sort so that, without a sequence column, the stored row order
    is kept within each individual. Order across individuals is irrelevant to
    the model and follows first appearance.
    """
    ordered = data.copy()
    ordered['_row'] = range(len(ordered))
    first_seen = ordered.groupby(group_col, observed=True)['_row'].transform('min')
    sort_cols = ['_first', '_row']
    ordered['_first'] = first_seen
    if sequence_col is not None and sequence_col in ordered.columns:
        sort_cols = ['_first', sequence_col, '_row']
    ordered = ordered.sort_values(sort_cols, kind='mergesort')
    return ordered.drop(columns=['_row', '_first']).reset_index(drop=True)


def load_observations(
    path: str,
    required: Optional[List[str]] = None,
    group_col: str = config.GROUP_COLUMN,
    sequence_col: Optional[str] = config.SEQUENCE_COLUMN
) -> pd.DataFrame:
    """
    Load a glide observation table.

    Missing values are tolerated at this stage; the filter and the model
    fitter decide how to treat them in the columns they use.

    Args:
        path: CSV file path
        required: Required columns (default: config.REQUIRED_COLUMNS)
        group_col: Individual identifier column
        sequence_col: Optional time/sequence column used for ordering

    Returns:
        pd.DataFrame: Observations ordered within individual
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"Glide data file not found: {path}")

    data = pd.read_csv(path)
    validate_columns(data, required)

    if data[group_col].isna().any():
        n_missing = int(data[group_col].isna().sum())
        raise DataError(f"{n_missing} rows without '{group_col}' in {path}",
                        columns=[group_col])
    data[group_col] = data[group_col].astype(str).astype('category')
    data = order_within_individual(data, group_col, sequence_col)

    logger.info(f"Loaded {len(data)} observations from "
                f"{data[group_col].nunique()} individuals ({os.path.basename(path)})")
    return data


def load_drag_variants(
    files: Optional[Dict[float, str]] = None,
    **kwargs
) -> Dict[float, pd.DataFrame]:
    """
    Load one observation table per assumed drag coefficient.

    Args:
        files: Mapping drag coefficient -> CSV path
            (default: config.DRAG_COEFFICIENT_FILES)
        **kwargs: Passed to load_observations

    Returns:
        Dict mapping drag coefficient to its observation table
    """
    files = config.DRAG_COEFFICIENT_FILES if files is None else files
    variants = {}
    for cd in sorted(files):
        logger.info(f"  Loading variant Cd = {cd}")
        variants[cd] = load_observations(files[cd], **kwargs)
    return variants
