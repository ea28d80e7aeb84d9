# -*- coding: utf-8 -*-
"""
Exception hierarchy for the DRAV analysis pipeline.

None of these are recovered silently by library code. Iterating harnesses
(sensitivity analysis, bootstrap) report the failing (model, dataset) pair,
skip it and record the skip count.
"""

from typing import Optional


class DRAVAnalysisError(Exception):
    """Base class for all pipeline errors."""


class DataError(DRAVAnalysisError):
    """Missing or invalid values in a column required by the active model."""

    def __init__(self, message: str, columns: Optional[list] = None):
        super().__init__(message)
        self.columns = list(columns) if columns else []


class ConvergenceError(DRAVAnalysisError):
    """The likelihood optimizer did not converge for a mixed-model fit."""

    def __init__(self, message: str, formula: Optional[str] = None,
                 dataset: Optional[str] = None):
        context = []
        if formula is not None:
            context.append(f"formula='{formula}'")
        if dataset is not None:
            context.append(f"dataset='{dataset}'")
        if context:
            message = f"{message} ({', '.join(context)})"
        super().__init__(message)
        self.formula = formula
        self.dataset = dataset


class DomainError(DRAVAnalysisError):
    """Non-physical input to the neutral-buoyancy calculator."""


class ComparabilityError(DRAVAnalysisError):
    """Information criteria compared across non-comparable fits."""
