# -*- coding: utf-8 -*-
"""DRAV (Diving Respiratory Air Volume) Analysis Module

This module provides functionality for estimating the relationship between
diving respiratory air volume and maximum dive depth / body tissue density in
marine mammals, using repeated-measures linear mixed-effects models.

The module includes:
    - filter_glides: Apply glide inclusion criteria
    - compute_acf: Sample autocorrelation diagnostic
    - AR1MixedModel: Random-intercept LME with AR(1) residuals (ML / REML)
    - ModelSelector: Dredge-style AIC model comparison
    - BootstrapPredictor: Bootstrap prediction intervals for marginal effects
    - required_air_volume: Neutral-buoyancy air volume calculator
    - SensitivityAnalyzer: Refit across drag-coefficient dataset variants

Example:
    >>> from drav.data_loader import load_observations
    >>> from drav.data_filter import filter_glides
    >>> from drav.model_selector import ModelSelector
    >>>
    >>> data = filter_glides(load_observations('data/glides/drav_glides.csv'))
    >>> selector = ModelSelector(data, 'Vair', ['center(max_depth)', 'center(BD)'])
    >>> table = selector.dredge()
    >>> importance = selector.variable_importance()
"""

__version__ = "1.0.0"
