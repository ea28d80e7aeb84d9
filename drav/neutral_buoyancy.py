# -*- coding: utf-8 -*-
"""
Neutral-buoyancy air volume calculator.

Closed-form air volume needed for neutral buoyancy at depth d, given tissue
density, with air compressed following Boyle's law (pressure in atmospheres
is 1 + 0.1 * d for d in metres):

    pressure_term = (rho_water - rho_air * (1 + 0.1 d)) / (1 + 0.1 d)
    Vair_required = m * (1 - rho_water / rho_tissue) / pressure_term

Independent of the statistical model; used to overlay theoretical curves on
the observed data at a few reference depths.
"""

import logging
from typing import Optional, Sequence, Tuple

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
from matplotlib.colors import Normalize

import config
from drav.exceptions import DomainError

logger = logging.getLogger(__name__)


def required_air_volume(
    tissue_density,
    depth,
    g: float = config.GRAVITY,
    water_density: float = config.SEAWATER_DENSITY,
    mass: float = config.BODY_MASS,
    air_density: float = config.AIR_DENSITY_SURFACE
):
    """
    Air volume required for neutral buoyancy.

    Args:
        tissue_density: Body tissue density (kg/m^3), scalar or array
        depth: Depth (m), scalar or array (broadcast against tissue_density)
        g: Gravitational acceleration (m/s^2); cancels out of the balance of
            forces and is kept for the full physical signature
        water_density: Sea water density (kg/m^3)
        mass: Body mass (kg)
        air_density: Air density at the surface (kg/m^3)

    Returns:
        float or np.ndarray: Required air volume (m^3)

    Raises:
        DomainError: Zero tissue density, zero pressure factor or pressure term,
            or non-finite inputs / results
    """
    rho_t = np.asarray(tissue_density, dtype=float)
    d = np.asarray(depth, dtype=float)
    scalars = np.array([g, water_density, mass, air_density], dtype=float)

    if not (np.all(np.isfinite(rho_t)) and np.all(np.isfinite(d)) and np.all(np.isfinite(scalars))):
        raise DomainError("Neutral-buoyancy inputs must be finite")
    if np.any(rho_t == 0):
        raise DomainError("Tissue density must be non-zero")

    pressure = 1 + 0.1 * d
    if np.any(pressure == 0):
        raise DomainError("Pressure factor (1 + 0.1 * depth) is zero")

    pressure_term = (water_density - air_density * pressure) / pressure
    if np.any(pressure_term == 0):
        raise DomainError("Pressure term is zero: air at this depth is as dense as water")

    volume = (mass * (1 - water_density / rho_t)) / pressure_term
    if not np.all(np.isfinite(volume)):
        raise DomainError("Non-finite required air volume")

    if volume.ndim == 0:
        return float(volume)
    return volume


def neutral_buoyancy_curves(
    depths: Optional[Sequence[float]] = None,
    density_range: Tuple[float, float] = config.BD_CURVE_RANGE,
    n_points: int = config.BD_CURVE_POINTS,
    **constants
) -> pd.DataFrame:
    """
    Theoretical Vair curves over tissue density at each reference depth.

    Returns:
        pd.DataFrame: long format with columns depth, BD, Vair_required
    """
    depths = config.REFERENCE_DEPTHS if depths is None else depths
    densities = np.linspace(density_range[0], density_range[1], n_points)
    frames = []
    for depth in depths:
        frames.append(pd.DataFrame({
            'depth': float(depth),
            'BD': densities,
            'Vair_required': required_air_volume(densities, depth, **constants),
        }))
    curves = pd.concat(frames, ignore_index=True)
    logger.info(f"Computed neutral-buoyancy curves at depths {list(depths)} m")
    return curves


def depth_colors(
    depths: Sequence[float],
    depth_range: Optional[Tuple[float, float]] = None,
    cmap: str = 'viridis'
) -> dict:
    """
    Colour per reference depth, interpolated within the observed depth range.

    Args:
        depths: Reference depths
        depth_range: (min, max) observed depth (default: range of `depths`)
        cmap: Matplotlib colormap name

    Returns:
        dict depth -> RGBA tuple
    """
    depths = [float(d) for d in depths]
    lo, hi = depth_range if depth_range is not None else (min(depths), max(depths))
    if hi == lo:
        hi = lo + 1.0
    norm = Normalize(vmin=lo, vmax=hi, clip=True)
    colormap = plt.get_cmap(cmap)
    return {d: colormap(norm(d)) for d in depths}
