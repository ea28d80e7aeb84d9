# -*- coding: utf-8 -*-
"""
Centralized figure configuration for DRAV publication figures.

Defines standardized sizes, fonts and colours so that the marginal-effects,
neutral-buoyancy and diagnostic figures share one look.

Journal column widths:
- Single column width: 84mm (~3.3 inches)
- Double column width: 174mm (~6.9 inches)
"""

from typing import Dict, Any
import matplotlib.pyplot as plt

# =============================================================================
# FIGURE DIMENSIONS (in inches, converted from mm)
# =============================================================================

SINGLE_COL_WIDTH_MM = 84
DOUBLE_COL_WIDTH_MM = 174

MM_TO_INCH = 1 / 25.4
SINGLE_COL_WIDTH = SINGLE_COL_WIDTH_MM * MM_TO_INCH  # ~3.3 inches
DOUBLE_COL_WIDTH = DOUBLE_COL_WIDTH_MM * MM_TO_INCH  # ~6.9 inches

# =============================================================================
# FONT SIZES (in points)
# =============================================================================

FONT_SIZE_TITLE = 11
FONT_SIZE_AXIS_LABEL = 10
FONT_SIZE_TICK_LABEL = 9
FONT_SIZE_LEGEND = 8
FONT_SIZE_PANEL_LABEL = 13
PANEL_LABEL_WEIGHT = 'bold'

# =============================================================================
# LINE AND MARKER SIZES
# =============================================================================

LINE_WIDTH = 1.5
LINE_WIDTH_THIN = 1.0
MARKER_SIZE = 18            # scatter marker area
ALPHA_POINTS = 0.45
ALPHA_BAND = 0.25

# =============================================================================
# COLORS (tab20c palette)
# =============================================================================

TAB20C = plt.cm.tab20c.colors

COLOR_POINTS = TAB20C[17]    # Light grey for observed glides
COLOR_FIT = TAB20C[0]        # Dark blue for fitted curves
COLOR_BAND = TAB20C[2]       # Light blue for bootstrap bands
COLOR_REFERENCE = '0.4'      # Reference lines (zero, ACF bounds)

# Colormap for neutral-buoyancy curves keyed to depth
DEPTH_CMAP = 'viridis'

# Axis labels
AXIS_LABELS = {
    'Vair': r'DRAV (ml kg$^{-1}$)',
    'max_depth': 'Maximum dive depth (m)',
    'BD': r'Tissue density (kg m$^{-3}$)',
}

# =============================================================================
# AXIS CONFIGURATION
# =============================================================================

SPINE_LINEWIDTH = 0.8
TICK_MAJOR_WIDTH = 0.8
TICK_MAJOR_LENGTH = 4
GRID_ALPHA = 0.3
GRID_LINEWIDTH = 0.5

# =============================================================================
# MATPLOTLIB RCPARAMS
# =============================================================================

def get_rcparams() -> Dict[str, Any]:
    """Get matplotlib rcParams for consistent figure styling.

    Returns:
        Dictionary of rcParams to update matplotlib settings.
    """
    return {
        'font.family': 'sans-serif',
        'font.sans-serif': ['Arial', 'Helvetica', 'DejaVu Sans'],
        'font.size': FONT_SIZE_TICK_LABEL,

        'axes.titlesize': FONT_SIZE_TITLE,
        'axes.labelsize': FONT_SIZE_AXIS_LABEL,
        'axes.linewidth': SPINE_LINEWIDTH,
        'axes.spines.top': False,
        'axes.spines.right': False,

        'xtick.labelsize': FONT_SIZE_TICK_LABEL,
        'ytick.labelsize': FONT_SIZE_TICK_LABEL,
        'xtick.major.width': TICK_MAJOR_WIDTH,
        'ytick.major.width': TICK_MAJOR_WIDTH,
        'xtick.major.size': TICK_MAJOR_LENGTH,
        'ytick.major.size': TICK_MAJOR_LENGTH,

        'legend.fontsize': FONT_SIZE_LEGEND,
        'legend.frameon': False,

        'lines.linewidth': LINE_WIDTH,

        'grid.alpha': GRID_ALPHA,
        'grid.linewidth': GRID_LINEWIDTH,

        'figure.dpi': 150,
        'savefig.dpi': 300,
        'savefig.bbox': 'tight',
        'figure.facecolor': 'white',
        'savefig.facecolor': 'white',
    }


def apply_rcparams() -> None:
    """Apply standardized rcParams to matplotlib."""
    plt.rcParams.update(get_rcparams())


def add_panel_label(ax, label: str, x: float = -0.12, y: float = 1.08) -> None:
    """Add a panel label (A, B, C, etc.) to an axis."""
    ax.text(x, y, label, transform=ax.transAxes,
            fontsize=FONT_SIZE_PANEL_LABEL, fontweight=PANEL_LABEL_WEIGHT,
            va='top', ha='left')


def create_figure_panels(nrows: int, ncols: int, height_ratio: float = 0.5,
                         width: float = DOUBLE_COL_WIDTH, **kwargs):
    """Create a figure with multiple panels.

    Args:
        nrows: Number of rows.
        ncols: Number of columns.
        height_ratio: Height as fraction of width.
        width: Figure width in inches.
        **kwargs: Additional arguments for plt.subplots.

    Returns:
        Matplotlib figure and axes array.
    """
    apply_rcparams()
    fig, axes = plt.subplots(nrows, ncols, figsize=(width, width * height_ratio), **kwargs)
    return fig, axes
