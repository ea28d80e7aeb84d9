"""
Visualization module for the DRAV mixed-effects analysis.

This module provides the DRAVVisualizer class for generating publication-ready
figures of the fitted model: marginal-effect curves with bootstrap bands,
observed data against theoretical neutral-buoyancy curves, residual
diagnostics and the autocorrelation of the response.

Classes:
    DRAVVisualizer: Generate marginal-effect, neutral-buoyancy, diagnostic
                    and ACF figures.
"""

from pathlib import Path
from typing import Dict, List, Optional
import logging

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import seaborn as sns
from matplotlib.cm import ScalarMappable
from matplotlib.colors import Normalize

import config
from drav import figure_config as fc
from drav.ar1_lme import AR1MixedResult
from drav.autocorrelation import acf_confidence_bound, compute_acf
from drav.neutral_buoyancy import depth_colors


def volume_per_mass_ml(volume_m3, mass: float = config.BODY_MASS):
    """Convert an absolute air volume (m^3) to ml per kg of body mass."""
    return np.asarray(volume_m3, dtype=float) * 1e6 / mass


class DRAVVisualizer:
    """
    Visualizer for DRAV model results.

    Attributes:
        figure_paths (List[str]): List of generated figure file paths
        logger (logging.Logger): Logger instance for status messages

    Example:
        >>> visualizer = DRAVVisualizer()
        >>> visualizer.plot_marginal_effects(data, bands, 'results/drav')
        >>> visualizer.plot_neutral_buoyancy(data, curves, 'results/drav')
        >>> visualizer.plot_model_diagnostics(final_fit, 'results/drav')
    """

    def __init__(self, response: str = config.RESPONSE_COLUMN):
        self.response = response
        self.figure_paths: List[str] = []
        self.logger = logging.getLogger(__name__)
        fc.apply_rcparams()

    def _save(self, fig, output_dir: str, filename: str) -> str:
        output_path = Path(output_dir) / 'figures'
        output_path.mkdir(parents=True, exist_ok=True)
        figure_path = output_path / filename
        fig.savefig(figure_path, dpi=300, bbox_inches='tight')
        plt.close(fig)
        self.figure_paths.append(str(figure_path))
        self.logger.info(f"Saved figure: {figure_path}")
        return str(figure_path)

    def plot_marginal_effects(
        self,
        data: pd.DataFrame,
        bands: Dict[str, pd.DataFrame],
        output_dir: str,
        filename: str = 'drav_marginal_effects.png'
    ) -> str:
        """
        Observed glides with fitted marginal-effect curves and bootstrap bands.

        One panel per predictor; each band is the output of
        BootstrapPredictor.predict on a grid varying that predictor.

        Args:
            data: Filtered sample
            bands: Mapping focal predictor -> band DataFrame with columns
                <focal>, predicted, ci_lower, ci_upper
            output_dir: Directory to save figures

        Returns:
            str: Path to the saved figure
        """
        fig, axes = fc.create_figure_panels(1, len(bands), height_ratio=0.45, squeeze=False)
        for i, (ax, (focal, band)) in enumerate(zip(axes[0], bands.items())):
            sns.scatterplot(
                data=data, x=focal, y=self.response, ax=ax,
                color=fc.COLOR_POINTS, s=fc.MARKER_SIZE, alpha=fc.ALPHA_POINTS,
                edgecolor='none', legend=False
            )
            ax.fill_between(band[focal], band['ci_lower'], band['ci_upper'],
                            color=fc.COLOR_BAND, alpha=fc.ALPHA_BAND, linewidth=0,
                            label=f"{int(round(100 * config.CONFIDENCE_LEVEL))}% bootstrap CI")
            ax.plot(band[focal], band['predicted'], color=fc.COLOR_FIT,
                    linewidth=fc.LINE_WIDTH, label='Fixed-effect fit')
            ax.set_xlabel(fc.AXIS_LABELS.get(focal, focal))
            ax.set_ylabel(fc.AXIS_LABELS.get(self.response, self.response))
            fc.add_panel_label(ax, chr(ord('A') + i))
            if i == 0:
                ax.legend(loc='best')

        fig.tight_layout()
        return self._save(fig, output_dir, filename)

    def plot_neutral_buoyancy(
        self,
        data: pd.DataFrame,
        curves: pd.DataFrame,
        output_dir: str,
        depth_col: str = 'max_depth',
        density_col: str = 'BD',
        mass: float = config.BODY_MASS,
        filename: str = 'drav_neutral_buoyancy.png'
    ) -> str:
        """
        Observed DRAV against tissue density with theoretical curves.

        Points and curves share one depth colour scale, so each observation
        can be read against the curve of a similar depth. Curves are converted
        to ml per kg to match the response.

        Args:
            data: Filtered sample
            curves: Output of neutral_buoyancy_curves (depth, BD, Vair_required)
            output_dir: Directory to save figures
            mass: Body mass used for the volume-per-mass conversion

        Returns:
            str: Path to the saved figure
        """
        depth_range = (float(data[depth_col].min()), float(data[depth_col].max()))
        ref_depths = sorted(curves['depth'].unique())
        colors = depth_colors(ref_depths, depth_range, cmap=fc.DEPTH_CMAP)
        norm = Normalize(vmin=depth_range[0], vmax=depth_range[1])

        fig, ax = fc.create_figure_panels(1, 1, height_ratio=0.75, width=fc.SINGLE_COL_WIDTH * 1.4)
        ax.scatter(data[density_col], data[self.response], c=data[depth_col],
                   cmap=fc.DEPTH_CMAP, norm=norm, s=fc.MARKER_SIZE, alpha=fc.ALPHA_POINTS,
                   edgecolors='none')

        for depth in ref_depths:
            curve = curves[curves['depth'] == depth]
            ax.plot(curve['BD'], volume_per_mass_ml(curve['Vair_required'], mass),
                    color=colors[depth], linewidth=fc.LINE_WIDTH, label=f"{depth:g} m")

        sm = ScalarMappable(norm=norm, cmap=fc.DEPTH_CMAP)
        cbar = fig.colorbar(sm, ax=ax)
        cbar.set_label(fc.AXIS_LABELS.get(depth_col, depth_col))
        ax.set_xlabel(fc.AXIS_LABELS.get(density_col, density_col))
        ax.set_ylabel(fc.AXIS_LABELS.get(self.response, self.response))
        ax.legend(title='Neutral buoyancy at', loc='best')

        fig.tight_layout()
        return self._save(fig, output_dir, filename)

    def plot_model_diagnostics(
        self,
        result: AR1MixedResult,
        output_dir: str,
        filename: str = 'drav_model_diagnostics.png'
    ) -> str:
        """Normalized residuals vs fitted, normal Q-Q, and residual ACF."""
        fig, axes = fc.create_figure_panels(1, 3, height_ratio=0.33)

        rvf = result.residuals_vs_fitted()
        axes[0].scatter(rvf['fitted'], rvf['normalized_resid'], s=fc.MARKER_SIZE,
                        color=fc.COLOR_FIT, alpha=fc.ALPHA_POINTS, edgecolors='none')
        axes[0].axhline(0, color=fc.COLOR_REFERENCE, linestyle='--', linewidth=fc.LINE_WIDTH_THIN)
        axes[0].set_xlabel('Fitted values')
        axes[0].set_ylabel('Normalized residuals')
        axes[0].set_title('Residuals vs Fitted')

        qq = result.qq_series()
        axes[1].scatter(qq['theoretical'], qq['sample'], s=fc.MARKER_SIZE,
                        color=fc.COLOR_FIT, alpha=fc.ALPHA_POINTS, edgecolors='none')
        lims = [qq['theoretical'].min(), qq['theoretical'].max()]
        axes[1].plot(lims, lims, color=fc.COLOR_REFERENCE, linestyle='--',
                     linewidth=fc.LINE_WIDTH_THIN)
        axes[1].set_xlabel('Theoretical quantiles')
        axes[1].set_ylabel('Sample quantiles')
        axes[1].set_title('Normal Q-Q')

        self._draw_acf(axes[2], result.residual_acf(), result.n_obs)
        axes[2].set_title('Residual ACF')

        for i, ax in enumerate(axes):
            fc.add_panel_label(ax, chr(ord('A') + i))
        fig.tight_layout()
        return self._save(fig, output_dir, filename)

    def plot_response_acf(
        self,
        data: pd.DataFrame,
        output_dir: str,
        nlags: Optional[int] = None,
        filename: str = 'drav_response_acf.png'
    ) -> str:
        """ACF of the response in stored row order."""
        rho = compute_acf(data[self.response], nlags=nlags)
        fig, ax = fc.create_figure_panels(1, 1, height_ratio=0.6, width=fc.SINGLE_COL_WIDTH * 1.4)
        self._draw_acf(ax, rho, len(data))
        ax.set_title(f"ACF of {self.response}")
        fig.tight_layout()
        return self._save(fig, output_dir, filename)

    @staticmethod
    def _draw_acf(ax, rho: pd.Series, n: int) -> None:
        bound = acf_confidence_bound(n)
        ax.vlines(rho.index, 0, rho.to_numpy(), color=fc.COLOR_FIT, linewidth=fc.LINE_WIDTH)
        ax.axhline(0, color=fc.COLOR_REFERENCE, linewidth=fc.LINE_WIDTH_THIN)
        ax.axhspan(-bound, bound, color=fc.COLOR_BAND, alpha=fc.ALPHA_BAND, linewidth=0)
        ax.set_xlabel('Lag')
        ax.set_ylabel('Autocorrelation')
