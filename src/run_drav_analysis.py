#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
DRAV Mixed-Effects Analysis Script

Estimates how diving respiratory air volume (DRAV) depends on maximum dive
depth and tissue density:
  1) Load glide observations and apply the inclusion criteria
  2) Autocorrelation of the response (visual check for the AR(1) structure)
  3) Dredge-style AIC comparison of fixed-effect sub-models (ML)
  4) Refit the selected model by REML; coefficient and publication tables
  5) Bootstrap confidence bands for the marginal effects of each predictor
  6) Theoretical neutral-buoyancy curves at the reference depths
  7) Text report and figures

Outputs are written to: results/drav/

Usage:
    python src/run_drav_analysis.py
    python src/run_drav_analysis.py --input data/glides/drav_glides.csv --n-boot 200
    python src/run_drav_analysis.py --policy min_aic --n-jobs -1 --verbose
"""

import sys
import os
import argparse
import logging

import matplotlib
matplotlib.use('Agg')

# Add project root to path for imports
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import config
from drav.ar1_lme import AR1MixedModel, build_formula
from drav.autocorrelation import compute_acf
from drav.bootstrap_predictor import BootstrapPredictor, make_prediction_grid
from drav.data_filter import check_criteria, filter_glides
from drav.data_loader import load_observations
from drav.exceptions import DRAVAnalysisError
from drav.model_selector import ModelSelector, model_name
from drav.neutral_buoyancy import neutral_buoyancy_curves
from drav.reporter import (
    coefficient_table,
    generate_report,
    publication_table,
    save_publication_table,
)
from drav.visualizer import DRAVVisualizer

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def parse_arguments():
    """Parse command-line arguments.

    Returns:
        argparse.Namespace: Parsed arguments
    """
    parser = argparse.ArgumentParser(
        description='Fit AR(1) random-intercept models of DRAV against depth and tissue density',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Default input and output
  python src/run_drav_analysis.py

  # Quick run with fewer bootstrap iterations on all cores
  python src/run_drav_analysis.py --n-boot 200 --n-jobs -1
        """
    )
    parser.add_argument('--input', type=str, default=config.GLIDE_DATA_FILE,
                        help=f'Glide observations CSV (default: {config.GLIDE_DATA_FILE})')
    parser.add_argument('--output', type=str, default=config.RESULTS_DIR,
                        help=f'Directory for output files (default: {config.RESULTS_DIR})')
    parser.add_argument('--policy', choices=['min_aic', 'simplest_within_delta'],
                        default=config.SELECTION_POLICY,
                        help=f'Model selection policy (default: {config.SELECTION_POLICY})')
    parser.add_argument('--delta-aic', type=float, default=config.DELTA_AIC,
                        help=f'ΔAIC window for simplest_within_delta (default: {config.DELTA_AIC})')
    parser.add_argument('--na-action', choices=['raise', 'drop'], default=config.NA_ACTION,
                        help=f'Missing-value policy for model columns (default: {config.NA_ACTION})')
    parser.add_argument('--n-boot', type=int, default=config.N_BOOTSTRAP,
                        help=f'Bootstrap iterations (default: {config.N_BOOTSTRAP})')
    parser.add_argument('--seed', type=int, default=config.BOOTSTRAP_SEED,
                        help=f'Bootstrap seed (default: {config.BOOTSTRAP_SEED})')
    parser.add_argument('--n-jobs', type=int, default=config.N_JOBS,
                        help=f'joblib workers for the bootstrap (default: {config.N_JOBS})')
    parser.add_argument('--no-figures', action='store_true',
                        help='Skip figure generation')
    parser.add_argument('--verbose', action='store_true',
                        help='Enable verbose console output')
    return parser.parse_args()


def main():
    """
    Main DRAV analysis workflow.

    Returns:
        int: Process exit code
    """
    args = parse_arguments()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.debug("Verbose mode enabled")

    os.makedirs(args.output, exist_ok=True)

    try:
        print("=" * 80)
        print("DRAV MIXED-EFFECTS ANALYSIS")
        print("=" * 80)
        print()

        # Step 1: Load and filter
        print("[1/7] Loading and filtering glides...")
        raw = load_observations(args.input)
        criteria_counts = check_criteria(raw)
        criteria_counts.to_csv(os.path.join(args.output, 'inclusion_criteria.csv'), index=False)
        data = filter_glides(raw, na_action=args.na_action)
        data.to_csv(os.path.join(args.output, 'drav_filtered_glides.csv'), index=False)
        filter_counts = {'retained': len(data), 'total': len(raw)}
        print(f"      ✓ {len(data)}/{len(raw)} glides from "
              f"{data[config.GROUP_COLUMN].nunique()} individuals retained")
        print()

        # Step 2: Response autocorrelation
        print("[2/7] Autocorrelation of the response...")
        rho = compute_acf(data[config.RESPONSE_COLUMN])
        rho.to_csv(os.path.join(args.output, 'response_acf.csv'))
        print(f"      ✓ Lag-1 autocorrelation: {rho.iloc[1]:.3f}")
        print()

        # Step 3: Model selection
        print("[3/7] Comparing fixed-effect sub-models (ML)...")
        selector = ModelSelector(data, config.RESPONSE_COLUMN, config.FULL_MODEL_TERMS,
                                 na_action=args.na_action)
        table = selector.dredge()
        importance = selector.variable_importance()
        selector.export_results(args.output)
        selector.pairwise_aic_differences().to_csv(
            os.path.join(args.output, 'pairwise_delta_aic.csv'))
        terms = selector.select_model(policy=args.policy, delta_aic=args.delta_aic)
        for term, weight in importance.items():
            print(f"      {term:35s} summed weight = {weight:.3f}")
        print(f"      ✓ Selected: {model_name(terms)}")
        print()

        # Step 4: Final REML fit
        print("[4/7] Fitting selected model (REML)...")
        final_fit = AR1MixedModel(
            build_formula(config.RESPONSE_COLUMN, terms),
            data,
            method='REML',
            na_action=args.na_action
        ).fit()
        coefficient_table(final_fit).to_csv(
            os.path.join(args.output, 'lme_coefficients.csv'), index=False)
        save_publication_table(publication_table(final_fit),
                               os.path.join(args.output, 'lme_publication_table.csv'))
        r2 = final_fit.r_squared()
        print(f"      ✓ AIC = {final_fit.aic:.2f}, R²m = {r2['r2_marginal']:.3f}, "
              f"R²c = {r2['r2_conditional']:.3f}")
        print()

        # Step 5: Bootstrap marginal effects
        print(f"[5/7] Bootstrap prediction bands ({args.n_boot} iterations)...")
        predictor = BootstrapPredictor(final_fit, data, n_boot=args.n_boot, seed=args.seed,
                                       n_jobs=args.n_jobs)
        bands = predictor.predict_grids({
            focal: make_prediction_grid(data, focal) for focal in config.PREDICTOR_COLUMNS
        })
        for focal, band in bands.items():
            band.to_csv(
                os.path.join(args.output, f'marginal_effect_{focal}.csv'), index=False)
        bootstrap_summary = predictor.summary()
        print(f"      ✓ {bootstrap_summary['n_successful']}/{args.n_boot} iterations converged")
        print()

        # Step 6: Neutral buoyancy
        print("[6/7] Neutral-buoyancy curves...")
        curves = neutral_buoyancy_curves()
        curves.to_csv(os.path.join(args.output, 'neutral_buoyancy_curves.csv'), index=False)
        print(f"      ✓ Depths: {config.REFERENCE_DEPTHS} m")
        print()

        # Step 7: Report and figures
        print("[7/7] Writing report and figures...")
        report_path = generate_report(
            final_fit,
            args.output,
            selection_table=table,
            importance=importance,
            selection_policy=args.policy,
            filter_counts=filter_counts,
            bootstrap_summary=bootstrap_summary
        )
        print(f"      ✓ Report: {report_path}")

        if not args.no_figures:
            visualizer = DRAVVisualizer()
            visualizer.plot_response_acf(data, args.output)
            visualizer.plot_marginal_effects(data, bands, args.output)
            visualizer.plot_neutral_buoyancy(data, curves, args.output)
            visualizer.plot_model_diagnostics(final_fit, args.output)
            for path in visualizer.figure_paths:
                print(f"      ✓ {path}")

        print()
        print("=" * 80)
        logger.info("Analysis complete")
        return 0

    except FileNotFoundError as e:
        logger.error(f"File not found: {e}")
        print(f"\n[ERROR] {e}")
        return 1

    except DRAVAnalysisError as e:
        logger.error(f"{type(e).__name__}: {e}")
        print(f"\n[ERROR] {type(e).__name__}: {e}")
        return 1

    except Exception as e:
        logger.exception(f"Unexpected error: {type(e).__name__}: {e}")
        print(f"\n[ERROR] Unexpected error: {type(e).__name__}")
        print(f"        {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
