#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
DRAV Drag-Coefficient Sensitivity Script

Refits the selected DRAV model on the dataset variants generated under each
assumed drag coefficient and checks that the coefficient confidence intervals
overlap across variants.

Outputs are written to: results/sensitivity/

Usage:
    python src/run_sensitivity_analysis.py
    python src/run_sensitivity_analysis.py --no-refilter
    python src/run_sensitivity_analysis.py --terms "center(max_depth)" "center(BD)"
"""

import sys
import os
import argparse
import logging

# Add project root to path for imports
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import config
from drav.ar1_lme import build_formula
from drav.data_loader import load_drag_variants
from drav.exceptions import DRAVAnalysisError
from drav.sensitivity_analyzer import SensitivityAnalyzer

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
        description='Refit the DRAV model across drag-coefficient dataset variants'
    )
    parser.add_argument('--output', type=str, default=config.SENSITIVITY_RESULTS_DIR,
                        help=f'Directory for output files (default: {config.SENSITIVITY_RESULTS_DIR})')
    parser.add_argument('--terms', nargs='+', default=config.SENSITIVITY_TERMS,
                        help='Fixed-effect terms of the model (default: config.SENSITIVITY_TERMS)')
    parser.add_argument('--no-refilter', action='store_true',
                        help='Do not apply the inclusion criteria to each variant')
    parser.add_argument('--na-action', choices=['raise', 'drop'], default=config.NA_ACTION,
                        help=f'Missing-value policy for model columns (default: {config.NA_ACTION})')
    parser.add_argument('--verbose', action='store_true',
                        help='Enable verbose console output')
    return parser.parse_args()


def main():
    args = parse_arguments()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    os.makedirs(args.output, exist_ok=True)

    try:
        print("=" * 80)
        print("DRAV DRAG-COEFFICIENT SENSITIVITY ANALYSIS")
        print("=" * 80)
        print()

        print("[1/3] Loading dataset variants...")
        variants = load_drag_variants()
        print(f"      ✓ {len(variants)} variants: {sorted(variants)}")
        print()

        print("[2/3] Fitting each variant...")
        analyzer = SensitivityAnalyzer(
            variants,
            formula=build_formula(config.RESPONSE_COLUMN, args.terms),
            refilter=not args.no_refilter,
            na_action=args.na_action
        )
        analyzer.run()
        print(f"      ✓ {len(analyzer.models)} fitted, {analyzer.n_skipped} skipped")
        print()

        print("[3/3] Checking agreement across variants...")
        paths = analyzer.export_results(args.output)
        if analyzer.models:
            agreement = analyzer.check_agreement()
            agreement_path = os.path.join(args.output, 'sensitivity_agreement.csv')
            agreement.to_csv(agreement_path, index=False)
            paths['agreement'] = agreement_path
            for _, row in agreement.iterrows():
                status = '✓' if row['all_overlap'] else '✗'
                print(f"      {status} {row['term']:35s} "
                      f"[{row['min_estimate']:.4f}, {row['max_estimate']:.4f}]")
        print()
        for file_type, path in paths.items():
            print(f"  - {file_type}: {path}")
        print("=" * 80)
        return 0

    except FileNotFoundError as e:
        logger.error(f"File not found: {e}")
        print(f"\n[ERROR] {e}")
        return 1

    except DRAVAnalysisError as e:
        logger.error(f"{type(e).__name__}: {e}")
        print(f"\n[ERROR] {type(e).__name__}: {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
