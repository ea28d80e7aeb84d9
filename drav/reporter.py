# -*- coding: utf-8 -*-
"""
Statistical reporting for the DRAV mixed-effects analysis.

APA-style coefficient strings, a publication coefficient table, and a plain
text model report combining model specification, fit statistics, variance
components, coefficients and the model-selection results.
"""

import os
import logging
from typing import Dict, List, Optional

import numpy as np
import pandas as pd

from drav.ar1_lme import AR1MixedResult

logger = logging.getLogger(__name__)

# Readable labels for patsy term names
DEFAULT_TERM_LABELS = {
    'Intercept': 'Intercept',
    'center(max_depth)': 'Maximum depth (centred)',
    'center(BD)': 'Tissue density (centred)',
    'center(max_depth):center(BD)': 'Depth × tissue density',
    'max_depth': 'Maximum depth',
    'BD': 'Tissue density',
    'max_depth:BD': 'Depth × tissue density',
}


def significance_stars(p_value: float) -> str:
    if p_value < 0.001:
        return '***'
    if p_value < 0.01:
        return '**'
    if p_value < 0.05:
        return '*'
    return ''


def format_p_value(p_value: float) -> str:
    """APA p-value: no leading zero, '< .001' below one in a thousand."""
    if np.isnan(p_value):
        return 'NA'
    if p_value < 0.001:
        return '< .001'
    return f"{p_value:.3f}".replace('0.', '.', 1)


def format_coefficient(row: pd.Series, digits: int = 3) -> str:
    """
    Format one coefficient row in APA style.

    Examples:
        >>> format_coefficient(table.iloc[1])
        'center(max_depth): β = -0.050, SE = 0.004, t(112) = -12.41, p < .001'
    """
    p_str = format_p_value(row['p_value'])
    p_part = f"p {p_str}" if p_str.startswith('<') else f"p = {p_str}"
    return (
        f"{row['term']}: β = {row['estimate']:.{digits}f}, SE = {row['std_error']:.{digits}f}, "
        f"t({int(row['df'])}) = {row['t_value']:.2f}, {p_part}"
    )


def coefficient_table(result: AR1MixedResult) -> pd.DataFrame:
    """Coefficient table (term, estimate, SE, df, t, p, CI) of a fitted model."""
    return result.coefficient_table()


def publication_table(
    result: AR1MixedResult,
    term_labels: Optional[Dict[str, str]] = None,
    digits: int = 3
) -> pd.DataFrame:
    """
    Formatted coefficient summary for publication.

    Returns:
        pd.DataFrame with columns Term, Estimate ± SE, 95% CI, t (df), p
    """
    labels = dict(DEFAULT_TERM_LABELS)
    if term_labels:
        labels.update(term_labels)

    table = result.coefficient_table()
    rows = []
    for _, row in table.iterrows():
        rows.append({
            'Term': labels.get(row['term'], row['term']),
            'Estimate ± SE': f"{row['estimate']:.{digits}f} ± {row['std_error']:.{digits}f}",
            '95% CI': f"[{row['ci_lower']:.{digits}f}, {row['ci_upper']:.{digits}f}]",
            't (df)': f"{row['t_value']:.2f} ({int(row['df'])})",
            'p': format_p_value(row['p_value']) + significance_stars(row['p_value']),
        })
    return pd.DataFrame(rows)


def save_publication_table(table: pd.DataFrame, output_path: str) -> Dict[str, str]:
    """Write the publication table as CSV and as aligned plain text."""
    base, _ = os.path.splitext(output_path)
    paths = {'csv': f"{base}.csv", 'txt': f"{base}.txt"}
    os.makedirs(os.path.dirname(os.path.abspath(paths['csv'])), exist_ok=True)
    table.to_csv(paths['csv'], index=False)
    with open(paths['txt'], 'w', encoding='utf-8') as f:
        f.write(table.to_string(index=False))
        f.write('\n\nSignificance: * p < .05, ** p < .01, *** p < .001\n')
    logger.info(f"Publication table saved: {paths['csv']}")
    return paths


def generate_report(
    result: AR1MixedResult,
    output_dir: str,
    selection_table: Optional[pd.DataFrame] = None,
    importance: Optional[pd.Series] = None,
    selection_policy: Optional[str] = None,
    filter_counts: Optional[Dict[str, int]] = None,
    bootstrap_summary: Optional[Dict[str, int]] = None,
    filename: str = 'lme_analysis_report.txt'
) -> str:
    """
    Write the plain-text model report.

    Returns:
        str: Path to the report
    """
    stats = result.fit_statistics()
    r2 = result.r_squared()
    lines: List[str] = [
        '=' * 80,
        'LME ANALYSIS REPORT: Diving Respiratory Air Volume (DRAV)',
        '=' * 80,
        '',
        f"Analysis date: {pd.Timestamp.now().strftime('%Y-%m-%d %H:%M:%S')}",
    ]
    if filter_counts:
        lines.append(f"Glides retained after inclusion criteria: "
                     f"{filter_counts.get('retained')}/{filter_counts.get('total')}")
    lines.extend([
        f"Dataset: {stats['n_obs']} glides from {stats['n_groups']} individuals",
        '',
        'MODEL SPECIFICATION:',
        f"  Fixed effects: {stats['formula']}",
        f"  Random effects: ~ 1 | {result.group_col}",
        f"  Residual correlation: AR(1) within {result.group_col} (glide order)",
        f"  Estimation: {stats['method']}",
        '',
        'MODEL FIT STATISTICS:',
        f"  AIC: {stats['aic']:.2f}",
        f"  BIC: {stats['bic']:.2f}",
        f"  Log-likelihood: {stats['loglik']:.2f}",
        f"  Parameters: {stats['k_params']}",
        '',
        'VARIANCE COMPONENTS:',
        f"  Random intercept variance (σ²_u): {stats['sigma2_u']:.6f}",
        f"  Residual variance (σ²): {stats['sigma2']:.6f}",
        f"  AR(1) correlation (φ): {stats['phi']:.4f}",
        f"  Marginal R²: {r2['r2_marginal']:.3f}",
        f"  Conditional R²: {r2['r2_conditional']:.3f}",
        '',
        'FIXED EFFECTS:',
        '-' * 30,
    ])
    table = result.coefficient_table()
    for _, row in table.iterrows():
        lines.extend([
            f"  {row['term']}:",
            f"    β = {row['estimate']:10.5f}, SE = {row['std_error']:8.5f}",
            f"    95% CI: [{row['ci_lower']:10.5f}, {row['ci_upper']:10.5f}]",
            f"    t({int(row['df'])}) = {row['t_value']:7.3f}, "
            f"p = {row['p_value']:6.4f} {significance_stars(row['p_value'])}",
            '',
        ])

    if selection_table is not None:
        lines.extend(['', 'MODEL SELECTION (ML fits, ranked by AIC):', '-' * 30])
        cols = ['model', 'k_params', 'loglik', 'aic', 'delta_aic', 'weight']
        lines.extend([selection_table[cols].round(4).to_string(index=False), ''])
    if importance is not None:
        lines.extend(['Summed Akaike weights (variable importance):'])
        lines.extend([f"  {term}: {weight:.4f}" for term, weight in importance.items()])
        lines.append('')
    if selection_policy:
        lines.extend([f"Selection policy: {selection_policy}", ''])
    if bootstrap_summary:
        lines.extend([
            'BOOTSTRAP:',
            f"  Iterations requested: {bootstrap_summary.get('n_requested')}",
            f"  Successful: {bootstrap_summary.get('n_successful')}",
            f"  Skipped (no convergence): {bootstrap_summary.get('n_failed')}",
            '',
        ])
    lines.extend(['', '=' * 80])

    os.makedirs(output_dir, exist_ok=True)
    out_path = os.path.join(output_dir, filename)
    with open(out_path, 'w', encoding='utf-8') as f:
        f.write('\n'.join(lines))
    logger.info(f"Report saved: {out_path}")
    return out_path
