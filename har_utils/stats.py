"""Column statistics learned from the reference (training) dataset.

Produces the per-column profile used by the filters (missingness, variance,
near-zero-variance indicators) and the absolute correlation matrix used for
redundancy pruning.
"""

from typing import Any, Dict

import numpy as np
import pandas as pd

from .utils import numeric_columns, safe_json_convert

STAT_COLUMNS = ['missing_ratio', 'variance', 'mean', 'std', 'freq_ratio', 'percent_unique', 'zero_var']


def _frequency_profile(values: pd.Series) -> Dict[str, Any]:
    """Ratio of the two most common values and distinct-value share of one column."""
    counts = values.value_counts(dropna=True)
    n_rows = len(values)
    if len(counts) == 0:
        return {'freq_ratio': np.inf, 'percent_unique': 0.0, 'zero_var': True}
    if len(counts) == 1:
        freq_ratio = np.inf
    else:
        freq_ratio = counts.iloc[0] / counts.iloc[1]
    return {
        'freq_ratio': float(freq_ratio),
        'percent_unique': 100.0 * len(counts) / n_rows if n_rows else 0.0,
        'zero_var': len(counts) <= 1,
    }


def compute_column_statistics(df: pd.DataFrame) -> pd.DataFrame:
    """Per-column statistics: missingness, variance, mean, std and frequency profile.

    Non-numeric columns only get the missingness and frequency entries; their
    moments are NaN.
    """
    n_rows = len(df)
    numeric = set(numeric_columns(df))
    records = {}
    for col in df.columns:
        values = df[col]
        record = {
            'missing_ratio': float(values.isna().sum()) / n_rows if n_rows else 0.0,
            'variance': np.nan,
            'mean': np.nan,
            'std': np.nan,
        }
        if col in numeric:
            as_float = values.astype(float)
            record.update({
                'variance': as_float.var(),
                'mean': as_float.mean(),
                'std': as_float.std(),
            })
        record.update(_frequency_profile(values))
        records[col] = record

    stats = pd.DataFrame.from_dict(records, orient='index', columns=STAT_COLUMNS)
    stats['zero_var'] = stats['zero_var'].astype(bool)
    return stats


def correlation_matrix(df: pd.DataFrame) -> pd.DataFrame:
    """Absolute Pearson correlation over the numeric columns of ``df``.

    Pairwise-complete observations are used. Undefined entries (a constant
    column) are reported as 0 and the diagonal is fixed at 1.
    """
    cols = numeric_columns(df)
    if not cols:
        return pd.DataFrame(dtype=float)
    corr = df[cols].astype(float).corr().abs().fillna(0.0)
    values = corr.to_numpy(copy=True)
    np.fill_diagonal(values, 1.0)
    return pd.DataFrame(values, index=cols, columns=cols)


def dataset_summary(df: pd.DataFrame) -> Dict[str, Any]:
    """Compact shape and completeness figures for logs and reports."""
    total_cells = df.shape[0] * df.shape[1]
    missing_cells = int(df.isnull().sum().sum())
    summary = {
        'rows': df.shape[0],
        'cols': df.shape[1],
        'numerics': len(numeric_columns(df)),
        'categoricals': len(df.select_dtypes(include=['object', 'category']).columns),
        'missing_cells': missing_cells,
        'data_completeness': round((1 - missing_cells / total_cells) * 100, 2) if total_cells else 100.0,
    }
    return {key: safe_json_convert(value) for key, value in summary.items()}


# ---------------------------------------------------------------------------
# Features implemented in this module
# - compute_column_statistics: missingness, moments, near-zero-variance profile
# - correlation_matrix: absolute pairwise correlation with NaN guarded to 0
# - dataset_summary: rows, columns, types and completeness
# ---------------------------------------------------------------------------
