"""Utility helpers for loading tables, schema checks and JSON safety."""

import logging
from typing import Any, Dict, Iterable, List, Tuple, Union

import numpy as np
import pandas as pd

from .config import MISSING_TOKENS
from .errors import SchemaMismatch

logger = logging.getLogger(__name__)

JSONSafe = Union[int, float, list, Dict[str, Any], str, None]


def load_table(source: Any, **read_csv_kwargs: Any) -> pd.DataFrame:
    """Read a sensor export, normalizing every missing-value token to NaN.

    ``NA``, the empty string and the spreadsheet ``#DIV/0!`` artifact all
    become NaN, so columns holding them parse as numeric.
    """
    options = {'na_values': MISSING_TOKENS, 'keep_default_na': True, 'low_memory': False}
    options.update(read_csv_kwargs)
    df = pd.read_csv(source, **options)
    # An unnamed leading column is the row index written by the exporter
    if len(df.columns) and str(df.columns[0]).startswith('Unnamed'):
        df = df.rename(columns={df.columns[0]: 'X'})
    logger.info("Loaded table with %d rows and %d columns", df.shape[0], df.shape[1])
    return df


def normalize_missing(df: pd.DataFrame) -> pd.DataFrame:
    """Replace missing-value tokens in an in-memory frame and coerce numeric-looking columns."""
    out = df.replace({token: np.nan for token in MISSING_TOKENS})
    for col in out.select_dtypes(include=['object']).columns:
        converted = pd.to_numeric(out[col], errors='coerce')
        # Only adopt the numeric view when nothing but missing tokens was lost
        if converted.notna().sum() == out[col].notna().sum():
            out[col] = converted
    return out


def split_features_label(df: pd.DataFrame, label: str) -> Tuple[pd.DataFrame, pd.Series]:
    """Separate the label column from the measurements."""
    if label not in df.columns:
        raise SchemaMismatch([label], stage='label')
    return df.drop(columns=[label]), df[label].astype(str)


def require_columns(df: pd.DataFrame, columns: Iterable[str], stage: str = '') -> None:
    """Raise SchemaMismatch when any of ``columns`` is absent from ``df``."""
    missing = [col for col in columns if col not in df.columns]
    if missing:
        raise SchemaMismatch(missing, stage=stage)


def numeric_columns(df: pd.DataFrame) -> List[str]:
    """Numeric columns of ``df`` in their original order."""
    return df.select_dtypes(include=['number', 'bool']).columns.tolist()


def safe_json_convert(obj: Any) -> JSONSafe:
    """Convert pipeline results (numpy/pandas objects included) to JSON-safe values.

    Rules:
    - numpy scalars/arrays → native ints/floats/lists
    - NaN/None → None
    - DataFrames → list of records, Series → mapping
    - mappings/iterables → recursively converted
    - anything else → str(obj)
    """
    if obj is None:
        return None
    if isinstance(obj, (bool, np.bool_)):
        return bool(obj)
    if isinstance(obj, (np.integer, int)):
        return int(obj)
    if isinstance(obj, (np.floating, float)):
        return None if np.isnan(obj) else float(obj)
    if isinstance(obj, str):
        return obj

    if isinstance(obj, pd.DataFrame):
        return [safe_json_convert(row) for row in obj.reset_index().to_dict(orient='records')]
    if isinstance(obj, pd.Series):
        return {str(k): safe_json_convert(v) for k, v in obj.items()}
    if isinstance(obj, np.ndarray):
        return [safe_json_convert(x) for x in obj.tolist()]

    if isinstance(obj, dict):
        return {str(k): safe_json_convert(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple, set, frozenset)):
        return [safe_json_convert(x) for x in obj]

    return str(obj)


# ---------------------------------------------------------------------------
# Features implemented in this module
# - load_table / normalize_missing: missing-token aware table loading
# - split_features_label / require_columns: schema guards
# - numeric_columns: ordered numeric column lookup
# - safe_json_convert: normalize numpy/pandas objects to JSON-safe values
# ---------------------------------------------------------------------------
