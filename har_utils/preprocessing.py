"""Feature selection stages for the sensor tables.

Every stage is a scikit-learn transformer working on DataFrames. ``fit`` runs
once against the reference (training) features and freezes its decision;
``transform`` re-applies that decision verbatim to any other dataset and
refuses datasets that lack a retained column.
"""

import logging
from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd
from sklearn.base import BaseEstimator, TransformerMixin
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import StandardScaler
from sklearn.utils.validation import check_is_fitted

from .config import IDENTIFIER_COLUMNS, PipelineConfig, SelectionReport
from .errors import DegenerateColumn
from .stats import compute_column_statistics, correlation_matrix
from .utils import numeric_columns, require_columns

logger = logging.getLogger(__name__)


class _ColumnFilter(TransformerMixin, BaseEstimator):
    """Shared transform for stages that only decide which columns survive."""

    def _remember(self, X: pd.DataFrame, dropped: Sequence[str]) -> None:
        dropped = set(dropped)
        self.dropped_ = [col for col in X.columns if col in dropped]
        self.kept_ = [col for col in X.columns if col not in dropped]
        if self.dropped_:
            logger.info("%s removed %d columns", type(self).__name__, len(self.dropped_))
            logger.debug("%s removed: %s", type(self).__name__, self.dropped_)

    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        check_is_fitted(self, 'kept_')
        require_columns(X, self.kept_, stage=type(self).__name__)
        return X.loc[:, self.kept_].copy()


class MissingnessFilter(_ColumnFilter):
    """Keep the columns whose share of missing values is strictly below ``threshold``."""

    def __init__(self, threshold: float = 0.25):
        self.threshold = threshold

    def fit(self, X: pd.DataFrame, y=None) -> 'MissingnessFilter':
        self.missing_ratio_ = X.isna().mean() if len(X) else pd.Series(0.0, index=X.columns)
        self._remember(X, self.missing_ratio_.index[self.missing_ratio_ >= self.threshold])
        return self


class IdentifierStripper(_ColumnFilter):
    """Remove bookkeeping columns (row index, subject, timestamps, window markers)."""

    def __init__(self, identifiers: Sequence[str] = IDENTIFIER_COLUMNS):
        self.identifiers = identifiers

    def fit(self, X: pd.DataFrame, y=None) -> 'IdentifierStripper':
        self._remember(X, [col for col in X.columns if col in set(self.identifiers)])
        return self


class NumericSelector(_ColumnFilter):
    """Drop non-numeric measurement columns the classifiers cannot consume."""

    def fit(self, X: pd.DataFrame, y=None) -> 'NumericSelector':
        numeric = set(numeric_columns(X))
        dropped = [col for col in X.columns if col not in numeric]
        if dropped:
            logger.warning("Dropping non-numeric feature columns: %s", dropped)
        self._remember(X, dropped)
        return self


class VarianceFilter(_ColumnFilter):
    """Remove near-constant numeric columns.

    A column is flagged when it has a single distinct value, or when its
    most-common/second-most-common count ratio exceeds ``freq_cut`` and/or its
    distinct values make up less than ``unique_cut`` percent of the rows.
    ``rule='any'`` flags on either indicator, ``rule='all'`` needs both.

    With ``rule='any'`` and the default ``unique_cut`` every column with fewer
    than 10 % distinct values goes, which on real sensor exports includes
    informative integer-valued readings. ``rule='all'`` only drops columns
    that are both dominated by one value and low in distinct values.
    """

    def __init__(self, freq_cut: float = 95 / 5, unique_cut: float = 10.0, rule: str = 'any'):
        self.freq_cut = freq_cut
        self.unique_cut = unique_cut
        self.rule = rule

    def fit(self, X: pd.DataFrame, y=None) -> 'VarianceFilter':
        if self.rule not in ('any', 'all'):
            raise ValueError(f"rule must be 'any' or 'all', got {self.rule!r}")
        cols = numeric_columns(X)
        stats = compute_column_statistics(X[cols])
        frequent = stats['freq_ratio'] > self.freq_cut
        scarce = stats['percent_unique'] < self.unique_cut
        combined = (frequent | scarce) if self.rule == 'any' else (frequent & scarce)
        self.nzv_ = (combined | stats['zero_var']).astype(bool)
        self.statistics_ = stats
        self._remember(X, self.nzv_.index[self.nzv_])
        return self


def find_correlated(corr: pd.DataFrame, cutoff: float = 0.90, tol: float = 1e-10) -> List[str]:
    """Greedy search for the columns to remove so no pair exceeds ``cutoff``.

    Each round removes, among the columns still taking part in an offending
    pair, the one with the highest mean absolute correlation to the other
    remaining columns. Ties (within ``tol``) go to the column that comes last
    in the original ordering.
    """
    names = list(corr.columns)
    values = np.abs(corr.to_numpy(dtype=float, copy=True))
    values[np.isnan(values)] = 0.0
    np.fill_diagonal(values, 0.0)

    remaining = list(range(len(names)))
    removed = []
    while len(remaining) > 1:
        sub = values[np.ix_(remaining, remaining)]
        offending = sub > cutoff
        if not offending.any():
            break
        mean_abs = sub.sum(axis=1) / (len(remaining) - 1)
        involved = np.flatnonzero(offending.any(axis=1))
        best = mean_abs[involved].max()
        tied = [pos for pos in involved if best - mean_abs[pos] <= tol]
        victim = remaining[tied[-1]]
        removed.append(names[victim])
        remaining.remove(victim)
    return removed


class CorrelationPruner(_ColumnFilter):
    """Remove numeric columns that are linearly redundant with others."""

    def __init__(self, cutoff: float = 0.90):
        self.cutoff = cutoff

    def fit(self, X: pd.DataFrame, y=None) -> 'CorrelationPruner':
        self.correlation_ = correlation_matrix(X)
        self._remember(X, find_correlated(self.correlation_, self.cutoff))
        return self


class Normalizer(TransformerMixin, BaseEstimator):
    """Center and scale numeric columns with statistics learned from the reference data.

    Wraps a StandardScaler fitted on the reference columns. A zero (or
    undefined) learned variance raises DegenerateColumn unless
    ``on_degenerate='drop'``, which leaves the column out instead. With
    ``impute=True`` values still missing after scaling are set to 0, the
    learned mean.
    """

    def __init__(self, on_degenerate: str = 'raise', impute: bool = False):
        self.on_degenerate = on_degenerate
        self.impute = impute

    def fit(self, X: pd.DataFrame, y=None) -> 'Normalizer':
        if self.on_degenerate not in ('raise', 'drop'):
            raise ValueError(f"on_degenerate must be 'raise' or 'drop', got {self.on_degenerate!r}")
        cols = numeric_columns(X)
        degenerate = []
        if cols:
            variances = StandardScaler().fit(X[cols].to_numpy(dtype=float)).var_
            # NaN variance means the column had no observed values at all
            degenerate = [col for col, var in zip(cols, variances) if not var > 0]
        if degenerate:
            if self.on_degenerate == 'raise':
                raise DegenerateColumn(degenerate)
            logger.warning("Normalizer leaving out zero-variance columns: %s", degenerate)

        self.columns_ = [col for col in cols if col not in set(degenerate)]
        self.scaler_ = None
        if self.columns_:
            self.scaler_ = StandardScaler().fit(X[self.columns_].to_numpy(dtype=float))
        return self

    def _apply(self, X: pd.DataFrame, method: str) -> pd.DataFrame:
        check_is_fitted(self, 'columns_')
        require_columns(X, self.columns_, stage='Normalizer')
        data = X[self.columns_].to_numpy(dtype=float)
        if self.scaler_ is not None:
            data = getattr(self.scaler_, method)(data)
        return pd.DataFrame(data, index=X.index, columns=self.columns_)

    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        scaled = self._apply(X, 'transform')
        if self.impute:
            scaled = scaled.fillna(0.0)
        return scaled

    def inverse_transform(self, X: pd.DataFrame) -> pd.DataFrame:
        return self._apply(X, 'inverse_transform')


class FeatureSelector(TransformerMixin, BaseEstimator):
    """Missingness → identifiers → numeric → variance → correlation → normalization.

    Fitted once on the reference features; ``transform`` then yields the same
    columns, scaled the same way, for the testing, validation and unlabelled
    datasets.
    """

    def __init__(
        self,
        missing_threshold: float = 0.25,
        identifiers: Sequence[str] = IDENTIFIER_COLUMNS,
        freq_cut: float = 95 / 5,
        unique_cut: float = 10.0,
        nzv_rule: str = 'any',
        correlation_cutoff: float = 0.90,
        impute: bool = True,
    ):
        self.missing_threshold = missing_threshold
        self.identifiers = identifiers
        self.freq_cut = freq_cut
        self.unique_cut = unique_cut
        self.nzv_rule = nzv_rule
        self.correlation_cutoff = correlation_cutoff
        self.impute = impute

    @classmethod
    def from_config(cls, config: PipelineConfig) -> 'FeatureSelector':
        return cls(
            missing_threshold=config.missing_threshold,
            identifiers=tuple(config.identifier_columns),
            freq_cut=config.freq_cut,
            unique_cut=config.unique_cut,
            nzv_rule=config.nzv_rule,
            correlation_cutoff=config.correlation_cutoff,
        )

    def _build(self) -> Pipeline:
        return Pipeline(steps=[
            ('missing', MissingnessFilter(self.missing_threshold)),
            ('identifiers', IdentifierStripper(self.identifiers)),
            ('non_numeric', NumericSelector()),
            ('near_zero_variance', VarianceFilter(self.freq_cut, self.unique_cut, self.nzv_rule)),
            ('correlated', CorrelationPruner(self.correlation_cutoff)),
            ('scaler', Normalizer(impute=self.impute)),
        ])

    def fit(self, X: pd.DataFrame, y=None) -> 'FeatureSelector':
        self.input_columns_ = list(X.columns)
        self.pipeline_ = self._build().fit(X)
        self.selected_features_ = list(self.pipeline_.named_steps['scaler'].columns_)
        logger.info(
            "Feature selection kept %d of %d columns",
            len(self.selected_features_), len(self.input_columns_),
        )
        return self

    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        check_is_fitted(self, 'pipeline_')
        return self.pipeline_.transform(X)

    @property
    def removed_(self) -> Dict[str, List[str]]:
        check_is_fitted(self, 'pipeline_')
        return {
            name: list(step.dropped_)
            for name, step in self.pipeline_.steps
            if hasattr(step, 'dropped_')
        }

    def report(self) -> SelectionReport:
        removed = self.removed_
        return SelectionReport(
            missing=removed['missing'],
            identifiers=removed['identifiers'],
            non_numeric=removed['non_numeric'],
            near_zero_variance=removed['near_zero_variance'],
            correlated=removed['correlated'],
            selected=list(self.selected_features_),
        )

    def statistics(self) -> Optional[pd.DataFrame]:
        """Near-zero-variance profile of the columns that reached the variance stage."""
        check_is_fitted(self, 'pipeline_')
        return self.pipeline_.named_steps['near_zero_variance'].statistics_


# ---------------------------------------------------------------------------
# Features implemented in this module
# - Column filters: missingness, identifiers, non-numeric, near-zero variance
# - Greedy correlation pruning with deterministic tie-break
# - Normalizer with degenerate-column guard, imputation and inverse transform
# - FeatureSelector: sklearn Pipeline of the stages, fitted once and reused
# ---------------------------------------------------------------------------
