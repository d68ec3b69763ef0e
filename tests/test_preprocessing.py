"""
Unit tests for the feature selection stages.

Tests cover:
- Missingness threshold and reuse on later datasets
- Identifier stripping
- Near-zero-variance flags
- Greedy correlation pruning, tie-break and idempotence
- Normalizer round trip and degenerate columns
- FeatureSelector on the synthetic sensor table
"""
import numpy as np
import pandas as pd
import pytest

from har_utils.errors import DegenerateColumn, SchemaMismatch
from har_utils.preprocessing import (
    CorrelationPruner,
    FeatureSelector,
    IdentifierStripper,
    MissingnessFilter,
    Normalizer,
    NumericSelector,
    VarianceFilter,
    find_correlated,
)
from har_utils.stats import correlation_matrix

from conftest import CONSTANT, COPIES, IDENTIFIERS, NOISE, SIGNALS, SPARSE


@pytest.fixture
def missing_frame():
    # 10 rows; column m_k has k missing values
    return pd.DataFrame({
        f'm_{k}': [np.nan] * k + list(range(10 - k))
        for k in range(6)
    })


class TestMissingnessFilter:
    """Tests for MissingnessFilter."""

    @pytest.mark.parametrize('threshold', [0.05, 0.1, 0.25, 0.3, 0.55, 1.0])
    def test_keeps_columns_strictly_below_threshold(self, missing_frame, threshold):
        filt = MissingnessFilter(threshold).fit(missing_frame)
        expected = [col for col in missing_frame.columns if missing_frame[col].isna().mean() < threshold]
        assert filt.kept_ == expected

    def test_ratio_equal_to_threshold_is_removed(self, missing_frame):
        filt = MissingnessFilter(0.3).fit(missing_frame)
        assert 'm_3' in filt.dropped_
        assert 'm_2' in filt.kept_

    def test_row_order_does_not_matter(self, missing_frame):
        shuffled = missing_frame.sample(frac=1.0, random_state=3)
        assert MissingnessFilter(0.25).fit(shuffled).kept_ == MissingnessFilter(0.25).fit(missing_frame).kept_

    def test_decision_reused_on_other_dataset(self, missing_frame):
        filt = MissingnessFilter(0.25).fit(missing_frame)
        # A later dataset with no missing values still loses the same columns
        other = missing_frame.fillna(0.0)
        assert list(filt.transform(other).columns) == filt.kept_

    def test_missing_retained_column_is_schema_mismatch(self, missing_frame):
        filt = MissingnessFilter(0.25).fit(missing_frame)
        with pytest.raises(SchemaMismatch) as info:
            filt.transform(missing_frame.drop(columns=['m_0']))
        assert info.value.missing == ['m_0']


class TestIdentifierStripper:
    """Tests for IdentifierStripper."""

    def test_removes_only_listed_columns_in_order(self):
        df = pd.DataFrame(columns=['b', 'X', 'a', 'user_name', 'c'])
        stripper = IdentifierStripper().fit(df)
        assert stripper.kept_ == ['b', 'a', 'c']
        assert stripper.dropped_ == ['X', 'user_name']

    def test_absent_identifiers_are_ignored(self):
        df = pd.DataFrame({'a': [1, 2], 'b': [3, 4]})
        assert list(IdentifierStripper(('X', 'num_window')).fit_transform(df).columns) == ['a', 'b']


class TestNumericSelector:
    """Tests for NumericSelector."""

    def test_drops_text_columns(self):
        df = pd.DataFrame({'a': [1.0, 2.0], 'kind': ['x', 'y'], 'b': [1, 2]})
        assert NumericSelector().fit(df).dropped_ == ['kind']


class TestVarianceFilter:
    """Tests for VarianceFilter."""

    def test_flags_constant_and_near_constant(self):
        n = 200
        rng = np.random.RandomState(0)
        df = pd.DataFrame({
            'constant': np.ones(n),
            'mostly_zero': np.r_[np.zeros(n - 2), [1.0, 2.0]],
            'continuous': rng.normal(size=n),
        })
        filt = VarianceFilter().fit(df)
        assert filt.dropped_ == ['constant', 'mostly_zero']
        assert bool(filt.nzv_['continuous']) is False

    def test_rule_controls_indicator_combination(self):
        n = 100
        # Balanced binary column: low distinct share, frequency ratio of 1
        df = pd.DataFrame({'binary': [0.0, 1.0] * (n // 2), 'continuous': np.linspace(0, 1, n)})
        assert VarianceFilter(rule='any').fit(df).dropped_ == ['binary']
        assert VarianceFilter(rule='all').fit(df).dropped_ == []

    def test_decision_reused_verbatim(self):
        reference = pd.DataFrame({'flat': [0.0] * 99 + [1.0], 'wide': np.arange(100.0)})
        filt = VarianceFilter().fit(reference)
        # In this later dataset 'flat' varies, but the learned decision holds
        later = pd.DataFrame({'flat': np.arange(10.0), 'wide': np.arange(10.0)})
        assert list(filt.transform(later).columns) == ['wide']


class TestFindCorrelated:
    """Tests for the greedy correlation search."""

    @pytest.fixture
    def correlated_frame(self):
        rng = np.random.RandomState(1)
        base = rng.normal(size=300)
        return pd.DataFrame({
            'a': base,
            'b': base + rng.normal(scale=0.1, size=300),
            'c': rng.normal(size=300),
            'd': -base + rng.normal(scale=0.2, size=300),
            'e': rng.normal(size=300),
        })

    def test_no_pair_above_cutoff_after_removal(self, correlated_frame):
        corr = correlation_matrix(correlated_frame)
        removed = find_correlated(corr, 0.9)
        kept = [col for col in corr.columns if col not in removed]
        remaining = corr.loc[kept, kept].to_numpy().copy()
        np.fill_diagonal(remaining, 0.0)
        assert removed
        assert (remaining <= 0.9).all()

    def test_idempotent(self, correlated_frame):
        pruner = CorrelationPruner(0.9).fit(correlated_frame)
        pruned = pruner.transform(correlated_frame)
        assert CorrelationPruner(0.9).fit(pruned).dropped_ == []

    def test_tie_goes_to_later_column(self):
        corr = pd.DataFrame(
            [[1.0, 0.95, 0.1], [0.95, 1.0, 0.1], [0.1, 0.1, 1.0]],
            index=['first', 'second', 'other'], columns=['first', 'second', 'other'],
        )
        assert find_correlated(corr, 0.9) == ['second']

    def test_highest_mean_correlation_removed_first(self):
        # 'hub' is strongly tied to both others, which are not tied to each other
        corr = pd.DataFrame(
            [[1.0, 0.95, 0.95], [0.95, 1.0, 0.5], [0.95, 0.5, 1.0]],
            index=['hub', 'left', 'right'], columns=['hub', 'left', 'right'],
        )
        assert find_correlated(corr, 0.9) == ['hub']

    def test_uncorrelated_columns_untouched(self):
        corr = pd.DataFrame(np.eye(3), index=list('abc'), columns=list('abc'))
        assert find_correlated(corr, 0.9) == []


class TestNormalizer:
    """Tests for Normalizer."""

    def test_round_trip(self):
        rng = np.random.RandomState(2)
        df = pd.DataFrame({'a': rng.normal(5, 3, 50), 'b': rng.uniform(-10, 10, 50)})
        norm = Normalizer().fit(df)
        restored = norm.inverse_transform(norm.transform(df))
        np.testing.assert_allclose(restored.to_numpy(), df.to_numpy(), rtol=1e-10, atol=1e-10)

    def test_statistics_learned_once(self):
        # Mean 2, population standard deviation 1
        reference = pd.DataFrame({'a': [1.0, 3.0]})
        norm = Normalizer().fit(reference)
        out = norm.transform(pd.DataFrame({'a': [2.0, 6.0]}))
        np.testing.assert_allclose(out['a'].to_numpy(), [0.0, 4.0])
        assert norm.scaler_.scale_[0] == 1.0

    def test_zero_variance_raises(self):
        with pytest.raises(DegenerateColumn) as info:
            Normalizer().fit(pd.DataFrame({'flat': [1.0, 1.0, 1.0], 'ok': [1.0, 2.0, 3.0]}))
        assert info.value.columns == ['flat']

    def test_column_without_values_is_degenerate(self):
        with pytest.raises(DegenerateColumn) as info:
            Normalizer().fit(pd.DataFrame({'empty': [np.nan] * 3, 'ok': [1.0, 2.0, 3.0]}))
        assert info.value.columns == ['empty']

    def test_zero_variance_can_be_dropped(self):
        norm = Normalizer(on_degenerate='drop').fit(pd.DataFrame({'flat': [1.0] * 3, 'ok': [1.0, 2.0, 3.0]}))
        assert norm.columns_ == ['ok']

    def test_impute_fills_learned_mean(self):
        norm = Normalizer(impute=True).fit(pd.DataFrame({'a': [1.0, 2.0, 3.0]}))
        out = norm.transform(pd.DataFrame({'a': [np.nan]}))
        assert out['a'].iloc[0] == 0.0


class TestFeatureSelector:
    """Tests for the composed feature selection on the synthetic table."""

    @pytest.fixture(scope='class')
    def fitted(self, sensor_frame):
        features = sensor_frame.drop(columns=['classe'])
        return FeatureSelector().fit(features), features

    def test_removes_exactly_the_bad_columns(self, fitted):
        selector, _ = fitted
        report = selector.report()
        assert sorted(report['missing']) == sorted(SPARSE)
        assert sorted(report['identifiers']) == sorted(IDENTIFIERS)
        assert sorted(report['near_zero_variance']) == sorted(CONSTANT)
        assert sorted(report['correlated']) == sorted(COPIES)
        assert report['non_numeric'] == []
        assert report['selected'] == SIGNALS + NOISE

    def test_transformed_columns_are_centered(self, fitted):
        selector, features = fitted
        out = selector.transform(features)
        assert list(out.columns) == SIGNALS + NOISE
        np.testing.assert_allclose(out.mean().to_numpy(), 0.0, atol=1e-10)
        np.testing.assert_allclose(out.std(ddof=0).to_numpy(), 1.0, atol=1e-10)

    def test_later_dataset_missing_a_feature_is_rejected(self, fitted):
        selector, features = fitted
        with pytest.raises(SchemaMismatch):
            selector.transform(features.drop(columns=['noise_3']))

    def test_columns_dropped_for_missingness_may_be_absent_later(self, fitted):
        selector, features = fitted
        slim = features.drop(columns=SPARSE)
        assert list(selector.transform(slim).columns) == SIGNALS + NOISE

    def test_every_column_retained_by_a_stage_is_required(self, fitted):
        selector, features = fitted
        # Identifiers survive the missingness stage, so later datasets must carry them
        with pytest.raises(SchemaMismatch):
            selector.transform(features.drop(columns=['user_name']))

    def test_variance_profile_exposed(self, fitted):
        selector, _ = fitted
        stats = selector.statistics()
        assert set(CONSTANT) <= set(stats.index)
        assert (stats.loc[CONSTANT, 'freq_ratio'] > 19).all()
