"""
Unit tests for stratified partitioning.

Tests cover:
- Disjoint and exhaustive kept/held-out subsets
- Class proportions preserved within tolerance
- Reproducibility from a fixed seed
- Nested training/testing/validation sizes
"""
import numpy as np
import pandas as pd
import pytest

from har_utils.config import calculate_split_percentages
from har_utils.errors import SchemaMismatch
from har_utils.partition import nested_partition, stratified_indices, stratified_split


class TestStratifiedIndices:
    """Tests for stratified_indices."""

    @pytest.mark.parametrize('p', [0.1, 0.3, 0.5, 0.7, 0.9])
    def test_disjoint_and_exhaustive(self, small_labels, p):
        kept, held = stratified_indices(small_labels, p, random_state=0)
        assert len(np.intersect1d(kept, held)) == 0
        np.testing.assert_array_equal(np.sort(np.concatenate([kept, held])), np.arange(len(small_labels)))

    @pytest.mark.parametrize('p', [0.3, 0.5, 0.7])
    def test_class_proportions_preserved(self, small_labels, p):
        kept, held = stratified_indices(small_labels, p, random_state=0)
        source = small_labels.value_counts(normalize=True)
        for subset in (kept, held):
            observed = small_labels.iloc[subset].value_counts(normalize=True)
            for cls, share in source.items():
                assert abs(observed.get(cls, 0.0) - share) < 0.05

    def test_per_class_counts_follow_proportions(self, small_labels):
        kept, _ = stratified_indices(small_labels, 0.7, random_state=0)
        counts = small_labels.iloc[kept].value_counts()
        assert counts['A'] == 35
        assert counts['B'] == 21
        assert counts['C'] == 14

    def test_same_seed_same_split(self, small_labels):
        first, _ = stratified_indices(small_labels, 0.6, random_state=11)
        second, _ = stratified_indices(small_labels, 0.6, random_state=11)
        other, _ = stratified_indices(small_labels, 0.6, random_state=12)
        np.testing.assert_array_equal(first, second)
        assert not np.array_equal(first, other)

    def test_shared_random_source_advances(self, small_labels):
        rng = np.random.RandomState(4)
        first, _ = stratified_indices(small_labels, 0.5, random_state=rng)
        second, _ = stratified_indices(small_labels, 0.5, random_state=rng)
        assert not np.array_equal(first, second)

    def test_singleton_class_cannot_be_stratified(self):
        with pytest.raises(ValueError):
            stratified_indices(pd.Series(['A'] * 9 + ['B']), 0.5, random_state=0)

    def test_invalid_fraction(self, small_labels):
        with pytest.raises(ValueError):
            stratified_indices(small_labels, 1.0)

    def test_missing_label_column(self):
        with pytest.raises(SchemaMismatch):
            stratified_split(pd.DataFrame({'a': [1, 2]}), 'classe', 0.5)


class TestNestedPartition:
    """Tests for the nested build/validation and training/testing split."""

    def test_sizes_on_sensor_table(self, sensor_frame):
        partition = nested_partition(sensor_frame, 'classe', 0.7, 0.7, random_state=42)
        sizes = partition.sizes()
        assert sizes == {'training': 490, 'testing': 210, 'validation': 300, 'total': 1000}

    def test_subsets_do_not_overlap(self, sensor_frame):
        partition = nested_partition(sensor_frame, 'classe', random_state=42)
        indices = [set(frame.index) for frame in (partition.training, partition.testing, partition.validation)]
        assert not indices[0] & indices[1]
        assert not indices[0] & indices[2]
        assert not indices[1] & indices[2]
        assert set().union(*indices) == set(sensor_frame.index)

    def test_reproducible_with_fixed_seed(self, sensor_frame):
        first = nested_partition(sensor_frame, 'classe', random_state=5)
        second = nested_partition(sensor_frame, 'classe', random_state=np.random.RandomState(5))
        assert list(first.training.index) == list(second.training.index)
        assert list(first.validation.index) == list(second.validation.index)

    def test_duplicate_index_is_reset(self):
        df = pd.DataFrame({'a': range(20), 'classe': ['x', 'y'] * 10}, index=[0] * 20)
        partition = nested_partition(df, 'classe', random_state=0)
        assert partition.sizes()['total'] == 20
        assert len(set(partition.training.index) | set(partition.testing.index)
                   | set(partition.validation.index)) == 20


def test_split_percentages():
    assert calculate_split_percentages(0.7, 0.7) == {'training': 49.0, 'testing': 21.0, 'validation': 30.0}
