"""Stratified, seeded partitioning of the labelled rows."""

import logging
from dataclasses import dataclass
from typing import Tuple, Union

import numpy as np
import pandas as pd
from sklearn.model_selection import train_test_split
from sklearn.utils import check_random_state

from .config import PartitionSizes
from .errors import SchemaMismatch

logger = logging.getLogger(__name__)

RandomSource = Union[None, int, np.random.RandomState]


def stratified_indices(labels: pd.Series, p: float, random_state: RandomSource = None) -> Tuple[np.ndarray, np.ndarray]:
    """Positions kept and held out when sampling ``p`` of every class.

    Class proportions are preserved by ``train_test_split(stratify=...)``,
    which draws from the given random source, so the same source state
    always yields the same split. Both position arrays are returned sorted.
    """
    if not 0 < p < 1:
        raise ValueError(f"Split fraction must be between 0 and 1, got {p}")
    rng = check_random_state(random_state)
    values = labels.astype(str).to_numpy()
    if len(values) == 0:
        return np.array([], dtype=int), np.array([], dtype=int)

    kept, held = train_test_split(
        np.arange(len(values)), train_size=p, stratify=values, random_state=rng
    )
    return np.sort(kept), np.sort(held)


def stratified_split(df: pd.DataFrame, label: str, p: float,
                     random_state: RandomSource = None) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """Split ``df`` into (kept, held_out) frames preserving class proportions."""
    if label not in df.columns:
        raise SchemaMismatch([label], stage='Partitioner')
    kept, held = stratified_indices(df[label], p, random_state)
    return df.iloc[kept], df.iloc[held]


@dataclass(frozen=True)
class Partition:
    """Disjoint training / testing / validation subsets of one labelled dataset."""
    training: pd.DataFrame
    testing: pd.DataFrame
    validation: pd.DataFrame

    def sizes(self) -> PartitionSizes:
        return PartitionSizes(
            training=len(self.training),
            testing=len(self.testing),
            validation=len(self.validation),
            total=len(self.training) + len(self.testing) + len(self.validation),
        )


def nested_partition(df: pd.DataFrame, label: str, outer_split: float = 0.7,
                     inner_split: float = 0.7, random_state: RandomSource = None) -> Partition:
    """Split into build/validation, then split build into training/testing.

    The same random source is consumed by both splits, so a fixed seed
    reproduces the whole partition.
    """
    if not df.index.is_unique:
        df = df.reset_index(drop=True)
    rng = check_random_state(random_state)
    build, validation = stratified_split(df, label, outer_split, rng)
    training, testing = stratified_split(build, label, inner_split, rng)
    partition = Partition(training=training, testing=testing, validation=validation)
    sizes = partition.sizes()
    logger.info(
        "Partitioned %d rows: %d training, %d testing, %d validation",
        sizes['total'], sizes['training'], sizes['testing'], sizes['validation'],
    )
    return partition
