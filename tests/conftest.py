"""
Pytest fixtures for har_utils tests.

Provides a synthetic sensor table with a known set of bad columns:
identifiers, columns with heavy missingness, near-constant columns and
exact linear copies of other columns, next to five class-signal columns
that make the label easy to separate.
"""

import numpy as np
import pandas as pd
import pytest

CLASSES = ['A', 'B', 'C', 'D', 'E']
IDENTIFIERS = ['X', 'user_name', 'raw_timestamp_part_1', 'raw_timestamp_part_2', 'cvtd_timestamp']
SIGNALS = [f'signal_{k}' for k in range(5)]
NOISE = [f'noise_{k}' for k in range(33)]
COPIES = ['copy_signal_0', 'copy_signal_1']
SPARSE = [f'sparse_{k}' for k in range(10)]
CONSTANT = [f'flat_{k}' for k in range(5)]


def make_sensor_frame(n_rows: int = 1000, seed: int = 0, with_label: bool = True) -> pd.DataFrame:
    """1000 x 60 feature table plus a balanced five-class ``classe`` label."""
    rng = np.random.RandomState(seed)
    codes = np.arange(n_rows) % len(CLASSES)
    rng.shuffle(codes)

    data = {
        'X': np.arange(1, n_rows + 1),
        'user_name': rng.choice(['adelmo', 'carlitos', 'charles', 'eurico', 'jeremy', 'pedro'], n_rows),
        'raw_timestamp_part_1': 1322489729 + rng.randint(0, 5000, n_rows),
        'raw_timestamp_part_2': rng.randint(0, 1000000, n_rows),
        'cvtd_timestamp': '05/12/2011 11:23',
    }
    for k, name in enumerate(SIGNALS):
        data[name] = 5.0 * (codes == k) + rng.normal(0, 0.5, n_rows)
    for name in NOISE:
        data[name] = rng.normal(0, 1, n_rows)
    data['copy_signal_0'] = 2.0 * data['signal_0'] + 1.0
    data['copy_signal_1'] = -data['signal_1']
    for name in SPARSE:
        values = rng.normal(0, 1, n_rows)
        values[rng.choice(n_rows, int(0.4 * n_rows), replace=False)] = np.nan
        data[name] = values
    for name in CONSTANT:
        values = np.zeros(n_rows)
        values[rng.choice(n_rows, 3, replace=False)] = 1.0
        data[name] = values

    frame = pd.DataFrame(data)
    if with_label:
        frame['classe'] = np.array(CLASSES)[codes]
    return frame


@pytest.fixture(scope='session')
def sensor_frame():
    return make_sensor_frame()


@pytest.fixture(scope='session')
def cases_frame():
    cases = make_sensor_frame(n_rows=20, seed=7, with_label=False)
    cases['problem_id'] = np.arange(1, 21)
    return cases


@pytest.fixture
def small_labels():
    return pd.Series(['A'] * 50 + ['B'] * 30 + ['C'] * 20)
