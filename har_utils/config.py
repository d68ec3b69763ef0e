"""Configuration and typed result structures for the model comparison pipeline."""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple, TypedDict


# Tokens that mean "missing" in the raw sensor exports
MISSING_TOKENS = ['NA', '', '#DIV/0!']

# Bookkeeping columns that describe the recording, not the movement
IDENTIFIER_COLUMNS = (
    'X',
    'user_name',
    'raw_timestamp_part_1',
    'raw_timestamp_part_2',
    'cvtd_timestamp',
    'new_window',
    'num_window',
)

DEFAULT_STRATEGIES = ('DecisionTree', 'BoostedTree', 'RandomForest', 'SVM')

TIE_BREAKERS = ('training_time', 'priority')


@dataclass
class PipelineConfig:
    """Configuration object for feature selection, partitioning and model comparison.

    ``nzv_rule='any'`` removes a column when either near-zero-variance
    indicator fires, so coarse but informative readings with few distinct
    values are dropped too. Use ``nzv_rule='all'`` to require both.
    """
    label_column: str = 'classe'
    id_column: Optional[str] = 'problem_id'
    missing_threshold: float = 0.25
    identifier_columns: Tuple[str, ...] = IDENTIFIER_COLUMNS
    freq_cut: float = 95 / 5
    unique_cut: float = 10.0
    nzv_rule: str = 'any'
    correlation_cutoff: float = 0.90
    outer_split: float = 0.7
    inner_split: float = 0.7
    random_state: int = 42
    strategies: Tuple[str, ...] = DEFAULT_STRATEGIES
    n_jobs: int = 1
    timeout_seconds: int = 300
    tie_breakers: Tuple[str, ...] = TIE_BREAKERS
    strict_labels: bool = False

    def validate(self) -> 'PipelineConfig':
        """Check every setting, raising ValueError listing all problems found."""
        errors = []

        if not self.label_column:
            errors.append("Label column must be provided")
        if not 0 < self.missing_threshold <= 1:
            errors.append("Missing threshold must be in (0, 1]")
        if not 0 < self.correlation_cutoff <= 1:
            errors.append("Correlation cutoff must be in (0, 1]")
        for name in ('outer_split', 'inner_split'):
            ratio = getattr(self, name)
            if ratio <= 0 or ratio >= 1:
                errors.append(f"{name} must be between 0 and 1")
        if self.freq_cut <= 1:
            errors.append("Frequency cut must be greater than 1")
        if not 0 <= self.unique_cut <= 100:
            errors.append("Unique cut is a percentage and must be in [0, 100]")
        if self.nzv_rule not in ('any', 'all'):
            errors.append("Near-zero-variance rule must be 'any' or 'all'")
        if not self.strategies:
            errors.append("At least one classifier strategy is required")
        unknown = [name for name in self.tie_breakers if name not in TIE_BREAKERS]
        if unknown:
            errors.append(f"Unknown tie breakers {unknown}. Must be drawn from {list(TIE_BREAKERS)}")
        if self.timeout_seconds <= 0:
            errors.append("Timeout must be positive")

        if errors:
            raise ValueError("Invalid pipeline configuration: " + "; ".join(errors))
        return self


class ModelMetrics(TypedDict, total=False):
    """Flat per-model metrics used in summaries and exports."""
    Accuracy: float
    Kappa: float
    Precision: float
    Recall: float
    F1: float
    Error_Rate: float
    Training_Time: float


class PartitionSizes(TypedDict):
    """Row counts of the nested partitions."""
    training: int
    testing: int
    validation: int
    total: int


class SelectionReport(TypedDict):
    """Columns removed by each preprocessing stage."""
    missing: List[str]
    identifiers: List[str]
    non_numeric: List[str]
    near_zero_variance: List[str]
    correlated: List[str]
    selected: List[str]


def calculate_split_percentages(outer_split: float, inner_split: float) -> Dict[str, float]:
    """Share of the labelled rows that ends up in each nested partition, in percent."""
    training = outer_split * inner_split * 100
    testing = outer_split * (1 - inner_split) * 100
    validation = (1 - outer_split) * 100
    return {
        'training': round(training, 1),
        'testing': round(testing, 1),
        'validation': round(validation, 1),
    }


# ---------------------------------------------------------------------------
# Features implemented in this module
# - PipelineConfig dataclass for every fixed pipeline setting, self-validating
# - Missing-value tokens and identifier column defaults of the sensor exports
# - Typed dictionaries for metrics, partition sizes and the selection report
# - Utility to convert nested split fractions into overall percentages
# ---------------------------------------------------------------------------
