"""
Feature selection and classifier comparison for labelled sensor tables.
Built on sklearn transformers and estimators behind one train/predict contract.
"""

from .config import PipelineConfig, ModelMetrics, calculate_split_percentages
from .errors import (
    PipelineError, SchemaMismatch, DegenerateColumn, TrainingFailure,
    AllStrategiesFailed, InputLengthMismatch, UnknownLabel
)
from .preprocessing import (
    MissingnessFilter, IdentifierStripper, NumericSelector, VarianceFilter,
    CorrelationPruner, Normalizer, FeatureSelector, find_correlated
)
from .partition import Partition, stratified_split, nested_partition
from .models import ClassifierStrategy, TrainedModel, STRATEGIES, make_strategies
from .evaluation import ConfusionMatrix, EvaluationResult, evaluate
from .selection import ModelSelector, StrategyOutcome
from .pipeline import PipelineResult, run_pipeline
from .utils import load_table, safe_json_convert

__version__ = '0.1.0'

__all__ = [
    'PipelineConfig',
    'ModelMetrics',
    'calculate_split_percentages',
    'PipelineError',
    'SchemaMismatch',
    'DegenerateColumn',
    'TrainingFailure',
    'AllStrategiesFailed',
    'InputLengthMismatch',
    'UnknownLabel',
    'MissingnessFilter',
    'IdentifierStripper',
    'NumericSelector',
    'VarianceFilter',
    'CorrelationPruner',
    'Normalizer',
    'FeatureSelector',
    'find_correlated',
    'Partition',
    'stratified_split',
    'nested_partition',
    'ClassifierStrategy',
    'TrainedModel',
    'STRATEGIES',
    'make_strategies',
    'ConfusionMatrix',
    'EvaluationResult',
    'evaluate',
    'ModelSelector',
    'StrategyOutcome',
    'PipelineResult',
    'run_pipeline',
    'load_table',
    'safe_json_convert',
]
