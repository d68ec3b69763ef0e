"""End-to-end run: select features, partition, compare models, predict the cases."""

import logging
from dataclasses import dataclass
from typing import List, Optional

import pandas as pd
from sklearn.utils import check_random_state

from .config import PartitionSizes, PipelineConfig, SelectionReport
from .evaluation import EvaluationResult
from .models import make_strategies
from .partition import nested_partition
from .preprocessing import FeatureSelector
from .selection import ModelSelector, StrategyOutcome
from .stats import dataset_summary
from .utils import normalize_missing, split_features_label

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineResult:
    config: PipelineConfig
    selection: SelectionReport
    partition_sizes: PartitionSizes
    outcomes: List[StrategyOutcome]
    best_strategy: str
    testing: EvaluationResult
    validation: EvaluationResult
    predictions: pd.DataFrame

    @property
    def out_of_sample_error(self) -> float:
        """Validation error rate of the selected model."""
        return self.validation.error_rate


def _case_features(cases: pd.DataFrame, config: PipelineConfig):
    """Strip the label (if any) and the case id column from the unlabelled rows."""
    features = cases
    if config.label_column in features.columns:
        logger.warning("Prediction cases carry the label column '%s'; ignoring it", config.label_column)
        features = features.drop(columns=[config.label_column])
    ids = None
    if config.id_column and config.id_column in features.columns:
        ids = features[config.id_column]
        features = features.drop(columns=[config.id_column])
    return features, ids


def run_pipeline(training: pd.DataFrame, cases: Optional[pd.DataFrame] = None,
                 config: Optional[PipelineConfig] = None) -> PipelineResult:
    """Run the whole comparison and predict ``cases``.

    Feature selection and scaling are learned from ``training`` alone and
    applied unchanged to every partition and to ``cases``. Any schema or
    degenerate-column error aborts the run before partitioning; a strategy
    that fails to train is reported and skipped.
    """
    config = (config or PipelineConfig()).validate()
    training = normalize_missing(training)
    unlabelled = training[config.label_column].isna() if config.label_column in training.columns else None
    if unlabelled is not None and unlabelled.any():
        logger.warning("Dropping %d training rows without a label", int(unlabelled.sum()))
        training = training.loc[~unlabelled]
    logger.info("Training data: %s", dataset_summary(training))

    X, y = split_features_label(training, config.label_column)
    if config.id_column and config.id_column in X.columns:
        X = X.drop(columns=[config.id_column])

    selector = FeatureSelector.from_config(config).fit(X)
    X_selected = selector.transform(X)

    case_ids = None
    X_cases = None
    if cases is not None:
        case_features, case_ids = _case_features(normalize_missing(cases), config)
        X_cases = selector.transform(case_features)

    rng = check_random_state(config.random_state)
    labelled = X_selected.assign(**{config.label_column: y.to_numpy()})
    partition = nested_partition(labelled, config.label_column, config.outer_split, config.inner_split, rng)

    def features_and_label(frame):
        return frame.drop(columns=[config.label_column]), frame[config.label_column]

    X_train, y_train = features_and_label(partition.training)
    X_test, y_test = features_and_label(partition.testing)
    X_val, y_val = features_and_label(partition.validation)

    model_selector = ModelSelector(
        make_strategies(config.strategies),
        random_state=rng,
        n_jobs=config.n_jobs,
        timeout_seconds=config.timeout_seconds,
        tie_breakers=config.tie_breakers,
        strict_labels=config.strict_labels,
    ).fit(X_train, y_train, X_test, y_test)

    validation = model_selector.evaluate(X_val, y_val)
    logger.info(
        "Validation accuracy of %s: %.4f (out-of-sample error %.4f)",
        model_selector.best_.name, validation.accuracy, validation.error_rate,
    )

    predictions = pd.DataFrame(columns=['prediction'])
    if X_cases is not None:
        labels = model_selector.predict(X_cases)
        predictions = pd.DataFrame({'prediction': labels}, index=X_cases.index)
        if case_ids is not None:
            predictions.insert(0, config.id_column, case_ids.to_numpy())

    return PipelineResult(
        config=config,
        selection=selector.report(),
        partition_sizes=partition.sizes(),
        outcomes=model_selector.ranking(),
        best_strategy=model_selector.best_.name,
        testing=model_selector.best_.evaluation,
        validation=validation,
        predictions=predictions,
    )
