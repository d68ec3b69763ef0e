"""Train every classifier strategy on the same partition and keep the best one."""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd
from joblib import Parallel, delayed
from sklearn.utils import check_random_state

from .config import TIE_BREAKERS, ModelMetrics
from .errors import AllStrategiesFailed, InputLengthMismatch, TrainingFailure, UnknownLabel
from .evaluation import EvaluationResult, evaluate
from .models import ClassifierStrategy, TrainedModel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StrategyOutcome:
    """Result of training and testing one strategy: a scored model or the failure reason."""
    name: str
    priority: int
    order: int
    model: Optional[TrainedModel] = None
    evaluation: Optional[EvaluationResult] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None and self.model is not None

    @property
    def accuracy(self) -> float:
        return self.evaluation.accuracy if self.evaluation is not None else float('nan')

    def metrics(self) -> ModelMetrics:
        if not self.succeeded:
            return ModelMetrics()
        return self.evaluation.metrics(self.model.training_time)


def _train_and_test(strategy: ClassifierStrategy, order: int, seed: int,
                    X_train: pd.DataFrame, y_train: Sequence,
                    X_test: pd.DataFrame, y_test: Sequence,
                    timeout_seconds: float, strict_labels: bool) -> StrategyOutcome:
    """One independent job: train on the training subset, score on the testing subset."""
    try:
        model = strategy.train(X_train, y_train, random_state=seed)
        if model.training_time > timeout_seconds:
            raise TrainingFailure(
                strategy.name, f"exceeded timeout ({model.training_time:.1f}s > {timeout_seconds}s)"
            )
        predictions = strategy.predict(model, X_test)
        evaluation = evaluate(y_test, predictions, labels=model.classes, strict=strict_labels)
    except (TrainingFailure, InputLengthMismatch, UnknownLabel) as e:
        logger.warning("Error training %s: %s", strategy.name, e)
        return StrategyOutcome(strategy.name, strategy.priority, order, error=str(e))
    except Exception as e:
        logger.exception("Unexpected error in %s", strategy.name)
        return StrategyOutcome(strategy.name, strategy.priority, order, error=f"{type(e).__name__}: {e}")

    logger.info(
        "%s completed - Accuracy: %.3f, Time: %.2fs",
        strategy.name, evaluation.accuracy, model.training_time,
    )
    return StrategyOutcome(strategy.name, strategy.priority, order, model=model, evaluation=evaluation)


class ModelSelector:
    """Compare classifier strategies on a fixed partition.

    Every strategy is trained on the same training subset and scored on the
    same testing subset. The winner has the highest testing accuracy; ties go
    through ``tie_breakers`` in order (``'training_time'``: faster wins,
    ``'priority'``: lower strategy priority wins) and finally the order in
    which strategies were given. The validation subset is never seen here.
    """

    def __init__(self, strategies: Sequence[ClassifierStrategy], random_state=None,
                 n_jobs: int = 1, timeout_seconds: float = 300,
                 tie_breakers: Sequence[str] = TIE_BREAKERS, strict_labels: bool = False):
        names = [strategy.name for strategy in strategies]
        if not names:
            raise ValueError("ModelSelector needs at least one strategy")
        if len(set(names)) != len(names):
            raise ValueError(f"Strategy names must be unique, got {names}")
        unknown = [name for name in tie_breakers if name not in TIE_BREAKERS]
        if unknown:
            raise ValueError(f"Unknown tie breakers {unknown}")
        self.strategies = list(strategies)
        self.random_state = random_state
        self.n_jobs = n_jobs
        self.timeout_seconds = timeout_seconds
        self.tie_breakers = tuple(tie_breakers)
        self.strict_labels = strict_labels
        self.outcomes_: List[StrategyOutcome] = []
        self.best_: Optional[StrategyOutcome] = None

    def fit(self, X_train: pd.DataFrame, y_train: Sequence,
            X_test: pd.DataFrame, y_test: Sequence) -> 'ModelSelector':
        """Train and test all strategies, then pick the winner."""
        rng = check_random_state(self.random_state)
        # Seeds are drawn in strategy order before dispatch, so completion order is irrelevant
        seeds = rng.randint(np.iinfo(np.int32).max, size=len(self.strategies))
        logger.info("Comparing %d strategies on %d training rows", len(self.strategies), len(X_train))

        outcomes = Parallel(n_jobs=self.n_jobs, prefer='threads')(
            delayed(_train_and_test)(
                strategy, order, int(seed), X_train, y_train, X_test, y_test,
                self.timeout_seconds, self.strict_labels,
            )
            for order, (strategy, seed) in enumerate(zip(self.strategies, seeds))
        )
        self.outcomes_ = sorted(outcomes, key=lambda outcome: outcome.order)

        successes = [outcome for outcome in self.outcomes_ if outcome.succeeded]
        if not successes:
            raise AllStrategiesFailed({outcome.name: outcome.error for outcome in self.outcomes_})

        self.best_ = min(successes, key=self._rank_key)
        logger.info("Best model: %s (accuracy %.3f)", self.best_.name, self.best_.accuracy)
        return self

    def _rank_key(self, outcome: StrategyOutcome) -> tuple:
        key = [-outcome.accuracy]
        for breaker in self.tie_breakers:
            key.append(outcome.model.training_time if breaker == 'training_time' else outcome.priority)
        key.append(outcome.order)
        return tuple(key)

    def ranking(self) -> List[StrategyOutcome]:
        """Successful outcomes best first, followed by the failures."""
        successes = sorted((o for o in self.outcomes_ if o.succeeded), key=self._rank_key)
        failures = [o for o in self.outcomes_ if not o.succeeded]
        return successes + failures

    def _require_fitted(self) -> StrategyOutcome:
        if self.best_ is None:
            raise RuntimeError("ModelSelector has not been fitted")
        return self.best_

    @property
    def best_strategy(self) -> ClassifierStrategy:
        best = self._require_fitted()
        return self.strategies[best.order]

    @property
    def best_model(self) -> TrainedModel:
        return self._require_fitted().model

    def predict(self, X: pd.DataFrame) -> List[str]:
        """Labels from the selected model, one per row of ``X``."""
        return self.best_strategy.predict(self.best_model, X)

    def evaluate(self, X: pd.DataFrame, y: Sequence) -> EvaluationResult:
        """Score the selected model on held-out rows (the validation subset)."""
        predictions = self.predict(X)
        return evaluate(y, predictions, labels=self.best_model.classes, strict=self.strict_labels)

    def results(self) -> List[Dict]:
        """Per-strategy metrics in ranking order, like the old comparison table."""
        return [
            {'model': outcome.name, 'metrics': outcome.metrics(), 'error': outcome.error}
            for outcome in self.ranking()
        ]
