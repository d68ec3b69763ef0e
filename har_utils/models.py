"""Classifier strategies sharing one train/predict contract.

Each strategy wraps one scikit-learn estimator with a fixed configuration.
The model comparison never looks inside an estimator: it hands every
strategy the same training subset and gets back a TrainedModel, then asks
the same strategy for one predicted label per row.
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple, Type

import numpy as np
import pandas as pd
from sklearn.base import ClassifierMixin
from sklearn.ensemble import GradientBoostingClassifier, RandomForestClassifier
from sklearn.linear_model import LogisticRegression
from sklearn.svm import SVC
from sklearn.tree import DecisionTreeClassifier

from .errors import TrainingFailure
from .utils import require_columns


@dataclass(frozen=True)
class TrainedModel:
    """Parameters produced by one strategy on one training subset."""
    strategy: str
    estimator: ClassifierMixin
    classes: Tuple[str, ...]
    features: Tuple[str, ...]
    training_time: float
    seed: Optional[int] = None


class ClassifierStrategy(ABC):
    """Uniform train/predict contract over one classification algorithm.

    ``priority`` orders strategies for the final tie-break when two of them
    score the same accuracy; lower wins.
    """

    name: str = ''
    priority: int = 100

    def __init__(self, random_state: Optional[int] = None):
        self.random_state = random_state

    @abstractmethod
    def build_estimator(self, random_state: Optional[int]) -> ClassifierMixin:
        """Fresh, unfitted estimator with this strategy's fixed configuration."""

    def train(self, X: pd.DataFrame, y: Sequence, random_state: Optional[int] = None) -> TrainedModel:
        """Fit a new estimator on ``X``/``y``.

        ``random_state`` overrides the strategy's own seed for this call.
        """
        y = np.asarray(y, dtype=str)
        classes = tuple(sorted(set(y)))
        if len(X) != len(y):
            raise TrainingFailure(self.name, f"{len(X)} feature rows but {len(y)} labels")
        if len(classes) < 2:
            raise TrainingFailure(self.name, f"need at least 2 classes, found {len(classes)}")
        if X.shape[1] == 0:
            raise TrainingFailure(self.name, "no feature columns left to train on")

        seed = self.random_state if random_state is None else random_state
        estimator = self.build_estimator(seed)
        start_time = time.perf_counter()
        try:
            estimator.fit(X.to_numpy(dtype=float), y)
        except Exception as e:
            raise TrainingFailure(self.name, f"{type(e).__name__}: {e}") from e
        elapsed = time.perf_counter() - start_time

        return TrainedModel(
            strategy=self.name,
            estimator=estimator,
            classes=classes,
            features=tuple(X.columns),
            training_time=elapsed,
            seed=seed,
        )

    def predict(self, model: TrainedModel, X: pd.DataFrame) -> List[str]:
        """One predicted label per row of ``X``, in row order. A label column, if present, is ignored."""
        if model.strategy != self.name:
            raise ValueError(f"{self.name} cannot predict with a model trained by {model.strategy}")
        require_columns(X, model.features, stage=f"{self.name}.predict")
        if len(X) == 0:
            return []
        data = X.loc[:, list(model.features)].to_numpy(dtype=float)
        return [str(label) for label in model.estimator.predict(data)]

    def __repr__(self) -> str:
        return f"{type(self).__name__}(random_state={self.random_state!r})"


class DecisionTreeStrategy(ClassifierStrategy):
    name = 'DecisionTree'
    priority = 3

    def build_estimator(self, random_state):
        return DecisionTreeClassifier(random_state=random_state)


class BoostedTreeStrategy(ClassifierStrategy):
    name = 'BoostedTree'
    priority = 1

    def __init__(self, random_state=None, n_estimators=150, max_depth=3, learning_rate=0.1):
        super().__init__(random_state)
        self.n_estimators = n_estimators
        self.max_depth = max_depth
        self.learning_rate = learning_rate

    def build_estimator(self, random_state):
        return GradientBoostingClassifier(
            n_estimators=self.n_estimators,
            max_depth=self.max_depth,
            learning_rate=self.learning_rate,
            random_state=random_state,
        )


class RandomForestStrategy(ClassifierStrategy):
    """Bagged trees; ``max_features`` is the number of variables tried per split."""
    name = 'RandomForest'
    priority = 0

    def __init__(self, random_state=None, n_estimators=100, max_features='sqrt'):
        super().__init__(random_state)
        self.n_estimators = n_estimators
        self.max_features = max_features

    def build_estimator(self, random_state):
        return RandomForestClassifier(
            n_estimators=self.n_estimators,
            max_features=self.max_features,
            random_state=random_state,
        )


class SupportVectorStrategy(ClassifierStrategy):
    name = 'SVM'
    priority = 2

    def __init__(self, random_state=None, kernel='rbf', C=1.0, gamma='scale'):
        super().__init__(random_state)
        self.kernel = kernel
        self.C = C
        self.gamma = gamma

    def build_estimator(self, random_state):
        return SVC(kernel=self.kernel, C=self.C, gamma=self.gamma, random_state=random_state)


class LogisticRegressionStrategy(ClassifierStrategy):
    name = 'LogisticRegression'
    priority = 4

    def build_estimator(self, random_state):
        return LogisticRegression(max_iter=1000, random_state=random_state)


STRATEGIES: Dict[str, Type[ClassifierStrategy]] = {
    cls.name: cls
    for cls in (
        DecisionTreeStrategy,
        BoostedTreeStrategy,
        RandomForestStrategy,
        SupportVectorStrategy,
        LogisticRegressionStrategy,
    )
}


def make_strategies(names: Sequence[str], random_state: Optional[int] = None) -> List[ClassifierStrategy]:
    """Instantiate registered strategies by name, in the given order."""
    unknown = [name for name in names if name not in STRATEGIES]
    if unknown:
        raise ValueError(f"Unknown strategies {unknown}. Available: {sorted(STRATEGIES)}")
    return [STRATEGIES[name](random_state=random_state) for name in names]
