"""Confusion matrix and accuracy metrics for predicted vs. true labels."""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np
import pandas as pd
from sklearn.metrics import cohen_kappa_score, f1_score, precision_score, recall_score

from .config import ModelMetrics
from .errors import InputLengthMismatch, UnknownLabel

logger = logging.getLogger(__name__)

UNKNOWN_COLUMN = '<unknown>'


@dataclass(frozen=True)
class ConfusionMatrix:
    """Counts indexed by (true class, predicted class).

    Predictions outside ``labels`` have no column; they are kept per true
    class in ``unknown`` and count as misses.
    """
    labels: tuple
    counts: np.ndarray
    unknown: np.ndarray

    @property
    def total(self) -> int:
        return int(self.counts.sum() + self.unknown.sum())

    @property
    def accuracy(self) -> float:
        return float(np.trace(self.counts)) / self.total if self.total else 0.0

    def true_counts(self) -> np.ndarray:
        """Row sums: how many rows carry each true class."""
        return self.counts.sum(axis=1) + self.unknown

    def predicted_counts(self) -> np.ndarray:
        """Column sums: how many rows were predicted as each class."""
        return self.counts.sum(axis=0)

    def per_class(self) -> pd.DataFrame:
        """Sensitivity, specificity and support for every class."""
        total = self.total
        tp = np.diag(self.counts).astype(float)
        actual = self.true_counts().astype(float)
        predicted = self.predicted_counts().astype(float)
        negatives = total - actual
        tn = negatives - (predicted - tp)
        with np.errstate(divide='ignore', invalid='ignore'):
            sensitivity = np.where(actual > 0, tp / actual, np.nan)
            specificity = np.where(negatives > 0, tn / negatives, np.nan)
        return pd.DataFrame(
            {'sensitivity': sensitivity, 'specificity': specificity, 'support': actual.astype(int)},
            index=pd.Index(self.labels, name='class'),
        )

    def to_frame(self) -> pd.DataFrame:
        frame = pd.DataFrame(
            self.counts,
            index=pd.Index(self.labels, name='true'),
            columns=pd.Index(self.labels, name='predicted'),
        )
        if self.unknown.any():
            frame[UNKNOWN_COLUMN] = self.unknown
        return frame


@dataclass(frozen=True)
class EvaluationResult:
    confusion: ConfusionMatrix
    accuracy: float
    kappa: float
    precision: float
    recall: float
    f1: float
    n_unknown: int

    @property
    def error_rate(self) -> float:
        return 1.0 - self.accuracy

    def metrics(self, training_time: Optional[float] = None) -> ModelMetrics:
        metrics = ModelMetrics(
            Accuracy=self.accuracy,
            Kappa=self.kappa,
            Precision=self.precision,
            Recall=self.recall,
            F1=self.f1,
            Error_Rate=self.error_rate,
        )
        if training_time is not None:
            metrics['Training_Time'] = round(training_time, 3)
        return metrics


def build_confusion_matrix(y_true: Sequence, y_pred: Sequence,
                           labels: Optional[Sequence] = None) -> ConfusionMatrix:
    """Cross-tabulate true against predicted labels.

    ``labels`` is the label set known from training; true labels outside it
    are appended so every row is counted. A prediction outside ``labels``
    lands in the unknown column even when some true label matches it.
    """
    y_true = np.asarray(y_true, dtype=str)
    y_pred = np.asarray(y_pred, dtype=str)
    if len(y_true) != len(y_pred):
        raise InputLengthMismatch(len(y_true), len(y_pred))

    known = [str(label) for label in labels] if labels is not None else sorted(set(y_true))
    predictable = {label: i for i, label in enumerate(known)}
    known += sorted(set(y_true) - set(known))
    position = {label: i for i, label in enumerate(known)}

    counts = np.zeros((len(known), len(known)), dtype=int)
    unknown = np.zeros(len(known), dtype=int)
    rows = np.array([position[label] for label in y_true], dtype=int)
    cols = np.array([predictable.get(label, -1) for label in y_pred], dtype=int)
    hit = cols >= 0
    np.add.at(counts, (rows[hit], cols[hit]), 1)
    np.add.at(unknown, rows[~hit], 1)
    return ConfusionMatrix(labels=tuple(known), counts=counts, unknown=unknown)


def evaluate(y_true: Sequence, y_pred: Sequence, labels: Optional[Sequence] = None,
             strict: bool = False) -> EvaluationResult:
    """Score predictions against the truth.

    Predictions outside ``labels`` count as misses and are logged; with
    ``strict=True`` they raise UnknownLabel instead.
    """
    y_true = np.asarray(y_true, dtype=str)
    y_pred = np.asarray(y_pred, dtype=str)
    if len(y_true) != len(y_pred):
        raise InputLengthMismatch(len(y_true), len(y_pred))

    scored = y_pred
    if labels is not None:
        strange = set(y_pred) - {str(label) for label in labels}
        if strange:
            if strict:
                raise UnknownLabel(strange)
            is_strange = np.isin(y_pred, list(strange))
            logger.warning("Counting %d predictions with unseen labels %s as misses",
                           int(is_strange.sum()), sorted(strange))
            # Unseen predictions never match a true label, not even an equally unseen one
            scored = np.where(is_strange, UNKNOWN_COLUMN, y_pred)

    confusion = build_confusion_matrix(y_true, y_pred, labels)
    if len(y_true) == 0:
        return EvaluationResult(confusion, 0.0, 0.0, 0.0, 0.0, 0.0, 0)

    return EvaluationResult(
        confusion=confusion,
        accuracy=confusion.accuracy,
        kappa=_safe_kappa(y_true, scored),
        precision=float(precision_score(y_true, scored, average='weighted', zero_division=0)),
        recall=float(recall_score(y_true, scored, average='weighted', zero_division=0)),
        f1=float(f1_score(y_true, scored, average='weighted', zero_division=0)),
        n_unknown=int(confusion.unknown.sum()),
    )


def _safe_kappa(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    # Kappa is undefined (0/0) when both sides hold a single identical class
    if len(set(y_true) | set(y_pred)) < 2:
        return 1.0 if np.array_equal(y_true, y_pred) else 0.0
    kappa = cohen_kappa_score(y_true, y_pred)
    return 0.0 if np.isnan(kappa) else float(kappa)
