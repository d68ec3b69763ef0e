"""Exceptions raised by the feature selection and model comparison pipeline."""

from typing import Iterable, Optional


class PipelineError(Exception):
    """Base class for every pipeline error."""


class SchemaMismatch(PipelineError, ValueError):
    """A dataset lacks columns retained from the reference dataset."""

    def __init__(self, missing: Iterable[str], stage: str = ''):
        self.missing = list(missing)
        self.stage = stage
        where = f" at {stage}" if stage else ''
        super().__init__(f"Dataset is missing reference columns{where}: {self.missing}")


class DegenerateColumn(PipelineError, ValueError):
    """A column with zero learned standard deviation reached normalization."""

    def __init__(self, columns: Iterable[str]):
        self.columns = list(columns)
        super().__init__(f"Cannot scale zero-variance columns: {self.columns}")


class TrainingFailure(PipelineError, RuntimeError):
    """A classifier strategy could not produce a trained model."""

    def __init__(self, strategy: str, reason: str):
        self.strategy = strategy
        self.reason = reason
        super().__init__(f"{strategy} failed to train: {reason}")


class AllStrategiesFailed(TrainingFailure):
    """No classifier strategy produced a trained model."""

    def __init__(self, failures: Optional[dict] = None):
        self.failures = dict(failures or {})
        detail = "; ".join(f"{name}: {msg}" for name, msg in self.failures.items())
        super().__init__('ModelSelector', f"no models trained successfully ({detail})")


class InputLengthMismatch(PipelineError, ValueError):
    """True and predicted label sequences differ in length."""

    def __init__(self, n_true: int, n_pred: int):
        self.n_true = n_true
        self.n_pred = n_pred
        super().__init__(f"Got {n_true} true labels but {n_pred} predictions")


class UnknownLabel(PipelineError, ValueError):
    """A prediction falls outside the label set observed during training."""

    def __init__(self, labels: Iterable[str]):
        self.labels = sorted(str(label) for label in labels)
        super().__init__(f"Predicted labels not seen during training: {self.labels}")
