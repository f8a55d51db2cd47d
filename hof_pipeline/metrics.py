# hof_pipeline/metrics.py
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict

import numpy as np
import pandas as pd
from sklearn.metrics import (
    accuracy_score,
    average_precision_score,
    f1_score,
    log_loss,
    precision_score,
    recall_score,
    roc_auc_score,
)

from .data import LabelTarget
from .errors import FitError
from .models import AlgorithmKind

METRIC_NAMES = ("f1", "roc_auc", "pr_auc", "precision", "recall", "accuracy", "log_loss")


@dataclass(frozen=True)
class MetricsReport:
    kind: AlgorithmKind
    label: LabelTarget
    f1: float
    roc_auc: float
    pr_auc: float
    precision: float
    recall: float
    accuracy: float
    log_loss: float
    n_rows: int

    def to_row(self) -> Dict[str, Any]:
        row = asdict(self)
        row["kind"] = self.kind.value
        row["label"] = self.label.value
        return row


def validate_binary_labels(y: Any, target: str) -> np.ndarray:
    """Validate and coerce binary labels to int {0,1}."""
    arr = np.asarray(y)
    if arr.size == 0:
        raise FitError(f"Target '{target}' has no labels.")
    if pd.isna(arr).any():
        raise FitError(f"Classification target '{target}' contains NaN labels.")

    uniq = np.unique(arr)
    if not set(uniq.tolist()).issubset({0, 1, False, True, 0.0, 1.0}):
        raise FitError(f"Classification target '{target}' must be binary in {{0,1}}; found values: {uniq.tolist()}")
    return arr.astype(int)


def classification_metrics(
    y_true: np.ndarray,
    y_proba: np.ndarray,
    *,
    threshold: float = 0.5,
) -> Dict[str, float]:
    """The fixed metric set; identical definitions for every algorithm kind."""
    y_true = np.asarray(y_true, dtype=int).ravel()
    p = np.asarray(y_proba, dtype=float).ravel()
    # Numerical safety: avoid exactly 0/1 probabilities (logloss can overflow)
    p = np.clip(p, 1e-6, 1.0 - 1e-6)
    y_pred = (p >= float(threshold)).astype(int)

    out: Dict[str, float] = {
        "f1": float(f1_score(y_true, y_pred, zero_division=0)),
        "precision": float(precision_score(y_true, y_pred, zero_division=0)),
        "recall": float(recall_score(y_true, y_pred, zero_division=0)),
        "accuracy": float(accuracy_score(y_true, y_pred)),
        "log_loss": float(log_loss(y_true, p, labels=[0, 1])),
    }

    # AUC metrics undefined if only one class present
    if len(np.unique(y_true)) == 2:
        out["roc_auc"] = float(roc_auc_score(y_true, p))
        out["pr_auc"] = float(average_precision_score(y_true, p))
    else:
        out["roc_auc"] = float("nan")
        out["pr_auc"] = float("nan")

    return out


def label_agreement(a: np.ndarray, b: np.ndarray) -> float:
    """Fraction of positions where two label vectors agree."""
    a = np.asarray(a, dtype=int).ravel()
    b = np.asarray(b, dtype=int).ravel()
    if a.shape != b.shape:
        raise ValueError(f"Shape mismatch: {a.shape} vs {b.shape}")
    if a.size == 0:
        return float("nan")
    return float(np.mean(a == b))
