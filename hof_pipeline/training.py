# hof_pipeline/training.py
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import logging
import os
import time
import warnings
import zlib

import numpy as np
import sklearn
from joblib import Parallel, delayed
from sklearn.base import clone
from sklearn.exceptions import ConvergenceWarning

from .artifacts import ArtifactStore, TrainedModel
from .data import FEATURE_COLUMNS, Dataset, LabelTarget
from .errors import FitError, PersistenceError, SchemaError
from .metrics import validate_binary_labels
from .models import CAPPED_ITERATION_KINDS, AlgorithmKind, Estimator, instantiate, iter_pairs
from .pipeline import build_feature_pipeline

logger = logging.getLogger(__name__)


# -----------------------------
# Run settings (can be overridden via CLI/env)
# -----------------------------
DEFAULT_SEED: int = int(os.environ.get("SEED", "200"))
DEFAULT_N_JOBS: int = int(os.environ.get("N_JOBS", str(os.cpu_count() or 1)))


@dataclass(frozen=True)
class RunConfig:
    train_data: str = "./Data/BaseballHOFTrainingv2.csv"
    validation_data: str = "./Data/BaseballHOFValidationv2.csv"
    outdir: str = "outputs"

    # Single run-level seed; every pair derives its own from it (see derive_pair_seed)
    seed: int = DEFAULT_SEED
    n_jobs: int = DEFAULT_N_JOBS

    kinds: Tuple[AlgorithmKind, ...] = tuple(AlgorithmKind)
    labels: Tuple[LabelTarget, ...] = tuple(LabelTarget)
    feature_columns: Tuple[str, ...] = tuple(FEATURE_COLUMNS)

    # Prediction stage
    prediction_kind: AlgorithmKind = AlgorithmKind.GENERALIZED_ADDITIVE_MODELS

    # Native vs interchange label agreement required on validation rows
    min_format_agreement: float = 0.99

    def store(self) -> ArtifactStore:
        return ArtifactStore(Path(self.outdir))


@dataclass
class PairOutcome:
    kind: AlgorithmKind
    label: LabelTarget
    stage: str
    ok: bool
    error: Optional[str] = None
    seconds: float = 0.0
    details: Dict[str, Any] = field(default_factory=dict)

    def to_row(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "label": self.label.value,
            "stage": self.stage,
            "ok": bool(self.ok),
            "error": self.error,
            "seconds": round(float(self.seconds), 3),
            **self.details,
        }


def derive_pair_seed(seed: int, kind: AlgorithmKind, label: LabelTarget) -> int:
    """Pair-local seed: stable across runs and processes (crc32, not hash())."""
    key = f"{AlgorithmKind(kind).value}|{LabelTarget(label).value}".encode("utf-8")
    return int((int(seed) + zlib.crc32(key)) % (2**31 - 1))


def fit(estimator: Estimator, training: Dataset) -> TrainedModel:
    """Fit a fresh copy of the estimator's pipeline on the training data (single attempt)."""
    X = training.features(estimator.feature_columns)
    if X.shape[0] == 0:
        raise FitError(f"{estimator.kind.value} | {estimator.label.value}: training data is empty.")

    y = validate_binary_labels(training.labels(estimator.label), estimator.label.value)
    if len(np.unique(y)) < 2:
        raise FitError(
            f"{estimator.kind.value} | {estimator.label.value}: label has a single class "
            f"({int(y[0])}); cannot fit a binary classifier."
        )

    pipe = clone(estimator.pipeline)
    with warnings.catch_warnings():
        if estimator.kind in CAPPED_ITERATION_KINDS:
            warnings.simplefilter("ignore", category=ConvergenceWarning)
        try:
            pipe.fit(X, y)
        except Exception as e:
            raise FitError(f"{estimator.kind.value} | {estimator.label.value}: fit failed: {e}") from e

    preprocess = pipe.named_steps["preprocess"]
    return TrainedModel(
        kind=estimator.kind,
        label=estimator.label,
        feature_columns=tuple(estimator.feature_columns),
        pipeline=pipe,
        seed=int(estimator.seed),
        metadata={
            "fitted_feature_names": [str(c) for c in preprocess.get_feature_names_out()],
            "n_train_rows": int(X.shape[0]),
            "positive_rate": float(np.mean(y)),
            "sklearn_version": sklearn.__version__,
        },
    )


def train_pair(
    kind: AlgorithmKind,
    label: LabelTarget,
    training: Dataset,
    store: ArtifactStore,
    seed: int,
    feature_columns: Sequence[str] = tuple(FEATURE_COLUMNS),
) -> PairOutcome:
    """Untrained -> Fitted -> Persisted for one pair. Pair-local failures are reported, not raised."""
    t0 = time.perf_counter()
    try:
        pre = build_feature_pipeline(feature_columns, schema_columns=training.columns)
        est = instantiate(kind, label, pre, seed=derive_pair_seed(seed, kind, label))
        model = fit(est, training)
        paths = store.save(model)
    except (SchemaError, FitError, PersistenceError) as e:
        return PairOutcome(
            kind=kind,
            label=label,
            stage="train",
            ok=False,
            error=f"{type(e).__name__}: {e}",
            seconds=time.perf_counter() - t0,
        )

    return PairOutcome(
        kind=kind,
        label=label,
        stage="train",
        ok=True,
        seconds=time.perf_counter() - t0,
        details={f"{fmt.value}_path": str(p) for fmt, p in paths.items()},
    )


def train_all(training: Dataset, store: ArtifactStore, config: RunConfig) -> List[PairOutcome]:
    """Fan every (kind, label) pair out over a worker pool bounded by n_jobs."""
    pairs = list(iter_pairs(config.kinds, config.labels))
    n_jobs = max(1, min(int(config.n_jobs), len(pairs))) if pairs else 1
    logger.info("Training %d models on %d rows (%d workers, seed=%d)", len(pairs), len(training), n_jobs, config.seed)

    outcomes: List[PairOutcome] = Parallel(n_jobs=n_jobs)(
        delayed(train_pair)(k, t, training, store, config.seed, config.feature_columns) for k, t in pairs
    )

    for o in outcomes:
        if o.ok:
            logger.info("Trained %s | %s in %.2fs", o.kind.value, o.label.value, o.seconds)
        else:
            logger.error("Training failed for %s | %s: %s", o.kind.value, o.label.value, o.error)
    return outcomes
