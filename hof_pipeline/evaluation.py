# hof_pipeline/evaluation.py
from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

import json
import logging
import math
import time

import numpy as np
import pandas as pd

from .artifacts import ArtifactStore
from .data import Dataset, LabelTarget
from .errors import PersistenceError, SchemaError
from .metrics import MetricsReport, classification_metrics, label_agreement, validate_binary_labels
from .models import AlgorithmKind, eligible_kinds, iter_pairs
from .training import PairOutcome, RunConfig

logger = logging.getLogger(__name__)


def _score(predict: Callable[[pd.DataFrame], np.ndarray], validation: Dataset, name: str) -> np.ndarray:
    """Run a reloaded artifact; a model that loads but cannot score is a broken artifact."""
    try:
        return predict(validation.frame)
    except SchemaError:
        raise
    except Exception as e:
        raise PersistenceError(f"Artifact {name} failed to score: {type(e).__name__}: {e}") from e


def _json_safe(row: Dict[str, Any]) -> Dict[str, Any]:
    """Undefined metrics (NaN) become null so the summary stays valid JSON."""
    return {k: (None if isinstance(v, float) and math.isnan(v) else v) for k, v in row.items()}


def evaluate(store: ArtifactStore, kind: AlgorithmKind, label: LabelTarget, validation: Dataset) -> MetricsReport:
    """Reload the native artifact and score it against the validation data (no refitting)."""
    model = store.load(kind, label)
    y_true = validate_binary_labels(validation.labels(label), label.value)
    proba = _score(model.predict_proba, validation, f"{AlgorithmKind(kind).value}_{LabelTarget(label).value}")
    m = classification_metrics(y_true, proba)
    return MetricsReport(kind=AlgorithmKind(kind), label=LabelTarget(label), n_rows=int(y_true.shape[0]), **m)


def evaluate_all(
    store: ArtifactStore,
    validation: Dataset,
    config: RunConfig,
) -> Tuple[List[MetricsReport], List[PairOutcome]]:
    """Metrics pass over the static allow-list; non-eligible kinds are skipped, not errors."""
    reports: List[MetricsReport] = []
    outcomes: List[PairOutcome] = []

    for kind, label in iter_pairs(eligible_kinds(config.kinds), config.labels):
        t0 = time.perf_counter()
        try:
            report = evaluate(store, kind, label, validation)
        except (PersistenceError, SchemaError) as e:
            logger.error("Evaluation failed for %s | %s: %s", kind.value, label.value, e)
            outcomes.append(
                PairOutcome(kind, label, "evaluate", False, f"{type(e).__name__}: {e}", time.perf_counter() - t0)
            )
            continue

        reports.append(report)
        outcomes.append(PairOutcome(kind, label, "evaluate", True, seconds=time.perf_counter() - t0))
        logger.info(
            "Evaluation Metrics for %s | %s: F1=%.4f ROC-AUC=%.4f PR-AUC=%.4f Precision=%.4f "
            "Recall=%.4f Accuracy=%.4f LogLoss=%.4f",
            kind.value,
            label.value,
            report.f1,
            report.roc_auc,
            report.pr_auc,
            report.precision,
            report.recall,
            report.accuracy,
            report.log_loss,
        )

    return reports, outcomes


def format_agreement(store: ArtifactStore, kind: AlgorithmKind, label: LabelTarget, validation: Dataset) -> float:
    """Fraction of validation rows where native and interchange artifacts predict the same class."""
    native = store.load(kind, label)
    portable = store.load_interchange(kind, label)
    name = f"{AlgorithmKind(kind).value}_{LabelTarget(label).value}"
    return label_agreement(
        _score(native.predict_label, validation, name),
        _score(portable.predict_label, validation, name),
    )


def check_format_agreement(
    store: ArtifactStore,
    validation: Dataset,
    config: RunConfig,
) -> List[PairOutcome]:
    """Cross-format consistency for every trained pair (all kinds, not only the eligible ones)."""
    outcomes: List[PairOutcome] = []
    threshold = float(config.min_format_agreement)

    for kind, label in iter_pairs(config.kinds, config.labels):
        t0 = time.perf_counter()
        try:
            agreement = format_agreement(store, kind, label, validation)
        except (PersistenceError, SchemaError) as e:
            logger.error("Format check failed for %s | %s: %s", kind.value, label.value, e)
            outcomes.append(
                PairOutcome(kind, label, "format_check", False, f"{type(e).__name__}: {e}", time.perf_counter() - t0)
            )
            continue

        ok = bool(np.isnan(agreement) or agreement >= threshold)
        error = None if ok else f"native/interchange agreement {agreement:.4f} < {threshold:.4f}"
        if not ok:
            logger.error("Format check failed for %s | %s: %s", kind.value, label.value, error)
        outcomes.append(
            PairOutcome(
                kind,
                label,
                "format_check",
                ok,
                error,
                time.perf_counter() - t0,
                details={"agreement": agreement},
            )
        )
    return outcomes


def write_metrics_report(
    reports: List[MetricsReport],
    outdir: str | Path,
    *,
    format_outcomes: Optional[List[PairOutcome]] = None,
) -> Dict[str, str]:
    """Write validation metrics (CSV + JSON). Recomputable output, not an artifact of record."""
    out = Path(outdir) / "metrics"
    out.mkdir(parents=True, exist_ok=True)

    rows = [r.to_row() for r in reports]
    csv_path = out / "validation_metrics.csv"
    pd.DataFrame(rows).to_csv(csv_path, index=False)

    summary: Dict[str, Any] = {"rows": [_json_safe(r) for r in rows]}
    if format_outcomes is not None:
        summary["format_agreement"] = [_json_safe(o.to_row()) for o in format_outcomes]
    json_path = out / "validation_summary.json"
    with open(json_path, "w", encoding="utf-8") as f:
        json.dump(summary, f, indent=2, default=float, allow_nan=False)

    return {"metrics_csv": str(csv_path), "summary_json": str(json_path)}
