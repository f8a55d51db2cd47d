# hof_pipeline/artifacts.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Sequence, Tuple

import logging
import os

import joblib
import numpy as np
import pandas as pd
from scipy.special import expit
from sklearn.pipeline import Pipeline

from .data import LabelTarget
from .errors import PersistenceError, SchemaError
from .interchange import InterchangeModel, convert_pipeline, save_onnx
from .models import AlgorithmKind

logger = logging.getLogger(__name__)


class ArtifactFormat(str, Enum):
    NATIVE = "native"
    INTERCHANGE = "interchange"

    @property
    def suffix(self) -> str:
        return ".joblib" if self is ArtifactFormat.NATIVE else ".onnx"


ArtifactKey = Tuple[AlgorithmKind, LabelTarget, ArtifactFormat]


def project_features(frame: pd.DataFrame, feature_columns: Sequence[str]) -> pd.DataFrame:
    """Select features by name in training order; positions in `frame` are irrelevant."""
    missing = [c for c in feature_columns if c not in frame.columns]
    if missing:
        raise SchemaError(f"Missing required feature columns: {missing}")
    return frame[list(feature_columns)]


@dataclass
class TrainedModel:
    """A fitted feature pipeline + classifier for one (kind, label) pair."""

    kind: AlgorithmKind
    label: LabelTarget
    feature_columns: Tuple[str, ...]
    pipeline: Pipeline
    seed: int
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def emits_probability(self) -> bool:
        return hasattr(self.pipeline, "predict_proba")

    def predict_proba(self, X_df: pd.DataFrame) -> np.ndarray:
        """Positive-class probability; sigmoid of the decision score for uncalibrated kinds."""
        X = project_features(X_df, self.feature_columns)
        if self.emits_probability:
            p = self.pipeline.predict_proba(X)[:, 1]
        else:
            p = expit(np.asarray(self.pipeline.decision_function(X), dtype=np.float64))
        return np.asarray(p, dtype=np.float64).ravel()

    def predict_label(self, X_df: pd.DataFrame) -> np.ndarray:
        X = project_features(X_df, self.feature_columns)
        return np.asarray(self.pipeline.predict(X)).astype(int).ravel()


def _atomic_write_all(writers: Dict[Path, Callable[[Path], None]]) -> None:
    """
    Serialize every target to a sibling temp file, then rename them all into place.

    Nothing is renamed until every writer has succeeded, so a failure leaves any
    previously persisted files untouched.
    """
    tmps: Dict[Path, Path] = {}
    try:
        for path, writer in writers.items():
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp = path.with_name(f"{path.name}.{os.getpid()}.tmp")
            tmps[path] = tmp
            writer(tmp)
        for path, tmp in tmps.items():
            os.replace(tmp, path)
    except Exception as e:
        for tmp in tmps.values():
            if tmp.exists():
                tmp.unlink()
        raise PersistenceError(f"Unable to write artifacts {sorted(str(p) for p in writers)}: {e}") from e


@dataclass(frozen=True)
class ArtifactStore:
    """
    Directory of model artifacts under a base application path.

    Layout: <base>/models/<AlgorithmKind>_<LabelTarget>.{joblib,onnx}
    Kind and label names carry no underscore, so the file name identifies the key.
    """

    base_dir: Path

    @property
    def models_dir(self) -> Path:
        return Path(self.base_dir) / "models"

    def path_for(self, kind: AlgorithmKind, label: LabelTarget, fmt: ArtifactFormat = ArtifactFormat.NATIVE) -> Path:
        k = AlgorithmKind(kind).value
        t = LabelTarget(label).value
        return self.models_dir / f"{k}_{t}{ArtifactFormat(fmt).suffix}"

    def exists(self, kind: AlgorithmKind, label: LabelTarget, fmt: ArtifactFormat = ArtifactFormat.NATIVE) -> bool:
        return self.path_for(kind, label, fmt).exists()

    def keys(self) -> List[ArtifactKey]:
        out: List[ArtifactKey] = []
        if not self.models_dir.exists():
            return out
        by_suffix = {f.suffix: f for f in ArtifactFormat}
        for p in sorted(self.models_dir.iterdir()):
            fmt = by_suffix.get(p.suffix)
            if fmt is None or not p.is_file():
                continue
            kind_name, _, label_name = p.stem.partition("_")
            try:
                out.append((AlgorithmKind(kind_name), LabelTarget(label_name), fmt))
            except ValueError:
                continue
        return out

    # -----------------------------
    # Save
    # -----------------------------
    def save(self, model: TrainedModel) -> Dict[ArtifactFormat, Path]:
        """
        Persist both formats for the model's key (overwrites any earlier run).

        The interchange graph is built before anything touches disk and both files
        are committed together, so the pair on disk always encodes one fit.
        """
        name = f"{model.kind.value}_{model.label.value}"
        try:
            onx = convert_pipeline(
                model.pipeline,
                model.feature_columns,
                name=name,
                metadata={"kind": model.kind.value, "label": model.label.value, "seed": model.seed},
            )
        except Exception as e:
            raise PersistenceError(f"Unable to convert {name} to the interchange format: {e}") from e

        meta = dict(model.metadata)
        meta["saved_utc"] = datetime.now(timezone.utc).isoformat(timespec="seconds")
        model.metadata = meta

        paths = {fmt: self.path_for(model.kind, model.label, fmt) for fmt in ArtifactFormat}
        _atomic_write_all(
            {
                paths[ArtifactFormat.NATIVE]: lambda tmp: joblib.dump(model, tmp),
                paths[ArtifactFormat.INTERCHANGE]: lambda tmp: save_onnx(onx, tmp),
            }
        )
        logger.info("Saved %s | %s -> %s", model.kind.value, model.label.value, self.models_dir)
        return paths

    # -----------------------------
    # Load
    # -----------------------------
    def load(self, kind: AlgorithmKind, label: LabelTarget) -> TrainedModel:
        path = self.path_for(kind, label, ArtifactFormat.NATIVE)
        if not path.exists():
            raise PersistenceError(f"Artifact not found: {path}")
        try:
            obj = joblib.load(path)
        except Exception as e:
            raise PersistenceError(f"Unable to read artifact {path}: {e}") from e

        if not isinstance(obj, TrainedModel):
            raise PersistenceError(f"Loaded object is not a TrainedModel: {type(obj)}")
        if obj.kind != AlgorithmKind(kind) or obj.label != LabelTarget(label):
            raise PersistenceError(
                f"Artifact {path} holds {obj.kind.value} | {obj.label.value}, "
                f"expected {AlgorithmKind(kind).value} | {LabelTarget(label).value}"
            )
        return obj

    def load_interchange(self, kind: AlgorithmKind, label: LabelTarget) -> InterchangeModel:
        path = self.path_for(kind, label, ArtifactFormat.INTERCHANGE)
        if not path.exists():
            raise PersistenceError(f"Artifact not found: {path}")
        try:
            return InterchangeModel(path)
        except Exception as e:
            raise PersistenceError(f"Unable to read artifact {path}: {e}") from e
