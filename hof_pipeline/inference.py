# hof_pipeline/inference.py
"""
Single-row inference over a reloaded native artifact.

A Predictor is built once per (kind, label) artifact and reused for many
observations. Observations are not required to carry labels.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

import logging
import math
import numbers

import pandas as pd

from .artifacts import ArtifactStore, TrainedModel
from .data import LabelTarget, Observation
from .errors import PredictionInputError
from .models import AlgorithmKind

logger = logging.getLogger(__name__)

ObservationLike = Union[Observation, Mapping[str, Any]]


@dataclass(frozen=True)
class PredictionResult:
    predicted_label: bool
    probability: float


class Predictor:
    def __init__(self, model: TrainedModel):
        self.model = model
        self.feature_columns = list(model.feature_columns)

    @classmethod
    def from_store(cls, store: ArtifactStore, kind: AlgorithmKind, label: LabelTarget) -> "Predictor":
        return cls(store.load(kind, label))

    @property
    def kind(self) -> AlgorithmKind:
        return self.model.kind

    @property
    def label(self) -> LabelTarget:
        return self.model.label

    def _to_frame(self, observation: ObservationLike) -> pd.DataFrame:
        if isinstance(observation, Observation):
            values: Mapping[str, Any] = observation.features
        elif isinstance(observation, Mapping):
            values = observation
        else:
            raise PredictionInputError(f"Unsupported observation type: {type(observation)}")

        missing = [c for c in self.feature_columns if c not in values]
        if missing:
            raise PredictionInputError(f"Observation is missing required features: {missing}")

        row: Dict[str, float] = {}
        for c in self.feature_columns:
            v = values[c]
            if isinstance(v, bool) or not isinstance(v, numbers.Real) or not math.isfinite(float(v)):
                raise PredictionInputError(f"Feature '{c}' must be a finite number, got {v!r}")
            row[c] = float(v)
        return pd.DataFrame([row], columns=self.feature_columns)

    def predict(self, observation: ObservationLike) -> PredictionResult:
        X = self._to_frame(observation)
        label = int(self.model.predict_label(X)[0])
        proba = float(self.model.predict_proba(X)[0])
        return PredictionResult(predicted_label=bool(label), probability=proba)

    def predict_many(self, observations: Iterable[ObservationLike]) -> List[PredictionResult]:
        return [self.predict(o) for o in observations]


def sample_observations() -> List[Observation]:
    """Three fictitious batters (bad, average, great) with unset labels."""
    bad = {
        "FullPlayerName": "Bad Player",
        "ID": 100.0,
        "LastYearPlayed": 0.0,
        "YearsPlayed": 2.0,
        "AB": 100.0,
        "R": 10.0,
        "H": 30.0,
        "Doubles": 1.0,
        "Triples": 1.0,
        "HR": 1.0,
        "RBI": 10.0,
        "SB": 10.0,
        "BattingAverage": 0.3,
        "SluggingPct": 0.15,
        "AllStarAppearances": 1.0,
        "MVPs": 0.0,
        "TripleCrowns": 0.0,
        "GoldGloves": 0.0,
        "MajorLeaguePlayerOfTheYearAwards": 0.0,
        "TB": 200.0,
    }
    average = {
        "FullPlayerName": "Average Player",
        "ID": 100.0,
        "LastYearPlayed": 0.0,
        "YearsPlayed": 2.0,
        "AB": 8393.0,
        "R": 1162.0,
        "H": 2340.0,
        "Doubles": 410.0,
        "Triples": 8.0,
        "HR": 439.0,
        "RBI": 1412.0,
        "SB": 9.0,
        "BattingAverage": 0.279,
        "SluggingPct": 0.486,
        "AllStarAppearances": 6.0,
        "MVPs": 0.0,
        "TripleCrowns": 0.0,
        "GoldGloves": 0.0,
        "MajorLeaguePlayerOfTheYearAwards": 0.0,
        "TB": 4083.0,
    }
    great = {
        "FullPlayerName": "Great Player",
        "ID": 100.0,
        "LastYearPlayed": 0.0,
        "YearsPlayed": 20.0,
        "AB": 10000.0,
        "R": 1900.0,
        "H": 3500.0,
        "Doubles": 500.0,
        "Triples": 150.0,
        "HR": 600.0,
        "RBI": 1800.0,
        "SB": 400.0,
        "BattingAverage": 0.350,
        "SluggingPct": 0.65,
        "AllStarAppearances": 14.0,
        "MVPs": 2.0,
        "TripleCrowns": 1.0,
        "GoldGloves": 4.0,
        "MajorLeaguePlayerOfTheYearAwards": 2.0,
        "TB": 7000.0,
    }
    return [Observation.from_record(r) for r in (bad, average, great)]


def predict_samples(
    store: ArtifactStore,
    kind: AlgorithmKind,
    labels: Sequence[LabelTarget] = tuple(LabelTarget),
    observations: Optional[Sequence[Observation]] = None,
) -> pd.DataFrame:
    """One row per (player, label). Each artifact is loaded once for all players."""
    obs = list(sample_observations() if observations is None else observations)
    rows: List[Dict[str, Any]] = []
    for label in labels:
        predictor = Predictor.from_store(store, kind, label)
        for o in obs:
            res = predictor.predict(o)
            rows.append(
                {
                    "player": o.full_player_name,
                    "kind": AlgorithmKind(kind).value,
                    "label": LabelTarget(label).value,
                    "prediction": bool(res.predicted_label),
                    "probability": float(res.probability),
                }
            )
            logger.info(
                "%s | %s prediction: %s | Probability: %.4f",
                o.full_player_name,
                LabelTarget(label).value,
                res.predicted_label,
                res.probability,
            )
    return pd.DataFrame(rows)


def write_predictions(df: pd.DataFrame, outdir: str | Path) -> str:
    out_path = Path(outdir) / "predictions" / "sample_predictions.csv"
    out_path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(out_path, index=False)
    return str(out_path)
