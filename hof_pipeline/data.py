# hof_pipeline/data.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence

import logging

import numpy as np
import pandas as pd

from .errors import SchemaError

logger = logging.getLogger(__name__)


# -----------------------------
# Dataset schema (MLB batter career summaries)
# -----------------------------
METADATA_COLUMNS: List[str] = ["FullPlayerName", "ID", "LastYearPlayed"]

# Every model is trained on exactly this ordered FeatureSet so results stay comparable.
FEATURE_COLUMNS: List[str] = [
    "YearsPlayed",
    "AB",
    "R",
    "H",
    "Doubles",
    "Triples",
    "HR",
    "RBI",
    "SB",
    "BattingAverage",
    "SluggingPct",
    "AllStarAppearances",
    "MVPs",
    "TripleCrowns",
    "GoldGloves",
    "MajorLeaguePlayerOfTheYearAwards",
    "TB",
]


class LabelTarget(str, Enum):
    """Supervised outcomes; the value is the label column name."""

    ON_BALLOT = "OnHallOfFameBallot"
    INDUCTED = "InductedToHallOfFame"


LABEL_COLUMNS: List[str] = [t.value for t in LabelTarget]

EXPECTED_COLUMNS: List[str] = METADATA_COLUMNS + FEATURE_COLUMNS + LABEL_COLUMNS

_BOOL_TOKENS: Dict[str, bool] = {
    "true": True,
    "false": False,
    "1": True,
    "0": False,
    "1.0": True,
    "0.0": False,
}


def get_feature_columns(feature_columns: Optional[Sequence[str]] = None) -> List[str]:
    """Return the FeatureSet after checking it is duplicate-free and disjoint from the labels."""
    cols = list(FEATURE_COLUMNS if feature_columns is None else feature_columns)
    if not cols:
        raise SchemaError("FeatureSet must contain at least one column.")

    dupes = sorted({c for c in cols if cols.count(c) > 1})
    if dupes:
        raise SchemaError(f"Duplicate feature columns: {dupes}")

    leakage = sorted(set(LABEL_COLUMNS).intersection(cols))
    if leakage:
        raise SchemaError(f"Labels must not be in features, but found: {leakage}")
    return cols


def _parse_optional_bool(value: Any) -> Optional[bool]:
    if value is None:
        return None
    if isinstance(value, (bool, np.bool_)):
        return bool(value)
    if isinstance(value, float) and np.isnan(value):
        return None
    return _BOOL_TOKENS.get(str(value).strip().lower())


@dataclass(frozen=True)
class Observation:
    """One batter. Label fields are None when ground truth is not known (prediction time)."""

    full_player_name: str
    id: float
    last_year_played: float
    features: Mapping[str, Any] = field(default_factory=dict)
    on_hall_of_fame_ballot: Optional[bool] = None
    inducted_to_hall_of_fame: Optional[bool] = None

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Observation":
        """Build from CSV-style column names. Absent features are left out, not defaulted."""
        features = {c: record[c] for c in FEATURE_COLUMNS if c in record}
        return cls(
            full_player_name=str(record.get("FullPlayerName", "")),
            id=float(record.get("ID", 0.0)),
            last_year_played=float(record.get("LastYearPlayed", 0.0)),
            features=features,
            on_hall_of_fame_ballot=_parse_optional_bool(record.get(LabelTarget.ON_BALLOT.value)),
            inducted_to_hall_of_fame=_parse_optional_bool(record.get(LabelTarget.INDUCTED.value)),
        )

    def label(self, target: LabelTarget) -> Optional[bool]:
        if target is LabelTarget.ON_BALLOT:
            return self.on_hall_of_fame_ballot
        return self.inducted_to_hall_of_fame

    def to_record(self) -> Dict[str, Any]:
        rec: Dict[str, Any] = {
            "FullPlayerName": self.full_player_name,
            "ID": self.id,
            "LastYearPlayed": self.last_year_played,
        }
        rec.update(dict(self.features))
        rec[LabelTarget.ON_BALLOT.value] = self.on_hall_of_fame_ballot
        rec[LabelTarget.INDUCTED.value] = self.inducted_to_hall_of_fame
        return rec


@dataclass(frozen=True)
class Dataset:
    """A loaded table held in memory for repeated passes. Never mutated after load."""

    name: str
    frame: pd.DataFrame

    def __len__(self) -> int:
        return int(self.frame.shape[0])

    @property
    def columns(self) -> List[str]:
        return self.frame.columns.tolist()

    def features(self, feature_columns: Optional[Sequence[str]] = None) -> pd.DataFrame:
        cols = get_feature_columns(feature_columns)
        validate_required_columns(self.frame, cols)
        return self.frame[cols]

    def labels(self, target: LabelTarget) -> np.ndarray:
        validate_required_columns(self.frame, [target.value])
        return self.frame[target.value].to_numpy().astype(int)

    def observations(self) -> Iterator[Observation]:
        for rec in self.frame.to_dict("records"):
            yield Observation.from_record(rec)


def validate_columns(df: pd.DataFrame) -> None:
    """The table must carry exactly EXPECTED_COLUMNS (case-sensitive); order is free."""
    expected = list(EXPECTED_COLUMNS)
    actual = list(df.columns.tolist())

    missing = [c for c in expected if c not in actual]
    unexpected = [c for c in actual if c not in expected]

    if missing:
        raise SchemaError(f"Missing required columns: {missing}")
    if unexpected:
        raise SchemaError(f"Unexpected columns present (schema must match exactly): {unexpected}")
    if len(actual) != len(set(actual)):
        raise SchemaError(f"Duplicate column names in header: {actual}")


def validate_required_columns(df: pd.DataFrame, required: Sequence[str]) -> None:
    missing = sorted(set(required) - set(df.columns.tolist()))
    if missing:
        raise SchemaError(f"Missing required columns: {missing}")


def _coerce_features(df: pd.DataFrame, source: str) -> pd.DataFrame:
    out = df.copy()
    for c in FEATURE_COLUMNS:
        values = pd.to_numeric(out[c], errors="coerce")
        bad = values.isna() | ~np.isfinite(values.astype(np.float64))
        if bad.any():
            rows = bad[bad].index.tolist()[:5]
            raise SchemaError(f"{source}: column '{c}' has missing/non-numeric/infinite values (rows {rows}).")
        out[c] = values.astype(np.float64)
    return out


def _coerce_labels(df: pd.DataFrame, source: str) -> pd.DataFrame:
    out = df.copy()
    for c in LABEL_COLUMNS:
        parsed = out[c].map(_parse_optional_bool)
        bad = parsed.isna()
        if bad.any():
            rows = bad[bad].index.tolist()[:5]
            raise SchemaError(f"{source}: label '{c}' is not boolean (rows {rows}).")
        out[c] = parsed.astype(bool)
    return out


def load_table(path: str | Path, name: Optional[str] = None) -> Dataset:
    """Read a header-row CSV into a Dataset; any non-conforming row fails the whole load."""
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Dataset not found at {p}.")

    try:
        df = pd.read_csv(p, sep=",")
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        raise SchemaError(f"{p}: unable to parse CSV: {e}") from e

    validate_columns(df)
    df = _coerce_features(df, str(p))
    df = _coerce_labels(df, str(p))
    df = df[EXPECTED_COLUMNS].reset_index(drop=True)

    logger.info("Loaded %s: %d rows from %s", name or p.stem, len(df), p)
    return Dataset(name=name or p.stem, frame=df)
