# tests/conftest.py
from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict

import numpy as np
import pandas as pd
import pytest

from hof_pipeline.artifacts import ArtifactStore
from hof_pipeline.data import EXPECTED_COLUMNS, Dataset, LabelTarget, load_table
from hof_pipeline.training import RunConfig, train_all


def make_batters(n: int, seed: int) -> pd.DataFrame:
    """
    Synthetic career summaries driven by one latent talent value.

    Every counting stat grows with talent, and both labels are deterministic
    thresholds on hits / home runs / all-star games, so better careers are
    never less likely to be on the ballot or inducted.
    """
    rng = np.random.default_rng(seed)
    talent = rng.uniform(0.0, 1.0, n) ** 1.3

    years = np.clip(np.round(2 + 19 * talent + rng.normal(0, 1.0, n)), 1, 24)
    ab = np.round(years * (250 + 260 * talent + rng.normal(0, 15, n)))
    ba = np.clip(0.220 + 0.110 * talent + rng.normal(0, 0.006, n), 0.180, 0.370)
    h = np.round(ab * ba)
    doubles = np.round(h * (0.15 + 0.04 * talent))
    triples = np.round(h * rng.uniform(0.005, 0.04, n))
    hr = np.round(ab * (0.008 + 0.055 * talent))
    rbi = np.round(ab * (0.08 + 0.10 * talent))
    runs = np.round(ab * (0.10 + 0.08 * talent))
    sb = np.round(ab * rng.uniform(0.0, 0.04, n))
    tb = h + doubles + 2 * triples + 3 * hr
    slg = np.where(ab > 0, tb / np.maximum(ab, 1), 0.0)
    all_star = np.clip(np.round(15 * talent**2 + rng.normal(0, 0.5, n)), 0, 18)
    mvps = np.where(talent > 0.85, rng.integers(0, 3, n), 0)
    triple_crowns = np.where(talent > 0.95, rng.integers(0, 2, n), 0)
    gold_gloves = np.round(rng.uniform(0, 1, n) * 8 * talent)
    mlpoy = np.where(talent > 0.8, rng.integers(0, 3, n), 0)

    on_ballot = (h >= 1800) | (hr >= 330) | (all_star >= 7)
    inducted = (h >= 2700) | (hr >= 480) | ((all_star >= 11) & (h >= 2000))

    df = pd.DataFrame(
        {
            "FullPlayerName": [f"Player {seed}-{i}" for i in range(n)],
            "ID": np.arange(n, dtype=float) + 1000 * seed,
            "LastYearPlayed": np.round(1950 + rng.uniform(0, 60, n)),
            "YearsPlayed": years,
            "AB": ab,
            "R": runs,
            "H": h,
            "Doubles": doubles,
            "Triples": triples,
            "HR": hr,
            "RBI": rbi,
            "SB": sb,
            "BattingAverage": np.round(ba, 3),
            "SluggingPct": np.round(slg, 3),
            "AllStarAppearances": all_star,
            "MVPs": mvps.astype(float),
            "TripleCrowns": triple_crowns.astype(float),
            "GoldGloves": gold_gloves,
            "MajorLeaguePlayerOfTheYearAwards": mlpoy.astype(float),
            "TB": tb,
            LabelTarget.ON_BALLOT.value: on_ballot,
            LabelTarget.INDUCTED.value: inducted,
        }
    )
    return df[EXPECTED_COLUMNS]


@pytest.fixture(autouse=True)
def capture_pipeline_logs(caplog):
    caplog.set_level(logging.INFO, logger="hof_pipeline")
    yield


@pytest.fixture(scope="session")
def data_dir(tmp_path_factory) -> Path:
    base = tmp_path_factory.mktemp("data")
    make_batters(700, seed=1).to_csv(base / "train.csv", index=False)
    make_batters(300, seed=2).to_csv(base / "validation.csv", index=False)
    return base


@pytest.fixture(scope="session")
def train_csv(data_dir: Path) -> Path:
    return data_dir / "train.csv"


@pytest.fixture(scope="session")
def validation_csv(data_dir: Path) -> Path:
    return data_dir / "validation.csv"


@pytest.fixture(scope="session")
def training(train_csv: Path) -> Dataset:
    return load_table(train_csv, name="train")


@pytest.fixture(scope="session")
def validation(validation_csv: Path) -> Dataset:
    return load_table(validation_csv, name="validation")


@pytest.fixture(scope="session")
def run_config(tmp_path_factory, train_csv: Path, validation_csv: Path) -> RunConfig:
    outdir = tmp_path_factory.mktemp("run")
    return RunConfig(
        train_data=str(train_csv),
        validation_data=str(validation_csv),
        outdir=str(outdir),
        seed=200,
        n_jobs=1,
    )


@pytest.fixture(scope="session")
def trained_store(run_config: RunConfig, training: Dataset) -> ArtifactStore:
    """Every (kind, label) pair trained once and persisted in both formats."""
    store = run_config.store()
    outcomes = train_all(training, store, run_config)
    failed: Dict[str, str] = {f"{o.kind.value}|{o.label.value}": str(o.error) for o in outcomes if not o.ok}
    assert not failed, failed
    return store
