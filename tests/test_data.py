# tests/test_data.py
from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from hof_pipeline.data import (
    EXPECTED_COLUMNS,
    FEATURE_COLUMNS,
    LABEL_COLUMNS,
    LabelTarget,
    Observation,
    get_feature_columns,
    load_table,
)
from hof_pipeline.errors import SchemaError
from hof_pipeline.pipeline import prepare_data

from .conftest import make_batters


def test_load_table_keeps_schema_and_types(training):
    assert training.columns == EXPECTED_COLUMNS
    assert len(training) == 700
    for c in FEATURE_COLUMNS:
        assert training.frame[c].dtype == np.float64
    for c in LABEL_COLUMNS:
        assert training.frame[c].dtype == bool


def test_labels_are_binary_ints_with_both_classes(training, validation):
    for ds in (training, validation):
        for target in LabelTarget:
            y = ds.labels(target)
            assert set(np.unique(y).tolist()) == {0, 1}


def test_column_order_in_file_is_free(tmp_path):
    df = make_batters(20, seed=5)
    shuffled = df[list(reversed(EXPECTED_COLUMNS))]
    p = tmp_path / "shuffled.csv"
    shuffled.to_csv(p, index=False)

    ds = load_table(p)
    assert ds.columns == EXPECTED_COLUMNS
    pd.testing.assert_series_equal(ds.frame["HR"], df["HR"].astype(float), check_names=True)


def test_missing_column_is_schema_error(tmp_path):
    p = tmp_path / "missing.csv"
    make_batters(10, seed=3).drop(columns=["TB"]).to_csv(p, index=False)
    with pytest.raises(SchemaError, match="TB"):
        load_table(p)


def test_unexpected_column_is_schema_error(tmp_path):
    p = tmp_path / "extra.csv"
    df = make_batters(10, seed=3)
    df["Nickname"] = "x"
    df.to_csv(p, index=False)
    with pytest.raises(SchemaError, match="Nickname"):
        load_table(p)


def test_non_numeric_feature_is_schema_error(tmp_path):
    p = tmp_path / "bad_value.csv"
    df = make_batters(10, seed=3)
    df["HR"] = df["HR"].astype(object)
    df.loc[4, "HR"] = "lots"
    df.to_csv(p, index=False)
    with pytest.raises(SchemaError, match="HR"):
        load_table(p)


def test_non_boolean_label_is_schema_error(tmp_path):
    p = tmp_path / "bad_label.csv"
    df = make_batters(10, seed=3)
    df[LabelTarget.INDUCTED.value] = df[LabelTarget.INDUCTED.value].astype(object)
    df.loc[0, LabelTarget.INDUCTED.value] = "maybe"
    df.to_csv(p, index=False)
    with pytest.raises(SchemaError, match=LabelTarget.INDUCTED.value):
        load_table(p)


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_table(tmp_path / "nope.csv")


def test_feature_set_rejects_labels_and_duplicates():
    with pytest.raises(SchemaError, match="Labels must not be in features"):
        get_feature_columns(["H", LabelTarget.ON_BALLOT.value])
    with pytest.raises(SchemaError, match="Duplicate"):
        get_feature_columns(["H", "H"])
    assert get_feature_columns() == FEATURE_COLUMNS


def test_observation_allows_unset_labels():
    obs = Observation.from_record({"FullPlayerName": "Nobody", "H": 10.0})
    assert obs.label(LabelTarget.ON_BALLOT) is None
    assert obs.label(LabelTarget.INDUCTED) is None
    assert dict(obs.features) == {"H": 10.0}


def test_observations_round_trip_records(validation):
    first = next(validation.observations())
    rec = first.to_record()
    assert rec["FullPlayerName"] == validation.frame.loc[0, "FullPlayerName"]
    assert rec[LabelTarget.ON_BALLOT.value] == bool(validation.frame.loc[0, LabelTarget.ON_BALLOT.value])
    assert set(FEATURE_COLUMNS).issubset(rec)


def test_prepare_data_loads_both_tables(train_csv, validation_csv):
    data = prepare_data(train_csv, validation_csv)
    assert len(data.train) == 700
    assert len(data.validation) == 300
    assert data.feature_columns == FEATURE_COLUMNS


@pytest.mark.parametrize("token", ["inf", "-inf"])
def test_infinite_feature_is_schema_error(tmp_path, token):
    p = tmp_path / "infinite.csv"
    df = make_batters(10, seed=3)
    df["AB"] = df["AB"].astype(object)
    df.loc[0, "AB"] = token
    df.to_csv(p, index=False)
    with pytest.raises(SchemaError, match="AB"):
        load_table(p)
