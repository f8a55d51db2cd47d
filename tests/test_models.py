# tests/test_models.py
from __future__ import annotations

import pytest
from sklearn.pipeline import Pipeline

from hof_pipeline.data import FEATURE_COLUMNS, LabelTarget
from hof_pipeline.errors import SchemaError
from hof_pipeline.models import (
    METRICS_ELIGIBLE,
    AlgorithmKind,
    eligible_kinds,
    final_classifier,
    instantiate,
    iter_pairs,
    supported_kinds,
)
from hof_pipeline.pipeline import build_feature_pipeline
from hof_pipeline.training import derive_pair_seed


def test_every_kind_has_a_builder():
    assert supported_kinds() == list(AlgorithmKind)
    assert len(AlgorithmKind) == 10


def test_kind_values_are_artifact_safe():
    for k in AlgorithmKind:
        assert "_" not in k.value
    for t in LabelTarget:
        assert "_" not in t.value


def test_eligible_kinds_are_stable_and_ordered():
    expected = [
        AlgorithmKind.LIGHT_GBM,
        AlgorithmKind.LOGISTIC_REGRESSION,
        AlgorithmKind.FAST_TREE,
        AlgorithmKind.FIELD_AWARE_FACTORIZATION,
        AlgorithmKind.SGD_CALIBRATED,
        AlgorithmKind.GENERALIZED_ADDITIVE_MODELS,
    ]
    assert eligible_kinds() == expected
    assert eligible_kinds() == eligible_kinds()
    assert set(expected) == set(METRICS_ELIGIBLE)
    assert not AlgorithmKind.LINEAR_SVM.metrics_eligible
    assert not AlgorithmKind.AVERAGED_PERCEPTRON.metrics_eligible
    assert not AlgorithmKind.FAST_FOREST.metrics_eligible
    assert not AlgorithmKind.SGD_NON_CALIBRATED.metrics_eligible


def test_eligible_kinds_filters_a_subset():
    subset = [AlgorithmKind.LINEAR_SVM, AlgorithmKind.FAST_TREE, AlgorithmKind.LIGHT_GBM]
    assert eligible_kinds(subset) == [AlgorithmKind.LIGHT_GBM, AlgorithmKind.FAST_TREE]


def test_iter_pairs_is_full_cross_product():
    pairs = list(iter_pairs())
    assert len(pairs) == len(AlgorithmKind) * len(LabelTarget)
    assert len(set(pairs)) == len(pairs)


@pytest.mark.parametrize("kind", list(AlgorithmKind))
def test_instantiate_binds_label_and_features(kind):
    pre = build_feature_pipeline(FEATURE_COLUMNS)
    est = instantiate(kind, LabelTarget.INDUCTED, pre, seed=7)
    assert est.kind is kind
    assert est.label is LabelTarget.INDUCTED
    assert est.feature_columns == tuple(FEATURE_COLUMNS)
    assert isinstance(est.pipeline, Pipeline)
    assert est.pipeline.named_steps["preprocess"] is pre
    assert final_classifier(est.pipeline) is not None


def test_instantiate_rejects_unknown_kind_and_label():
    pre = build_feature_pipeline(FEATURE_COLUMNS)
    with pytest.raises(ValueError):
        instantiate("NotAnAlgorithm", LabelTarget.ON_BALLOT, pre, seed=1)
    with pytest.raises(ValueError):
        instantiate(AlgorithmKind.FAST_TREE, "OnBallot", pre, seed=1)


def test_feature_pipeline_rejects_absent_columns():
    with pytest.raises(SchemaError, match="absent"):
        build_feature_pipeline(FEATURE_COLUMNS, schema_columns=FEATURE_COLUMNS[:-1])


def test_pair_seeds_are_deterministic_and_distinct():
    seeds = {(k, t): derive_pair_seed(200, k, t) for k, t in iter_pairs()}
    assert seeds == {(k, t): derive_pair_seed(200, k, t) for k, t in iter_pairs()}
    assert len(set(seeds.values())) == len(seeds)
    assert derive_pair_seed(201, AlgorithmKind.FAST_TREE, LabelTarget.INDUCTED) != seeds[
        (AlgorithmKind.FAST_TREE, LabelTarget.INDUCTED)
    ]
    assert all(0 <= s < 2**31 - 1 for s in seeds.values())
