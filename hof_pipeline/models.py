# hof_pipeline/models.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from lightgbm import LGBMClassifier
from sklearn.compose import ColumnTransformer
from sklearn.ensemble import RandomForestClassifier
from sklearn.linear_model import LogisticRegression, SGDClassifier
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import PolynomialFeatures
from xgboost import XGBClassifier

from .data import LabelTarget
from .xgb_utils import make_xgb_common_params


class AlgorithmKind(str, Enum):
    """Supported classifier families; the value is the name used for artifacts."""

    LIGHT_GBM = "LightGbm"
    LOGISTIC_REGRESSION = "LogisticRegression"
    AVERAGED_PERCEPTRON = "AveragedPerceptron"
    FAST_FOREST = "FastForest"
    FAST_TREE = "FastTree"
    FIELD_AWARE_FACTORIZATION = "FieldAwareFactorization"
    SGD_CALIBRATED = "StochasticGradientDescentCalibrated"
    SGD_NON_CALIBRATED = "StochasticGradientDescentNonCalibrated"
    GENERALIZED_ADDITIVE_MODELS = "GeneralizedAdditiveModels"
    LINEAR_SVM = "LinearSupportVectorMachines"

    @property
    def metrics_eligible(self) -> bool:
        """Static tag: the kind emits a calibrated probability usable for the metric report."""
        return self in METRICS_ELIGIBLE


# Kinds whose output is a probability; also the extension point for explainability.
METRICS_ELIGIBLE = frozenset(
    {
        AlgorithmKind.FIELD_AWARE_FACTORIZATION,
        AlgorithmKind.GENERALIZED_ADDITIVE_MODELS,
        AlgorithmKind.LOGISTIC_REGRESSION,
        AlgorithmKind.FAST_TREE,
        AlgorithmKind.LIGHT_GBM,
        AlgorithmKind.SGD_CALIBRATED,
    }
)

# Kinds trained with a deliberately capped iteration count (convergence warnings expected).
CAPPED_ITERATION_KINDS = frozenset({AlgorithmKind.AVERAGED_PERCEPTRON, AlgorithmKind.LINEAR_SVM})


# -----------------------------
# Fixed per-kind defaults (benchmark constants, not call-time knobs)
# -----------------------------
LIGHT_GBM_PARAMS: Dict[str, Any] = dict(n_estimators=100, learning_rate=0.1, num_leaves=31, min_child_samples=20)

FAST_TREE_PARAMS: Dict[str, Any] = dict(
    n_estimators=500,
    learning_rate=0.01,
    grow_policy="lossguide",
    max_leaves=20,
    max_depth=0,
    min_child_weight=1.0,
)

FAST_FOREST_PARAMS: Dict[str, Any] = dict(n_estimators=100, max_leaf_nodes=20, min_samples_leaf=10)

# Depth-1 trees depend on a single feature each, so the boosted sum is additive per feature.
GAM_PARAMS: Dict[str, Any] = dict(n_estimators=1000, learning_rate=0.05, max_depth=1)

PERCEPTRON_ITERATIONS: int = 10
LINEAR_SVM_ITERATIONS: int = 10
LOGISTIC_MAX_ITER: int = 1000


@dataclass(frozen=True)
class Estimator:
    """An unfitted feature pipeline + classifier for one (kind, label) pair."""

    kind: AlgorithmKind
    label: LabelTarget
    feature_columns: Tuple[str, ...]
    pipeline: Pipeline
    seed: int


def _make_light_gbm(seed: int, n_jobs: int) -> Any:
    return LGBMClassifier(random_state=int(seed), n_jobs=int(n_jobs), verbose=-1, **LIGHT_GBM_PARAMS)


def _make_logistic_regression(seed: int, n_jobs: int) -> Any:
    return LogisticRegression(solver="lbfgs", max_iter=LOGISTIC_MAX_ITER, random_state=int(seed))


def _make_averaged_perceptron(seed: int, n_jobs: int) -> Any:
    return SGDClassifier(
        loss="perceptron",
        penalty=None,
        learning_rate="constant",
        eta0=1.0,
        average=True,
        max_iter=PERCEPTRON_ITERATIONS,
        tol=None,
        random_state=int(seed),
    )


def _make_fast_forest(seed: int, n_jobs: int) -> Any:
    return RandomForestClassifier(random_state=int(seed), n_jobs=int(n_jobs), **FAST_FOREST_PARAMS)


def _make_fast_tree(seed: int, n_jobs: int) -> Any:
    common = make_xgb_common_params(seed=seed, n_jobs=n_jobs)
    return XGBClassifier(objective="binary:logistic", eval_metric="logloss", **common, **FAST_TREE_PARAMS)


def _make_factorization(seed: int, n_jobs: int) -> Any:
    # Second-order model: linear terms plus every pairwise feature interaction.
    return Pipeline(
        steps=[
            ("interactions", PolynomialFeatures(degree=2, interaction_only=True, include_bias=False)),
            ("classifier", LogisticRegression(solver="lbfgs", max_iter=LOGISTIC_MAX_ITER, random_state=int(seed))),
        ]
    )


def _make_sgd_calibrated(seed: int, n_jobs: int) -> Any:
    return SGDClassifier(loss="log_loss", random_state=int(seed))


def _make_sgd_non_calibrated(seed: int, n_jobs: int) -> Any:
    return SGDClassifier(loss="hinge", random_state=int(seed))


def _make_gam(seed: int, n_jobs: int) -> Any:
    common = make_xgb_common_params(seed=seed, n_jobs=n_jobs)
    return XGBClassifier(objective="binary:logistic", eval_metric="logloss", **common, **GAM_PARAMS)


def _make_linear_svm(seed: int, n_jobs: int) -> Any:
    # Primal L2 linear SVM on the squared hinge, solved by SGD (Pegasos-style) with a capped epoch count.
    return SGDClassifier(
        loss="squared_hinge",
        penalty="l2",
        alpha=1e-4,
        max_iter=LINEAR_SVM_ITERATIONS,
        tol=None,
        random_state=int(seed),
    )


_BUILDERS: Dict[AlgorithmKind, Callable[[int, int], Any]] = {
    AlgorithmKind.LIGHT_GBM: _make_light_gbm,
    AlgorithmKind.LOGISTIC_REGRESSION: _make_logistic_regression,
    AlgorithmKind.AVERAGED_PERCEPTRON: _make_averaged_perceptron,
    AlgorithmKind.FAST_FOREST: _make_fast_forest,
    AlgorithmKind.FAST_TREE: _make_fast_tree,
    AlgorithmKind.FIELD_AWARE_FACTORIZATION: _make_factorization,
    AlgorithmKind.SGD_CALIBRATED: _make_sgd_calibrated,
    AlgorithmKind.SGD_NON_CALIBRATED: _make_sgd_non_calibrated,
    AlgorithmKind.GENERALIZED_ADDITIVE_MODELS: _make_gam,
    AlgorithmKind.LINEAR_SVM: _make_linear_svm,
}


def selected_columns(preprocessor: ColumnTransformer) -> Tuple[str, ...]:
    """Feature names a (fitted or unfitted) ColumnTransformer selects, in order."""
    cols: List[str] = []
    for _, _, columns in preprocessor.transformers:
        if isinstance(columns, str):
            cols.append(columns)
        else:
            cols.extend(str(c) for c in columns)
    return tuple(cols)


def build_pipeline_for_estimator(preprocessor: ColumnTransformer, estimator: Any) -> Pipeline:
    """Append a classifier to the feature pipeline."""
    return Pipeline(
        steps=[
            ("preprocess", preprocessor),
            ("model", estimator),
        ]
    )


def final_classifier(pipeline: Pipeline) -> Any:
    """Innermost last step of a (possibly nested) Pipeline."""
    step = pipeline
    while isinstance(step, Pipeline):
        step = step.steps[-1][1]
    return step


def instantiate(
    kind: AlgorithmKind,
    label: LabelTarget,
    preprocessor: ColumnTransformer,
    *,
    seed: int,
    n_jobs: int = 1,
) -> Estimator:
    """Construct the trainable estimator for one pair with the kind's fixed defaults."""
    builder = _BUILDERS.get(AlgorithmKind(kind))
    if builder is None:
        raise ValueError(f"Unsupported algorithm kind: {kind!r}")
    if not isinstance(label, LabelTarget):
        raise ValueError(f"Unknown label target: {label!r}")

    clf = builder(int(seed), int(n_jobs))
    return Estimator(
        kind=AlgorithmKind(kind),
        label=label,
        feature_columns=selected_columns(preprocessor),
        pipeline=build_pipeline_for_estimator(preprocessor, clf),
        seed=int(seed),
    )


def supported_kinds() -> List[AlgorithmKind]:
    return [k for k in AlgorithmKind if k in _BUILDERS]


def eligible_kinds(kinds: Optional[Iterable[AlgorithmKind]] = None) -> List[AlgorithmKind]:
    """Metrics-eligible kinds in enum order (stable across runs)."""
    pool = set(AlgorithmKind if kinds is None else kinds)
    return [k for k in AlgorithmKind if k in pool and k.metrics_eligible]


def iter_pairs(
    kinds: Optional[Iterable[AlgorithmKind]] = None,
    labels: Optional[Iterable[LabelTarget]] = None,
) -> Iterator[Tuple[AlgorithmKind, LabelTarget]]:
    """Explicit algorithm x label cross-product."""
    ks = list(AlgorithmKind if kinds is None else kinds)
    ls = list(LabelTarget if labels is None else labels)
    for k in ks:
        for t in ls:
            yield AlgorithmKind(k), LabelTarget(t)
