# hof_pipeline/__init__.py
from __future__ import annotations

from .data import (
    EXPECTED_COLUMNS,
    FEATURE_COLUMNS,
    LABEL_COLUMNS,
    METADATA_COLUMNS,
    Dataset,
    LabelTarget,
    Observation,
    load_table,
)
from .errors import FitError, PersistenceError, PipelineError, PredictionInputError, SchemaError
from .models import AlgorithmKind, eligible_kinds, instantiate, iter_pairs, supported_kinds
from .pipeline import PreparedData, build_feature_pipeline, prepare_data
from .artifacts import ArtifactFormat, ArtifactStore, TrainedModel
from .training import PairOutcome, RunConfig, derive_pair_seed, fit, train_all, train_pair
from .evaluation import check_format_agreement, evaluate, evaluate_all, write_metrics_report
from .inference import PredictionResult, Predictor, predict_samples, sample_observations
