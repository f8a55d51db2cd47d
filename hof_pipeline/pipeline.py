# hof_pipeline/pipeline.py
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

import logging

from sklearn.compose import ColumnTransformer
from sklearn.preprocessing import MinMaxScaler

from .data import Dataset, get_feature_columns, load_table
from .errors import SchemaError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PreparedData:
    train: Dataset
    validation: Dataset
    feature_columns: List[str]


def build_feature_pipeline(
    feature_columns: Sequence[str],
    schema_columns: Optional[Sequence[str]] = None,
) -> ColumnTransformer:
    """
    Baseline pipeline: select the named feature columns and min-max normalise them.

    Columns are selected by name, so the fitted transformer projects any frame
    (validation table or a single freshly built row) onto the same feature positions.
    """
    cols = get_feature_columns(feature_columns)
    if schema_columns is not None:
        missing = [c for c in cols if c not in set(schema_columns)]
        if missing:
            raise SchemaError(f"Feature columns absent from dataset schema: {missing}")

    return ColumnTransformer(
        transformers=[("num", MinMaxScaler(), cols)],
        remainder="drop",
        verbose_feature_names_out=False,
    )


def prepare_data(
    train_path: str | Path,
    validation_path: str | Path,
) -> PreparedData:
    """Load train + validation once; both must share one schema."""
    train = load_table(train_path, name="train")
    validation = load_table(validation_path, name="validation")

    if train.columns != validation.columns:
        raise SchemaError(
            "Train and validation schemas differ.\n"
            f"Train:      {train.columns}\nValidation: {validation.columns}"
        )

    return PreparedData(train=train, validation=validation, feature_columns=get_feature_columns())
