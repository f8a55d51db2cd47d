# hof_pipeline/interchange.py
"""
Portable (ONNX) export of fitted pipelines and an onnxruntime scoring wrapper.

The graph takes one float tensor of shape [N, 1] per feature column, named after
the column, so consumers bind features by name rather than by position.
Classifier zipmap is disabled: outputs are `label` (int64) and `probabilities` ([N, 2];
raw decision scores for kinds without a probability output).
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import numpy as np
import onnx
import onnxruntime as ort
import pandas as pd
from lightgbm import LGBMClassifier
from onnxmltools.convert.lightgbm.operator_converters.LightGbm import convert_lightgbm
from onnxmltools.convert.xgboost.operator_converters.XGBoost import convert_xgboost
from skl2onnx import convert_sklearn, update_registered_converter
from skl2onnx.common.data_types import FloatTensorType
from skl2onnx.common.shape_calculator import calculate_linear_classifier_output_shapes
from sklearn.pipeline import Pipeline
from xgboost import XGBClassifier

from .errors import SchemaError
from .models import final_classifier

TARGET_OPSET: Dict[str, int] = {"": 17, "ai.onnx.ml": 3}

_TREE_CONVERTER_OPTIONS = {"nocl": [True, False], "zipmap": [True, False, "columns"]}
_registered = False


def register_tree_converters() -> None:
    """Teach skl2onnx to convert the XGBoost/LightGBM classifiers (converters from onnxmltools)."""
    global _registered
    if _registered:
        return
    update_registered_converter(
        LGBMClassifier,
        "LightGbmLGBMClassifier",
        calculate_linear_classifier_output_shapes,
        convert_lightgbm,
        options=_TREE_CONVERTER_OPTIONS,
    )
    update_registered_converter(
        XGBClassifier,
        "XGBoostXGBClassifier",
        calculate_linear_classifier_output_shapes,
        convert_xgboost,
        options=_TREE_CONVERTER_OPTIONS,
    )
    _registered = True


def convert_pipeline(
    pipeline: Pipeline,
    feature_columns: Sequence[str],
    *,
    name: str,
    metadata: Optional[Mapping[str, str]] = None,
) -> onnx.ModelProto:
    register_tree_converters()
    initial_types = [(str(c), FloatTensorType([None, 1])) for c in feature_columns]
    clf = final_classifier(pipeline)

    onx = convert_sklearn(
        pipeline,
        name=name,
        initial_types=initial_types,
        options={id(clf): {"zipmap": False}},
        target_opset=TARGET_OPSET,
    )
    if metadata:
        onnx.helper.set_model_props(onx, {str(k): str(v) for k, v in metadata.items()})
    return onx


def save_onnx(onx: onnx.ModelProto, out_path: str | Path) -> None:
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with open(out_path, "wb") as f:
        f.write(onx.SerializeToString())


class InterchangeModel:
    """Scores an ONNX artifact with onnxruntime; inputs are bound by column name."""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self.session = ort.InferenceSession(str(self.path), providers=["CPUExecutionProvider"])
        self.input_names: List[str] = [i.name for i in self.session.get_inputs()]
        self.output_names: List[str] = [o.name for o in self.session.get_outputs()]
        self.metadata: Dict[str, str] = dict(self.session.get_modelmeta().custom_metadata_map)

    def _feeds(self, frame: pd.DataFrame) -> Dict[str, np.ndarray]:
        missing = [n for n in self.input_names if n not in frame.columns]
        if missing:
            raise SchemaError(f"Input frame lacks interchange inputs: {missing}")
        return {n: frame[n].to_numpy(dtype=np.float32).reshape(-1, 1) for n in self.input_names}

    def run(self, frame: pd.DataFrame) -> Dict[str, Any]:
        outputs = self.session.run(None, self._feeds(frame))
        return dict(zip(self.output_names, outputs))

    def predict_label(self, frame: pd.DataFrame) -> np.ndarray:
        out = self.run(frame)
        return np.asarray(out[self.output_names[0]]).astype(int).ravel()

    def predict_scores(self, frame: pd.DataFrame) -> np.ndarray:
        """Positive-class column of the second output (probability or raw score)."""
        out = self.run(frame)
        scores = np.asarray(out[self.output_names[1]], dtype=np.float64)
        if scores.ndim == 2:
            return scores[:, -1]
        return scores.ravel()
