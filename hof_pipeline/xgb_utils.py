# hof_pipeline/xgb_utils.py
from __future__ import annotations

from functools import lru_cache
from typing import Any, Dict

from xgboost import XGBClassifier


@lru_cache(maxsize=1)
def _has_device_param() -> bool:
    """XGBoost >= 2.0 selects hardware with `device`; older releases only know `tree_method`."""
    return "device" in XGBClassifier().get_params()


def make_xgb_common_params(
    *,
    seed: int = 200,
    n_jobs: int = 1,
    max_bin: int = 256,
    tree_method: str = "hist",
    verbosity: int = 0,
) -> Dict[str, Any]:
    """Settings shared by the boosted-tree and additive kinds. Training is CPU only.

    base_score is pinned so the interchange converter does not have to recover it
    from the booster config, whose encoding differs across XGBoost releases.
    """
    params: Dict[str, Any] = {
        "random_state": int(seed),
        "n_jobs": int(n_jobs),
        "tree_method": str(tree_method),
        "max_bin": int(max_bin),
        "verbosity": int(verbosity),
        "base_score": 0.5,
    }
    if _has_device_param():
        params["device"] = "cpu"
    return params
