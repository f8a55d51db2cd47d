# main.py
from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, List

import pandas as pd

from hof_pipeline.artifacts import ArtifactStore
from hof_pipeline.evaluation import check_format_agreement, evaluate_all, write_metrics_report
from hof_pipeline.inference import predict_samples, write_predictions
from hof_pipeline.models import AlgorithmKind
from hof_pipeline.pipeline import prepare_data
from hof_pipeline.training import DEFAULT_N_JOBS, DEFAULT_SEED, PairOutcome, RunConfig, train_all
from hof_pipeline.errors import PersistenceError, PredictionInputError

logger = logging.getLogger("hof_pipeline.cli")


def _save_json(obj: Any, path: str) -> str:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with open(p, "w", encoding="utf-8") as f:
        json.dump(obj, f, indent=2, default=str)
    return str(p)


def _config_from_args(args: argparse.Namespace) -> RunConfig:
    extra: Dict[str, Any] = {}
    if getattr(args, "algorithm", None):
        extra["prediction_kind"] = AlgorithmKind(args.algorithm)
    if getattr(args, "min_agreement", None) is not None:
        extra["min_format_agreement"] = float(args.min_agreement)
    return RunConfig(
        train_data=args.train_data,
        validation_data=args.validation_data,
        outdir=args.outdir,
        seed=int(args.seed),
        n_jobs=int(args.n_jobs),
        **extra,
    )


def _stage_train(cfg: RunConfig, store: ArtifactStore) -> List[PairOutcome]:
    data = prepare_data(cfg.train_data, cfg.validation_data)
    return train_all(data.train, store, cfg)


def _stage_evaluate(cfg: RunConfig, store: ArtifactStore) -> List[PairOutcome]:
    data = prepare_data(cfg.train_data, cfg.validation_data)
    reports, outcomes = evaluate_all(store, data.validation, cfg)
    format_outcomes = check_format_agreement(store, data.validation, cfg)
    paths = write_metrics_report(reports, cfg.outdir, format_outcomes=format_outcomes)
    logger.info("Validation metrics saved to: %s", paths["metrics_csv"])
    return outcomes + format_outcomes


def _stage_predict(cfg: RunConfig, store: ArtifactStore) -> List[PairOutcome]:
    outcomes: List[PairOutcome] = []
    frames = []
    for label in cfg.labels:
        try:
            frames.append(predict_samples(store, cfg.prediction_kind, labels=[label]))
        except (PersistenceError, PredictionInputError) as e:
            logger.error("Prediction failed for %s | %s: %s", cfg.prediction_kind.value, label.value, e)
            outcomes.append(PairOutcome(cfg.prediction_kind, label, "predict", False, f"{type(e).__name__}: {e}"))
            continue
        outcomes.append(PairOutcome(cfg.prediction_kind, label, "predict", True))

    if frames:
        out_path = write_predictions(pd.concat(frames, ignore_index=True), cfg.outdir)
        logger.info("Predictions written to: %s", out_path)
    return outcomes


def _finish(cfg: RunConfig, stages: Dict[str, List[PairOutcome]]) -> int:
    all_outcomes = [o for outs in stages.values() for o in outs]
    failed = [o for o in all_outcomes if not o.ok]
    manifest = {
        "train_data": cfg.train_data,
        "validation_data": cfg.validation_data,
        "seed": cfg.seed,
        "models_dir": str(cfg.store().models_dir),
        "stages": {name: [o.to_row() for o in outs] for name, outs in stages.items()},
        "n_failed": len(failed),
    }
    _save_json(manifest, str(Path(cfg.outdir) / "run_manifest.json"))

    if failed:
        logger.error("%d of %d pair operations failed.", len(failed), len(all_outcomes))
        return 1
    logger.info("All %d pair operations succeeded.", len(all_outcomes))
    return 0


def cmd_train(args: argparse.Namespace) -> int:
    cfg = _config_from_args(args)
    return _finish(cfg, {"train": _stage_train(cfg, cfg.store())})


def cmd_evaluate(args: argparse.Namespace) -> int:
    cfg = _config_from_args(args)
    return _finish(cfg, {"evaluate": _stage_evaluate(cfg, cfg.store())})


def cmd_predict(args: argparse.Namespace) -> int:
    cfg = _config_from_args(args)
    return _finish(cfg, {"predict": _stage_predict(cfg, cfg.store())})


def cmd_run(args: argparse.Namespace) -> int:
    cfg = _config_from_args(args)
    store = cfg.store()
    stages = {"train": _stage_train(cfg, store)}
    stages["evaluate"] = _stage_evaluate(cfg, store)
    stages["predict"] = _stage_predict(cfg, store)
    return _finish(cfg, stages)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Baseball Hall of Fame classifier benchmark (train / evaluate / predict).")
    p.add_argument("--train-data", type=str, default=RunConfig.train_data, help="Path to training CSV.")
    p.add_argument("--validation-data", type=str, default=RunConfig.validation_data, help="Path to validation CSV.")
    p.add_argument("--outdir", type=str, default=RunConfig.outdir, help="Base path for models, metrics and predictions.")
    p.add_argument("--seed", type=int, default=DEFAULT_SEED, help="Run seed; pair seeds derive from it.")
    p.add_argument("--n-jobs", dest="n_jobs", type=int, default=DEFAULT_N_JOBS, help="Training worker count.")
    p.add_argument(
        "--log-level",
        dest="log_level",
        type=str,
        default=os.environ.get("LOG_LEVEL", "INFO"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level.",
    )

    sub = p.add_subparsers(dest="command")

    t = sub.add_parser("train", help="Fit and persist every algorithm x label pair.")
    t.set_defaults(func=cmd_train)

    e = sub.add_parser("evaluate", help="Score persisted models on the validation data.")
    e.add_argument("--min-agreement", type=float, default=None, help="Required native/interchange label agreement.")
    e.set_defaults(func=cmd_evaluate)

    pr = sub.add_parser("predict", help="Predict the sample players with one persisted algorithm.")
    pr.add_argument(
        "--algorithm",
        type=str,
        default=None,
        choices=[k.value for k in AlgorithmKind],
        help="Algorithm kind used for predictions.",
    )
    pr.set_defaults(func=cmd_predict)

    r = sub.add_parser("run", help="Train, evaluate and predict.")
    r.add_argument("--min-agreement", type=float, default=None, help="Required native/interchange label agreement.")
    r.add_argument("--algorithm", type=str, default=None, choices=[k.value for k in AlgorithmKind])
    r.set_defaults(func=cmd_run)

    return p


def main(argv: List[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # No subcommand: run every stage
    if not getattr(args, "command", None):
        args.command = "run"
        args.func = cmd_run

    return int(args.func(args))


if __name__ == "__main__":
    sys.exit(main())
