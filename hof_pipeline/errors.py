# hof_pipeline/errors.py
from __future__ import annotations


class PipelineError(Exception):
    """Base class for stage-local failures that are isolated per (algorithm, label) pair."""


class SchemaError(PipelineError, ValueError):
    """A referenced feature/label column is absent or the data does not conform to the schema."""


class FitError(PipelineError, RuntimeError):
    """Degenerate training data or a failure inside the learning algorithm."""


class PersistenceError(PipelineError, OSError):
    """Artifact write/read failure (missing, unreadable, corrupt or wrong type)."""


class PredictionInputError(PipelineError, ValueError):
    """A single observation is malformed at inference time."""
