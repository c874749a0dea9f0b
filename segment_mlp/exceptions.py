# segment_mlp/exceptions.py

"""Errors raised by the segment pipeline, one per failure mode."""


class SegmentPipelineError(Exception):
    """Base class for every error raised by segment_mlp."""


class DataAccessError(SegmentPipelineError):
    """The data source is missing, unreadable or malformed."""


class SchemaError(DataAccessError):
    """A required column is absent, has the wrong type, or holds an unmapped code."""


class ConfigError(SegmentPipelineError, ValueError):
    """A pipeline setting is invalid (split proportion, fold count, strata, scaling)."""


class InvalidHyperparameter(SegmentPipelineError, ValueError):
    """A model hyperparameter is outside its valid range."""


class ConvergenceFailure(SegmentPipelineError, RuntimeError):
    """The network optimizer failed to produce a usable fit."""


class InsufficientData(SegmentPipelineError, ValueError):
    """Too few rows (overall or per class) for the requested split or folds."""
