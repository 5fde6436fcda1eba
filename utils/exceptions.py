# utils/exceptions.py
# Central place for the exceptions raised by the sampling, evaluation and
# analysis layers. All of them are fatal to the enclosing operation.

from typing import Any, Dict, Optional


class SensitivityAnalysisError(Exception):
    """Base class for every error raised by this package."""
    pass


class ConfigurationError(SensitivityAnalysisError, ValueError):
    """
    Raised for an unsupported distribution family / parameterization pair,
    a malformed range table, a two-way DSA without exactly two parameters,
    or any other ill-formed analysis input.
    """
    pass


class InvalidParameterization(SensitivityAnalysisError, ValueError):
    """
    Raised when a moment-style conversion yields non-physical native
    parameters (e.g. a beta whose variance is too large for its mean).
    """
    pass


class DimensionMismatch(SensitivityAnalysisError, ValueError):
    """Cost, effect and parameter tables disagree on sample or strategy count."""
    pass


class OutcomeSchemaMismatch(SensitivityAnalysisError, RuntimeError):
    """
    Raised when the external model returns a different outcome-column set or
    strategy set/order than it did on the first call of the same run.
    """
    pass


class ModelEvaluationFailure(SensitivityAnalysisError, RuntimeError):
    """
    Wraps an exception raised by the external model function. `context`
    identifies the offending call (sample index, or parameter values).
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = dict(context or {})
