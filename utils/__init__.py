"""Utilities

Shared exception taxonomy used across sampling, evaluation and analysis.
"""

from .exceptions import (
    SensitivityAnalysisError,
    ConfigurationError,
    InvalidParameterization,
    DimensionMismatch,
    OutcomeSchemaMismatch,
    ModelEvaluationFailure,
)

__all__ = [
    'SensitivityAnalysisError',
    'ConfigurationError',
    'InvalidParameterization',
    'DimensionMismatch',
    'OutcomeSchemaMismatch',
    'ModelEvaluationFailure',
]
