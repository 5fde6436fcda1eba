"""Evaluation Module

Drives the external decision model over PSA samples and deterministic
parameter grids, producing long-format outcome tables.
"""

from .model_runner import ModelRunner, OutcomeSchema
from .psa_runner import PSARunResult, run_psa
from .dsa_runner import (
    DSAConfig,
    ParameterRange,
    parse_range_table,
    run_owsa_det,
    run_twsa_det,
    owsa_tornado_data,
    owsa_opt_strat,
    twsa_opt_strat,
)

__all__ = [
    'ModelRunner',
    'OutcomeSchema',
    'PSARunResult',
    'run_psa',
    'DSAConfig',
    'ParameterRange',
    'parse_range_table',
    'run_owsa_det',
    'run_twsa_det',
    'owsa_tornado_data',
    'owsa_opt_strat',
    'twsa_opt_strat',
]
