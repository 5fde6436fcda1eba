"""Analysis Module

PSA object, incremental cost-effectiveness and frontier construction, and
decision-analytic metrics (expected loss, CEAC, EVPI).
"""

from .psa_object import PSA, make_psa_obj, default_strategy_names
from .icers import calculate_icers, frontier_strategies, incremental_outcomes
from .decision_metrics import calc_exp_loss, ceac, summarize_ceac, calc_evpi, net_monetary_benefit
from .metamodel import owsa_psa

__all__ = [
    'PSA',
    'make_psa_obj',
    'default_strategy_names',
    'calculate_icers',
    'frontier_strategies',
    'incremental_outcomes',
    'calc_exp_loss',
    'ceac',
    'summarize_ceac',
    'calc_evpi',
    'net_monetary_benefit',
    'owsa_psa',
]
