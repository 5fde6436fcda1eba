"""Markov Cohort Model

Three-state (Healthy, Sick, Dead) cohort model comparing standard care with
two preventive drugs. Used as the demonstration decision model: it takes a
parameter mapping and returns one row per strategy with discounted cost and
QALYs.
"""

import numpy as np
import pandas as pd
from typing import Dict, Mapping
from dataclasses import dataclass, asdict
import logging

logger = logging.getLogger(__name__)

STRATEGIES = ['Standard', 'Drug_A', 'Drug_B']
STATES = ['Healthy', 'Sick', 'Dead']


@dataclass
class MarkovConfig:
    """Base-case parameters of the cohort model (annual cycles)"""
    p_HS: float = 0.05      # Healthy -> Sick
    p_HD: float = 0.01      # background mortality
    p_SD: float = 0.10      # Sick -> Dead
    rr_A: float = 0.70      # relative risk of sickness on Drug A
    rr_B: float = 0.55      # relative risk of sickness on Drug B
    c_H: float = 500.0
    c_S: float = 4000.0
    c_A: float = 600.0      # annual drug cost
    c_B: float = 1400.0
    u_H: float = 0.95
    u_S: float = 0.60

    def to_params(self) -> Dict[str, float]:
        return asdict(self)


def _transition_matrix(p_HS: float, p_HD: float, p_SD: float) -> np.ndarray:
    probs = {'p_HS': p_HS, 'p_HD': p_HD, 'p_SD': p_SD}
    bad = {k: v for k, v in probs.items() if not 0 <= v <= 1}
    if bad:
        raise ValueError(f"transition probabilities outside [0, 1]: {bad}")
    if p_HS + p_HD > 1:
        raise ValueError(f"p_HS + p_HD exceeds 1 ({p_HS + p_HD:.3f})")

    return np.array([
        [1 - p_HS - p_HD, p_HS, p_HD],
        [0.0, 1 - p_SD, p_SD],
        [0.0, 0.0, 1.0],
    ])


def _run_strategy(params: Mapping[str, float], rr: float, drug_cost: float,
                  n_cycles: int, discount_rate: float) -> Dict[str, float]:
    P = _transition_matrix(params['p_HS'] * rr, params['p_HD'], params['p_SD'])
    trace = np.zeros((n_cycles + 1, len(STATES)))
    trace[0] = [1.0, 0.0, 0.0]
    for t in range(n_cycles):
        trace[t + 1] = trace[t] @ P

    cycles = trace[1:]
    discount = 1 / (1 + discount_rate) ** np.arange(1, n_cycles + 1)
    alive = cycles[:, 0] + cycles[:, 1]
    cost = cycles[:, 0] * params['c_H'] + cycles[:, 1] * params['c_S'] + alive * drug_cost
    qaly = cycles[:, 0] * params['u_H'] + cycles[:, 1] * params['u_S']
    return {'Cost': float(cost @ discount), 'QALY': float(qaly @ discount)}


def run_markov(params: Mapping[str, float], n_cycles: int = 40, discount_rate: float = 0.03) -> pd.DataFrame:
    """
    Evaluate all strategies for one parameter set.

    Args:
        params: Parameter values (see MarkovConfig for names)
        n_cycles: Number of annual cycles
        discount_rate: Annual discount rate for costs and QALYs

    Returns:
        DataFrame with columns Strategy, Cost, QALY
    """
    arms = {
        'Standard': (1.0, 0.0),
        'Drug_A': (params['rr_A'], params['c_A']),
        'Drug_B': (params['rr_B'], params['c_B']),
    }
    rows = []
    for strategy in STRATEGIES:
        rr, drug_cost = arms[strategy]
        outcome = _run_strategy(params, rr, drug_cost, n_cycles, discount_rate)
        rows.append({'Strategy': strategy, **outcome})
    return pd.DataFrame(rows, columns=['Strategy', 'Cost', 'QALY'])
