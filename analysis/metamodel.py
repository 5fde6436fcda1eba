"""PSA Metamodel

One-way sensitivity analysis on PSA output: regress each strategy's outcome
on one sampled parameter (polynomial least squares) and predict the outcome
across that parameter's range. The result has the same shape as a one-way
deterministic sweep, so the same summaries apply.
"""

import numpy as np
import pandas as pd
from typing import Dict, Optional, Sequence, Tuple
import logging

from utils.exceptions import ConfigurationError
from .psa_object import PSA

logger = logging.getLogger(__name__)

OUTCOMES = ('eff', 'cost', 'nmb')


def _outcome_matrix(psa: PSA, outcome: str, wtp: Optional[float]):
    if outcome not in OUTCOMES:
        raise ConfigurationError(f"outcome must be one of {OUTCOMES}, got {outcome!r}")
    if outcome == 'nmb':
        if wtp is None:
            raise ConfigurationError("outcome 'nmb' needs a wtp value")
        cost, effect, names = psa.complete_matrices()
        return effect * float(wtp) - cost, names

    values = psa.effect if outcome == 'eff' else psa.cost
    if values is None:
        raise ConfigurationError(f"PSA object has no {'effect' if outcome == 'eff' else 'cost'} matrix")
    keep = ~values.isna().all(axis=0)
    values = values.loc[:, keep]
    return values.to_numpy(), list(values.columns)


def owsa_psa(
    psa: PSA,
    parameters: Optional[Sequence[str]] = None,
    outcome: str = 'eff',
    wtp: Optional[float] = None,
    nsamp: int = 100,
    poly_order: int = 2,
    ranges: Optional[Dict[str, Tuple[float, float]]] = None,
) -> pd.DataFrame:
    """
    Metamodel-based one-way sensitivity analysis.

    Args:
        psa: PSA object with a parameter sample table
        parameters: Parameters to analyse (default: all numeric columns)
        outcome: 'eff', 'cost' or 'nmb'
        wtp: Threshold for outcome 'nmb'
        nsamp: Number of prediction points per parameter
        poly_order: Degree of the regression polynomial
        ranges: Optional (min, max) per parameter; default is the
                2.5th-97.5th percentile of the parameter's samples

    Returns:
        DataFrame with parameter, param_val, strategy, outcome_val
    """
    if nsamp < 2:
        raise ConfigurationError(f"nsamp must be >= 2, got {nsamp}")
    if poly_order < 1:
        raise ConfigurationError(f"poly_order must be >= 1, got {poly_order}")

    table = psa.parameters
    if parameters is None:
        parameters = list(table.select_dtypes(include=[np.number]).columns)
    unknown = [p for p in parameters if p not in table.columns]
    if unknown:
        raise ConfigurationError(f"parameters {unknown} are not in the PSA parameter table")
    if not parameters:
        raise ConfigurationError("PSA object has no numeric parameters to analyse")

    y, names = _outcome_matrix(psa, outcome, wtp)
    ranges = ranges or {}
    logger.info(f"Fitting order-{poly_order} metamodels for {len(parameters)} parameters x {len(names)} strategies")

    frames = []
    for param in parameters:
        x = table[param].to_numpy(dtype=float)
        if np.unique(x).size <= poly_order:
            raise ConfigurationError(
                f"parameter {param!r} has too few distinct samples for an order-{poly_order} fit"
            )
        low, high = ranges.get(param, tuple(np.percentile(x, [2.5, 97.5])))
        grid = np.linspace(low, high, nsamp)

        # one column of coefficients per strategy
        coefs = np.polynomial.polynomial.polyfit(x, y, poly_order)
        predicted = np.polynomial.polynomial.polyval(grid, coefs)
        predicted = np.atleast_2d(predicted)

        for j, strategy in enumerate(names):
            frames.append(pd.DataFrame({
                'parameter': param,
                'param_val': grid,
                'strategy': strategy,
                'outcome_val': predicted[j],
            }))
    return pd.concat(frames, ignore_index=True)
