"""Incremental Cost-Effectiveness

Dominance checks, the cost-effectiveness frontier and incremental
cost-effectiveness ratios (ICERs) for a set of strategies.

Frontier construction:
    1. Strong dominance - a strategy is dominated (D) if another costs no
       more and is at least as effective (ties in effect go to the cheaper).
    2. Extended dominance - on the remaining effect-ordered sequence, drop
       any strategy whose ICER versus its predecessor exceeds the ICER of the
       next strategy (ED), until ICERs are non-decreasing.
Everything left is non-dominated (ND) and forms the frontier.
"""

import numpy as np
import pandas as pd
from typing import List, NamedTuple, Optional, Sequence, Tuple
import logging

from utils.exceptions import ConfigurationError, DimensionMismatch

logger = logging.getLogger(__name__)

ICER_COLUMNS = ['Strategy', 'Cost', 'Effect', 'Inc_Cost', 'Inc_Effect', 'ICER', 'Status']


class StrategyPoint(NamedTuple):
    strategy: str
    cost: float
    effect: float


def _as_points(cost: Sequence[float], effect: Sequence[float], strategies: Sequence[str]) -> Tuple[StrategyPoint, ...]:
    cost = np.asarray(cost, dtype=float)
    effect = np.asarray(effect, dtype=float)
    strategies = [str(s) for s in strategies]
    if not (cost.ndim == effect.ndim == 1 and len(cost) == len(effect) == len(strategies)):
        raise DimensionMismatch(
            f"cost ({cost.shape}), effect ({effect.shape}) and strategies ({len(strategies)}) must align"
        )
    if len(set(strategies)) != len(strategies):
        raise ConfigurationError(f"strategy names must be unique: {strategies}")
    if len(strategies) == 0:
        raise ConfigurationError("at least one strategy is required")
    return tuple(StrategyPoint(s, float(c), float(e)) for s, c, e in zip(strategies, cost, effect))


def strong_dominance(points: Sequence[StrategyPoint]) -> Tuple[Tuple[StrategyPoint, ...], Tuple[StrategyPoint, ...]]:
    """
    Split points into (non-dominated, strongly dominated).

    Non-dominated points come back ordered by increasing cost, which for
    them is also increasing effect.
    """
    ordered = sorted(points, key=lambda p: (p.cost, -p.effect))
    kept, dominated = [], []
    best_effect = -np.inf
    for point in ordered:
        if point.effect <= best_effect:
            dominated.append(point)
        else:
            kept.append(point)
            best_effect = point.effect
    return tuple(kept), tuple(dominated)


def _icers(sequence: Sequence[StrategyPoint]) -> List[float]:
    return [
        (cur.cost - prev.cost) / (cur.effect - prev.effect)
        for prev, cur in zip(sequence[:-1], sequence[1:])
    ]


def extended_dominance(sequence: Sequence[StrategyPoint]) -> Tuple[Tuple[StrategyPoint, ...], Tuple[StrategyPoint, ...]]:
    """
    Split an effect-ordered, strongly non-dominated sequence into
    (frontier, extendedly dominated). Returns new tuples; input is untouched.
    """
    remaining = tuple(sequence)
    removed: Tuple[StrategyPoint, ...] = ()
    while True:
        icers = _icers(remaining)
        # icers[k] is the ICER of remaining[k + 1] versus remaining[k]
        violation = next((k for k in range(len(icers) - 1) if icers[k] > icers[k + 1]), None)
        if violation is None:
            return remaining, removed
        removed = removed + (remaining[violation + 1],)
        remaining = remaining[:violation + 1] + remaining[violation + 2:]


def calculate_icers(cost: Sequence[float], effect: Sequence[float], strategies: Sequence[str]) -> pd.DataFrame:
    """
    ICER table with dominance status.

    Args:
        cost: Mean cost per strategy
        effect: Mean effect per strategy
        strategies: Strategy names

    Returns:
        DataFrame with Strategy, Cost, Effect, Inc_Cost, Inc_Effect, ICER and
        Status ('ND', 'D', 'ED'). Frontier rows come first in increasing
        effect; incremental values of dominated rows are NaN.
    """
    points = _as_points(cost, effect, strategies)
    missing = [p.strategy for p in points if np.isnan(p.cost) or np.isnan(p.effect)]
    if missing:
        logger.debug(f"Excluding strategies with missing outcomes: {missing}")
        points = tuple(p for p in points if p.strategy not in missing)
    if not points:
        raise ConfigurationError("no strategy has both cost and effect")

    candidates, dominated = strong_dominance(points)
    frontier, ext_dominated = extended_dominance(candidates)

    rows = []
    for i, point in enumerate(frontier):
        if i == 0:
            inc_cost = inc_effect = icer = np.nan
        else:
            prev = frontier[i - 1]
            inc_cost = point.cost - prev.cost
            inc_effect = point.effect - prev.effect
            icer = inc_cost / inc_effect
        rows.append([point.strategy, point.cost, point.effect, inc_cost, inc_effect, icer, 'ND'])

    others = [(p, 'D') for p in dominated] + [(p, 'ED') for p in ext_dominated]
    for point, status in sorted(others, key=lambda item: (item[0].effect, item[0].cost)):
        rows.append([point.strategy, point.cost, point.effect, np.nan, np.nan, np.nan, status])

    logger.debug(
        f"ICERs: {len(frontier)} on frontier, {len(dominated)} dominated, "
        f"{len(ext_dominated)} extendedly dominated"
    )
    return pd.DataFrame(rows, columns=ICER_COLUMNS)


def frontier_strategies(cost: Sequence[float], effect: Sequence[float], strategies: Sequence[str]) -> List[str]:
    """Frontier strategies ordered by increasing effect"""
    icers = calculate_icers(cost, effect, strategies)
    return icers.loc[icers['Status'] == 'ND', 'Strategy'].tolist()


def incremental_outcomes(
    cost: Sequence[float],
    effect: Sequence[float],
    strategies: Sequence[str],
    reference: Optional[str] = None,
) -> pd.DataFrame:
    """
    Incremental cost, effect and ICER of each strategy versus a reference.

    The reference defaults to the cheapest strategy (most effective among
    equally cheap ones). Where the comparison is a dominance relationship
    ('dominant', 'dominated', 'equivalent') the ICER is NaN; otherwise the
    Relation is 'icer'.
    """
    points = _as_points(cost, effect, strategies)
    names = [p.strategy for p in points]
    if reference is None:
        ref = min(points, key=lambda p: (p.cost, -p.effect))
    elif reference in names:
        ref = points[names.index(reference)]
    else:
        raise ConfigurationError(f"unknown reference strategy {reference!r}; available: {names}")

    rows = []
    for point in points:
        d_cost = point.cost - ref.cost
        d_effect = point.effect - ref.effect
        icer = np.nan
        if point.strategy == ref.strategy:
            relation = 'reference'
        elif d_cost == 0 and d_effect == 0:
            relation = 'equivalent'
        elif d_cost <= 0 and d_effect >= 0:
            relation = 'dominant'
        elif d_cost >= 0 and d_effect <= 0:
            relation = 'dominated'
        else:
            relation = 'icer'
            icer = d_cost / d_effect
        rows.append([point.strategy, point.cost, point.effect, d_cost, d_effect, icer, relation])

    return pd.DataFrame(rows, columns=['Strategy', 'Cost', 'Effect', 'Inc_Cost', 'Inc_Effect', 'ICER', 'Relation'])
