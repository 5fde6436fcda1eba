"""Decision-Analytic Metrics

Expected loss curves, cost-effectiveness acceptability curves (CEAC) and
expected value of perfect information (EVPI), computed from the sample
matrices of a PSA object over a grid of willingness-to-pay thresholds.

For a threshold w, the net monetary benefit of strategy j in sample i is
    NMB[i, j] = effect[i, j] * w - cost[i, j]
Strategies without any data are left out of every computation.
"""

import numpy as np
import pandas as pd
from typing import Sequence
import logging

from utils.exceptions import ConfigurationError
from .psa_object import PSA

logger = logging.getLogger(__name__)


def _wtp_grid(wtp) -> np.ndarray:
    try:
        grid = np.atleast_1d(np.asarray(wtp, dtype=float))
    except (TypeError, ValueError):
        raise ConfigurationError(f"wtp must be numeric, got {wtp!r}") from None
    if grid.ndim != 1 or grid.size == 0:
        raise ConfigurationError("wtp must be a non-empty one-dimensional sequence")
    if not np.all(np.isfinite(grid)):
        raise ConfigurationError("wtp values must be finite")
    return grid


def net_monetary_benefit(cost: np.ndarray, effect: np.ndarray, wtp: float) -> np.ndarray:
    """NMB matrix (samples x strategies) at one threshold"""
    return effect * wtp - cost


def _optimal_mask(expected_nmb: np.ndarray) -> np.ndarray:
    # strategies tied (numerically) with the best expected NMB
    best = expected_nmb.max()
    return np.isclose(expected_nmb, best, rtol=1e-12, atol=1e-9 * max(1.0, abs(best)))


def calc_exp_loss(psa: PSA, wtp: Sequence[float]) -> pd.DataFrame:
    """
    Expected loss from choosing each strategy instead of the per-sample optimum.

    Returns:
        DataFrame with WTP, Strategy, Expected_Loss, On_Frontier; one row per
        (threshold, strategy). On_Frontier flags the strategy with the lowest
        expected loss at that threshold.
    """
    grid = _wtp_grid(wtp)
    cost, effect, names = psa.complete_matrices()
    logger.info(f"Computing expected loss for {len(names)} strategies at {grid.size} WTP values")

    frames = []
    for w in grid:
        nmb = net_monetary_benefit(cost, effect, w)
        loss = nmb.max(axis=1, keepdims=True) - nmb
        exp_loss = loss.mean(axis=0)
        frames.append(pd.DataFrame({
            'WTP': w,
            'Strategy': names,
            'Expected_Loss': exp_loss,
            'On_Frontier': _optimal_mask(-exp_loss),
        }))
    return pd.concat(frames, ignore_index=True)


def ceac(psa: PSA, wtp: Sequence[float]) -> pd.DataFrame:
    """
    Cost-effectiveness acceptability curve.

    Each sample votes for the strategy with the highest NMB (ties go to the
    earlier strategy), so proportions at one threshold sum to 1.

    Returns:
        DataFrame with WTP, Strategy, Proportion, On_Frontier. On_Frontier
        marks the strategy with the highest expected NMB.
    """
    grid = _wtp_grid(wtp)
    cost, effect, names = psa.complete_matrices()
    n_sim = cost.shape[0]
    logger.info(f"Computing CEAC for {len(names)} strategies at {grid.size} WTP values")

    frames = []
    for w in grid:
        nmb = net_monetary_benefit(cost, effect, w)
        winners = nmb.argmax(axis=1)
        counts = np.bincount(winners, minlength=len(names))
        frames.append(pd.DataFrame({
            'WTP': w,
            'Strategy': names,
            'Proportion': counts / n_sim,
            'On_Frontier': _optimal_mask(nmb.mean(axis=0)),
        }))
    return pd.concat(frames, ignore_index=True)


def summarize_ceac(ceac_df: pd.DataFrame) -> pd.DataFrame:
    """
    WTP ranges over which each strategy is most often optimal.

    At every threshold the strategy with the highest proportion wins (ties go
    to the strategy listed first); consecutive thresholds won by the same
    strategy are merged into one range. Strategies that never win are absent.

    Returns:
        DataFrame with range_min, range_max, cost_eff_strat
    """
    required = {'WTP', 'Strategy', 'Proportion'}
    if not required.issubset(ceac_df.columns):
        raise ConfigurationError(f"CEAC table must have columns {sorted(required)}")

    winners = []
    for w, group in ceac_df.groupby('WTP', sort=True):
        best = group.loc[group['Proportion'].idxmax(), 'Strategy']
        winners.append((w, best))

    rows = []
    for w, strategy in winners:
        if rows and rows[-1]['cost_eff_strat'] == strategy:
            rows[-1]['range_max'] = w
        else:
            rows.append({'range_min': w, 'range_max': w, 'cost_eff_strat': strategy})
    return pd.DataFrame(rows, columns=['range_min', 'range_max', 'cost_eff_strat'])


def calc_evpi(psa: PSA, wtp: Sequence[float], pop: float = 1) -> pd.DataFrame:
    """
    Expected value of perfect information per threshold.

    EVPI(w) = mean_i max_j NMB[i, j] - max_j mean_i NMB[i, j], scaled by `pop`.

    Returns:
        DataFrame with WTP, EVPI
    """
    grid = _wtp_grid(wtp)
    cost, effect, names = psa.complete_matrices()
    logger.info(f"Computing EVPI for {len(names)} strategies at {grid.size} WTP values")

    evpi = np.empty(grid.size)
    for k, w in enumerate(grid):
        nmb = net_monetary_benefit(cost, effect, w)
        value = nmb.max(axis=1).mean() - nmb.mean(axis=0).max()
        # float round-off can push a true zero slightly negative
        evpi[k] = max(value, 0.0) * pop
    return pd.DataFrame({'WTP': grid, 'EVPI': evpi})
