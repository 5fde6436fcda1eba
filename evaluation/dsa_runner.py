"""DSA Runner

Deterministic one-way and two-way sensitivity analysis: sweeps one or two
parameters over equally spaced grids, holding every other parameter at its
base-case value, and summarizes the sweeps for tornado and optimal-strategy
displays.
"""

import numpy as np
import pandas as pd
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union
from dataclasses import dataclass
from itertools import product
from tqdm import tqdm
import logging

from utils.exceptions import ConfigurationError
from .model_runner import ModelRunner, STRATEGY_COL

logger = logging.getLogger(__name__)

# Column names of the sweep output tables
RESERVED_NAMES = (STRATEGY_COL, 'outcome_val', 'parameter', 'param_val')


@dataclass
class DSAConfig:
    """Configuration for deterministic sensitivity analysis"""
    nsamp: int = 100


@dataclass(frozen=True)
class ParameterRange:
    """Range of one parameter in a deterministic sweep"""
    name: str
    min: float
    max: float

    def __post_init__(self):
        if not isinstance(self.name, str) or not self.name:
            raise ConfigurationError(f"range parameter name must be a non-empty string, got {self.name!r}")
        try:
            low, high = float(self.min), float(self.max)
        except (TypeError, ValueError):
            raise ConfigurationError(
                f"range for {self.name!r} must be numeric, got ({self.min!r}, {self.max!r})"
            ) from None
        if not (np.isfinite(low) and np.isfinite(high)):
            raise ConfigurationError(f"range for {self.name!r} must be finite, got ({low}, {high})")
        if low > high:
            raise ConfigurationError(f"range for {self.name!r} has min {low} > max {high}")
        object.__setattr__(self, 'min', low)
        object.__setattr__(self, 'max', high)

    def values(self, nsamp: int) -> np.ndarray:
        """nsamp equally spaced values over [min, max], both ends included"""
        return np.linspace(self.min, self.max, nsamp)


RangeInput = Union[pd.DataFrame, Sequence[ParameterRange], Sequence[Sequence[Any]]]


def parse_range_table(params_range: RangeInput) -> List[ParameterRange]:
    """
    Convert a range table into ParameterRange records.

    Accepts ParameterRange records, (name, min, max) rows, or a DataFrame
    whose three columns are, in order, parameter name, minimum, maximum.
    """
    if isinstance(params_range, pd.DataFrame):
        if params_range.shape[1] != 3:
            raise ConfigurationError(
                f"range table needs exactly 3 columns (name, min, max), got {params_range.shape[1]}"
            )
        rows = list(params_range.itertuples(index=False, name=None))
    else:
        rows = list(params_range)

    ranges = []
    for row in rows:
        if isinstance(row, ParameterRange):
            ranges.append(row)
            continue
        if len(row) != 3:
            raise ConfigurationError(f"range row must be (name, min, max), got {row!r}")
        ranges.append(ParameterRange(*row))

    if not ranges:
        raise ConfigurationError("range table is empty")
    names = [r.name for r in ranges]
    if len(set(names)) != len(names):
        raise ConfigurationError(f"range table repeats parameters: {names}")
    clashing = [n for n in names if n in RESERVED_NAMES]
    if clashing:
        raise ConfigurationError(
            f"range parameters {clashing} clash with output column names {list(RESERVED_NAMES)}"
        )
    return ranges


def _check_inputs(ranges: List[ParameterRange], params_basecase: Mapping[str, Any], nsamp: int) -> None:
    if isinstance(nsamp, bool) or not isinstance(nsamp, (int, np.integer)) or nsamp < 2:
        raise ConfigurationError(f"nsamp must be an integer >= 2, got {nsamp!r}")
    missing = [r.name for r in ranges if r.name not in params_basecase]
    if missing:
        raise ConfigurationError(f"range parameters {missing} are not in params_basecase")


def run_owsa_det(
    model_fn: Callable,
    params_range: RangeInput,
    params_basecase: Mapping[str, Any],
    nsamp: int = 100,
    outcomes: Optional[Sequence[str]] = None,
    strategies: Optional[Sequence[str]] = None,
    fixed_args: Optional[Mapping[str, Any]] = None,
    progress: bool = False,
) -> Dict[str, pd.DataFrame]:
    """
    One-way deterministic sensitivity analysis.

    Each parameter in the range table is swept independently over nsamp
    values while all other parameters stay at base case.

    Returns:
        Dict outcome -> DataFrame with columns
        parameter, param_val, strategy, outcome_val
    """
    ranges = parse_range_table(params_range)
    _check_inputs(ranges, params_basecase, nsamp)

    runner = ModelRunner(model_fn, params_basecase, fixed_args, outcomes, strategies)
    logger.info(f"Running one-way DSA on {len(ranges)} parameters with nsamp={nsamp}")

    points = [(r.name, float(v)) for r in ranges for v in r.values(nsamp)]
    frames = []
    for name, value in tqdm(points, desc='OWSA', disable=not progress):
        table = runner.evaluate({name: value}, {'parameter': name, 'value': value})
        table.insert(0, 'param_val', value)
        table.insert(0, 'parameter', name)
        frames.append(table)

    combined = pd.concat(frames, ignore_index=True)
    results = {}
    for outcome in runner.outcome_names:
        results[outcome] = (
            combined[['parameter', 'param_val', STRATEGY_COL, outcome]]
            .rename(columns={outcome: 'outcome_val'})
            .reset_index(drop=True)
        )
    logger.info(f"One-way DSA complete: {len(points)} evaluations, outcomes {list(results)}")
    return results


def run_twsa_det(
    model_fn: Callable,
    params_range: RangeInput,
    params_basecase: Mapping[str, Any],
    nsamp: int = 40,
    outcomes: Optional[Sequence[str]] = None,
    strategies: Optional[Sequence[str]] = None,
    fixed_args: Optional[Mapping[str, Any]] = None,
    progress: bool = False,
) -> Dict[str, pd.DataFrame]:
    """
    Two-way deterministic sensitivity analysis over the full nsamp x nsamp grid.

    Returns:
        Dict outcome -> DataFrame with columns
        <param1>, <param2>, strategy, outcome_val

    Raises:
        ConfigurationError: unless the range table has exactly two parameters
    """
    ranges = parse_range_table(params_range)
    if len(ranges) != 2:
        raise ConfigurationError(f"two-way DSA needs exactly 2 parameters, got {len(ranges)}")
    _check_inputs(ranges, params_basecase, nsamp)

    first, second = ranges
    runner = ModelRunner(model_fn, params_basecase, fixed_args, outcomes, strategies)
    grid = list(product(first.values(nsamp), second.values(nsamp)))
    logger.info(f"Running two-way DSA on {first.name} x {second.name}: {len(grid)} grid points")

    frames = []
    for v1, v2 in tqdm(grid, desc='TWSA', disable=not progress):
        point = {first.name: float(v1), second.name: float(v2)}
        table = runner.evaluate(point, point)
        table.insert(0, second.name, float(v2))
        table.insert(0, first.name, float(v1))
        frames.append(table)

    combined = pd.concat(frames, ignore_index=True)
    results = {}
    for outcome in runner.outcome_names:
        results[outcome] = (
            combined[[first.name, second.name, STRATEGY_COL, outcome]]
            .rename(columns={outcome: 'outcome_val'})
            .reset_index(drop=True)
        )
    logger.info(f"Two-way DSA complete: {len(grid)} evaluations")
    return results


def owsa_tornado_data(
    owsa: pd.DataFrame,
    strategy: Optional[str] = None,
    base_value: Optional[float] = None,
) -> pd.DataFrame:
    """
    Tornado diagram data for one strategy.

    Args:
        owsa: One-way long table (parameter, param_val, strategy, outcome_val)
        strategy: Strategy to summarize; may be omitted for single-strategy tables
        base_value: Reference outcome; defaults to the strategy's mean outcome

    Returns:
        DataFrame with parameter, param_low, param_high, outcome_low,
        outcome_high, base_value, range; widest range first
    """
    available = list(pd.unique(owsa[STRATEGY_COL]))
    if strategy is None:
        if len(available) != 1:
            raise ConfigurationError(f"strategy must be given when the table has several: {available}")
        strategy = available[0]
    if strategy not in available:
        raise ConfigurationError(f"unknown strategy {strategy!r}; available: {available}")

    sub = owsa[owsa[STRATEGY_COL] == strategy]
    if base_value is None:
        base_value = float(sub['outcome_val'].mean())

    rows = []
    for name, group in sub.groupby('parameter', sort=False):
        group = group.sort_values('param_val')
        low, high = group.iloc[0], group.iloc[-1]
        rows.append({
            'parameter': name,
            'param_low': low['param_val'],
            'param_high': high['param_val'],
            'outcome_low': low['outcome_val'],
            'outcome_high': high['outcome_val'],
            'base_value': base_value,
            'range': abs(high['outcome_val'] - low['outcome_val']),
        })

    df = pd.DataFrame(rows)
    return df.sort_values('range', ascending=False, kind='stable').reset_index(drop=True)


def _opt_strat(df: pd.DataFrame, keys: List[str], maximize: bool) -> pd.DataFrame:
    ordered = df.sort_values('outcome_val', ascending=not maximize, kind='stable')
    best = ordered.drop_duplicates(subset=keys, keep='first')
    best = best.sort_values(keys, kind='stable')
    return best[keys + [STRATEGY_COL]].reset_index(drop=True)


def owsa_opt_strat(owsa: pd.DataFrame, maximize: bool = True) -> pd.DataFrame:
    """Optimal strategy at each evaluated (parameter, param_val) point"""
    logger.debug(f"Finding optimal strategies over {owsa['parameter'].nunique()} parameters")
    return _opt_strat(owsa, ['parameter', 'param_val'], maximize)


def twsa_opt_strat(twsa: pd.DataFrame, maximize: bool = True) -> pd.DataFrame:
    """Optimal strategy at each grid point of a two-way table"""
    keys = [c for c in twsa.columns if c not in (STRATEGY_COL, 'outcome_val')]
    if len(keys) != 2:
        raise ConfigurationError(f"two-way table must have two parameter columns, got {keys}")
    return _opt_strat(twsa, keys, maximize)
