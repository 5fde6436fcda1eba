"""PSA Object

Read-only container for probabilistic sensitivity analysis output: cost and
effect matrices (samples x strategies), the parameter samples behind them,
strategy names and display labels. Every statistic is recomputed on demand.
"""

import numpy as np
import pandas as pd
from typing import List, Optional, Sequence, Union
import logging

from utils.exceptions import ConfigurationError, DimensionMismatch
from .icers import calculate_icers, frontier_strategies, incremental_outcomes

logger = logging.getLogger(__name__)

MatrixLike = Union[pd.DataFrame, np.ndarray, Sequence[Sequence[float]]]


def default_strategy_names(n_strategies: int) -> List[str]:
    """Strategy_1 .. Strategy_k"""
    return [f"Strategy_{i + 1}" for i in range(n_strategies)]


def _as_matrix(data: Optional[MatrixLike], label: str) -> Optional[np.ndarray]:
    if data is None:
        return None
    values = data.to_numpy(dtype=float) if isinstance(data, pd.DataFrame) else np.asarray(data, dtype=float)
    if values.ndim != 2:
        raise DimensionMismatch(f"{label} must be two-dimensional (samples x strategies), got {values.ndim}D")
    if values.shape[0] == 0 or values.shape[1] == 0:
        raise DimensionMismatch(f"{label} is empty: shape {values.shape}")

    # A strategy is either fully present or fully absent
    missing = np.isnan(values)
    ragged = missing.any(axis=0) & ~missing.all(axis=0)
    if ragged.any():
        cols = np.flatnonzero(ragged).tolist()
        raise DimensionMismatch(f"{label} has partially missing samples in strategy columns {cols}")

    values = values.copy()
    values.setflags(write=False)
    return values


class PSA:
    """
    Probabilistic sensitivity analysis results.

    Cost and effect are samples x strategies; a single sample of k
    strategies is one row, e.g. [[c1, ..., ck]]. One-dimensional input is
    rejected rather than guessed.

    Attributes:
        strategies: Strategy names, one per matrix column
        n_sim: Number of samples (rows)
        n_strategies: Number of strategies (columns)
        currency: Currency label for display
        effect_units: Effect unit label for display
    """

    def __init__(
        self,
        cost: Optional[MatrixLike],
        effect: Optional[MatrixLike],
        parameters: Optional[pd.DataFrame] = None,
        strategies: Optional[Sequence[str]] = None,
        currency: str = '$',
        effect_units: str = 'QALY',
    ):
        self._cost = _as_matrix(cost, 'cost')
        self._effect = _as_matrix(effect, 'effect')
        if self._cost is None and self._effect is None:
            raise ConfigurationError("a PSA object needs a cost matrix, an effect matrix, or both")

        shapes = [m.shape for m in (self._cost, self._effect) if m is not None]
        if len(set(shapes)) != 1:
            raise DimensionMismatch(f"cost shape {shapes[0]} does not match effect shape {shapes[1]}")
        self.n_sim, self.n_strategies = shapes[0]

        if strategies is None:
            strategies = default_strategy_names(self.n_strategies)
        strategies = [str(s) for s in strategies]
        if len(strategies) != self.n_strategies:
            raise DimensionMismatch(
                f"{len(strategies)} strategy names for {self.n_strategies} strategy columns"
            )
        if len(set(strategies)) != len(strategies):
            raise ConfigurationError(f"strategy names must be unique: {strategies}")
        self.strategies = tuple(strategies)

        if parameters is None:
            parameters = pd.DataFrame(index=range(self.n_sim))
        elif not isinstance(parameters, pd.DataFrame):
            parameters = pd.DataFrame(parameters)
        if len(parameters) != self.n_sim:
            raise DimensionMismatch(
                f"parameter table has {len(parameters)} rows for {self.n_sim} samples"
            )
        self._parameters = parameters.reset_index(drop=True).copy()

        self.currency = currency
        self.effect_units = effect_units
        logger.info(f"Built PSA object: {self.n_sim} samples x {self.n_strategies} strategies")

    def __repr__(self):
        return (
            f"PSA(n_sim={self.n_sim}, strategies={list(self.strategies)}, "
            f"currency={self.currency!r}, effect_units={self.effect_units!r})"
        )

    def _frame(self, values: Optional[np.ndarray]) -> Optional[pd.DataFrame]:
        if values is None:
            return None
        return pd.DataFrame(values.copy(), columns=list(self.strategies))

    @property
    def cost(self) -> Optional[pd.DataFrame]:
        return self._frame(self._cost)

    @property
    def effect(self) -> Optional[pd.DataFrame]:
        return self._frame(self._effect)

    @property
    def parameters(self) -> pd.DataFrame:
        return self._parameters.copy()

    @property
    def has_cost(self) -> bool:
        return self._cost is not None

    @property
    def has_effect(self) -> bool:
        return self._effect is not None

    def require_cost_effect(self, operation: str) -> None:
        if self._cost is None or self._effect is None:
            raise ConfigurationError(f"{operation} needs both a cost and an effect matrix")

    def available_mask(self) -> np.ndarray:
        """True for strategies whose cost and effect columns hold data"""
        mask = np.ones(self.n_strategies, dtype=bool)
        for values in (self._cost, self._effect):
            if values is not None:
                mask &= ~np.isnan(values).all(axis=0)
        return mask

    def complete_matrices(self):
        """
        (cost, effect, strategies) restricted to strategies with data.

        Returned arrays are read-only views of the stored matrices.
        """
        self.require_cost_effect("this computation")
        mask = self.available_mask()
        if not mask.any():
            raise ConfigurationError("no strategy has both cost and effect data")
        names = [s for s, keep in zip(self.strategies, mask) if keep]
        return self._cost[:, mask], self._effect[:, mask], names

    def mean_cost(self) -> Optional[pd.Series]:
        if self._cost is None:
            return None
        return pd.Series(self._cost.mean(axis=0), index=list(self.strategies))

    def mean_effect(self) -> Optional[pd.Series]:
        if self._effect is None:
            return None
        return pd.Series(self._effect.mean(axis=0), index=list(self.strategies))

    def summary(self, calc_sds: bool = False) -> pd.DataFrame:
        """Per-strategy mean (and optionally sd) of cost and effect"""
        df = pd.DataFrame({'Strategy': list(self.strategies)})
        if self._cost is not None:
            df['meanCost'] = self._cost.mean(axis=0)
        if self._effect is not None:
            df['meanEffect'] = self._effect.mean(axis=0)
        if calc_sds:
            if self._cost is not None:
                df['sdCost'] = self._cost.std(axis=0, ddof=1) if self.n_sim > 1 else np.nan
            if self._effect is not None:
                df['sdEffect'] = self._effect.std(axis=0, ddof=1) if self.n_sim > 1 else np.nan
        return df

    def calculate_icers(self) -> pd.DataFrame:
        """ICER table on the per-strategy means"""
        cost, effect, names = self.complete_matrices()
        return calculate_icers(cost.mean(axis=0), effect.mean(axis=0), names)

    def frontier(self) -> List[str]:
        """Frontier strategies ordered by increasing mean effect"""
        cost, effect, names = self.complete_matrices()
        return frontier_strategies(cost.mean(axis=0), effect.mean(axis=0), names)

    def incremental_outcomes(self, reference: Optional[str] = None) -> pd.DataFrame:
        """Mean incremental outcomes of every strategy versus a reference"""
        cost, effect, names = self.complete_matrices()
        return incremental_outcomes(cost.mean(axis=0), effect.mean(axis=0), names, reference)


def make_psa_obj(
    cost: Optional[MatrixLike],
    effect: Optional[MatrixLike],
    parameters: Optional[pd.DataFrame] = None,
    strategies: Optional[Sequence[str]] = None,
    currency: str = '$',
    effect_units: str = 'QALY',
) -> PSA:
    """Build a PSA object; see PSA for argument semantics."""
    return PSA(cost, effect, parameters, strategies, currency, effect_units)
