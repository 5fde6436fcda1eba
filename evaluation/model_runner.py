"""Model Runner

Invokes the user-supplied decision model for one parameter set and checks
that every call within a run returns the same strategies and outcomes.

Model contract:
    model_fn(params: dict, **fixed_args) -> table
    The first column holds strategy names; every other column is a numeric
    outcome. One row per strategy.
"""

import pandas as pd
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple
from dataclasses import dataclass
import logging

from utils.exceptions import ConfigurationError, DimensionMismatch, ModelEvaluationFailure, OutcomeSchemaMismatch

logger = logging.getLogger(__name__)

STRATEGY_COL = 'strategy'


@dataclass(frozen=True)
class OutcomeSchema:
    """Strategies and outcome columns fixed by the first call of a run"""
    strategies: Tuple[str, ...]
    outcomes: Tuple[str, ...]


def _describe(context: Mapping[str, Any]) -> str:
    return ', '.join(f"{k}={v!r}" for k, v in context.items())


class ModelRunner:
    """
    Wraps a decision model for repeated evaluation.

    Attributes:
        model_fn: External model function
        base_params: Base-case parameter values
        fixed_args: Extra keyword arguments passed unchanged to every call
        outcomes: Outcomes to keep (None = all returned by the first call)
        strategies: Optional labels replacing the model's strategy names
        schema: Schema of the current run, set by the first call
    """

    def __init__(
        self,
        model_fn: Callable,
        base_params: Mapping[str, Any],
        fixed_args: Optional[Mapping[str, Any]] = None,
        outcomes: Optional[Sequence[str]] = None,
        strategies: Optional[Sequence[str]] = None,
    ):
        if not callable(model_fn):
            raise TypeError(f"model_fn must be callable, got {type(model_fn).__name__}")
        self.model_fn = model_fn
        self.base_params = dict(base_params or {})
        self.fixed_args = dict(fixed_args or {})
        self.outcomes = list(outcomes) if outcomes is not None else None
        self.strategies = [str(s) for s in strategies] if strategies is not None else None
        if self.strategies is not None and len(set(self.strategies)) != len(self.strategies):
            raise ConfigurationError(f"strategy labels must be unique: {self.strategies}")
        self.schema: Optional[OutcomeSchema] = None

    def reset(self) -> None:
        """Forget the schema so the next call starts a new run."""
        self.schema = None

    @property
    def strategy_labels(self) -> List[str]:
        if self.schema is None:
            raise RuntimeError("No model call has been made in this run")
        if self.strategies is not None:
            return list(self.strategies)
        return list(self.schema.strategies)

    @property
    def outcome_names(self) -> List[str]:
        if self.schema is None:
            raise RuntimeError("No model call has been made in this run")
        return list(self.outcomes) if self.outcomes is not None else list(self.schema.outcomes)

    def merge_params(self, overrides: Mapping[str, Any],
                     context: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        """Copy of the base case with `overrides` taking precedence."""
        params = dict(self.base_params)
        for name, value in overrides.items():
            try:
                params[name] = float(value)
            except (TypeError, ValueError):
                where = f" at {_describe(context)}" if context else ""
                raise ConfigurationError(
                    f"Parameter {name!r} has non-numeric value {value!r}{where}"
                ) from None
        return params

    def evaluate(self, overrides: Mapping[str, Any], context: Mapping[str, Any]) -> pd.DataFrame:
        """
        Run the model once.

        Args:
            overrides: Parameter values replacing the base case
            context: Identifies the call in error messages (sample index,
                     parameter name/value)

        Returns:
            DataFrame with a 'strategy' column followed by the kept outcomes

        Raises:
            ModelEvaluationFailure: the model raised
            OutcomeSchemaMismatch: the returned table breaks the run's schema
        """
        params = self.merge_params(overrides, context)
        try:
            result = self.model_fn(params, **self.fixed_args)
        except Exception as exc:
            raise ModelEvaluationFailure(
                f"Model evaluation failed at {_describe(context)}: {exc}", context
            ) from exc

        return self._conform(result, context)

    def _conform(self, result: Any, context: Mapping[str, Any]) -> pd.DataFrame:
        where = _describe(context)
        if not isinstance(result, pd.DataFrame):
            try:
                result = pd.DataFrame(result)
            except (TypeError, ValueError) as exc:
                raise OutcomeSchemaMismatch(
                    f"Model output at {where} is not a table: {exc}"
                ) from exc

        if result.shape[1] < 2:
            raise OutcomeSchemaMismatch(
                f"Model output at {where} needs a strategy column and at least one outcome"
            )

        strategies = tuple(str(s) for s in result.iloc[:, 0])
        outcomes = tuple(str(c) for c in result.columns[1:])
        if len(set(strategies)) != len(strategies):
            raise OutcomeSchemaMismatch(f"Duplicate strategy names at {where}: {list(strategies)}")
        if len(set(outcomes)) != len(outcomes):
            raise OutcomeSchemaMismatch(f"Duplicate outcome columns at {where}: {list(outcomes)}")

        if self.schema is None:
            self._start_schema(strategies, outcomes, where)
        else:
            if outcomes != self.schema.outcomes:
                raise OutcomeSchemaMismatch(
                    f"Outcome columns changed at {where}: expected {list(self.schema.outcomes)}, "
                    f"got {list(outcomes)}"
                )
            if strategies != self.schema.strategies:
                raise OutcomeSchemaMismatch(
                    f"Strategies changed at {where}: expected {list(self.schema.strategies)}, "
                    f"got {list(strategies)}"
                )

        table = pd.DataFrame({STRATEGY_COL: self.strategy_labels})
        values = result.iloc[:, 1:].copy()
        values.columns = list(outcomes)
        for outcome in self.outcome_names:
            try:
                table[outcome] = pd.to_numeric(values[outcome], errors='raise').to_numpy(dtype=float)
            except (TypeError, ValueError) as exc:
                raise OutcomeSchemaMismatch(
                    f"Outcome {outcome!r} is not numeric at {where}"
                ) from exc
        return table

    def _start_schema(self, strategies: Tuple[str, ...], outcomes: Tuple[str, ...], where: str) -> None:
        if self.outcomes is not None:
            missing = [o for o in self.outcomes if o not in outcomes]
            if missing:
                raise OutcomeSchemaMismatch(
                    f"Requested outcomes {missing} not returned by the model at {where}; "
                    f"available: {list(outcomes)}"
                )
        if self.strategies is not None and len(self.strategies) != len(strategies):
            raise DimensionMismatch(
                f"{len(self.strategies)} strategy labels given but the model returned "
                f"{len(strategies)} strategies"
            )
        self.schema = OutcomeSchema(strategies=strategies, outcomes=outcomes)
        logger.debug(f"Model schema: strategies={list(strategies)}, outcomes={list(outcomes)}")
