"""PSA Runner

Evaluates the decision model once per row of a parameter sample table and
assembles the per-strategy outcomes into a long table tagged with the
originating sample index.
"""

import pandas as pd
from typing import Any, Callable, List, Mapping, Optional, Sequence
from dataclasses import dataclass
from tqdm import tqdm
import logging

from utils.exceptions import ConfigurationError, OutcomeSchemaMismatch
from analysis.psa_object import PSA
from .model_runner import ModelRunner, STRATEGY_COL

logger = logging.getLogger(__name__)

SAMPLE_COL = 'sample'


@dataclass
class PSARunResult:
    """
    Output of a PSA evaluation run.

    Attributes:
        results: Long table with columns 'sample', 'strategy' and one
                 column per outcome; one row per (sample, strategy)
        parameters: Parameter sample table the run iterated over
        strategies: Strategy names in model order
        outcomes: Outcome names kept from the model output
    """
    results: pd.DataFrame
    parameters: pd.DataFrame
    strategies: List[str]
    outcomes: List[str]

    @property
    def n_sim(self) -> int:
        return len(self.parameters)

    def _check_outcome(self, outcome: str) -> None:
        if outcome not in self.outcomes:
            raise OutcomeSchemaMismatch(f"Unknown outcome {outcome!r}; available: {self.outcomes}")

    def long_table(self, outcome: str) -> pd.DataFrame:
        """Single-outcome long table: sample, strategy, outcome_val"""
        self._check_outcome(outcome)
        df = self.results[[SAMPLE_COL, STRATEGY_COL, outcome]].rename(columns={outcome: 'outcome_val'})
        return df.reset_index(drop=True)

    def outcome_matrix(self, outcome: str) -> pd.DataFrame:
        """Pivot one outcome into a samples x strategies DataFrame"""
        self._check_outcome(outcome)
        wide = self.results.pivot(index=SAMPLE_COL, columns=STRATEGY_COL, values=outcome)
        wide = wide[self.strategies]
        wide.columns.name = None
        return wide

    def to_psa(self, cost: Optional[str] = None, effect: Optional[str] = None,
               currency: str = '$', effect_units: str = 'QALY'):
        """Build a PSA object from the named cost and effect outcomes."""
        if cost is None and effect is None:
            raise ConfigurationError("at least one of cost or effect outcome must be named")
        cost_mat = self.outcome_matrix(cost) if cost is not None else None
        effect_mat = self.outcome_matrix(effect) if effect is not None else None
        return PSA(
            cost=cost_mat,
            effect=effect_mat,
            parameters=self.parameters,
            strategies=self.strategies,
            currency=currency,
            effect_units=effect_units,
        )


def run_psa(
    model_fn: Callable,
    psa_samples: pd.DataFrame,
    params_basecase: Optional[Mapping[str, Any]] = None,
    outcomes: Optional[Sequence[str]] = None,
    strategies: Optional[Sequence[str]] = None,
    fixed_args: Optional[Mapping[str, Any]] = None,
    progress: bool = False,
) -> PSARunResult:
    """
    Run the decision model over every sampled parameter set.

    Args:
        model_fn: Decision model, called as model_fn(params, **fixed_args)
        psa_samples: Parameter sample table, one row per sample
        params_basecase: Values for parameters not in the sample table;
                         sampled values take precedence on overlap
        outcomes: Outcomes to keep (default: all)
        strategies: Optional labels for the model's strategies
        fixed_args: Keyword arguments passed unchanged to every call
        progress: Show a progress bar

    Returns:
        PSARunResult

    Raises:
        ModelEvaluationFailure / OutcomeSchemaMismatch: the whole run aborts
    """
    if not isinstance(psa_samples, pd.DataFrame):
        psa_samples = pd.DataFrame(psa_samples)
    if psa_samples.empty:
        raise ConfigurationError("psa_samples has no rows")

    runner = ModelRunner(model_fn, params_basecase or {}, fixed_args, outcomes, strategies)
    parameters = psa_samples.reset_index(drop=True)
    parameters.index.name = SAMPLE_COL
    logger.info(f"Running PSA over {len(parameters)} samples of {parameters.shape[1]} parameters")

    frames = []
    records = parameters.to_dict(orient='records')
    for idx, row in enumerate(tqdm(records, desc='PSA', disable=not progress)):
        table = runner.evaluate(row, {'sample': idx})
        table.insert(0, SAMPLE_COL, idx)
        frames.append(table)

    results = pd.concat(frames, ignore_index=True)
    logger.info(
        f"PSA complete: {len(parameters)} samples x {len(runner.strategy_labels)} strategies, "
        f"outcomes {runner.outcome_names}"
    )
    return PSARunResult(
        results=results,
        parameters=parameters,
        strategies=runner.strategy_labels,
        outcomes=runner.outcome_names,
    )
