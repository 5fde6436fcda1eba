"""Decision Models Module

Demonstration decision models satisfying the evaluation contract
model_fn(params, **fixed_args) -> table of per-strategy outcomes.
"""

from .markov_cohort import MarkovConfig, run_markov, STRATEGIES

__all__ = ['MarkovConfig', 'run_markov', 'STRATEGIES']
